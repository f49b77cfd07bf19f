"""Pydantic schemas for comment endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ideation.common.fields import CommentContent
from ideation.db.enums import CommentTargetKind
from ideation.ideas.schemas import AuthorSummary


class CreateCommentRequest(BaseModel):
    content: CommentContent
    parent_comment_id: int | None = Field(None, ge=1)


class CommentResponse(BaseModel):
    id: int
    content: str
    author_id: int
    author: AuthorSummary | None = None
    target_kind: CommentTargetKind
    target_id: int
    parent_comment_id: int | None = None
    created_at: datetime
    updated_at: datetime
    replies: list[CommentResponse] = []


class CommentThreadResponse(BaseModel):
    comments: list[CommentResponse]
    total_comments: int
