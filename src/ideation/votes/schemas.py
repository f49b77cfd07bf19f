"""Pydantic schemas for vote endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ideation.db.enums import VoteTargetKind


class CastVoteRequest(BaseModel):
    value: int = Field(..., description="1 to upvote, -1 to downvote")


class VoteCountsResponse(BaseModel):
    upvotes: int
    downvotes: int
    total: int


class VoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    target_kind: VoteTargetKind
    target_id: int
    value: int
    created_at: datetime
    updated_at: datetime


class CastVoteResponse(BaseModel):
    action: Literal["created", "updated", "removed"]
    vote: VoteResponse | None = None
    vote_counts: VoteCountsResponse


class VoteSummaryResponse(BaseModel):
    vote_counts: VoteCountsResponse
    user_vote: int | None = None
