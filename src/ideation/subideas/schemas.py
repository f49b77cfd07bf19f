"""Pydantic schemas for sub-idea endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ideation.common.fields import Description, Title
from ideation.db.enums import IdeaStatus, SubIdeaStatus
from ideation.ideas.schemas import AuthorSummary


class CreateSubIdeaRequest(BaseModel):
    title: Title
    description: Description
    status: SubIdeaStatus
    idea_id: int = Field(..., ge=1)


class UpdateSubIdeaRequest(BaseModel):
    title: Title | None = None
    description: Description | None = None
    status: SubIdeaStatus | None = None


class ChangeSubIdeaStatusRequest(BaseModel):
    status: SubIdeaStatus


class IdeaSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: IdeaStatus


class SubIdeaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    status: SubIdeaStatus
    idea_id: int
    author_id: int
    author: AuthorSummary | None = None
    idea: IdeaSummary | None = None
    created_at: datetime
    updated_at: datetime


class OpenSubIdeaResponse(BaseModel):
    """Dropdown entry for sub-ideas open for prototyping."""

    id: int
    title: str
    idea_id: int
    idea_title: str


class SubIdeaStatsResponse(BaseModel):
    total_sub_ideas: int
    open_for_prototyping: int
    self_prototyping: int
    total_proposals: int
    avg_proposals_per_sub_idea: float
