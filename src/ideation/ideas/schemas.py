"""Pydantic schemas for idea endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ideation.common.fields import Description, Title
from ideation.db.enums import IdeaStatus, IdeaType


class AuthorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar_url: str | None = None


class CreateIdeaRequest(BaseModel):
    title: Title
    description: Description
    type: IdeaType
    potential_dollar_value: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)


class UpdateIdeaRequest(BaseModel):
    title: Title | None = None
    description: Description | None = None
    type: IdeaType | None = None
    potential_dollar_value: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)


class IdeaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    type: IdeaType
    status: IdeaStatus
    potential_dollar_value: float | None = None
    total_proposals: int
    total_prototypes: int
    author_id: int
    author: AuthorSummary | None = None
    created_at: datetime
    updated_at: datetime


class IdeaDeleteResponse(BaseModel):
    """Rows removed by an idea delete and the stars taken back."""

    idea_id: int
    sub_ideas_deleted: int
    proposals_deleted: int
    prototypes_deleted: int
    votes_deleted: int
    comments_deleted: int
    stars_reversed: dict[int, int]


class IdeaStatsResponse(BaseModel):
    total_ideas: int
    open_ideas: int
    closed_ideas: int
    ideation_ideas: int
    solution_request_ideas: int
    total_proposals: int
    total_prototypes: int
    avg_potential_value: float | None = None
