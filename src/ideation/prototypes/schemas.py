"""Pydantic schemas for prototype endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ideation.common.fields import Description, HttpUrl, Title
from ideation.db.enums import ProposalStatus
from ideation.ideas.schemas import AuthorSummary


class CreatePrototypeRequest(BaseModel):
    title: Title
    description: Description
    image_url: HttpUrl
    live_url: HttpUrl | None = None
    team: list[int] = Field(default_factory=list, max_length=50)


class UpdatePrototypeRequest(BaseModel):
    title: Title | None = None
    description: Description | None = None
    image_url: HttpUrl | None = None
    live_url: HttpUrl | None = None


class AddTeamMemberRequest(BaseModel):
    user_id: int = Field(..., ge=1)


class TeamMemberResponse(BaseModel):
    user_id: int
    name: str
    avatar_url: str | None = None
    joined_at: datetime


class ProposalSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: ProposalStatus
    sub_idea_id: int


class PrototypeResponse(BaseModel):
    id: int
    title: str
    description: str
    image_url: str
    live_url: str | None = None
    proposal_id: int
    author_id: int
    author: AuthorSummary | None = None
    proposal: ProposalSummary | None = None
    team: list[TeamMemberResponse] = []
    created_at: datetime
    updated_at: datetime


class PrototypeStatsResponse(BaseModel):
    total_prototypes: int
    with_live_url: int
    total_team_members: int
    avg_team_size: float
