"""Pydantic schemas for profile and user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ideation.db.enums import ContributionKind, UserRole


class ProfileResponse(BaseModel):
    """The caller's own profile (includes email)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    avatar_url: str | None = None
    role: UserRole
    stars_balance: int
    created_at: datetime


class ContributionStats(BaseModel):
    ideas: int
    sub_ideas: int
    proposals: int
    proposals_pending: int
    proposals_accepted: int
    proposals_rejected: int
    prototypes: int
    team_memberships: int
    comments: int
    votes_cast: int


class PublicProfileResponse(BaseModel):
    id: int
    name: str
    avatar_url: str | None = None
    stars_balance: int
    member_since: datetime
    contributions: ContributionStats


class StarLedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    source_kind: ContributionKind
    source_id: int
    description: str
    created_at: datetime
