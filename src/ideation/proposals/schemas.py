"""Pydantic schemas for proposal endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator

from ideation.common.fields import Description, HttpUrl, RejectionReason, Title
from ideation.db.enums import ProposalStatus, SubIdeaStatus
from ideation.ideas.schemas import AuthorSummary


class CreateProposalRequest(BaseModel):
    title: Title
    description: Description
    presentation_url: HttpUrl | None = None


class UpdateProposalRequest(BaseModel):
    title: Title | None = None
    description: Description | None = None
    presentation_url: HttpUrl | None = None


class ReviewProposalRequest(BaseModel):
    """Accept or reject. A reason is required when rejecting and dropped when accepting."""

    status: ProposalStatus
    rejection_reason: RejectionReason | None = None

    @model_validator(mode="after")
    def reason_required_for_rejection(self) -> ReviewProposalRequest:
        if self.status == ProposalStatus.PENDING:
            raise ValueError("Status must be ACCEPTED or REJECTED")
        if self.status == ProposalStatus.REJECTED and self.rejection_reason is None:
            raise ValueError("Rejection reason is required when rejecting a proposal")
        if self.status == ProposalStatus.ACCEPTED:
            self.rejection_reason = None
        return self


class SubIdeaSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: SubIdeaStatus
    idea_id: int


class ProposalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    presentation_url: str | None = None
    status: ProposalStatus
    rejection_reason: str | None = None
    sub_idea_id: int
    author_id: int
    author: AuthorSummary | None = None
    sub_idea: SubIdeaSummary | None = None
    created_at: datetime
    updated_at: datetime


class ProposalStatsResponse(BaseModel):
    total_proposals: int
    pending: int
    accepted: int
    rejected: int
