"""Proposal endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.dependencies import get_current_actor
from ideation.common.envelope import Envelope
from ideation.common.pagination import PageParams, page_params
from ideation.database import get_session
from ideation.db.enums import ProposalStatus
from ideation.errors import ValidationError
from ideation.ideas.service import get_idea
from ideation.proposals import service
from ideation.proposals.schemas import (
    CreateProposalRequest,
    ProposalResponse,
    ProposalStatsResponse,
    ReviewProposalRequest,
    UpdateProposalRequest,
)

router = APIRouter(prefix="/api/v1", tags=["Proposals"])


@router.post("/proposals/submit/{sub_idea_id}", response_model=Envelope[ProposalResponse], status_code=201)
async def submit_proposal(
    sub_idea_id: int,
    body: CreateProposalRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[ProposalResponse]:
    """Submit a proposal against a sub-idea."""
    proposal = await service.create_proposal(
        db, actor, sub_idea_id, body.title, body.description, body.presentation_url
    )
    await db.commit()
    return Envelope(message="Proposal submitted successfully", data=ProposalResponse.model_validate(proposal))


@router.get("/proposals", response_model=Envelope[list[ProposalResponse]])
async def list_proposals(
    idea_id: int | None = Query(None, ge=1),
    sub_idea_id: int | None = Query(None, ge=1),
    author_id: int | None = Query(None, ge=1),
    status: ProposalStatus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[ProposalResponse]]:
    proposals, pagination = await service.list_proposals(
        db,
        params,
        idea_id=idea_id,
        sub_idea_id=sub_idea_id,
        author_id=author_id,
        status=status,
        search=search,
    )
    return Envelope(
        message="Proposals retrieved successfully",
        data=[ProposalResponse.model_validate(p) for p in proposals],
        pagination=pagination,
    )


@router.get("/proposals/stats", response_model=Envelope[ProposalStatsResponse])
async def proposal_stats(
    author_id: int | None = Query(None, ge=1),
    idea_id: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> Envelope[ProposalStatsResponse]:
    stats = await service.get_proposal_stats(db, author_id=author_id, idea_id=idea_id)
    return Envelope(message="Proposal statistics retrieved successfully", data=ProposalStatsResponse(**stats))


@router.get("/proposals/{proposal_id}", response_model=Envelope[ProposalResponse])
async def get_proposal(
    proposal_id: int,
    db: AsyncSession = Depends(get_session),
) -> Envelope[ProposalResponse]:
    proposal = await service.get_proposal(db, proposal_id)
    return Envelope(message="Proposal retrieved successfully", data=ProposalResponse.model_validate(proposal))


@router.put("/proposals/{proposal_id}", response_model=Envelope[ProposalResponse])
async def update_proposal(
    proposal_id: int,
    body: UpdateProposalRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[ProposalResponse]:
    """Edit a PENDING proposal (author only)."""
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    proposal = await service.update_proposal(db, actor, proposal_id, changes)
    await db.commit()
    return Envelope(message="Proposal updated successfully", data=ProposalResponse.model_validate(proposal))


@router.patch("/proposals/{proposal_id}/status", response_model=Envelope[ProposalResponse])
async def review_proposal(
    proposal_id: int,
    body: ReviewProposalRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[ProposalResponse]:
    """Accept or reject a PENDING proposal (idea author only)."""
    proposal = await service.review_proposal(db, actor, proposal_id, body.status, body.rejection_reason)
    await db.commit()
    return Envelope(
        message=f"Proposal {body.status.value.lower()} successfully",
        data=ProposalResponse.model_validate(proposal),
    )


@router.delete("/proposals/{proposal_id}", response_model=Envelope[None])
async def delete_proposal(
    proposal_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[None]:
    await service.delete_proposal(db, actor, proposal_id)
    await db.commit()
    return Envelope[None](message="Proposal deleted successfully")


@router.get("/ideas/{idea_id}/proposals", response_model=Envelope[list[ProposalResponse]])
async def list_proposals_for_idea(
    idea_id: int,
    status: ProposalStatus | None = Query(None),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[ProposalResponse]]:
    await get_idea(db, idea_id)
    proposals, pagination = await service.list_proposals(db, params, idea_id=idea_id, status=status)
    return Envelope(
        message="Proposals retrieved successfully",
        data=[ProposalResponse.model_validate(p) for p in proposals],
        pagination=pagination,
    )
