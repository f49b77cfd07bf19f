"""Prototype and team endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.dependencies import get_current_actor
from ideation.common.envelope import Envelope
from ideation.common.pagination import PageParams, page_params
from ideation.database import get_session
from ideation.db.models import Prototype
from ideation.errors import ValidationError
from ideation.ideas.schemas import AuthorSummary
from ideation.ideas.service import get_idea
from ideation.prototypes import service
from ideation.prototypes.schemas import (
    AddTeamMemberRequest,
    CreatePrototypeRequest,
    ProposalSummary,
    PrototypeResponse,
    PrototypeStatsResponse,
    TeamMemberResponse,
    UpdatePrototypeRequest,
)

router = APIRouter(prefix="/api/v1", tags=["Prototypes"])


# ── Helper ──


def _build_prototype_response(prototype: Prototype) -> PrototypeResponse:
    """Build a PrototypeResponse from a prototype loaded with author, proposal and team."""
    return PrototypeResponse(
        id=prototype.id,
        title=prototype.title,
        description=prototype.description,
        image_url=prototype.image_url,
        live_url=prototype.live_url,
        proposal_id=prototype.proposal_id,
        author_id=prototype.author_id,
        author=AuthorSummary.model_validate(prototype.author),
        proposal=ProposalSummary.model_validate(prototype.proposal),
        team=[
            TeamMemberResponse(
                user_id=member.user_id,
                name=member.user.name,
                avatar_url=member.user.avatar_url,
                joined_at=member.joined_at,
            )
            for member in prototype.team
        ],
        created_at=prototype.created_at,
        updated_at=prototype.updated_at,
    )


# ── Prototypes ──


@router.post("/prototypes/submit/{proposal_id}", response_model=Envelope[PrototypeResponse], status_code=201)
async def submit_prototype(
    proposal_id: int,
    body: CreatePrototypeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[PrototypeResponse]:
    """Submit a prototype for an ACCEPTED proposal."""
    prototype = await service.create_prototype(
        db,
        actor,
        proposal_id,
        body.title,
        body.description,
        body.image_url,
        body.live_url,
        body.team,
    )
    await db.commit()
    return Envelope(message="Prototype submitted successfully", data=_build_prototype_response(prototype))


@router.get("/prototypes", response_model=Envelope[list[PrototypeResponse]])
async def list_prototypes(
    idea_id: int | None = Query(None, ge=1),
    proposal_id: int | None = Query(None, ge=1),
    author_id: int | None = Query(None, ge=1),
    search: str | None = Query(None, max_length=200),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[PrototypeResponse]]:
    prototypes, pagination = await service.list_prototypes(
        db, params, idea_id=idea_id, proposal_id=proposal_id, author_id=author_id, search=search
    )
    return Envelope(
        message="Prototypes retrieved successfully",
        data=[_build_prototype_response(p) for p in prototypes],
        pagination=pagination,
    )


@router.get("/prototypes/stats", response_model=Envelope[PrototypeStatsResponse])
async def prototype_stats(
    author_id: int | None = Query(None, ge=1),
    idea_id: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> Envelope[PrototypeStatsResponse]:
    stats = await service.get_prototype_stats(db, author_id=author_id, idea_id=idea_id)
    return Envelope(message="Prototype statistics retrieved successfully", data=PrototypeStatsResponse(**stats))


@router.get("/prototypes/{prototype_id}", response_model=Envelope[PrototypeResponse])
async def get_prototype(
    prototype_id: int,
    db: AsyncSession = Depends(get_session),
) -> Envelope[PrototypeResponse]:
    prototype = await service.get_prototype(db, prototype_id)
    return Envelope(message="Prototype retrieved successfully", data=_build_prototype_response(prototype))


@router.put("/prototypes/{prototype_id}", response_model=Envelope[PrototypeResponse])
async def update_prototype(
    prototype_id: int,
    body: UpdatePrototypeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[PrototypeResponse]:
    """Edit a prototype (author or team member)."""
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    prototype = await service.update_prototype(db, actor, prototype_id, changes)
    await db.commit()
    return Envelope(message="Prototype updated successfully", data=_build_prototype_response(prototype))


@router.delete("/prototypes/{prototype_id}", response_model=Envelope[None])
async def delete_prototype(
    prototype_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[None]:
    await service.delete_prototype(db, actor, prototype_id)
    await db.commit()
    return Envelope[None](message="Prototype deleted successfully")


# ── Team ──


@router.post("/prototypes/{prototype_id}/team", response_model=Envelope[PrototypeResponse])
async def add_team_member(
    prototype_id: int,
    body: AddTeamMemberRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[PrototypeResponse]:
    """Add a member (prototype author only)."""
    prototype = await service.add_team_member(db, actor, prototype_id, body.user_id)
    await db.commit()
    return Envelope(message="Team member added successfully", data=_build_prototype_response(prototype))


@router.delete("/prototypes/{prototype_id}/team/{user_id}", response_model=Envelope[PrototypeResponse])
async def remove_team_member(
    prototype_id: int,
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[PrototypeResponse]:
    """Remove a member (prototype author, or the member leaving)."""
    prototype = await service.remove_team_member(db, actor, prototype_id, user_id)
    await db.commit()
    return Envelope(message="Team member removed successfully", data=_build_prototype_response(prototype))


@router.get("/ideas/{idea_id}/prototypes", response_model=Envelope[list[PrototypeResponse]])
async def list_prototypes_for_idea(
    idea_id: int,
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[PrototypeResponse]]:
    await get_idea(db, idea_id)
    prototypes, pagination = await service.list_prototypes(db, params, idea_id=idea_id)
    return Envelope(
        message="Prototypes retrieved successfully",
        data=[_build_prototype_response(p) for p in prototypes],
        pagination=pagination,
    )
