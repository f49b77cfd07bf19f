"""Idea endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.dependencies import get_current_actor
from ideation.common.envelope import Envelope
from ideation.common.pagination import PageParams, page_params
from ideation.database import get_session
from ideation.db.enums import IdeaStatus, IdeaType
from ideation.errors import ValidationError
from ideation.ideas import service
from ideation.ideas.schemas import (
    CreateIdeaRequest,
    IdeaDeleteResponse,
    IdeaResponse,
    IdeaStatsResponse,
    UpdateIdeaRequest,
)

router = APIRouter(prefix="/api/v1", tags=["Ideas"])


def _parse_status(raw: str) -> IdeaStatus | None:
    """``ALL`` lifts the status filter; anything else must name a status."""
    value = raw.strip().upper()
    if value == "ALL":
        return None
    try:
        return IdeaStatus(value)
    except ValueError as e:
        raise ValidationError("Status must be OPEN, CLOSED or ALL") from e


@router.post("/ideas", response_model=Envelope[IdeaResponse], status_code=201)
async def create_idea(
    body: CreateIdeaRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[IdeaResponse]:
    """Submit a new idea. The author earns stars."""
    idea = await service.create_idea(
        db, actor, body.title, body.description, body.type, body.potential_dollar_value
    )
    await db.commit()
    return Envelope(message="Idea created successfully", data=IdeaResponse.model_validate(idea))


@router.get("/ideas", response_model=Envelope[list[IdeaResponse]])
async def list_ideas(
    status: str = Query("OPEN", description="OPEN, CLOSED or ALL"),
    type: IdeaType | None = Query(None),  # noqa: A002
    author_id: int | None = Query(None, ge=1),
    search: str | None = Query(None, max_length=200),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[IdeaResponse]]:
    """List ideas (OPEN only unless ``status`` says otherwise)."""
    ideas, pagination = await service.list_ideas(
        db,
        params,
        status=_parse_status(status),
        type_=type,
        author_id=author_id,
        search=search,
    )
    return Envelope(
        message="Ideas retrieved successfully",
        data=[IdeaResponse.model_validate(i) for i in ideas],
        pagination=pagination,
    )


@router.get("/ideas/stats", response_model=Envelope[IdeaStatsResponse])
async def idea_stats(
    author_id: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> Envelope[IdeaStatsResponse]:
    stats = await service.get_idea_stats(db, author_id)
    return Envelope(message="Idea statistics retrieved successfully", data=IdeaStatsResponse(**stats))


@router.get("/ideas/{idea_id}", response_model=Envelope[IdeaResponse])
async def get_idea(
    idea_id: int,
    db: AsyncSession = Depends(get_session),
) -> Envelope[IdeaResponse]:
    idea = await service.get_idea(db, idea_id)
    return Envelope(message="Idea retrieved successfully", data=IdeaResponse.model_validate(idea))


@router.put("/ideas/{idea_id}", response_model=Envelope[IdeaResponse])
async def update_idea(
    idea_id: int,
    body: UpdateIdeaRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[IdeaResponse]:
    """Partial update (author or admin)."""
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    idea = await service.update_idea(db, actor, idea_id, changes)
    await db.commit()
    return Envelope(message="Idea updated successfully", data=IdeaResponse.model_validate(idea))


@router.patch("/ideas/{idea_id}/close", response_model=Envelope[IdeaResponse])
async def close_idea(
    idea_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[IdeaResponse]:
    """Close an idea for good (author or admin)."""
    idea = await service.close_idea(db, actor, idea_id)
    await db.commit()
    return Envelope(message="Idea closed successfully", data=IdeaResponse.model_validate(idea))


@router.delete("/ideas/{idea_id}", response_model=Envelope[IdeaDeleteResponse])
async def delete_idea(
    idea_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[IdeaDeleteResponse]:
    """Delete an idea with every descendant, votes and comments included."""
    summary = await service.delete_idea(db, actor, idea_id)
    await db.commit()
    return Envelope(
        message="Idea deleted successfully",
        data=IdeaDeleteResponse(
            idea_id=idea_id,
            sub_ideas_deleted=summary.sub_ideas,
            proposals_deleted=summary.proposals,
            prototypes_deleted=summary.prototypes,
            votes_deleted=summary.votes,
            comments_deleted=summary.comments,
            stars_reversed=summary.stars_reversed,
        ),
    )
