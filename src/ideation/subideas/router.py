"""Sub-idea endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.dependencies import get_current_actor
from ideation.common.envelope import Envelope
from ideation.common.pagination import PageParams, page_params
from ideation.database import get_session
from ideation.db.enums import SubIdeaStatus
from ideation.errors import ValidationError
from ideation.ideas.service import get_idea
from ideation.subideas import service
from ideation.subideas.schemas import (
    ChangeSubIdeaStatusRequest,
    CreateSubIdeaRequest,
    OpenSubIdeaResponse,
    SubIdeaResponse,
    SubIdeaStatsResponse,
    UpdateSubIdeaRequest,
)

router = APIRouter(prefix="/api/v1", tags=["Sub-ideas"])


@router.post("/subideas", response_model=Envelope[SubIdeaResponse], status_code=201)
async def create_sub_idea(
    body: CreateSubIdeaRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[SubIdeaResponse]:
    """Attach a sub-idea to an OPEN idea."""
    sub_idea = await service.create_sub_idea(db, actor, body.idea_id, body.title, body.description, body.status)
    await db.commit()
    return Envelope(message="Sub-idea created successfully", data=SubIdeaResponse.model_validate(sub_idea))


@router.get("/subideas", response_model=Envelope[list[SubIdeaResponse]])
async def list_sub_ideas(
    idea_id: int | None = Query(None, ge=1),
    author_id: int | None = Query(None, ge=1),
    status: SubIdeaStatus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[SubIdeaResponse]]:
    sub_ideas, pagination = await service.list_sub_ideas(
        db, params, idea_id=idea_id, author_id=author_id, status=status, search=search
    )
    return Envelope(
        message="Sub-ideas retrieved successfully",
        data=[SubIdeaResponse.model_validate(s) for s in sub_ideas],
        pagination=pagination,
    )


@router.get("/subideas/open", response_model=Envelope[list[OpenSubIdeaResponse]])
async def list_open_sub_ideas(
    search: str | None = Query(None, max_length=200),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[OpenSubIdeaResponse]]:
    """Sub-ideas open for prototyping, for pickers."""
    rows = await service.list_open_sub_ideas(db, search=search, limit=limit)
    return Envelope(
        message="Open sub-ideas retrieved successfully",
        data=[
            OpenSubIdeaResponse(id=s.id, title=s.title, idea_id=s.idea_id, idea_title=idea_title)
            for s, idea_title in rows
        ],
    )


@router.get("/subideas/stats", response_model=Envelope[SubIdeaStatsResponse])
async def sub_idea_stats(
    author_id: int | None = Query(None, ge=1),
    idea_id: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
) -> Envelope[SubIdeaStatsResponse]:
    stats = await service.get_sub_idea_stats(db, author_id=author_id, idea_id=idea_id)
    return Envelope(message="Sub-idea statistics retrieved successfully", data=SubIdeaStatsResponse(**stats))


@router.get("/subideas/{sub_idea_id}", response_model=Envelope[SubIdeaResponse])
async def get_sub_idea(
    sub_idea_id: int,
    db: AsyncSession = Depends(get_session),
) -> Envelope[SubIdeaResponse]:
    sub_idea = await service.get_sub_idea(db, sub_idea_id)
    return Envelope(message="Sub-idea retrieved successfully", data=SubIdeaResponse.model_validate(sub_idea))


@router.put("/subideas/{sub_idea_id}", response_model=Envelope[SubIdeaResponse])
async def update_sub_idea(
    sub_idea_id: int,
    body: UpdateSubIdeaRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[SubIdeaResponse]:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    sub_idea = await service.update_sub_idea(db, actor, sub_idea_id, changes)
    await db.commit()
    return Envelope(message="Sub-idea updated successfully", data=SubIdeaResponse.model_validate(sub_idea))


@router.patch("/subideas/{sub_idea_id}/status", response_model=Envelope[SubIdeaResponse])
async def change_sub_idea_status(
    sub_idea_id: int,
    body: ChangeSubIdeaStatusRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[SubIdeaResponse]:
    sub_idea = await service.change_sub_idea_status(db, actor, sub_idea_id, body.status)
    await db.commit()
    return Envelope(
        message="Sub-idea status updated successfully",
        data=SubIdeaResponse.model_validate(sub_idea),
    )


@router.delete("/subideas/{sub_idea_id}", response_model=Envelope[None])
async def delete_sub_idea(
    sub_idea_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[None]:
    """Delete a sub-idea that has no proposals."""
    await service.delete_sub_idea(db, actor, sub_idea_id)
    await db.commit()
    return Envelope[None](message="Sub-idea deleted successfully")


@router.get("/ideas/{idea_id}/subideas", response_model=Envelope[list[SubIdeaResponse]])
async def list_sub_ideas_for_idea(
    idea_id: int,
    status: SubIdeaStatus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_session),
) -> Envelope[list[SubIdeaResponse]]:
    await get_idea(db, idea_id)
    sub_ideas, pagination = await service.list_sub_ideas(
        db, params, idea_id=idea_id, status=status, search=search
    )
    return Envelope(
        message="Sub-ideas retrieved successfully",
        data=[SubIdeaResponse.model_validate(s) for s in sub_ideas],
        pagination=pagination,
    )
