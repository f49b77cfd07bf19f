"""Sub-idea business logic.

Rules:
- The parent idea must exist and be OPEN; it is locked while the sub-idea is
  inserted
- An author may use a title only once per idea (case-insensitive, unique
  index); renaming must not collide with any sub-idea of the same idea
- The sub-idea author, the idea author or an admin may update, change status
  or delete
- A sub-idea with proposals cannot be deleted
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ideation.auth.actor import Actor
from ideation.common.envelope import Pagination
from ideation.common.pagination import PageParams, paginate, search_pattern
from ideation.db.enums import ContributionKind, SubIdeaStatus
from ideation.db.models import Idea, Proposal, SubIdea
from ideation.errors import ConflictError, NotFoundError
from ideation.workflow.hierarchy import lineage_of_sub_idea, lock_idea, lock_idea_for_sub_idea
from ideation.workflow.ledger import credit_stars, purge_entities
from ideation.workflow.permissions import Action, ensure_can_mutate

logger = structlog.get_logger()

SORTABLE = {
    "created_at": SubIdea.created_at,
    "updated_at": SubIdea.updated_at,
    "title": SubIdea.title,
    "status": SubIdea.status,
}

_LOAD = (selectinload(SubIdea.author), selectinload(SubIdea.idea))


async def get_sub_idea(db: AsyncSession, sub_idea_id: int) -> SubIdea:
    """Load a sub-idea with its author and idea, or raise 404."""
    result = await db.execute(
        select(SubIdea)
        .where(SubIdea.id == sub_idea_id)
        .options(*_LOAD)
        .execution_options(populate_existing=True)
    )
    sub_idea = result.scalar_one_or_none()
    if sub_idea is None:
        raise NotFoundError("Sub-idea not found")
    return sub_idea


async def create_sub_idea(
    db: AsyncSession,
    actor: Actor,
    idea_id: int,
    title: str,
    description: str,
    status: SubIdeaStatus,
) -> SubIdea:
    """Attach a sub-idea to an OPEN idea and credit its author."""
    await lock_idea_for_sub_idea(db, idea_id)

    duplicate = await db.execute(
        select(SubIdea.id).where(
            SubIdea.idea_id == idea_id,
            SubIdea.author_id == actor.user_id,
            func.lower(SubIdea.title) == title.lower(),
        )
    )
    if duplicate.first() is not None:
        raise ConflictError("You already have a sub-idea with this title for this idea")

    sub_idea = SubIdea(
        title=title,
        description=description,
        status=status,
        idea_id=idea_id,
        author_id=actor.user_id,
    )
    db.add(sub_idea)
    await db.flush()

    await credit_stars(
        db, actor.user_id, ContributionKind.SUB_IDEA, sub_idea.id, f"Created sub-idea: {title[:200]}"
    )
    logger.info("sub_idea_created", sub_idea_id=sub_idea.id, idea_id=idea_id, author_id=actor.user_id)
    return await get_sub_idea(db, sub_idea.id)


def _filtered(
    idea_id: int | None,
    author_id: int | None,
    status: SubIdeaStatus | None,
    search: str | None,
) -> Select[Any]:
    query = select(SubIdea)
    if idea_id is not None:
        query = query.where(SubIdea.idea_id == idea_id)
    if author_id is not None:
        query = query.where(SubIdea.author_id == author_id)
    if status is not None:
        query = query.where(SubIdea.status == status)
    if search:
        pattern = search_pattern(search.strip())
        query = query.where(
            or_(SubIdea.title.ilike(pattern, escape="\\"), SubIdea.description.ilike(pattern, escape="\\"))
        )
    return query


async def list_sub_ideas(
    db: AsyncSession,
    params: PageParams,
    *,
    idea_id: int | None = None,
    author_id: int | None = None,
    status: SubIdeaStatus | None = None,
    search: str | None = None,
) -> tuple[list[SubIdea], Pagination]:
    return await paginate(db, _filtered(idea_id, author_id, status, search), params, SORTABLE, options=_LOAD)


async def list_open_sub_ideas(
    db: AsyncSession,
    search: str | None = None,
    limit: int = 100,
) -> list[tuple[SubIdea, str]]:
    """Sub-ideas open for prototyping with their idea titles, sorted by title."""
    query = (
        select(SubIdea, Idea.title)
        .join(Idea, Idea.id == SubIdea.idea_id)
        .where(SubIdea.status == SubIdeaStatus.OPEN_FOR_PROTOTYPING)
        .order_by(SubIdea.title.asc(), SubIdea.id.asc())
        .limit(limit)
    )
    if search:
        query = query.where(SubIdea.title.ilike(search_pattern(search.strip()), escape="\\"))
    result = await db.execute(query)
    return [(row[0], row[1]) for row in result.all()]


async def _authorize(db: AsyncSession, actor: Actor, sub_idea: SubIdea, action: Action) -> None:
    lineage = await lineage_of_sub_idea(db, sub_idea)
    ensure_can_mutate(actor, sub_idea, action, parent_idea_author_id=lineage.idea_author_id)


async def update_sub_idea(
    db: AsyncSession,
    actor: Actor,
    sub_idea_id: int,
    changes: dict[str, Any],
) -> SubIdea:
    """Partial update; a new title must be unique among the idea's sub-ideas."""
    sub_idea = await get_sub_idea(db, sub_idea_id)
    await _authorize(db, actor, sub_idea, Action.UPDATE)

    title = changes.get("title")
    if title is not None and title.lower() != sub_idea.title.lower():
        clash = await db.execute(
            select(SubIdea.id).where(
                SubIdea.idea_id == sub_idea.idea_id,
                SubIdea.id != sub_idea.id,
                func.lower(SubIdea.title) == title.lower(),
            )
        )
        if clash.first() is not None:
            raise ConflictError("A sub-idea with this title already exists for this idea")

    for field_name in ("title", "description", "status"):
        value = changes.get(field_name)
        if value is not None:
            setattr(sub_idea, field_name, value)

    await db.flush()
    logger.info("sub_idea_updated", sub_idea_id=sub_idea.id, fields=sorted(changes))
    return await get_sub_idea(db, sub_idea.id)


async def change_sub_idea_status(
    db: AsyncSession,
    actor: Actor,
    sub_idea_id: int,
    status: SubIdeaStatus,
) -> SubIdea:
    sub_idea = await get_sub_idea(db, sub_idea_id)
    await _authorize(db, actor, sub_idea, Action.CHANGE_STATUS)

    previous = sub_idea.status
    sub_idea.status = status
    await db.flush()
    logger.info(
        "sub_idea_status_changed",
        sub_idea_id=sub_idea.id,
        previous=SubIdeaStatus(previous).value,
        new=status.value,
    )
    return await get_sub_idea(db, sub_idea.id)


async def delete_sub_idea(db: AsyncSession, actor: Actor, sub_idea_id: int) -> None:
    """Delete a sub-idea without proposals, reversing its author's stars."""
    sub_idea = await get_sub_idea(db, sub_idea_id)
    await _authorize(db, actor, sub_idea, Action.DELETE)
    await lock_idea(db, sub_idea.idea_id)

    proposals = await db.execute(
        select(func.count()).select_from(Proposal).where(Proposal.sub_idea_id == sub_idea_id)
    )
    if proposals.scalar_one() > 0:
        raise ConflictError("Cannot delete sub-idea that has proposals. Please delete proposals first.")

    await purge_entities(db, sub_idea_ids=[sub_idea_id])
    await db.flush()
    logger.info("sub_idea_deleted", sub_idea_id=sub_idea_id, deleted_by=actor.user_id)


async def get_sub_idea_stats(
    db: AsyncSession,
    author_id: int | None = None,
    idea_id: int | None = None,
) -> dict[str, Any]:
    """Counts by status plus proposals per sub-idea, optionally filtered."""
    filters = []
    if author_id is not None:
        filters.append(SubIdea.author_id == author_id)
    if idea_id is not None:
        filters.append(SubIdea.idea_id == idea_id)

    row = (
        await db.execute(
            select(
                func.count(SubIdea.id),
                func.coalesce(
                    func.sum(case((SubIdea.status == SubIdeaStatus.OPEN_FOR_PROTOTYPING, 1), else_=0)), 0
                ),
                func.coalesce(func.sum(case((SubIdea.status == SubIdeaStatus.SELF_PROTOTYPING, 1), else_=0)), 0),
            ).where(*filters)
        )
    ).one()
    proposal_count = (
        await db.execute(
            select(func.count(Proposal.id)).join(SubIdea, SubIdea.id == Proposal.sub_idea_id).where(*filters)
        )
    ).scalar_one()

    total = int(row[0])
    return {
        "total_sub_ideas": total,
        "open_for_prototyping": int(row[1]),
        "self_prototyping": int(row[2]),
        "total_proposals": int(proposal_count),
        "avg_proposals_per_sub_idea": round(proposal_count / total, 2) if total else 0.0,
    }
