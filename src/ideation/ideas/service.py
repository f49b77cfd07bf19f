"""Idea business logic.

Rules:
- Ideas are created OPEN and earn their author ``stars_idea`` stars
- OPEN -> CLOSED is one-way (author or admin)
- Delete either cascades through every descendant or is refused while
  sub-ideas exist, depending on ``idea_delete_policy``
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ideation.auth.actor import Actor
from ideation.common.envelope import Pagination
from ideation.common.pagination import PageParams, paginate, search_pattern
from ideation.config import get_settings
from ideation.db.enums import ContributionKind, IdeaStatus, IdeaType
from ideation.db.models import Idea, SubIdea
from ideation.errors import ConflictError, InvalidStateError, NotFoundError
from ideation.workflow.ledger import CascadeSummary, cascade_delete_idea, credit_stars
from ideation.workflow.permissions import Action, ensure_can_mutate

logger = structlog.get_logger()

SORTABLE = {
    "created_at": Idea.created_at,
    "updated_at": Idea.updated_at,
    "title": Idea.title,
    "potential_dollar_value": Idea.potential_dollar_value,
    "total_proposals": Idea.total_proposals,
    "total_prototypes": Idea.total_prototypes,
}

_UPDATABLE = ("title", "description", "type", "potential_dollar_value")


async def get_idea(db: AsyncSession, idea_id: int) -> Idea:
    """Load an idea with its author, or raise 404."""
    result = await db.execute(
        select(Idea)
        .where(Idea.id == idea_id)
        .options(selectinload(Idea.author))
        .execution_options(populate_existing=True)
    )
    idea = result.scalar_one_or_none()
    if idea is None:
        raise NotFoundError("Idea not found")
    return idea


async def create_idea(
    db: AsyncSession,
    actor: Actor,
    title: str,
    description: str,
    type_: IdeaType,
    potential_dollar_value: Decimal | None = None,
) -> Idea:
    """Create an OPEN idea and credit its author."""
    idea = Idea(
        title=title,
        description=description,
        type=type_,
        status=IdeaStatus.OPEN,
        potential_dollar_value=potential_dollar_value,
        author_id=actor.user_id,
    )
    db.add(idea)
    await db.flush()

    await credit_stars(db, actor.user_id, ContributionKind.IDEA, idea.id, f"Created idea: {title[:200]}")
    logger.info("idea_created", idea_id=idea.id, author_id=actor.user_id, type=type_.value)
    return await get_idea(db, idea.id)


def _filtered(
    status: IdeaStatus | None,
    type_: IdeaType | None,
    author_id: int | None,
    search: str | None,
) -> Select[Any]:
    query = select(Idea)
    if status is not None:
        query = query.where(Idea.status == status)
    if type_ is not None:
        query = query.where(Idea.type == type_)
    if author_id is not None:
        query = query.where(Idea.author_id == author_id)
    if search:
        pattern = search_pattern(search.strip())
        query = query.where(
            or_(Idea.title.ilike(pattern, escape="\\"), Idea.description.ilike(pattern, escape="\\"))
        )
    return query


async def list_ideas(
    db: AsyncSession,
    params: PageParams,
    *,
    status: IdeaStatus | None = IdeaStatus.OPEN,
    type_: IdeaType | None = None,
    author_id: int | None = None,
    search: str | None = None,
) -> tuple[list[Idea], Pagination]:
    """One page of ideas. ``status=None`` lists every status."""
    return await paginate(
        db,
        _filtered(status, type_, author_id, search),
        params,
        SORTABLE,
        options=[selectinload(Idea.author)],
    )


async def update_idea(db: AsyncSession, actor: Actor, idea_id: int, changes: dict[str, Any]) -> Idea:
    """Apply a partial update. ``None`` clears only the optional dollar value."""
    idea = await get_idea(db, idea_id)
    ensure_can_mutate(actor, idea, Action.UPDATE)

    for field_name in _UPDATABLE:
        if field_name not in changes:
            continue
        value = changes[field_name]
        if value is None and field_name != "potential_dollar_value":
            continue
        setattr(idea, field_name, value)

    await db.flush()
    logger.info("idea_updated", idea_id=idea.id, fields=sorted(changes))
    return await get_idea(db, idea.id)


async def close_idea(db: AsyncSession, actor: Actor, idea_id: int) -> Idea:
    """OPEN -> CLOSED. Closing twice is a 409."""
    result = await db.execute(select(Idea).where(Idea.id == idea_id).with_for_update())
    idea = result.scalar_one_or_none()
    if idea is None:
        raise NotFoundError("Idea not found")
    ensure_can_mutate(actor, idea, Action.CLOSE)
    if idea.status == IdeaStatus.CLOSED:
        raise InvalidStateError("Idea is already closed.")

    idea.status = IdeaStatus.CLOSED
    await db.flush()
    logger.info("idea_closed", idea_id=idea.id, closed_by=actor.user_id)
    return await get_idea(db, idea.id)


async def delete_idea(db: AsyncSession, actor: Actor, idea_id: int) -> CascadeSummary:
    """Delete an idea according to the configured policy."""
    idea = await get_idea(db, idea_id)
    ensure_can_mutate(actor, idea, Action.DELETE)

    if get_settings().idea_delete_policy == "restrict":
        children = await db.execute(select(func.count()).select_from(SubIdea).where(SubIdea.idea_id == idea_id))
        if children.scalar_one() > 0:
            raise ConflictError("Cannot delete idea that has sub-ideas. Please delete sub-ideas first.")

    return await cascade_delete_idea(db, idea_id)


async def get_idea_stats(db: AsyncSession, author_id: int | None = None) -> dict[str, Any]:
    """Aggregate counts over all ideas, or one author's."""
    query = select(
        func.count(Idea.id),
        func.coalesce(func.sum(case((Idea.status == IdeaStatus.OPEN, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Idea.status == IdeaStatus.CLOSED, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Idea.type == IdeaType.IDEATION, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Idea.type == IdeaType.SOLUTION_REQUEST, 1), else_=0)), 0),
        func.coalesce(func.sum(Idea.total_proposals), 0),
        func.coalesce(func.sum(Idea.total_prototypes), 0),
        func.avg(Idea.potential_dollar_value),
    )
    if author_id is not None:
        query = query.where(Idea.author_id == author_id)

    row = (await db.execute(query)).one()
    avg_value = row[7]
    return {
        "total_ideas": int(row[0]),
        "open_ideas": int(row[1]),
        "closed_ideas": int(row[2]),
        "ideation_ideas": int(row[3]),
        "solution_request_ideas": int(row[4]),
        "total_proposals": int(row[5]),
        "total_prototypes": int(row[6]),
        "avg_potential_value": round(float(avg_value), 2) if avg_value is not None else None,
    }
