"""Prototype and team business logic.

Rules:
- The parent proposal must be ACCEPTED; it is locked while the prototype is
  inserted
- One prototype per (author, proposal)
- The author is always a team member and can never be removed
- Only the author adds members; the author or the member themself removes one
- Creating bumps the idea's ``total_prototypes`` and credits the author;
  deleting reverses both
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ideation.auth.actor import Actor
from ideation.common.envelope import Pagination
from ideation.common.pagination import PageParams, paginate, search_pattern
from ideation.db.base import utcnow
from ideation.db.enums import ContributionKind
from ideation.db.models import Proposal, Prototype, PrototypeTeamMember, SubIdea, User
from ideation.errors import ConflictError, NotFoundError
from ideation.workflow.hierarchy import lineage_of_prototype, lock_idea, lock_proposal_for_prototype
from ideation.workflow.ledger import adjust_idea_counters, credit_stars, purge_entities
from ideation.workflow.permissions import Action, ensure_can_mutate

logger = structlog.get_logger()

SORTABLE = {
    "created_at": Prototype.created_at,
    "updated_at": Prototype.updated_at,
    "title": Prototype.title,
}

_LOAD = (
    selectinload(Prototype.author),
    selectinload(Prototype.proposal),
    selectinload(Prototype.team).selectinload(PrototypeTeamMember.user),
)


async def get_prototype(db: AsyncSession, prototype_id: int) -> Prototype:
    """Load a prototype with author, proposal and team, or raise 404."""
    result = await db.execute(
        select(Prototype)
        .where(Prototype.id == prototype_id)
        .options(*_LOAD)
        .execution_options(populate_existing=True)
    )
    prototype = result.scalar_one_or_none()
    if prototype is None:
        raise NotFoundError("Prototype not found")
    return prototype


async def _team_ids(db: AsyncSession, prototype_id: int) -> set[int]:
    result = await db.execute(
        select(PrototypeTeamMember.user_id).where(PrototypeTeamMember.prototype_id == prototype_id)
    )
    return set(result.scalars())


async def create_prototype(
    db: AsyncSession,
    actor: Actor,
    proposal_id: int,
    title: str,
    description: str,
    image_url: str,
    live_url: str | None = None,
    team: Sequence[int] = (),
) -> Prototype:
    """Build a prototype for an ACCEPTED proposal. ``team`` adds extra members."""
    _, lineage = await lock_proposal_for_prototype(db, proposal_id)

    existing = await db.execute(
        select(Prototype.id).where(Prototype.author_id == actor.user_id, Prototype.proposal_id == proposal_id)
    )
    if existing.first() is not None:
        raise ConflictError("You already have a prototype for this proposal")

    extra_members = sorted(set(team) - {actor.user_id})
    if extra_members:
        found = await db.execute(select(User.id).where(User.id.in_(extra_members)))
        missing = set(extra_members) - set(found.scalars())
        if missing:
            raise NotFoundError(f"User not found: {', '.join(str(m) for m in sorted(missing))}")

    prototype = Prototype(
        title=title,
        description=description,
        image_url=image_url,
        live_url=live_url,
        proposal_id=proposal_id,
        author_id=actor.user_id,
    )
    db.add(prototype)
    await db.flush()

    now = utcnow()
    db.add(PrototypeTeamMember(prototype_id=prototype.id, user_id=actor.user_id, joined_at=now))
    for user_id in extra_members:
        db.add(PrototypeTeamMember(prototype_id=prototype.id, user_id=user_id, joined_at=now))
    await db.flush()

    await adjust_idea_counters(db, lineage.idea_id, prototypes=1)
    await credit_stars(
        db, actor.user_id, ContributionKind.PROTOTYPE, prototype.id, f"Built prototype: {title[:200]}"
    )
    logger.info(
        "prototype_created",
        prototype_id=prototype.id,
        proposal_id=proposal_id,
        idea_id=lineage.idea_id,
        author_id=actor.user_id,
        team_size=len(extra_members) + 1,
    )
    return await get_prototype(db, prototype.id)


def _filtered(
    idea_id: int | None,
    proposal_id: int | None,
    author_id: int | None,
    search: str | None,
) -> Select[Any]:
    query = select(Prototype)
    if idea_id is not None:
        query = query.where(
            Prototype.proposal_id.in_(
                select(Proposal.id)
                .join(SubIdea, SubIdea.id == Proposal.sub_idea_id)
                .where(SubIdea.idea_id == idea_id)
            )
        )
    if proposal_id is not None:
        query = query.where(Prototype.proposal_id == proposal_id)
    if author_id is not None:
        query = query.where(Prototype.author_id == author_id)
    if search:
        pattern = search_pattern(search.strip())
        query = query.where(
            or_(Prototype.title.ilike(pattern, escape="\\"), Prototype.description.ilike(pattern, escape="\\"))
        )
    return query


async def list_prototypes(
    db: AsyncSession,
    params: PageParams,
    *,
    idea_id: int | None = None,
    proposal_id: int | None = None,
    author_id: int | None = None,
    search: str | None = None,
) -> tuple[list[Prototype], Pagination]:
    return await paginate(
        db,
        _filtered(idea_id, proposal_id, author_id, search),
        params,
        SORTABLE,
        options=_LOAD,
    )


async def update_prototype(
    db: AsyncSession,
    actor: Actor,
    prototype_id: int,
    changes: dict[str, Any],
) -> Prototype:
    """Author or any team member edits the prototype."""
    prototype = await get_prototype(db, prototype_id)
    ensure_can_mutate(actor, prototype, Action.UPDATE, team_member_ids=await _team_ids(db, prototype_id))

    for field_name in ("title", "description", "image_url"):
        value = changes.get(field_name)
        if value is not None:
            setattr(prototype, field_name, value)
    if "live_url" in changes:
        prototype.live_url = changes["live_url"]

    await db.flush()
    logger.info("prototype_updated", prototype_id=prototype.id, fields=sorted(changes))
    return await get_prototype(db, prototype.id)


async def add_team_member(db: AsyncSession, actor: Actor, prototype_id: int, user_id: int) -> Prototype:
    prototype = await get_prototype(db, prototype_id)
    ensure_can_mutate(actor, prototype, Action.ADD_MEMBER)

    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if user_id in await _team_ids(db, prototype_id):
        raise ConflictError("User is already a team member")

    db.add(PrototypeTeamMember(prototype_id=prototype_id, user_id=user_id, joined_at=utcnow()))
    await db.flush()
    logger.info("team_member_added", prototype_id=prototype_id, user_id=user_id, added_by=actor.user_id)
    return await get_prototype(db, prototype_id)


async def remove_team_member(db: AsyncSession, actor: Actor, prototype_id: int, user_id: int) -> Prototype:
    prototype = await get_prototype(db, prototype_id)
    if user_id == prototype.author_id:
        raise ConflictError("Cannot remove the prototype author from the team")
    ensure_can_mutate(actor, prototype, Action.REMOVE_MEMBER, target_user_id=user_id)

    membership = await db.get(PrototypeTeamMember, (prototype_id, user_id))
    if membership is None:
        raise NotFoundError("User is not a team member")

    await db.delete(membership)
    await db.flush()
    logger.info("team_member_removed", prototype_id=prototype_id, user_id=user_id, removed_by=actor.user_id)
    return await get_prototype(db, prototype_id)


async def delete_prototype(db: AsyncSession, actor: Actor, prototype_id: int) -> None:
    """Delete a prototype with its team, votes and comments; reverses counter and stars."""
    prototype = await get_prototype(db, prototype_id)
    ensure_can_mutate(actor, prototype, Action.DELETE)

    lineage = await lineage_of_prototype(db, prototype)
    await lock_idea(db, lineage.idea_id)
    summary = await purge_entities(db, prototype_ids=[prototype_id])
    await adjust_idea_counters(db, lineage.idea_id, prototypes=-summary.prototypes)
    await db.flush()
    logger.info(
        "prototype_deleted",
        prototype_id=prototype_id,
        idea_id=lineage.idea_id,
        deleted_by=actor.user_id,
    )


async def get_prototype_stats(
    db: AsyncSession,
    author_id: int | None = None,
    idea_id: int | None = None,
) -> dict[str, Any]:
    query = select(Prototype.id, Prototype.live_url)
    if author_id is not None:
        query = query.where(Prototype.author_id == author_id)
    if idea_id is not None:
        query = query.where(Prototype.proposal_id.in_(
            select(Proposal.id)
            .join(SubIdea, SubIdea.id == Proposal.sub_idea_id)
            .where(SubIdea.idea_id == idea_id)
        ))
    scoped = query.subquery()

    row = (
        await db.execute(
            select(func.count(scoped.c.id), func.count(scoped.c.live_url))
        )
    ).one()
    members = (
        await db.execute(
            select(func.count())
            .select_from(PrototypeTeamMember)
            .where(PrototypeTeamMember.prototype_id.in_(select(scoped.c.id)))
        )
    ).scalar_one()

    total = int(row[0])
    return {
        "total_prototypes": total,
        "with_live_url": int(row[1]),
        "total_team_members": int(members),
        "avg_team_size": round(members / total, 2) if total else 0.0,
    }
