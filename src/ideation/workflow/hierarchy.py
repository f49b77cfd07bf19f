"""Hierarchy validator.

Before a child is inserted its parent is read with ``SELECT ... FOR UPDATE``
in the same transaction as the insert, so a concurrent status change (idea
closed, proposal re-reviewed) cannot slip in between the check and the write.
SQLite ignores the lock clause; its single-writer model gives the same
guarantee.

Row locks are always taken top-down: idea, sub-idea, proposal, prototype.
Votes and comments lock only their target.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.db.enums import IdeaStatus, ProposalStatus
from ideation.db.models import Idea, Proposal, Prototype, SubIdea
from ideation.errors import ForbiddenError, InvalidStateError, NotFoundError


@dataclass(frozen=True)
class Lineage:
    """Ancestor ids of an entity, resolved from the child-owned foreign keys."""

    idea_id: int
    idea_author_id: int
    sub_idea_id: int | None = None
    proposal_id: int | None = None


async def lock_idea(db: AsyncSession, idea_id: int) -> bool:
    """Take the row lock on an idea. False when the idea no longer exists."""
    result = await db.execute(select(Idea.id).where(Idea.id == idea_id).with_for_update())
    return result.scalar_one_or_none() is not None


async def lock_idea_for_sub_idea(db: AsyncSession, idea_id: int) -> Idea:
    """Lock the parent idea of a new sub-idea and check it is still OPEN."""
    result = await db.execute(select(Idea).where(Idea.id == idea_id).with_for_update())
    idea = result.scalar_one_or_none()
    if idea is None:
        raise NotFoundError("Parent idea not found")
    if idea.status == IdeaStatus.CLOSED:
        raise InvalidStateError("Cannot create sub-ideas for closed ideas")
    return idea


async def lock_sub_idea_for_proposal(db: AsyncSession, sub_idea_id: int) -> tuple[SubIdea, Lineage]:
    """Lock the idea, then the parent sub-idea of a new proposal."""
    idea_id = (await db.execute(select(SubIdea.idea_id).where(SubIdea.id == sub_idea_id))).scalar_one_or_none()
    if idea_id is None or not await lock_idea(db, idea_id):
        raise NotFoundError("Sub-idea not found")

    result = await db.execute(select(SubIdea).where(SubIdea.id == sub_idea_id).with_for_update())
    sub_idea = result.scalar_one_or_none()
    if sub_idea is None:
        raise NotFoundError("Sub-idea not found")
    return sub_idea, await lineage_of_sub_idea(db, sub_idea)


async def lock_proposal_for_prototype(db: AsyncSession, proposal_id: int) -> tuple[Proposal, Lineage]:
    """Lock the idea, then the parent proposal of a new prototype, and check it was ACCEPTED."""
    idea_id = (
        await db.execute(
            select(SubIdea.idea_id)
            .join(Proposal, Proposal.sub_idea_id == SubIdea.id)
            .where(Proposal.id == proposal_id)
        )
    ).scalar_one_or_none()
    if idea_id is None or not await lock_idea(db, idea_id):
        raise NotFoundError("Proposal not found")

    result = await db.execute(select(Proposal).where(Proposal.id == proposal_id).with_for_update())
    proposal = result.scalar_one_or_none()
    if proposal is None:
        raise NotFoundError("Proposal not found")
    if proposal.status != ProposalStatus.ACCEPTED:
        raise ForbiddenError("Prototypes can only be created for accepted proposals")
    return proposal, await lineage_of_proposal(db, proposal)


async def lineage_of_sub_idea(db: AsyncSession, sub_idea: SubIdea) -> Lineage:
    result = await db.execute(select(Idea.author_id).where(Idea.id == sub_idea.idea_id))
    return Lineage(
        idea_id=sub_idea.idea_id,
        idea_author_id=result.scalar_one(),
        sub_idea_id=sub_idea.id,
    )


async def lineage_of_proposal(db: AsyncSession, proposal: Proposal) -> Lineage:
    result = await db.execute(
        select(Idea.id, Idea.author_id)
        .join(SubIdea, SubIdea.idea_id == Idea.id)
        .where(SubIdea.id == proposal.sub_idea_id)
    )
    idea_id, idea_author_id = result.one()
    return Lineage(
        idea_id=idea_id,
        idea_author_id=idea_author_id,
        sub_idea_id=proposal.sub_idea_id,
        proposal_id=proposal.id,
    )


async def lineage_of_prototype(db: AsyncSession, prototype: Prototype) -> Lineage:
    result = await db.execute(
        select(Idea.id, Idea.author_id, SubIdea.id)
        .join(SubIdea, SubIdea.idea_id == Idea.id)
        .join(Proposal, Proposal.sub_idea_id == SubIdea.id)
        .where(Proposal.id == prototype.proposal_id)
    )
    idea_id, idea_author_id, sub_idea_id = result.one()
    return Lineage(
        idea_id=idea_id,
        idea_author_id=idea_author_id,
        sub_idea_id=sub_idea_id,
        proposal_id=prototype.proposal_id,
    )
