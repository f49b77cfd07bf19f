"""Voting on sub-ideas, proposals and prototypes.

Per (user, target) a vote is absent, +1 or -1. Casting the value already
held removes the vote; casting the other value flips it. Counts are always
recomputed from the rows after the change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, assert_never

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.db.enums import VoteTargetKind
from ideation.db.models import Proposal, Prototype, SubIdea, Vote
from ideation.errors import NotFoundError, ValidationError

logger = structlog.get_logger()

VoteAction = Literal["created", "updated", "removed"]


@dataclass(frozen=True)
class VoteTarget:
    kind: VoteTargetKind
    target_id: int


@dataclass(frozen=True)
class VoteCounts:
    upvotes: int
    downvotes: int

    @property
    def total(self) -> int:
        return self.upvotes - self.downvotes


@dataclass(frozen=True)
class VoteOutcome:
    action: VoteAction
    vote: Vote | None
    counts: VoteCounts


async def ensure_target_exists(db: AsyncSession, target: VoteTarget, *, for_update: bool = False) -> None:
    """Raise 404 unless the target row exists. ``for_update`` keeps it locked until commit."""
    match target.kind:
        case VoteTargetKind.SUB_IDEA:
            model, label = SubIdea, "Sub-idea"
        case VoteTargetKind.PROPOSAL:
            model, label = Proposal, "Proposal"
        case VoteTargetKind.PROTOTYPE:
            model, label = Prototype, "Prototype"
        case _:
            assert_never(target.kind)
    query = select(model.id).where(model.id == target.target_id)
    if for_update:
        query = query.with_for_update()
    found = await db.execute(query)
    if found.first() is None:
        raise NotFoundError(f"{label} not found")


async def count_votes(db: AsyncSession, target: VoteTarget) -> VoteCounts:
    row = (
        await db.execute(
            select(
                func.coalesce(func.sum(case((Vote.value == 1, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Vote.value == -1, 1), else_=0)), 0),
            ).where(Vote.target_kind == target.kind, Vote.target_id == target.target_id)
        )
    ).one()
    return VoteCounts(upvotes=int(row[0]), downvotes=int(row[1]))


async def cast_vote(db: AsyncSession, user_id: int, target: VoteTarget, value: int) -> VoteOutcome:
    """Apply one vote submission and return the resulting state and counts."""
    if value not in (1, -1):
        raise ValidationError("Vote value must be 1 (upvote) or -1 (downvote)")
    await ensure_target_exists(db, target, for_update=True)

    result = await db.execute(
        select(Vote)
        .where(
            Vote.user_id == user_id,
            Vote.target_kind == target.kind,
            Vote.target_id == target.target_id,
        )
        .with_for_update()
    )
    existing = result.scalar_one_or_none()

    vote: Vote | None
    action: VoteAction
    if existing is None:
        vote = Vote(user_id=user_id, target_kind=target.kind, target_id=target.target_id, value=value)
        db.add(vote)
        action = "created"
    elif existing.value == value:
        await db.delete(existing)
        vote = None
        action = "removed"
    else:
        existing.value = value
        vote = existing
        action = "updated"

    await db.flush()
    counts = await count_votes(db, target)
    logger.info(
        "vote_cast",
        user_id=user_id,
        target_kind=target.kind.value,
        target_id=target.target_id,
        action=action,
        value=value,
    )
    return VoteOutcome(action=action, vote=vote, counts=counts)


async def get_vote_summary(
    db: AsyncSession,
    target: VoteTarget,
    user_id: int | None = None,
) -> tuple[VoteCounts, int | None]:
    """Counts for ``target`` and the caller's current vote value, if any."""
    await ensure_target_exists(db, target)
    counts = await count_votes(db, target)

    user_vote = None
    if user_id is not None:
        result = await db.execute(
            select(Vote.value).where(
                Vote.user_id == user_id,
                Vote.target_kind == target.kind,
                Vote.target_id == target.target_id,
            )
        )
        user_vote = result.scalar_one_or_none()
    return counts, user_vote
