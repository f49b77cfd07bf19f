"""User profiles, star history and contribution counts."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.common.envelope import Pagination
from ideation.common.pagination import PageParams, paginate
from ideation.db.enums import ProposalStatus
from ideation.db.models import (
    Comment,
    Idea,
    Proposal,
    Prototype,
    PrototypeTeamMember,
    StarLedgerEntry,
    SubIdea,
    User,
    Vote,
)
from ideation.errors import NotFoundError

LEDGER_SORTABLE = {
    "created_at": StarLedgerEntry.created_at,
    "amount": StarLedgerEntry.amount,
}


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Fresh user row (balances change through relative updates), or 404."""
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_star_history(
    db: AsyncSession,
    user_id: int,
    params: PageParams,
) -> tuple[list[StarLedgerEntry], Pagination]:
    query = select(StarLedgerEntry).where(StarLedgerEntry.user_id == user_id)
    return await paginate(db, query, params, LEDGER_SORTABLE)


async def _count(db: AsyncSession, column: Any, *where: Any) -> int:  # noqa: ANN401
    return int((await db.execute(select(func.count(column)).where(*where))).scalar_one())


async def get_contribution_stats(db: AsyncSession, user_id: int) -> dict[str, int]:
    """How much a user has contributed at each level of the hierarchy."""
    proposals_by_status = dict(
        (
            await db.execute(
                select(Proposal.status, func.count(Proposal.id))
                .where(Proposal.author_id == user_id)
                .group_by(Proposal.status)
            )
        ).all()
    )
    return {
        "ideas": await _count(db, Idea.id, Idea.author_id == user_id),
        "sub_ideas": await _count(db, SubIdea.id, SubIdea.author_id == user_id),
        "proposals": sum(proposals_by_status.values()),
        "proposals_pending": proposals_by_status.get(ProposalStatus.PENDING, 0),
        "proposals_accepted": proposals_by_status.get(ProposalStatus.ACCEPTED, 0),
        "proposals_rejected": proposals_by_status.get(ProposalStatus.REJECTED, 0),
        "prototypes": await _count(db, Prototype.id, Prototype.author_id == user_id),
        "team_memberships": await _count(
            db, PrototypeTeamMember.prototype_id, PrototypeTeamMember.user_id == user_id
        ),
        "comments": await _count(db, Comment.id, Comment.author_id == user_id),
        "votes_cast": await _count(db, Vote.id, Vote.user_id == user_id),
    }
