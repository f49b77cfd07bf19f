"""Counter/reward ledger and cascade delete.

Every star movement is a ``star_ledger`` row plus a relative update of
``users.stars_balance``; idea counters are changed the same way. Nothing here
reads a value, changes it in Python and writes it back, so concurrent
requests cannot lose updates.

Deletes remove rows leaves-first (votes/comments, team members, prototypes,
proposals, sub-ideas, idea) inside the caller's transaction. The router
commits only after the whole chain succeeds.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from ideation.config import get_settings
from ideation.db.enums import CommentTargetKind, ContributionKind, VoteTargetKind
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
from ideation.workflow.hierarchy import lock_idea

logger = structlog.get_logger()


@dataclass
class CascadeSummary:
    """Rows removed by a delete, and stars taken back per user."""

    ideas: int = 0
    sub_ideas: int = 0
    proposals: int = 0
    prototypes: int = 0
    team_members: int = 0
    votes: int = 0
    comments: int = 0
    stars_reversed: dict[int, int] = field(default_factory=dict)

    @property
    def entities_removed(self) -> int:
        return self.ideas + self.sub_ideas + self.proposals + self.prototypes


def reward_for(kind: ContributionKind) -> int:
    """Stars credited for creating an entity of ``kind``."""
    settings = get_settings()
    return {
        ContributionKind.IDEA: settings.stars_idea,
        ContributionKind.SUB_IDEA: settings.stars_sub_idea,
        ContributionKind.PROPOSAL: settings.stars_proposal,
        ContributionKind.PROTOTYPE: settings.stars_prototype,
    }[kind]


# ---------------------------------------------------------------------------
# Stars
# ---------------------------------------------------------------------------


async def credit_stars(
    db: AsyncSession,
    user_id: int,
    source_kind: ContributionKind,
    source_id: int,
    description: str,
    amount: int | None = None,
) -> int:
    """Credit ``user_id`` for creating ``(source_kind, source_id)``.

    Returns the amount credited (the configured reward unless ``amount`` is
    given). A zero reward writes nothing.
    """
    if amount is None:
        amount = reward_for(source_kind)
    if amount == 0:
        return 0

    db.add(
        StarLedgerEntry(
            user_id=user_id,
            amount=amount,
            source_kind=source_kind,
            source_id=source_id,
            description=description,
        )
    )
    await _shift_balance(db, user_id, amount)
    logger.info(
        "stars_credited",
        user_id=user_id,
        amount=amount,
        source_kind=source_kind.value,
        source_id=source_id,
    )
    return amount


async def reverse_stars(
    db: AsyncSession,
    sources: dict[ContributionKind, Sequence[int]],
) -> dict[int, int]:
    """Take back the net stars recorded for every source in ``sources``.

    The amount reversed is what the ledger actually holds for each source, so
    a reward setting changed between credit and delete does not matter.
    Returns ``{user_id: stars_removed}``.
    """
    condition = _sources_condition(sources)
    if condition is None:
        return {}

    net = func.sum(StarLedgerEntry.amount)
    result = await db.execute(
        select(
            StarLedgerEntry.user_id,
            StarLedgerEntry.source_kind,
            StarLedgerEntry.source_id,
            net.label("net"),
        )
        .where(condition)
        .group_by(StarLedgerEntry.user_id, StarLedgerEntry.source_kind, StarLedgerEntry.source_id)
        .having(net > 0)
    )

    per_user: dict[int, int] = {}
    for user_id, source_kind, source_id, amount in result.all():
        kind = ContributionKind(source_kind)
        db.add(
            StarLedgerEntry(
                user_id=user_id,
                amount=-amount,
                source_kind=kind,
                source_id=source_id,
                description=f"Reversal: {kind.value.lower()} #{source_id} deleted",
            )
        )
        per_user[user_id] = per_user.get(user_id, 0) + amount

    for user_id, amount in per_user.items():
        await _shift_balance(db, user_id, -amount)

    if per_user:
        await db.flush()
        logger.info("stars_reversed", users=len(per_user), total=sum(per_user.values()))
    return per_user


async def _shift_balance(db: AsyncSession, user_id: int, delta: int) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(stars_balance=User.stars_balance + delta)
        .execution_options(synchronize_session=False)
    )


def _sources_condition(sources: dict[ContributionKind, Sequence[int]]) -> ColumnElement[bool] | None:
    clauses = [
        and_(StarLedgerEntry.source_kind == kind, StarLedgerEntry.source_id.in_(list(ids)))
        for kind, ids in sources.items()
        if ids
    ]
    if not clauses:
        return None
    return or_(*clauses)


# ---------------------------------------------------------------------------
# Idea counters
# ---------------------------------------------------------------------------


async def adjust_idea_counters(
    db: AsyncSession,
    idea_id: int,
    *,
    proposals: int = 0,
    prototypes: int = 0,
) -> None:
    """Apply a relative change to an idea's cached descendant counts."""
    if not proposals and not prototypes:
        return
    await db.execute(
        update(Idea)
        .where(Idea.id == idea_id)
        .values(
            total_proposals=Idea.total_proposals + proposals,
            total_prototypes=Idea.total_prototypes + prototypes,
        )
        .execution_options(synchronize_session=False)
    )


# ---------------------------------------------------------------------------
# Deletes
# ---------------------------------------------------------------------------


async def purge_entities(
    db: AsyncSession,
    *,
    sub_idea_ids: Sequence[int] = (),
    proposal_ids: Sequence[int] = (),
    prototype_ids: Sequence[int] = (),
    summary: CascadeSummary | None = None,
) -> CascadeSummary:
    """Delete the given entities with their votes, comments and team rows.

    Star credits for each entity are reversed first. Counters are not touched;
    callers adjust the owning idea themselves (or delete it).

    The rows are locked top-down before anything is removed. Votes and
    comments lock their target before inserting, so none can land on a row
    this transaction is deleting.
    """
    summary = summary or CascadeSummary()
    await _lock_rows(db, SubIdea, sub_idea_ids)
    await _lock_rows(db, Proposal, proposal_ids)
    await _lock_rows(db, Prototype, prototype_ids)

    reversed_ = await reverse_stars(
        db,
        {
            ContributionKind.SUB_IDEA: sub_idea_ids,
            ContributionKind.PROPOSAL: proposal_ids,
            ContributionKind.PROTOTYPE: prototype_ids,
        },
    )
    for user_id, amount in reversed_.items():
        summary.stars_reversed[user_id] = summary.stars_reversed.get(user_id, 0) + amount

    summary.votes += await _delete_votes(
        db,
        [
            (VoteTargetKind.SUB_IDEA, sub_idea_ids),
            (VoteTargetKind.PROPOSAL, proposal_ids),
            (VoteTargetKind.PROTOTYPE, prototype_ids),
        ],
    )
    summary.comments += await _delete_comments(
        db,
        [
            (CommentTargetKind.SUB_IDEA, sub_idea_ids),
            (CommentTargetKind.PROTOTYPE, prototype_ids),
        ],
    )

    if prototype_ids:
        result = await db.execute(
            delete(PrototypeTeamMember)
            .where(PrototypeTeamMember.prototype_id.in_(list(prototype_ids)))
            .execution_options(synchronize_session=False)
        )
        summary.team_members += result.rowcount or 0
        result = await db.execute(
            delete(Prototype)
            .where(Prototype.id.in_(list(prototype_ids)))
            .execution_options(synchronize_session=False)
        )
        summary.prototypes += result.rowcount or 0

    if proposal_ids:
        result = await db.execute(
            delete(Proposal)
            .where(Proposal.id.in_(list(proposal_ids)))
            .execution_options(synchronize_session=False)
        )
        summary.proposals += result.rowcount or 0

    if sub_idea_ids:
        result = await db.execute(
            delete(SubIdea)
            .where(SubIdea.id.in_(list(sub_idea_ids)))
            .execution_options(synchronize_session=False)
        )
        summary.sub_ideas += result.rowcount or 0

    return summary


async def _lock_rows(db: AsyncSession, model: type[SubIdea | Proposal | Prototype], ids: Sequence[int]) -> None:
    if ids:
        await db.execute(select(model.id).where(model.id.in_(list(ids))).order_by(model.id).with_for_update())


async def _delete_votes(db: AsyncSession, targets: Iterable[tuple[VoteTargetKind, Sequence[int]]]) -> int:
    clauses = [
        and_(Vote.target_kind == kind, Vote.target_id.in_(list(ids))) for kind, ids in targets if ids
    ]
    if not clauses:
        return 0
    result = await db.execute(delete(Vote).where(or_(*clauses)).execution_options(synchronize_session=False))
    return result.rowcount or 0


async def _delete_comments(
    db: AsyncSession, targets: Iterable[tuple[CommentTargetKind, Sequence[int]]]
) -> int:
    clauses = [
        and_(Comment.target_kind == kind, Comment.target_id.in_(list(ids))) for kind, ids in targets if ids
    ]
    if not clauses:
        return 0
    # Replies share their root's target, so one id lookup covers whole threads.
    # Counted up front: rows removed by the parent FK cascade are not in rowcount.
    comment_ids = list((await db.execute(select(Comment.id).where(or_(*clauses)))).scalars())
    if not comment_ids:
        return 0
    await db.execute(
        delete(Comment).where(Comment.id.in_(comment_ids)).execution_options(synchronize_session=False)
    )
    return len(comment_ids)


async def cascade_delete_idea(db: AsyncSession, idea_id: int) -> CascadeSummary:
    """Delete an idea and everything that hangs off it.

    The idea row is locked first so no new sub-idea, proposal or prototype
    can attach while its descendants are enumerated.
    """
    if not await lock_idea(db, idea_id):
        raise NotFoundError("Idea not found")

    sub_idea_ids = list((await db.execute(select(SubIdea.id).where(SubIdea.idea_id == idea_id))).scalars())
    proposal_ids: list[int] = []
    prototype_ids: list[int] = []
    if sub_idea_ids:
        proposal_ids = list(
            (await db.execute(select(Proposal.id).where(Proposal.sub_idea_id.in_(sub_idea_ids)))).scalars()
        )
    if proposal_ids:
        prototype_ids = list(
            (await db.execute(select(Prototype.id).where(Prototype.proposal_id.in_(proposal_ids)))).scalars()
        )

    summary = await purge_entities(
        db,
        sub_idea_ids=sub_idea_ids,
        proposal_ids=proposal_ids,
        prototype_ids=prototype_ids,
    )

    for user_id, amount in (await reverse_stars(db, {ContributionKind.IDEA: [idea_id]})).items():
        summary.stars_reversed[user_id] = summary.stars_reversed.get(user_id, 0) + amount

    result = await db.execute(
        delete(Idea).where(Idea.id == idea_id).execution_options(synchronize_session=False)
    )
    summary.ideas = result.rowcount or 0
    await db.flush()

    logger.info(
        "idea_cascade_deleted",
        idea_id=idea_id,
        sub_ideas=summary.sub_ideas,
        proposals=summary.proposals,
        prototypes=summary.prototypes,
        votes=summary.votes,
        comments=summary.comments,
        stars_reversed=sum(summary.stars_reversed.values()),
    )
    return summary
