"""Proposal business logic.

Rules:
- At most one PENDING proposal per (author, sub-idea), backed by a partial
  unique index
- Creating a proposal bumps the grandparent idea's ``total_proposals`` and
  credits the author; deleting one reverses both
- Only the idea author reviews, and only a PENDING proposal
- Only the author edits, and only while PENDING
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
from ideation.db.enums import ContributionKind, ProposalStatus
from ideation.db.models import Proposal, Prototype, SubIdea
from ideation.errors import ConflictError, NotFoundError
from ideation.workflow.hierarchy import lineage_of_proposal, lock_idea, lock_sub_idea_for_proposal
from ideation.workflow.ledger import adjust_idea_counters, credit_stars, purge_entities
from ideation.workflow.permissions import Action, ensure_can_mutate

logger = structlog.get_logger()

SORTABLE = {
    "created_at": Proposal.created_at,
    "updated_at": Proposal.updated_at,
    "title": Proposal.title,
    "status": Proposal.status,
}

_LOAD = (selectinload(Proposal.author), selectinload(Proposal.sub_idea))


async def get_proposal(db: AsyncSession, proposal_id: int) -> Proposal:
    """Load a proposal with its author and sub-idea, or raise 404."""
    result = await db.execute(
        select(Proposal)
        .where(Proposal.id == proposal_id)
        .options(*_LOAD)
        .execution_options(populate_existing=True)
    )
    proposal = result.scalar_one_or_none()
    if proposal is None:
        raise NotFoundError("Proposal not found")
    return proposal


async def create_proposal(
    db: AsyncSession,
    actor: Actor,
    sub_idea_id: int,
    title: str,
    description: str,
    presentation_url: str | None = None,
) -> Proposal:
    """Submit a PENDING proposal against a sub-idea."""
    _, lineage = await lock_sub_idea_for_proposal(db, sub_idea_id)

    pending = await db.execute(
        select(Proposal.id).where(
            Proposal.author_id == actor.user_id,
            Proposal.sub_idea_id == sub_idea_id,
            Proposal.status == ProposalStatus.PENDING,
        )
    )
    if pending.first() is not None:
        raise ConflictError("You already have a pending proposal for this sub-idea")

    proposal = Proposal(
        title=title,
        description=description,
        presentation_url=presentation_url,
        status=ProposalStatus.PENDING,
        sub_idea_id=sub_idea_id,
        author_id=actor.user_id,
    )
    db.add(proposal)
    await db.flush()

    await adjust_idea_counters(db, lineage.idea_id, proposals=1)
    await credit_stars(
        db, actor.user_id, ContributionKind.PROPOSAL, proposal.id, f"Submitted proposal: {title[:200]}"
    )
    logger.info(
        "proposal_created",
        proposal_id=proposal.id,
        sub_idea_id=sub_idea_id,
        idea_id=lineage.idea_id,
        author_id=actor.user_id,
    )
    return await get_proposal(db, proposal.id)


def _filtered(
    idea_id: int | None,
    sub_idea_id: int | None,
    author_id: int | None,
    status: ProposalStatus | None,
    search: str | None,
) -> Select[Any]:
    query = select(Proposal)
    if idea_id is not None:
        query = query.where(Proposal.sub_idea_id.in_(select(SubIdea.id).where(SubIdea.idea_id == idea_id)))
    if sub_idea_id is not None:
        query = query.where(Proposal.sub_idea_id == sub_idea_id)
    if author_id is not None:
        query = query.where(Proposal.author_id == author_id)
    if status is not None:
        query = query.where(Proposal.status == status)
    if search:
        pattern = search_pattern(search.strip())
        query = query.where(
            or_(Proposal.title.ilike(pattern, escape="\\"), Proposal.description.ilike(pattern, escape="\\"))
        )
    return query


async def list_proposals(
    db: AsyncSession,
    params: PageParams,
    *,
    idea_id: int | None = None,
    sub_idea_id: int | None = None,
    author_id: int | None = None,
    status: ProposalStatus | None = None,
    search: str | None = None,
) -> tuple[list[Proposal], Pagination]:
    return await paginate(
        db,
        _filtered(idea_id, sub_idea_id, author_id, status, search),
        params,
        SORTABLE,
        options=_LOAD,
    )


async def update_proposal(
    db: AsyncSession,
    actor: Actor,
    proposal_id: int,
    changes: dict[str, Any],
) -> Proposal:
    """Author edits a proposal that is still PENDING."""
    proposal = await get_proposal(db, proposal_id)
    ensure_can_mutate(actor, proposal, Action.UPDATE)
    if proposal.status != ProposalStatus.PENDING:
        raise ConflictError(f"Cannot update proposal. Current status: {ProposalStatus(proposal.status).value}")

    for field_name in ("title", "description"):
        value = changes.get(field_name)
        if value is not None:
            setattr(proposal, field_name, value)
    if "presentation_url" in changes:
        proposal.presentation_url = changes["presentation_url"]

    await db.flush()
    logger.info("proposal_updated", proposal_id=proposal.id, fields=sorted(changes))
    return await get_proposal(db, proposal.id)


async def review_proposal(
    db: AsyncSession,
    actor: Actor,
    proposal_id: int,
    status: ProposalStatus,
    rejection_reason: str | None = None,
) -> Proposal:
    """PENDING -> ACCEPTED | REJECTED, by the idea author only.

    The proposal row is locked so a prototype submission cannot read it
    half-way through a review.
    """
    result = await db.execute(select(Proposal).where(Proposal.id == proposal_id).with_for_update())
    proposal = result.scalar_one_or_none()
    if proposal is None:
        raise NotFoundError("Proposal not found")

    lineage = await lineage_of_proposal(db, proposal)
    ensure_can_mutate(actor, proposal, Action.REVIEW, parent_idea_author_id=lineage.idea_author_id)
    if proposal.status != ProposalStatus.PENDING:
        raise ConflictError(
            f"Cannot update proposal status. Current status: {ProposalStatus(proposal.status).value}"
        )

    proposal.status = status
    proposal.rejection_reason = rejection_reason if status == ProposalStatus.REJECTED else None
    await db.flush()
    logger.info("proposal_reviewed", proposal_id=proposal.id, status=status.value, reviewer_id=actor.user_id)
    return await get_proposal(db, proposal.id)


async def delete_proposal(db: AsyncSession, actor: Actor, proposal_id: int) -> None:
    """Delete a proposal without prototypes; reverses counter and stars."""
    proposal = await get_proposal(db, proposal_id)
    ensure_can_mutate(actor, proposal, Action.DELETE)
    lineage = await lineage_of_proposal(db, proposal)
    await lock_idea(db, lineage.idea_id)

    prototypes = await db.execute(
        select(func.count()).select_from(Prototype).where(Prototype.proposal_id == proposal_id)
    )
    if prototypes.scalar_one() > 0:
        raise ConflictError("Cannot delete proposal that has prototypes. Please delete prototypes first.")

    summary = await purge_entities(db, proposal_ids=[proposal_id])
    await adjust_idea_counters(db, lineage.idea_id, proposals=-summary.proposals)
    await db.flush()
    logger.info("proposal_deleted", proposal_id=proposal_id, idea_id=lineage.idea_id, deleted_by=actor.user_id)


async def get_proposal_stats(
    db: AsyncSession,
    author_id: int | None = None,
    idea_id: int | None = None,
) -> dict[str, int]:
    query = select(
        func.count(Proposal.id),
        func.coalesce(func.sum(case((Proposal.status == ProposalStatus.PENDING, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Proposal.status == ProposalStatus.ACCEPTED, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Proposal.status == ProposalStatus.REJECTED, 1), else_=0)), 0),
    )
    if author_id is not None:
        query = query.where(Proposal.author_id == author_id)
    if idea_id is not None:
        query = query.join(SubIdea, SubIdea.id == Proposal.sub_idea_id).where(SubIdea.idea_id == idea_id)

    row = (await db.execute(query)).one()
    return {
        "total_proposals": int(row[0]),
        "pending": int(row[1]),
        "accepted": int(row[2]),
        "rejected": int(row[3]),
    }
