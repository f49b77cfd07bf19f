"""Vote endpoints for sub-ideas, proposals and prototypes."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.dependencies import get_current_actor, get_optional_actor
from ideation.common.envelope import Envelope
from ideation.database import get_session
from ideation.db.enums import VoteTargetKind
from ideation.votes import service
from ideation.votes.schemas import (
    CastVoteRequest,
    CastVoteResponse,
    VoteCountsResponse,
    VoteResponse,
    VoteSummaryResponse,
)

router = APIRouter(prefix="/api/v1/votes", tags=["Votes"])

TargetPath = Literal["subideas", "proposals", "prototypes"]

_KINDS: dict[str, VoteTargetKind] = {
    "subideas": VoteTargetKind.SUB_IDEA,
    "proposals": VoteTargetKind.PROPOSAL,
    "prototypes": VoteTargetKind.PROTOTYPE,
}


def _counts(counts: service.VoteCounts) -> VoteCountsResponse:
    return VoteCountsResponse(upvotes=counts.upvotes, downvotes=counts.downvotes, total=counts.total)


@router.post("/{target_type}/{target_id}", response_model=Envelope[CastVoteResponse])
async def cast_vote(
    target_type: TargetPath,
    target_id: int,
    body: CastVoteRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[CastVoteResponse]:
    """Upvote/downvote; repeating the same value withdraws the vote."""
    target = service.VoteTarget(_KINDS[target_type], target_id)
    outcome = await service.cast_vote(db, actor.user_id, target, body.value)
    await db.commit()
    return Envelope(
        message=f"Vote {outcome.action} successfully",
        data=CastVoteResponse(
            action=outcome.action,
            vote=VoteResponse.model_validate(outcome.vote) if outcome.vote is not None else None,
            vote_counts=_counts(outcome.counts),
        ),
    )


@router.get("/{target_type}/{target_id}", response_model=Envelope[VoteSummaryResponse])
async def get_votes(
    target_type: TargetPath,
    target_id: int,
    actor: Actor | None = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[VoteSummaryResponse]:
    """Vote counts, plus the caller's own vote when authenticated."""
    target = service.VoteTarget(_KINDS[target_type], target_id)
    counts, user_vote = await service.get_vote_summary(
        db, target, actor.user_id if actor is not None else None
    )
    return Envelope(
        message="Votes retrieved successfully",
        data=VoteSummaryResponse(vote_counts=_counts(counts), user_vote=user_vote),
    )
