"""Unit tests for star credits, reversals, idea counters and cascade delete."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.comments.service import CommentTarget, add_comment
from ideation.db.enums import (
    CommentTargetKind,
    ContributionKind,
    IdeaType,
    ProposalStatus,
    SubIdeaStatus,
    VoteTargetKind,
)
from ideation.db.models import (
    Comment,
    Idea,
    Proposal,
    Prototype,
    PrototypeTeamMember,
    StarLedgerEntry,
    SubIdea,
    Vote,
)
from ideation.errors import NotFoundError
from ideation.ideas.service import create_idea, get_idea
from ideation.proposals.service import create_proposal, review_proposal
from ideation.prototypes.service import create_prototype
from ideation.subideas.service import create_sub_idea
from ideation.users.service import get_user
from ideation.votes.service import VoteTarget, cast_vote
from ideation.workflow.ledger import (
    adjust_idea_counters,
    cascade_delete_idea,
    credit_stars,
    reverse_stars,
    reward_for,
)


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestStars:
    def test_rewards_default_to_two(self):
        assert {reward_for(kind) for kind in ContributionKind} == {2}

    @pytest.mark.asyncio
    async def test_credit_writes_ledger_and_balance(self, db_session: AsyncSession, alice):
        credited = await credit_stars(db_session, alice.id, ContributionKind.IDEA, 11, "Created idea: x")
        await db_session.flush()

        assert credited == 2
        assert (await get_user(db_session, alice.id)).stars_balance == 2
        entry = (await db_session.execute(select(StarLedgerEntry))).scalar_one()
        assert (entry.amount, entry.source_kind, entry.source_id) == (2, ContributionKind.IDEA, 11)

    @pytest.mark.asyncio
    async def test_zero_reward_writes_nothing(self, db_session: AsyncSession, alice):
        assert await credit_stars(db_session, alice.id, ContributionKind.IDEA, 11, "x", amount=0) == 0
        assert await _count(db_session, StarLedgerEntry) == 0

    @pytest.mark.asyncio
    async def test_reverse_takes_back_the_recorded_net(self, db_session: AsyncSession, alice, bob):
        await credit_stars(db_session, alice.id, ContributionKind.PROPOSAL, 5, "p5", amount=3)
        await credit_stars(db_session, bob.id, ContributionKind.PROPOSAL, 6, "p6")
        await credit_stars(db_session, bob.id, ContributionKind.PROTOTYPE, 5, "other kind, same id")
        await db_session.flush()

        reversed_ = await reverse_stars(db_session, {ContributionKind.PROPOSAL: [5, 6]})

        assert reversed_ == {alice.id: 3, bob.id: 2}
        assert (await get_user(db_session, alice.id)).stars_balance == 0
        assert (await get_user(db_session, bob.id)).stars_balance == 2

    @pytest.mark.asyncio
    async def test_reverse_is_idempotent(self, db_session: AsyncSession, alice):
        await credit_stars(db_session, alice.id, ContributionKind.IDEA, 1, "i1")
        await db_session.flush()

        assert await reverse_stars(db_session, {ContributionKind.IDEA: [1]}) == {alice.id: 2}
        assert await reverse_stars(db_session, {ContributionKind.IDEA: [1]}) == {}
        assert (await get_user(db_session, alice.id)).stars_balance == 0

    @pytest.mark.asyncio
    async def test_reverse_with_no_sources(self, db_session: AsyncSession):
        assert await reverse_stars(db_session, {ContributionKind.IDEA: []}) == {}


class TestCounters:
    @pytest.mark.asyncio
    async def test_relative_adjustments(self, db_session: AsyncSession, alice, actor_of):
        idea = await create_idea(db_session, actor_of(alice), "Counters", "Testing relative updates", IdeaType.IDEATION)
        await adjust_idea_counters(db_session, idea.id, proposals=3, prototypes=2)
        await adjust_idea_counters(db_session, idea.id, proposals=-1)

        refreshed = await get_idea(db_session, idea.id)
        assert (refreshed.total_proposals, refreshed.total_prototypes) == (2, 2)


class TestCascadeDelete:
    @pytest.mark.asyncio
    async def test_removes_every_descendant(self, db_session: AsyncSession, alice, bob, carol, actor_of):
        owner, builder, fan = actor_of(alice), actor_of(bob), actor_of(carol)
        idea = await create_idea(db_session, owner, "Library", "A tool library for the street", IdeaType.IDEATION)
        other = await create_idea(db_session, owner, "Kept idea", "Must survive the delete", IdeaType.IDEATION)

        sub_ideas = [
            await create_sub_idea(
                db_session, owner, idea.id, f"Shelf {n}", "Shelving for the tools", SubIdeaStatus.OPEN_FOR_PROTOTYPING
            )
            for n in range(2)
        ]
        proposals = [
            await create_proposal(db_session, builder, s.id, "Pine shelves", "Cheap pine shelving units")
            for s in sub_ideas
        ]
        await review_proposal(db_session, owner, proposals[0].id, ProposalStatus.ACCEPTED)
        prototype = await create_prototype(
            db_session,
            builder,
            proposals[0].id,
            "Shelf v1",
            "First shelving build",
            "https://img.example/s",
            team=[carol.id],
        )

        await cast_vote(db_session, fan.user_id, VoteTarget(VoteTargetKind.SUB_IDEA, sub_ideas[0].id), 1)
        await cast_vote(db_session, fan.user_id, VoteTarget(VoteTargetKind.PROPOSAL, proposals[1].id), -1)
        await cast_vote(db_session, fan.user_id, VoteTarget(VoteTargetKind.PROTOTYPE, prototype.id), 1)
        thread = CommentTarget(CommentTargetKind.SUB_IDEA, sub_ideas[1].id)
        root = await add_comment(db_session, fan.user_id, thread, "Nice")
        await add_comment(db_session, owner.user_id, thread, "Thanks", root.id)
        await add_comment(db_session, fan.user_id, CommentTarget(CommentTargetKind.PROTOTYPE, prototype.id), "Sturdy")

        summary = await cascade_delete_idea(db_session, idea.id)

        assert (summary.ideas, summary.sub_ideas, summary.proposals, summary.prototypes) == (1, 2, 2, 1)
        assert summary.team_members == 2
        assert summary.votes == 3
        assert summary.comments == 3
        assert summary.entities_removed == 6
        # alice: idea + 2 sub-ideas; bob: 2 proposals + 1 prototype
        assert summary.stars_reversed == {alice.id: 6, bob.id: 6}

        for model in (SubIdea, Proposal, Prototype, PrototypeTeamMember, Vote, Comment):
            assert await _count(db_session, model) == 0
        assert await _count(db_session, Idea) == 1
        assert (await get_user(db_session, alice.id)).stars_balance == 2  # the kept idea
        assert (await get_user(db_session, bob.id)).stars_balance == 0
        await get_idea(db_session, other.id)

    @pytest.mark.asyncio
    async def test_ledger_keeps_history(self, db_session: AsyncSession, alice, actor_of):
        idea = await create_idea(db_session, actor_of(alice), "Ephemeral", "Created then removed", IdeaType.IDEATION)
        await cascade_delete_idea(db_session, idea.id)

        amounts = sorted((await db_session.execute(select(StarLedgerEntry.amount))).scalars())
        assert amounts == [-2, 2]

    @pytest.mark.asyncio
    async def test_missing_idea(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError, match="Idea not found"):
            await cascade_delete_idea(db_session, 424242)
