"""Unit tests for comment threads."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.comments.service import CommentTarget, add_comment, get_comment_tree
from ideation.db.enums import CommentTargetKind, IdeaType, SubIdeaStatus
from ideation.errors import NotFoundError, ValidationError
from ideation.ideas.service import create_idea
from ideation.subideas.service import create_sub_idea


@pytest_asyncio.fixture
async def two_threads(db_session: AsyncSession, alice, actor_of) -> tuple[CommentTarget, CommentTarget]:
    owner = actor_of(alice)
    idea = await create_idea(db_session, owner, "Repair cafe", "Monthly repair meetups", IdeaType.IDEATION)
    targets = []
    for title in ("Tooling", "Venue"):
        sub_idea = await create_sub_idea(
            db_session, owner, idea.id, title, "Details to work out together", SubIdeaStatus.SELF_PROTOTYPING
        )
        targets.append(CommentTarget(CommentTargetKind.SUB_IDEA, sub_idea.id))
    return targets[0], targets[1]


class TestAddComment:
    @pytest.mark.asyncio
    async def test_top_level_comment(self, db_session: AsyncSession, bob, two_threads):
        target, _ = two_threads
        comment = await add_comment(db_session, bob.id, target, "Count me in")
        assert comment.parent_comment_id is None
        assert comment.author.name == "Bob"

    @pytest.mark.asyncio
    async def test_reply_must_stay_on_its_target(self, db_session: AsyncSession, bob, two_threads):
        first, second = two_threads
        root = await add_comment(db_session, bob.id, first, "On the first sub-idea")

        with pytest.raises(ValidationError, match="Parent comment not found or belongs to a different sub-idea."):
            await add_comment(db_session, bob.id, second, "Wrong thread", root.id)

    @pytest.mark.asyncio
    async def test_unknown_parent(self, db_session: AsyncSession, bob, two_threads):
        target, _ = two_threads
        with pytest.raises(ValidationError):
            await add_comment(db_session, bob.id, target, "Orphan", 424242)

    @pytest.mark.asyncio
    async def test_unknown_prototype(self, db_session: AsyncSession, bob):
        with pytest.raises(NotFoundError, match="Prototype not found"):
            await add_comment(db_session, bob.id, CommentTarget(CommentTargetKind.PROTOTYPE, 424242), "Hello")


class TestCommentTree:
    @pytest.mark.asyncio
    async def test_nesting_and_order(self, db_session: AsyncSession, alice, bob, two_threads):
        target, other = two_threads
        older = await add_comment(db_session, bob.id, target, "First")
        newer = await add_comment(db_session, alice.id, target, "Second")
        reply_a = await add_comment(db_session, alice.id, target, "Reply A", older.id)
        reply_b = await add_comment(db_session, bob.id, target, "Reply B", older.id)
        nested = await add_comment(db_session, bob.id, target, "Nested", reply_a.id)
        await add_comment(db_session, bob.id, other, "Elsewhere")

        roots, total = await get_comment_tree(db_session, target)

        assert total == 5
        assert [n.comment.id for n in roots] == [newer.id, older.id]
        assert [n.comment.id for n in roots[1].replies] == [reply_a.id, reply_b.id]
        assert [n.comment.id for n in roots[1].replies[0].replies] == [nested.id]
        assert roots[0].replies == []

    @pytest.mark.asyncio
    async def test_empty_thread(self, db_session: AsyncSession, two_threads):
        target, _ = two_threads
        assert await get_comment_tree(db_session, target) == ([], 0)
