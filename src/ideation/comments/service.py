"""Threaded comments on sub-ideas and prototypes.

A reply must stay on its parent's target. Threads are read back in one query
and assembled in memory, so depth is unbounded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import assert_never

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ideation.db.enums import CommentTargetKind
from ideation.db.models import Comment, Prototype, SubIdea
from ideation.errors import NotFoundError, ValidationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class CommentTarget:
    kind: CommentTargetKind
    target_id: int

    @property
    def label(self) -> str:
        match self.kind:
            case CommentTargetKind.SUB_IDEA:
                return "sub-idea"
            case CommentTargetKind.PROTOTYPE:
                return "prototype"
            case _:
                assert_never(self.kind)


@dataclass
class CommentNode:
    comment: Comment
    replies: list[CommentNode] = field(default_factory=list)


async def ensure_target_exists(db: AsyncSession, target: CommentTarget, *, for_update: bool = False) -> None:
    """Raise 404 unless the target row exists. ``for_update`` keeps it locked until commit."""
    match target.kind:
        case CommentTargetKind.SUB_IDEA:
            model, message = SubIdea, "Sub-idea not found"
        case CommentTargetKind.PROTOTYPE:
            model, message = Prototype, "Prototype not found"
        case _:
            assert_never(target.kind)
    query = select(model.id).where(model.id == target.target_id)
    if for_update:
        query = query.with_for_update()
    found = await db.execute(query)
    if found.first() is None:
        raise NotFoundError(message)


async def add_comment(
    db: AsyncSession,
    author_id: int,
    target: CommentTarget,
    content: str,
    parent_comment_id: int | None = None,
) -> Comment:
    """Post a top-level comment or a reply on ``target``."""
    await ensure_target_exists(db, target, for_update=True)

    if parent_comment_id is not None:
        parent = await db.get(Comment, parent_comment_id)
        if parent is None or parent.target_kind != target.kind or parent.target_id != target.target_id:
            raise ValidationError(f"Parent comment not found or belongs to a different {target.label}.")

    comment = Comment(
        content=content,
        author_id=author_id,
        target_kind=target.kind,
        target_id=target.target_id,
        parent_comment_id=parent_comment_id,
    )
    db.add(comment)
    await db.flush()
    logger.info(
        "comment_added",
        comment_id=comment.id,
        target_kind=target.kind.value,
        target_id=target.target_id,
        parent_comment_id=parent_comment_id,
    )

    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment.id)
        .options(selectinload(Comment.author))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_comment_tree(db: AsyncSession, target: CommentTarget) -> tuple[list[CommentNode], int]:
    """Whole thread for ``target``: newest top-level first, replies oldest first.

    Returns ``(roots, total_comments)`` where the total counts every depth.
    """
    await ensure_target_exists(db, target)

    result = await db.execute(
        select(Comment)
        .where(Comment.target_kind == target.kind, Comment.target_id == target.target_id)
        .options(selectinload(Comment.author))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    comments = list(result.scalars())

    nodes = {c.id: CommentNode(c) for c in comments}
    roots: list[CommentNode] = []
    for c in comments:
        parent = nodes.get(c.parent_comment_id) if c.parent_comment_id is not None else None
        if parent is None:
            roots.append(nodes[c.id])
        else:
            parent.replies.append(nodes[c.id])

    roots.reverse()
    return roots, len(comments)
