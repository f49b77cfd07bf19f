"""Comment endpoints.

``/comments/{sub_idea_id}`` targets sub-ideas and
``/comments/{prototype_id}/prototype`` targets prototypes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.auth.actor import Actor
from ideation.auth.dependencies import get_current_actor
from ideation.comments import service
from ideation.comments.schemas import CommentResponse, CommentThreadResponse, CreateCommentRequest
from ideation.common.envelope import Envelope
from ideation.database import get_session
from ideation.db.enums import CommentTargetKind
from ideation.db.models import Comment
from ideation.ideas.schemas import AuthorSummary

router = APIRouter(prefix="/api/v1/comments", tags=["Comments"])


# ── Helpers ──


def _build_comment_response(comment: Comment, replies: list[CommentResponse] | None = None) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        author_id=comment.author_id,
        author=AuthorSummary.model_validate(comment.author),
        target_kind=comment.target_kind,
        target_id=comment.target_id,
        parent_comment_id=comment.parent_comment_id,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        replies=replies or [],
    )


def _build_tree(nodes: list[service.CommentNode]) -> list[CommentResponse]:
    return [_build_comment_response(n.comment, _build_tree(n.replies)) for n in nodes]


async def _post(
    db: AsyncSession,
    actor: Actor,
    target: service.CommentTarget,
    body: CreateCommentRequest,
) -> Envelope[CommentResponse]:
    comment = await service.add_comment(db, actor.user_id, target, body.content, body.parent_comment_id)
    await db.commit()
    return Envelope(message="Comment added successfully", data=_build_comment_response(comment))


async def _thread(db: AsyncSession, target: service.CommentTarget) -> Envelope[CommentThreadResponse]:
    roots, total = await service.get_comment_tree(db, target)
    return Envelope(
        message="Comments retrieved successfully",
        data=CommentThreadResponse(comments=_build_tree(roots), total_comments=total),
    )


# ── Sub-ideas ──


@router.post("/{sub_idea_id}", response_model=Envelope[CommentResponse], status_code=201)
async def comment_on_sub_idea(
    sub_idea_id: int,
    body: CreateCommentRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[CommentResponse]:
    return await _post(db, actor, service.CommentTarget(CommentTargetKind.SUB_IDEA, sub_idea_id), body)


@router.get("/{sub_idea_id}", response_model=Envelope[CommentThreadResponse])
async def sub_idea_comments(
    sub_idea_id: int,
    db: AsyncSession = Depends(get_session),
) -> Envelope[CommentThreadResponse]:
    return await _thread(db, service.CommentTarget(CommentTargetKind.SUB_IDEA, sub_idea_id))


# ── Prototypes ──


@router.post("/{prototype_id}/prototype", response_model=Envelope[CommentResponse], status_code=201)
async def comment_on_prototype(
    prototype_id: int,
    body: CreateCommentRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_session),
) -> Envelope[CommentResponse]:
    return await _post(db, actor, service.CommentTarget(CommentTargetKind.PROTOTYPE, prototype_id), body)


@router.get("/{prototype_id}/prototype", response_model=Envelope[CommentThreadResponse])
async def prototype_comments(
    prototype_id: int,
    db: AsyncSession = Depends(get_session),
) -> Envelope[CommentThreadResponse]:
    return await _thread(db, service.CommentTarget(CommentTargetKind.PROTOTYPE, prototype_id))
