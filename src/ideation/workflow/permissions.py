"""Authorization resolver.

Capability rules per entity type:

- Idea: author or admin may update, delete, close.
- SubIdea: its author, the parent idea's author, or admin may update, delete,
  change status.
- Proposal: author may update; only the parent idea's author may review
  (accept/reject); author or admin may delete.
- Prototype: author or any team member may update; only the author may add
  members; the author or the member themself may remove a member (never the
  author); author or admin may delete.

The resolver only answers questions. It never loads or mutates state, so
callers pass in the ancestry/team facts it needs.
"""

from __future__ import annotations

import enum
from collections.abc import Collection

from ideation.auth.actor import Actor
from ideation.db.models import Idea, Proposal, Prototype, SubIdea
from ideation.errors import ForbiddenError


class Action(str, enum.Enum):
    UPDATE = "update"
    DELETE = "delete"
    CLOSE = "close"
    CHANGE_STATUS = "change_status"
    REVIEW = "review"
    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"


Entity = Idea | SubIdea | Proposal | Prototype

_DENIED_MESSAGES: dict[tuple[type, Action], str] = {
    (Idea, Action.UPDATE): "Unauthorized to update this idea",
    (Idea, Action.DELETE): "You can only delete your own ideas or you must be an admin",
    (Idea, Action.CLOSE): "Only the idea author or an admin can close this idea",
    (SubIdea, Action.UPDATE): "Only the sub-idea author, idea author, or admin can update this sub-idea",
    (SubIdea, Action.DELETE): "Only the sub-idea author, idea author, or admin can delete this sub-idea",
    (SubIdea, Action.CHANGE_STATUS): "Only the sub-idea author, idea author, or admin can change status",
    (Proposal, Action.UPDATE): "Only the proposal author can update this proposal",
    (Proposal, Action.REVIEW): "Only the idea author can accept or reject proposals",
    (Proposal, Action.DELETE): "Only the proposal author or admin can delete this proposal",
    (Prototype, Action.UPDATE): "Only the prototype author or team members can update this prototype",
    (Prototype, Action.DELETE): "Only the prototype author or admin can delete this prototype",
    (Prototype, Action.ADD_MEMBER): "Only the prototype author can add team members",
    (Prototype, Action.REMOVE_MEMBER): (
        "Only the prototype author or the user themselves can remove team members"
    ),
}


def can_mutate(
    actor: Actor,
    entity: Entity,
    action: Action,
    *,
    parent_idea_author_id: int | None = None,
    team_member_ids: Collection[int] = (),
    target_user_id: int | None = None,
) -> bool:
    """Return True if ``actor`` may perform ``action`` on ``entity``.

    ``parent_idea_author_id`` is required for SubIdea and Proposal review
    checks, ``team_member_ids`` for Prototype updates and ``target_user_id``
    for team member removal. Unknown (entity, action) pairs are denied.
    """
    is_author = entity.author_id == actor.user_id

    if isinstance(entity, Idea):
        if action in (Action.UPDATE, Action.DELETE, Action.CLOSE):
            return is_author or actor.is_admin
        return False

    if isinstance(entity, SubIdea):
        if action in (Action.UPDATE, Action.DELETE, Action.CHANGE_STATUS):
            is_idea_author = parent_idea_author_id is not None and parent_idea_author_id == actor.user_id
            return is_author or is_idea_author or actor.is_admin
        return False

    if isinstance(entity, Proposal):
        if action == Action.UPDATE:
            return is_author
        if action == Action.REVIEW:
            return parent_idea_author_id is not None and parent_idea_author_id == actor.user_id
        if action == Action.DELETE:
            return is_author or actor.is_admin
        return False

    if isinstance(entity, Prototype):
        if action == Action.UPDATE:
            return is_author or actor.user_id in team_member_ids
        if action == Action.ADD_MEMBER:
            return is_author
        if action == Action.REMOVE_MEMBER:
            if target_user_id is None or target_user_id == entity.author_id:
                return False
            return is_author or target_user_id == actor.user_id
        if action == Action.DELETE:
            return is_author or actor.is_admin
        return False

    return False


def ensure_can_mutate(
    actor: Actor,
    entity: Entity,
    action: Action,
    **context: object,
) -> None:
    """Raise ForbiddenError unless ``can_mutate`` allows the action."""
    if not can_mutate(actor, entity, action, **context):  # type: ignore[arg-type]
        message = _DENIED_MESSAGES.get((type(entity), action), "Forbidden")
        raise ForbiddenError(message)
