"""Workflow error taxonomy.

Services raise these; the global handlers in ``ideation.middleware.error_handler``
turn them into ``{success: false, message, data: null}`` responses with the
matching status code.
"""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, errors: list[Any] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(WorkflowError):
    """Malformed or out-of-range input."""

    status_code = 400
    default_message = "Validation error"


class AuthenticationError(WorkflowError):
    """Missing, invalid, expired or revoked credentials."""

    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(WorkflowError):
    """The actor is not allowed to perform the action."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(WorkflowError):
    """The entity or one of its parents does not exist."""

    status_code = 404
    default_message = "Not found"


class ConflictError(WorkflowError):
    """Duplicate or state-conflicting write."""

    status_code = 409
    default_message = "Conflict"


class InvalidStateError(ConflictError):
    """The parent's status forbids the requested child or transition."""

    default_message = "Invalid state"


class InternalError(WorkflowError):
    """Unexpected failure, including database errors that are not constraint violations."""
