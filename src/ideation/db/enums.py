"""Enumerations shared by the ORM models, schemas and services."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class IdeaType(str, enum.Enum):
    IDEATION = "IDEATION"
    SOLUTION_REQUEST = "SOLUTION_REQUEST"


class IdeaStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class SubIdeaStatus(str, enum.Enum):
    OPEN_FOR_PROTOTYPING = "OPEN_FOR_PROTOTYPING"
    SELF_PROTOTYPING = "SELF_PROTOTYPING"


class ProposalStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class ContributionKind(str, enum.Enum):
    """Entity kinds that earn stars and appear as ledger sources."""

    IDEA = "IDEA"
    SUB_IDEA = "SUB_IDEA"
    PROPOSAL = "PROPOSAL"
    PROTOTYPE = "PROTOTYPE"


class VoteTargetKind(str, enum.Enum):
    SUB_IDEA = "SUB_IDEA"
    PROPOSAL = "PROPOSAL"
    PROTOTYPE = "PROTOTYPE"


class CommentTargetKind(str, enum.Enum):
    SUB_IDEA = "SUB_IDEA"
    PROTOTYPE = "PROTOTYPE"
