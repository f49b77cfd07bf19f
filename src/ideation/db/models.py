"""ORM models for the ideation workflow.

Idea -> SubIdea -> Proposal -> Prototype are linked by child-owned foreign keys.
Votes and comments point at their target through a (kind, target_id) pair
instead of one nullable foreign key per target type, so deleting a target
must delete its votes and comments explicitly (see ``ideation.workflow.ledger``).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ideation.db.base import Base, BigIntPK, TimestampMixin, utcnow
from ideation.db.enums import (
    CommentTargetKind,
    ContributionKind,
    IdeaStatus,
    IdeaType,
    ProposalStatus,
    SubIdeaStatus,
    UserRole,
    VoteTargetKind,
)


def _enum(enum_cls: type) -> Enum:
    return Enum(enum_cls, native_enum=False, length=32, validate_strings=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(TimestampMixin, Base):
    """Platform member. ``stars_balance`` is the running sum of the star ledger."""

    __tablename__ = "users"
    __table_args__ = (CheckConstraint("stars_balance >= 0", name="ck_users_stars_balance_non_negative"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[UserRole] = mapped_column(_enum(UserRole), default=UserRole.USER, nullable=False)
    stars_balance: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)


# ---------------------------------------------------------------------------
# Contribution hierarchy
# ---------------------------------------------------------------------------


class Idea(TimestampMixin, Base):
    """Top-level contribution. Proposal/prototype totals are cached descendant counts."""

    __tablename__ = "ideas"
    __table_args__ = (
        CheckConstraint("total_proposals >= 0", name="ck_ideas_total_proposals_non_negative"),
        CheckConstraint("total_prototypes >= 0", name="ck_ideas_total_prototypes_non_negative"),
        CheckConstraint(
            "potential_dollar_value IS NULL OR potential_dollar_value >= 0",
            name="ck_ideas_potential_dollar_value_non_negative",
        ),
        Index("idx_ideas_status_created", "status", "created_at"),
        Index("idx_ideas_author", "author_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[IdeaType] = mapped_column(_enum(IdeaType), nullable=False)
    status: Mapped[IdeaStatus] = mapped_column(_enum(IdeaStatus), default=IdeaStatus.OPEN, nullable=False)
    potential_dollar_value: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_proposals: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    total_prototypes: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    author_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)

    author: Mapped[User] = relationship("User", lazy="raise")


class SubIdea(TimestampMixin, Base):
    """A framing of part of an Idea that others can propose against."""

    __tablename__ = "sub_ideas"
    __table_args__ = (Index("idx_sub_ideas_idea", "idea_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[SubIdeaStatus] = mapped_column(_enum(SubIdeaStatus), nullable=False)
    author_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    idea_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("ideas.id"), nullable=False)

    author: Mapped[User] = relationship("User", lazy="raise")
    idea: Mapped[Idea] = relationship("Idea", lazy="raise")


# One title per (idea, author), case-insensitive.
Index(
    "uq_sub_ideas_idea_author_title",
    SubIdea.idea_id,
    SubIdea.author_id,
    func.lower(SubIdea.title),
    unique=True,
)


class Proposal(TimestampMixin, Base):
    """A pitch to prototype a SubIdea, accepted or rejected by the Idea's author."""

    __tablename__ = "proposals"
    __table_args__ = (
        Index("idx_proposals_sub_idea", "sub_idea_id"),
        Index(
            "uq_proposals_author_sub_idea_pending",
            "author_id",
            "sub_idea_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    presentation_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ProposalStatus] = mapped_column(
        _enum(ProposalStatus), default=ProposalStatus.PENDING, nullable=False
    )
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    author_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    sub_idea_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("sub_ideas.id"), nullable=False)

    author: Mapped[User] = relationship("User", lazy="raise")
    sub_idea: Mapped[SubIdea] = relationship("SubIdea", lazy="raise")


class Prototype(TimestampMixin, Base):
    """A delivered implementation of an accepted Proposal."""

    __tablename__ = "prototypes"
    __table_args__ = (
        UniqueConstraint("author_id", "proposal_id", name="uq_prototypes_author_proposal"),
        Index("idx_prototypes_proposal", "proposal_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    live_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    proposal_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("proposals.id"), nullable=False)

    author: Mapped[User] = relationship("User", lazy="raise")
    proposal: Mapped[Proposal] = relationship("Proposal", lazy="raise")
    team: Mapped[list[PrototypeTeamMember]] = relationship(
        "PrototypeTeamMember",
        lazy="raise",
        order_by="PrototypeTeamMember.joined_at",
        viewonly=True,
    )


class PrototypeTeamMember(Base):
    """Membership row; the prototype author always has one."""

    __tablename__ = "prototype_team_members"

    prototype_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("prototypes.id"), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), primary_key=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    user: Mapped[User] = relationship("User", lazy="raise")


# ---------------------------------------------------------------------------
# Votes & comments (tagged-variant targets)
# ---------------------------------------------------------------------------


class Vote(TimestampMixin, Base):
    """One +1/-1 vote per (user, target)."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "target_kind", "target_id", name="uq_votes_user_target"),
        CheckConstraint("value IN (-1, 1)", name="ck_votes_value"),
        Index("idx_votes_target", "target_kind", "target_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    target_kind: Mapped[VoteTargetKind] = mapped_column(_enum(VoteTargetKind), nullable=False)
    target_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)


class Comment(TimestampMixin, Base):
    """Threaded comment on a SubIdea or Prototype."""

    __tablename__ = "comments"
    __table_args__ = (Index("idx_comments_target", "target_kind", "target_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    target_kind: Mapped[CommentTargetKind] = mapped_column(_enum(CommentTargetKind), nullable=False)
    target_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    parent_comment_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )

    author: Mapped[User] = relationship("User", lazy="raise")


# ---------------------------------------------------------------------------
# Star ledger
# ---------------------------------------------------------------------------


class StarLedgerEntry(Base):
    """Append-only record of every star credit (positive) and reversal (negative)."""

    __tablename__ = "star_ledger"
    __table_args__ = (
        Index("idx_star_ledger_source", "source_kind", "source_id"),
        Index("idx_star_ledger_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source_kind: Mapped[ContributionKind] = mapped_column(_enum(ContributionKind), nullable=False)
    source_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
