"""Initial schema: users, the idea hierarchy, votes, comments and the star ledger.

Creates users, ideas, sub_ideas, proposals, prototypes,
prototype_team_members, votes, comments and star_ledger.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
_pk = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("stars_balance", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("stars_balance >= 0", name="ck_users_stars_balance_non_negative"),
    )

    # --- ideas ---
    op.create_table(
        "ideas",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("potential_dollar_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("total_proposals", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_prototypes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("total_proposals >= 0", name="ck_ideas_total_proposals_non_negative"),
        sa.CheckConstraint("total_prototypes >= 0", name="ck_ideas_total_prototypes_non_negative"),
        sa.CheckConstraint(
            "potential_dollar_value IS NULL OR potential_dollar_value >= 0",
            name="ck_ideas_potential_dollar_value_non_negative",
        ),
    )
    op.create_index("idx_ideas_status_created", "ideas", ["status", "created_at"])
    op.create_index("idx_ideas_author", "ideas", ["author_id"])

    # --- sub_ideas ---
    op.create_table(
        "sub_ideas",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("idea_id", sa.BigInteger(), sa.ForeignKey("ideas.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_sub_ideas_idea", "sub_ideas", ["idea_id"])
    op.create_index(
        "uq_sub_ideas_idea_author_title",
        "sub_ideas",
        ["idea_id", "author_id", sa.text("lower(title)")],
        unique=True,
    )

    # --- proposals ---
    op.create_table(
        "proposals",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("presentation_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("rejection_reason", sa.String(500), nullable=True),
        sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("sub_idea_id", sa.BigInteger(), sa.ForeignKey("sub_ideas.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_proposals_sub_idea", "proposals", ["sub_idea_id"])
    # At most one PENDING proposal per (author, sub-idea)
    op.create_index(
        "uq_proposals_author_sub_idea_pending",
        "proposals",
        ["author_id", "sub_idea_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'"),
    )

    # --- prototypes ---
    op.create_table(
        "prototypes",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("live_url", sa.Text(), nullable=True),
        sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("proposal_id", sa.BigInteger(), sa.ForeignKey("proposals.id"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("author_id", "proposal_id", name="uq_prototypes_author_proposal"),
    )
    op.create_index("idx_prototypes_proposal", "prototypes", ["proposal_id"])

    op.create_table(
        "prototype_team_members",
        sa.Column("prototype_id", sa.BigInteger(), sa.ForeignKey("prototypes.id"), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
    )

    # --- votes ---
    op.create_table(
        "votes",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_kind", sa.String(32), nullable=False),
        sa.Column("target_id", sa.BigInteger(), nullable=False),
        sa.Column("value", sa.SmallInteger(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "target_kind", "target_id", name="uq_votes_user_target"),
        sa.CheckConstraint("value IN (-1, 1)", name="ck_votes_value"),
    )
    op.create_index("idx_votes_target", "votes", ["target_kind", "target_id"])

    # --- comments ---
    op.create_table(
        "comments",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_kind", sa.String(32), nullable=False),
        sa.Column("target_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "parent_comment_id",
            sa.BigInteger(),
            sa.ForeignKey("comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("idx_comments_target", "comments", ["target_kind", "target_id"])

    # --- star_ledger ---
    op.create_table(
        "star_ledger",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("source_kind", sa.String(32), nullable=False),
        sa.Column("source_id", sa.BigInteger(), nullable=False),
        sa.Column("description", sa.String(256), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_star_ledger_source", "star_ledger", ["source_kind", "source_id"])
    op.create_index("idx_star_ledger_user_created", "star_ledger", ["user_id", "created_at"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("star_ledger")
    op.drop_table("comments")
    op.drop_table("votes")
    op.drop_table("prototype_team_members")
    op.drop_table("prototypes")
    op.drop_index("uq_proposals_author_sub_idea_pending", table_name="proposals")
    op.drop_table("proposals")
    op.drop_index("uq_sub_ideas_idea_author_title", table_name="sub_ideas")
    op.drop_table("sub_ideas")
    op.drop_table("ideas")
    op.drop_table("users")
