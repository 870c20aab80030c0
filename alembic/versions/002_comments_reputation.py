"""Comments with email verification, and per-email reputation.

Revision ID: 002_comments_reputation
Revises: 001_content_tables
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "002_comments_reputation"
down_revision: str | None = "001_content_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create comments and user_reputation."""
    op.create_table(
        "comments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "article_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("articles.id", ondelete="CASCADE", name="comments_article_id_fkey"),
            nullable=False,
        ),
        sa.Column(
            "parent_comment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("comments.id", ondelete="CASCADE", name="comments_parent_comment_id_fkey"),
            nullable=True,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        # SHA-256 of the emailed token; NULL once consumed
        sa.Column("verification_token", sa.String(128), nullable=True),
        sa.Column("verification_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_email_verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("is_approved", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("verification_token", name="comments_verification_token_key"),
    )
    op.create_index("ix_comments_email", "comments", ["email"])
    op.create_index(
        "ix_comments_article_approved",
        "comments",
        ["article_id", "created_at"],
        postgresql_where=sa.text("is_approved"),
    )
    op.execute(
        "ALTER TABLE comments ADD CONSTRAINT ck_comments_content_length "
        "CHECK (char_length(content) BETWEEN 1 AND 5000)"
    )

    op.create_table(
        "user_reputation",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("total_comments", sa.Integer(), server_default="0", nullable=False),
        sa.Column("approved_comments", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_replies", sa.Integer(), server_default="0", nullable=False),
        sa.Column("challenge_wins", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reputation_score", sa.Integer(), server_default="0", nullable=False),
        sa.Column("badge_level", sa.String(32), server_default="newcomer", nullable=False),
        sa.Column("first_comment_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_comment_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("email", name="user_reputation_email_key"),
    )
    op.create_index("ix_user_reputation_score", "user_reputation", [sa.text("reputation_score DESC")])
    op.execute(
        "ALTER TABLE user_reputation ADD CONSTRAINT ck_user_reputation_badge_level "
        "CHECK (badge_level IN ('newcomer', 'regular', 'contributor', 'veteran', 'expert', 'detective', 'legend'))"
    )


def downgrade() -> None:
    op.drop_table("user_reputation")
    op.drop_table("comments")
