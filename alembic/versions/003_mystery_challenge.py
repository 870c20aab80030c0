"""Mystery challenge: challenges, theories, votes.

Revision ID: 003_mystery_challenge
Revises: 002_comments_reputation
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "003_mystery_challenge"
down_revision: str | None = "002_comments_reputation"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create challenge tables. Vote uniqueness is enforced per (theory, email) and (theory, fingerprint)."""
    op.create_table(
        "mystery_challenges",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("title_en", sa.String(256), nullable=False),
        sa.Column("title_sq", sa.String(256), nullable=False),
        sa.Column("description_en", sa.Text(), nullable=False),
        sa.Column("description_sq", sa.Text(), nullable=False),
        sa.Column("clues_en", sa.Text(), nullable=True),
        sa.Column("clues_sq", sa.Text(), nullable=True),
        sa.Column("featured_image_url", sa.String(2048), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("winner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index(
        "ix_mystery_challenges_active",
        "mystery_challenges",
        [sa.text("created_at DESC")],
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "challenge_theories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "challenge_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("mystery_challenges.id", ondelete="CASCADE", name="challenge_theories_challenge_id_fkey"),
            nullable=False,
        ),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("theory_content", sa.Text(), nullable=False),
        sa.Column("upvotes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_winner", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_challenge_theories_challenge_id", "challenge_theories", ["challenge_id"])
    op.execute(
        "ALTER TABLE challenge_theories ADD CONSTRAINT ck_challenge_theories_upvotes_nonnegative "
        "CHECK (upvotes >= 0)"
    )

    op.create_table(
        "theory_votes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "theory_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("challenge_theories.id", ondelete="CASCADE", name="theory_votes_theory_id_fkey"),
            nullable=False,
        ),
        sa.Column("voter_email", sa.String(255), nullable=False),
        sa.Column("fingerprint", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("theory_id", "voter_email", name="theory_votes_theory_id_voter_email_key"),
        sa.UniqueConstraint("theory_id", "fingerprint", name="theory_votes_theory_id_fingerprint_key"),
    )
    # Cooldown lookups scan recent votes by email or fingerprint.
    op.create_index("ix_theory_votes_email_created", "theory_votes", ["voter_email", "created_at"])
    op.create_index("ix_theory_votes_fingerprint_created", "theory_votes", ["fingerprint", "created_at"])


def downgrade() -> None:
    op.drop_table("theory_votes")
    op.drop_table("challenge_theories")
    op.drop_table("mystery_challenges")
