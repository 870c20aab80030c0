"""Content tables: categories, articles, article views.

Revision ID: 001_content_tables
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_content_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create bilingual content tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # --- categories ---
    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("slug", sa.String(128), nullable=False),
        sa.Column("name_en", sa.String(128), nullable=False),
        sa.Column("name_sq", sa.String(128), nullable=False),
        sa.Column("description_en", sa.Text(), nullable=True),
        sa.Column("description_sq", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("slug", name="categories_slug_key"),
    )

    # --- articles ---
    op.create_table(
        "articles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("slug", sa.String(256), nullable=False),
        sa.Column(
            "category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("categories.id", ondelete="SET NULL", name="articles_category_id_fkey"),
            nullable=True,
        ),
        sa.Column("title_en", sa.String(256), nullable=False),
        sa.Column("title_sq", sa.String(256), nullable=False),
        sa.Column("content_en", sa.Text(), nullable=False),
        sa.Column("content_sq", sa.Text(), nullable=False),
        sa.Column("excerpt_en", sa.Text(), nullable=True),
        sa.Column("excerpt_sq", sa.Text(), nullable=True),
        sa.Column("meta_title_en", sa.String(256), nullable=True),
        sa.Column("meta_title_sq", sa.String(256), nullable=True),
        sa.Column("meta_description_en", sa.String(512), nullable=True),
        sa.Column("meta_description_sq", sa.String(512), nullable=True),
        sa.Column("featured_image_url", sa.String(2048), nullable=True),
        sa.Column("published", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reading_time_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("slug", name="articles_slug_key"),
    )
    op.create_index(
        "ix_articles_published_at",
        "articles",
        [sa.text("published_at DESC")],
        postgresql_where=sa.text("published"),
    )
    op.create_index("ix_articles_view_count", "articles", [sa.text("view_count DESC")])
    op.execute(
        "ALTER TABLE articles ADD CONSTRAINT ck_articles_view_count_nonnegative "
        "CHECK (view_count >= 0)"
    )

    # --- article_views (one row per reader fingerprint) ---
    op.create_table(
        "article_views",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "article_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("articles.id", ondelete="CASCADE", name="article_views_article_id_fkey"),
            nullable=False,
        ),
        sa.Column("fingerprint", sa.String(128), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("article_id", "fingerprint", name="article_views_article_id_fingerprint_key"),
    )


def downgrade() -> None:
    op.drop_table("article_views")
    op.drop_table("articles")
    op.drop_table("categories")
