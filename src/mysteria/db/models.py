"""ORM models for the Mysteria Realm schema.

Column types stay portable (``Uuid``, ``String``, ``DateTime(timezone=True)``)
so the same models run on PostgreSQL in production and on SQLite locally.
The authoritative DDL lives in the Alembic migrations.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mysteria.db.base import Base
from mysteria.timeutils import utcnow


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


def _created_at() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


def _updated_at() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class Category(Base):
    """Bilingual category. Static reference data edited by an admin."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = _uuid_pk()
    slug: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    name_en: Mapped[str] = mapped_column(String(128), nullable=False)
    name_sq: Mapped[str] = mapped_column(String(128), nullable=False)
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_sq: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    articles: Mapped[list[Article]] = relationship("Article", back_populates="category", passive_deletes=True)


class Article(Base):
    """Bilingual story. ``view_count`` only moves through atomic increments."""

    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = _uuid_pk()
    slug: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    title_en: Mapped[str] = mapped_column(String(256), nullable=False)
    title_sq: Mapped[str] = mapped_column(String(256), nullable=False)
    content_en: Mapped[str] = mapped_column(Text, nullable=False)
    content_sq: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    excerpt_sq: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_title_en: Mapped[str | None] = mapped_column(String(256), nullable=True)
    meta_title_sq: Mapped[str | None] = mapped_column(String(256), nullable=True)
    meta_description_en: Mapped[str | None] = mapped_column(String(512), nullable=True)
    meta_description_sq: Mapped[str | None] = mapped_column(String(512), nullable=True)
    featured_image_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reading_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    category: Mapped[Category | None] = relationship("Category", back_populates="articles", lazy="joined")


class ArticleView(Base):
    """One row per (article, fingerprint); a new row bumps ``view_count``."""

    __tablename__ = "article_views"
    __table_args__ = (UniqueConstraint("article_id", "fingerprint"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False
    )
    fingerprint: Mapped[str] = mapped_column(String(128), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    viewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Comments & reputation
# ---------------------------------------------------------------------------


class Comment(Base):
    """Visitor comment. Replies nest one level via ``parent_comment_id``.

    ``verification_token`` holds the SHA-256 of the emailed token and is
    cleared once the comment is approved.
    """

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = _uuid_pk()
    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False
    )
    parent_comment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    verification_token: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)
    verification_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    article: Mapped[Article] = relationship("Article", lazy="joined")


class UserReputation(Base):
    """Aggregate per commenter email. Counters only grow."""

    __tablename__ = "user_reputation"

    id: Mapped[uuid.UUID] = _uuid_pk()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    total_comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    approved_comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_replies: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    challenge_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reputation_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    badge_level: Mapped[str] = mapped_column(String(32), nullable=False, default="newcomer", server_default="newcomer")
    first_comment_at: Mapped[datetime] = _created_at()
    last_comment_at: Mapped[datetime] = _created_at()
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


# ---------------------------------------------------------------------------
# Mystery challenge
# ---------------------------------------------------------------------------


class MysteryChallenge(Base):
    __tablename__ = "mystery_challenges"

    id: Mapped[uuid.UUID] = _uuid_pk()
    title_en: Mapped[str] = mapped_column(String(256), nullable=False)
    title_sq: Mapped[str] = mapped_column(String(256), nullable=False)
    description_en: Mapped[str] = mapped_column(Text, nullable=False)
    description_sq: Mapped[str] = mapped_column(Text, nullable=False)
    clues_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    clues_sq: Mapped[str | None] = mapped_column(Text, nullable=True)
    featured_image_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    # Points at challenge_theories.id; no FK so the two tables have no cycle.
    winner_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class ChallengeTheory(Base):
    """Submitted theory. ``upvotes`` only moves through atomic increments."""

    __tablename__ = "challenge_theories"

    id: Mapped[uuid.UUID] = _uuid_pk()
    challenge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("mystery_challenges.id", ondelete="CASCADE"), nullable=False
    )
    user_name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    theory_content: Mapped[str] = mapped_column(Text, nullable=False)
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_winner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class TheoryVote(Base):
    """One vote per (theory, email) and per (theory, fingerprint)."""

    __tablename__ = "theory_votes"
    __table_args__ = (
        UniqueConstraint("theory_id", "voter_email"),
        UniqueConstraint("theory_id", "fingerprint"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    theory_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("challenge_theories.id", ondelete="CASCADE"), nullable=False
    )
    voter_email: Mapped[str] = mapped_column(String(255), nullable=False)
    fingerprint: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = _created_at()


# ---------------------------------------------------------------------------
# Admin access
# ---------------------------------------------------------------------------


class WhitelistedIp(Base):
    """Literal IP or CIDR network allowed to reach the admin login."""

    __tablename__ = "whitelisted_ips"

    id: Mapped[uuid.UUID] = _uuid_pk()
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = _created_at()


class AdminUser(Base):
    """Back-office account. ``role`` must be ``admin`` to sign in."""

    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = _uuid_pk()
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="admin", server_default="admin")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()
