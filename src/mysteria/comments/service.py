"""
Comment intake, email verification and moderation.

A submitted comment stays hidden until the commenter follows the single-use
link mailed to them (or an admin approves it). Only the SHA-256 of the
token is stored; the raw token exists in the email alone.
"""

from __future__ import annotations

import enum
import hashlib
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from mysteria.config import get_settings
from mysteria.db.models import Article, Comment, UserReputation
from mysteria.errors import InputValidationError, MysteriaError, NotFoundError, RateLimitedError
from mysteria.integrations.email_verification import check_deliverability
from mysteria.reputation.service import record_comment_approval, reputation_by_email
from mysteria.timeutils import as_utc, utcnow
from mysteria.validation import (
    normalize_email,
    parse_uuid,
    require_fields,
    sanitize_plain_text,
    validate_content,
    validate_name,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from mysteria.email.service import EmailService

logger = structlog.get_logger()

SUBMITTED_MESSAGE = "Thank you! Please check your email and click the link to publish your comment."


class VerificationOutcome(enum.Enum):
    VERIFIED = "verified"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass
class CommentView:
    """Approved comment as shown under an article, with its replies."""

    comment: Comment
    reputation: UserReputation | None
    replies: list[CommentView] = field(default_factory=list)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_verification_token() -> tuple[str, str]:
    """Return (raw_token, token_hash). Only the hash is persisted."""
    raw = secrets.token_urlsafe(32)
    return raw, hash_token(raw)


def verification_url(raw_token: str) -> str:
    settings = get_settings()
    return f"{settings.public_api_url.rstrip('/')}/api/v1/verify-comment?token={raw_token}"


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


async def submit_comment(
    db: AsyncSession,
    email_service: EmailService,
    *,
    article_id: str | None,
    name: str | None,
    email: str | None,
    content: str | None,
    parent_comment_id: str | None = None,
) -> Comment:
    """
    Validate and store a comment, then mail its verification link.

    Raises:
        InputValidationError: Missing or malformed fields, bad parent.
        NotFoundError: Article missing or unpublished.
        VerificationFailedError: Deliverability check rejected the address.
        RateLimitedError: The address already got its hourly email quota.
        MysteriaError: Storage or email delivery failed (500).
    """
    require_fields(article_id=article_id, name=name, email=email, content=content)

    clean_email = normalize_email(email)
    clean_name = sanitize_plain_text(validate_name(name))
    clean_content = sanitize_plain_text(validate_content(content))
    if not clean_name or not clean_content:
        msg = "Missing required fields"
        raise InputValidationError(msg)

    article_uuid = parse_uuid(article_id, "Invalid article ID")
    article = await db.get(Article, article_uuid)
    if article is None or not article.published:
        msg = "Article not found"
        raise NotFoundError(msg)

    parent_uuid = None
    if parent_comment_id:
        parent_uuid = parse_uuid(parent_comment_id, "Invalid parent comment")
        parent = await db.get(Comment, parent_uuid)
        # Replies nest one level deep, under a comment of the same article.
        if parent is None or parent.article_id != article_uuid or parent.parent_comment_id is not None:
            msg = "Invalid parent comment"
            raise InputValidationError(msg)

    await check_deliverability(clean_email, fail_open=False)

    settings = get_settings()
    raw_token, token_hash = create_verification_token()
    comment = Comment(
        article_id=article_uuid,
        parent_comment_id=parent_uuid,
        name=clean_name,
        email=clean_email,
        content=clean_content,
        verification_token=token_hash,
        verification_expires_at=utcnow() + timedelta(hours=settings.comment_verification_ttl_hours),
        is_email_verified=False,
        is_approved=False,
    )
    try:
        db.add(comment)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("comment_insert_failed", article_id=str(article_uuid))
        msg = "Failed to submit comment"
        raise MysteriaError(msg, 500) from e

    # The link only goes out for a stored row; an unsent comment is removed again.
    try:
        sent = await email_service.send_template(
            clean_email,
            "comment_verification",
            {
                "name": clean_name,
                "verify_url": verification_url(raw_token),
                "expires_hours": settings.comment_verification_ttl_hours,
            },
        )
    except RateLimitedError:
        await _discard_unsent(db, comment)
        raise
    if not sent:
        await _discard_unsent(db, comment)
        logger.warning("comment_verification_email_failed", article_id=str(article_uuid))
        msg = "Failed to send verification email. Please try again later."
        raise MysteriaError(msg, 500)

    logger.info(
        "comment_submitted",
        comment_id=str(comment.id),
        article_id=str(article_uuid),
        reply=parent_uuid is not None,
    )
    return comment


async def _discard_unsent(db: AsyncSession, comment: Comment) -> None:
    await db.delete(comment)
    await db.commit()


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


async def verify_comment(db: AsyncSession, raw_token: str) -> VerificationOutcome:
    """Consume a verification token and publish its comment."""
    token_hash = hash_token(raw_token)
    result = await db.execute(select(Comment).where(Comment.verification_token == token_hash))
    comment = result.scalar_one_or_none()
    if comment is None:
        return VerificationOutcome.INVALID

    expires_at = as_utc(comment.verification_expires_at)
    if expires_at is None or expires_at <= utcnow():
        logger.info("comment_verification_expired", comment_id=str(comment.id))
        return VerificationOutcome.EXPIRED

    # Conditional on the token still being present, so two concurrent clicks
    # cannot both publish.
    consumed = await db.execute(
        update(Comment)
        .where(Comment.id == comment.id, Comment.verification_token == token_hash)
        .values(
            is_email_verified=True,
            is_approved=True,
            verification_token=None,
            verification_expires_at=None,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if consumed.rowcount != 1:
        await db.rollback()
        return VerificationOutcome.INVALID

    await db.refresh(comment)
    await record_comment_approval(db, comment)
    await db.commit()
    logger.info("comment_verified", comment_id=str(comment.id))
    return VerificationOutcome.VERIFIED


# ---------------------------------------------------------------------------
# Public listing
# ---------------------------------------------------------------------------


async def list_article_comments(db: AsyncSession, article_id: uuid.UUID) -> list[CommentView]:
    """Approved comments oldest first, replies nested under their parent."""
    result = await db.execute(
        select(Comment)
        .where(Comment.article_id == article_id, Comment.is_approved.is_(True))
        .order_by(Comment.created_at.asc())
    )
    comments = list(result.scalars())
    reputations = await reputation_by_email(db, {c.email for c in comments})

    top_level: dict[uuid.UUID, CommentView] = {}
    orphans: list[CommentView] = []
    for comment in comments:
        view = CommentView(comment=comment, reputation=reputations.get(comment.email.lower()))
        if comment.parent_comment_id is None:
            top_level[comment.id] = view
        elif comment.parent_comment_id in top_level:
            top_level[comment.parent_comment_id].replies.append(view)
        else:
            orphans.append(view)
    # Replies to a parent that is itself not approved are not shown.
    if orphans:
        logger.debug("comment_replies_hidden", count=len(orphans))
    return list(top_level.values())


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


async def admin_list_comments(
    db: AsyncSession, status: str = "all"
) -> list[tuple[Comment, UserReputation | None]]:
    query = select(Comment).order_by(Comment.created_at.desc())
    if status == "pending":
        query = query.where(Comment.is_approved.is_(False))
    elif status == "approved":
        query = query.where(Comment.is_approved.is_(True))
    result = await db.execute(query)
    comments = list(result.unique().scalars())
    reputations = await reputation_by_email(db, {c.email for c in comments})
    return [(c, reputations.get(c.email.lower())) for c in comments]


async def approve_comment(db: AsyncSession, comment_id: uuid.UUID) -> Comment:
    """Publish a comment without email verification. Approving twice is a no-op."""
    comment = await db.get(Comment, comment_id)
    if comment is None:
        msg = "Comment not found"
        raise NotFoundError(msg)
    if comment.is_approved:
        return comment

    comment.is_approved = True
    comment.verification_token = None
    comment.verification_expires_at = None
    await db.flush()
    await record_comment_approval(db, comment)
    await db.commit()
    logger.info("comment_approved_by_admin", comment_id=str(comment.id))
    return comment


async def delete_comment(db: AsyncSession, comment_id: uuid.UUID) -> None:
    """Delete a comment and its replies. Reputation is left as it was."""
    comment = await db.get(Comment, comment_id)
    if comment is None:
        msg = "Comment not found"
        raise NotFoundError(msg)
    await db.execute(delete(Comment).where(Comment.parent_comment_id == comment_id))
    await db.execute(delete(Comment).where(Comment.id == comment_id))
    await db.commit()
    logger.info("comment_deleted", comment_id=str(comment_id))


def comment_id_from_path(value: str) -> uuid.UUID:
    return parse_uuid(value, "Invalid comment ID")
