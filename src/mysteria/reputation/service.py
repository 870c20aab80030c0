"""
Reputation aggregation per commenter email.

Counters are recounted from the comments table on every approval and never
move down: a recount lower than the stored value (say after an admin deleted
comments) keeps the stored value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from mysteria.db.models import Comment, UserReputation
from mysteria.errors import NotFoundError
from mysteria.reputation.badges import badge_rank, compute_score, resolve_badge
from mysteria.timeutils import as_utc, start_of_month, utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

LEADERBOARD_LIMIT = 50


async def get_reputation(db: AsyncSession, email: str) -> UserReputation | None:
    result = await db.execute(select(UserReputation).where(UserReputation.email == email.lower()))
    return result.scalar_one_or_none()


async def get_or_create_reputation(db: AsyncSession, email: str, name: str) -> UserReputation:
    reputation = await get_reputation(db, email)
    if reputation is None:
        now = utcnow()
        reputation = UserReputation(
            email=email.lower(),
            name=name,
            total_comments=0,
            approved_comments=0,
            total_replies=0,
            challenge_wins=0,
            reputation_score=0,
            badge_level="newcomer",
            first_comment_at=now,
            last_comment_at=now,
        )
        db.add(reputation)
        await db.flush()
    return reputation


def _refresh_score(reputation: UserReputation) -> None:
    score = compute_score(reputation.approved_comments, reputation.total_replies, reputation.challenge_wins)
    reputation.reputation_score = max(reputation.reputation_score or 0, score)
    badge = resolve_badge(reputation.reputation_score, reputation.challenge_wins)
    # Tiers never drop either.
    if badge_rank(badge) > badge_rank(reputation.badge_level or "newcomer"):
        reputation.badge_level = badge


async def record_comment_approval(db: AsyncSession, comment: Comment) -> UserReputation:
    """Recount the commenter's stats after ``comment`` was approved. Does not commit."""
    email = comment.email.lower()
    counts = (
        await db.execute(
            select(
                func.count(Comment.id),
                func.count(Comment.id).filter(Comment.is_approved.is_(True)),
                func.count(Comment.id).filter(
                    Comment.is_approved.is_(True), Comment.parent_comment_id.is_not(None)
                ),
                func.min(Comment.created_at),
                func.max(Comment.created_at),
            ).where(func.lower(Comment.email) == email)
        )
    ).one()
    total, approved, replies, first_at, last_at = counts

    reputation = await get_or_create_reputation(db, email, comment.name)
    reputation.name = comment.name
    reputation.total_comments = max(reputation.total_comments, int(total))
    reputation.approved_comments = max(reputation.approved_comments, int(approved))
    reputation.total_replies = max(reputation.total_replies, int(replies))
    if first_at is not None and as_utc(first_at) < as_utc(reputation.first_comment_at):
        reputation.first_comment_at = first_at
    if last_at is not None and as_utc(last_at) > as_utc(reputation.last_comment_at):
        reputation.last_comment_at = last_at
    _refresh_score(reputation)
    await db.flush()

    logger.info(
        "reputation_updated",
        score=reputation.reputation_score,
        badge=reputation.badge_level,
        approved=reputation.approved_comments,
    )
    return reputation


async def record_challenge_win(db: AsyncSession, email: str, name: str) -> UserReputation:
    """Credit a mystery challenge win. Does not commit."""
    reputation = await get_or_create_reputation(db, email, name)
    reputation.challenge_wins += 1
    _refresh_score(reputation)
    await db.flush()
    logger.info("challenge_win_recorded", score=reputation.reputation_score, badge=reputation.badge_level)
    return reputation


async def reputation_by_email(db: AsyncSession, emails: set[str]) -> dict[str, UserReputation]:
    if not emails:
        return {}
    result = await db.execute(select(UserReputation).where(UserReputation.email.in_({e.lower() for e in emails})))
    return {rep.email: rep for rep in result.scalars()}


async def get_leaderboard(
    db: AsyncSession, period: str = "all-time", limit: int = LEADERBOARD_LIMIT
) -> list[UserReputation]:
    query = select(UserReputation)
    if period == "monthly":
        query = query.where(UserReputation.last_comment_at >= start_of_month())
    query = query.order_by(UserReputation.reputation_score.desc(), UserReputation.approved_comments.desc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars())


async def get_public_reputation(db: AsyncSession, email: str) -> UserReputation:
    reputation = await get_reputation(db, email)
    if reputation is None:
        msg = "Reputation not found"
        raise NotFoundError(msg)
    return reputation
