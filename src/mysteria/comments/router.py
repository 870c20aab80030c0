"""Comment endpoints: intake, email verification, listing, moderation."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.auth.dependencies import require_admin
from mysteria.comments import pages
from mysteria.comments.schemas import (
    AdminComment,
    CommentStatusFilter,
    PublicComment,
    SubmitCommentRequest,
    SuccessResponse,
)
from mysteria.comments.service import (
    SUBMITTED_MESSAGE,
    CommentView,
    VerificationOutcome,
    admin_list_comments,
    approve_comment,
    comment_id_from_path,
    delete_comment,
    list_article_comments,
    submit_comment,
    verify_comment,
)
from mysteria.config import get_settings
from mysteria.database import get_session
from mysteria.email.service import get_email_service
from mysteria.redis_client import get_redis
from mysteria.validation import parse_uuid

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Comments"])


def _public(view: CommentView) -> PublicComment:
    comment, reputation = view.comment, view.reputation
    return PublicComment(
        id=comment.id,
        parent_comment_id=comment.parent_comment_id,
        name=comment.name,
        content=comment.content,
        created_at=comment.created_at,
        badge_level=reputation.badge_level if reputation else "newcomer",
        reputation_score=reputation.reputation_score if reputation else 0,
        replies=[_public(reply) for reply in view.replies],
    )


@router.post("/submit-comment", response_model=SuccessResponse)
async def submit_comment_endpoint(
    body: SubmitCommentRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: Redis = Depends(get_redis),  # noqa: B008
) -> SuccessResponse:
    await submit_comment(
        db,
        get_email_service(redis),
        article_id=body.article_id,
        name=body.name,
        email=body.email,
        content=body.content,
        parent_comment_id=body.parent_comment_id,
    )
    return SuccessResponse(message=SUBMITTED_MESSAGE)


@router.get("/verify-comment", response_class=HTMLResponse)
async def verify_comment_endpoint(
    token: str | None = Query(default=None),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> HTMLResponse:
    if not token:
        return pages.missing_token_page()
    try:
        outcome = await verify_comment(db, token)
    except SQLAlchemyError:
        logger.exception("comment_verification_failed")
        return pages.verification_failed_page()
    if outcome is VerificationOutcome.EXPIRED:
        return pages.expired_token_page()
    if outcome is VerificationOutcome.INVALID:
        return pages.invalid_token_page()
    return pages.verified_page(get_settings().site_url)


@router.get("/articles/{article_id}/comments", response_model=list[PublicComment])
async def article_comments(article_id: str, db: AsyncSession = Depends(get_session)) -> Any:  # noqa: B008
    views = await list_article_comments(db, parse_uuid(article_id, "Invalid article ID"))
    return [_public(view) for view in views]


@router.get("/admin/comments", response_model=list[AdminComment])
async def admin_comments(
    status: CommentStatusFilter = Query("all"),
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    rows = await admin_list_comments(db, status)
    return [
        AdminComment(
            id=comment.id,
            article_id=comment.article_id,
            article_title=comment.article.title_en if comment.article else None,
            parent_comment_id=comment.parent_comment_id,
            name=comment.name,
            email=comment.email,
            content=comment.content,
            is_email_verified=comment.is_email_verified,
            is_approved=comment.is_approved,
            created_at=comment.created_at,
            badge_level=reputation.badge_level if reputation else None,
            reputation_score=reputation.reputation_score if reputation else None,
        )
        for comment, reputation in rows
    ]


@router.post("/admin/comments/{comment_id}/approve", response_model=SuccessResponse)
async def admin_approve_comment(
    comment_id: str,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SuccessResponse:
    await approve_comment(db, comment_id_from_path(comment_id))
    return SuccessResponse(message="Comment approved")


@router.delete("/admin/comments/{comment_id}", response_model=SuccessResponse)
async def admin_delete_comment(
    comment_id: str,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SuccessResponse:
    await delete_comment(db, comment_id_from_path(comment_id))
    return SuccessResponse(message="Comment deleted")
