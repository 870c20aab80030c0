"""Mystery challenge endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.auth.dependencies import require_admin
from mysteria.auth.ip_allowlist import client_ip
from mysteria.challenges.schemas import (
    ActiveChallengeResponse,
    AdminTheory,
    ChallengeCreate,
    ChallengeResponse,
    ChallengeUpdate,
    PublicTheory,
    SelectWinnerRequest,
    SubmitTheoryRequest,
    SubmitVoteRequest,
    WinnerEmailRequest,
    WinnerSelectionResponse,
)
from mysteria.challenges.service import (
    create_challenge,
    delete_challenge,
    get_active_challenge,
    list_challenges,
    list_theories,
    select_winner,
    send_winner_email,
    submit_theory,
    submit_vote,
    update_challenge,
)
from mysteria.comments.schemas import SuccessResponse
from mysteria.database import get_session
from mysteria.email.service import get_email_service
from mysteria.errors import MysteriaError
from mysteria.redis_client import get_redis
from mysteria.validation import normalize_email, parse_uuid, require_fields, validate_name

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Mystery challenge"])


@router.get("/challenges/active", response_model=ActiveChallengeResponse)
async def active_challenge(db: AsyncSession = Depends(get_session)) -> ActiveChallengeResponse:  # noqa: B008
    challenge = await get_active_challenge(db)
    if challenge is None:
        return ActiveChallengeResponse(challenge=None)
    theories = await list_theories(db, challenge.id)
    return ActiveChallengeResponse(
        challenge=ChallengeResponse.model_validate(challenge),
        theories=[PublicTheory.model_validate(t) for t in theories],
    )


@router.post("/submit-theory", response_model=SuccessResponse)
async def submit_theory_endpoint(
    body: SubmitTheoryRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SuccessResponse:
    await submit_theory(
        db,
        challenge_id=body.challenge_id,
        user_name=body.user_name,
        user_email=body.user_email,
        theory_content=body.theory_content,
        recaptcha_token=body.recaptcha_token,
        remote_ip=client_ip(request),
    )
    return SuccessResponse(message="Theory submitted successfully")


@router.post("/submit-vote", response_model=SuccessResponse)
async def submit_vote_endpoint(
    body: SubmitVoteRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SuccessResponse:
    await submit_vote(
        db,
        theory_id=body.theory_id,
        voter_email=body.voter_email,
        fingerprint=body.fingerprint,
        recaptcha_token=body.recaptcha_token,
        remote_ip=client_ip(request),
    )
    return SuccessResponse(message="Vote counted successfully")


@router.post("/send-mystery-winner-email", response_model=SuccessResponse)
async def send_mystery_winner_email(
    body: WinnerEmailRequest,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    redis: Redis = Depends(get_redis),  # noqa: B008
) -> SuccessResponse:
    require_fields(name=body.name, email=body.email)
    name = validate_name(body.name)
    email = normalize_email(body.email)
    logger.info("winner_email_requested")
    if not await send_winner_email(get_email_service(redis), name, email):
        msg = "Failed to send winner email"
        raise MysteriaError(msg, 500)
    return SuccessResponse(message="Winner email sent")


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/admin/challenges", response_model=list[ChallengeResponse])
async def admin_list_challenges(
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await list_challenges(db)


@router.post("/admin/challenges", response_model=ChallengeResponse, status_code=201)
async def admin_create_challenge(
    body: ChallengeCreate,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await create_challenge(db, body.model_dump())


@router.patch("/admin/challenges/{challenge_id}", response_model=ChallengeResponse)
async def admin_update_challenge(
    challenge_id: str,
    body: ChallengeUpdate,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    fields = body.model_dump(exclude_unset=True)
    return await update_challenge(db, parse_uuid(challenge_id, "Invalid challenge ID"), fields)


@router.delete("/admin/challenges/{challenge_id}", response_model=SuccessResponse)
async def admin_delete_challenge(
    challenge_id: str,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SuccessResponse:
    await delete_challenge(db, parse_uuid(challenge_id, "Invalid challenge ID"))
    return SuccessResponse(message="Challenge deleted")


@router.get("/admin/challenges/{challenge_id}/theories", response_model=list[AdminTheory])
async def admin_list_theories(
    challenge_id: str,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> Any:
    return await list_theories(db, parse_uuid(challenge_id, "Invalid challenge ID"))


@router.post("/admin/challenges/{challenge_id}/winner", response_model=WinnerSelectionResponse)
async def admin_select_winner(
    challenge_id: str,
    body: SelectWinnerRequest,
    _claims: dict[str, Any] = Depends(require_admin),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: Redis = Depends(get_redis),  # noqa: B008
) -> WinnerSelectionResponse:
    selection = await select_winner(
        db,
        get_email_service(redis),
        parse_uuid(challenge_id, "Invalid challenge ID"),
        body.theory_id,
    )
    return WinnerSelectionResponse(
        message="Winner selected",
        challenge=ChallengeResponse.model_validate(selection.challenge),
        theory=AdminTheory.model_validate(selection.theory),
        email_sent=selection.email_sent,
    )
