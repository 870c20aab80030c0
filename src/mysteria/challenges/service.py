"""
Mystery challenge: theories, votes, winner selection.

Votes are deduplicated per theory by email OR fingerprint, so a voter who
changes only one of the two is still caught. Both pairs are also unique in
the schema, which backs up the check under concurrent submissions.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mysteria.config import get_settings
from mysteria.db.models import ChallengeTheory, MysteryChallenge, TheoryVote
from mysteria.errors import (
    DuplicateError,
    InputValidationError,
    MysteriaError,
    NotFoundError,
    RateLimitedError,
)
from mysteria.integrations.captcha import verify_captcha
from mysteria.integrations.email_verification import check_deliverability
from mysteria.reputation.service import record_challenge_win
from mysteria.timeutils import as_utc, utcnow
from mysteria.validation import (
    check_email_length,
    normalize_email,
    parse_uuid,
    require_fields,
    sanitize_html,
    sanitize_plain_text,
    validate_content,
    validate_name,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from mysteria.email.service import EmailService

logger = structlog.get_logger()

ALREADY_VOTED = "You have already voted for this theory"
FINGERPRINT_MAX_LENGTH = 128
THEORY_MIN_LENGTH = 10


@dataclass
class WinnerSelection:
    challenge: MysteryChallenge
    theory: ChallengeTheory
    email_sent: bool


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


async def get_active_challenge(db: AsyncSession) -> MysteryChallenge | None:
    result = await db.execute(
        select(MysteryChallenge)
        .where(MysteryChallenge.is_active.is_(True))
        .order_by(MysteryChallenge.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_theories(db: AsyncSession, challenge_id: uuid.UUID) -> list[ChallengeTheory]:
    result = await db.execute(
        select(ChallengeTheory)
        .where(ChallengeTheory.challenge_id == challenge_id)
        .order_by(ChallengeTheory.upvotes.desc(), ChallengeTheory.created_at.asc())
    )
    return list(result.scalars())


def is_open(challenge: MysteryChallenge, now: datetime | None = None) -> bool:
    deadline = as_utc(challenge.deadline)
    return challenge.is_active and deadline is not None and deadline > (now or utcnow())


# ---------------------------------------------------------------------------
# Theory submission
# ---------------------------------------------------------------------------


async def submit_theory(
    db: AsyncSession,
    *,
    challenge_id: str | None,
    user_name: str | None,
    user_email: str | None,
    theory_content: str | None,
    recaptcha_token: str | None,
    remote_ip: str | None = None,
) -> ChallengeTheory:
    """
    Validate, CAPTCHA-check and store a theory.

    The deliverability check fails open: a provider outage is logged and the
    theory is accepted.
    """
    require_fields(
        challenge_id=challenge_id,
        user_name=user_name,
        user_email=user_email,
        theory_content=theory_content,
        recaptcha_token=recaptcha_token,
    )
    name = sanitize_plain_text(validate_name(user_name, min_length=2))
    content = sanitize_plain_text(validate_content(theory_content, min_length=THEORY_MIN_LENGTH, label="Theory"))
    email = normalize_email(user_email)
    challenge_uuid = parse_uuid(challenge_id, "Invalid challenge ID")

    await verify_captcha(recaptcha_token, remote_ip)
    await check_deliverability(email, fail_open=True)

    challenge = await db.get(MysteryChallenge, challenge_uuid)
    if challenge is None:
        msg = "Challenge not found"
        raise NotFoundError(msg)
    if not is_open(challenge):
        msg = "This challenge is closed"
        raise InputValidationError(msg)

    theory = ChallengeTheory(
        challenge_id=challenge_uuid,
        user_name=name,
        user_email=email,
        theory_content=content,
        upvotes=0,
        is_winner=False,
    )
    try:
        db.add(theory)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("theory_insert_failed", challenge_id=str(challenge_uuid))
        msg = "Failed to submit theory"
        raise MysteriaError(msg, 500) from e

    logger.info("theory_submitted", theory_id=str(theory.id), challenge_id=str(challenge_uuid))
    return theory


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------


async def submit_vote(
    db: AsyncSession,
    *,
    theory_id: str | None,
    voter_email: str | None,
    fingerprint: str | None,
    recaptcha_token: str | None,
    remote_ip: str | None = None,
) -> ChallengeTheory:
    """
    Record one upvote.

    Order: required fields, CAPTCHA, email format, cooldown, duplicate,
    theory lookup, insert, counter increment. Only the email length check
    runs ahead of the CAPTCHA.
    """
    require_fields(
        theory_id=theory_id,
        voter_email=voter_email,
        fingerprint=fingerprint,
        recaptcha_token=recaptcha_token,
    )
    # Oversized input never reaches the CAPTCHA provider.
    check_email_length(voter_email)
    await verify_captcha(recaptcha_token, remote_ip)
    email = normalize_email(voter_email)
    fingerprint = fingerprint.strip()
    if not fingerprint or len(fingerprint) > FINGERPRINT_MAX_LENGTH:
        msg = "Invalid fingerprint"
        raise InputValidationError(msg)
    theory_uuid = parse_uuid(theory_id, "Invalid theory ID")

    same_voter = or_(TheoryVote.voter_email == email, TheoryVote.fingerprint == fingerprint)

    cooldown_start = utcnow() - timedelta(minutes=get_settings().vote_cooldown_minutes)
    recent = await db.scalar(
        select(func.count(TheoryVote.id)).where(same_voter, TheoryVote.created_at >= cooldown_start)
    )
    if recent:
        logger.info("vote_cooldown", theory_id=str(theory_uuid))
        msg = "Please wait before voting again"
        raise RateLimitedError(msg)

    existing = await db.scalar(
        select(func.count(TheoryVote.id)).where(TheoryVote.theory_id == theory_uuid, same_voter)
    )
    if existing:
        logger.info("vote_duplicate", theory_id=str(theory_uuid))
        raise DuplicateError(ALREADY_VOTED)

    theory = await db.get(ChallengeTheory, theory_uuid)
    if theory is None:
        msg = "Theory not found"
        raise NotFoundError(msg)

    try:
        db.add(TheoryVote(theory_id=theory_uuid, voter_email=email, fingerprint=fingerprint))
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateError(ALREADY_VOTED) from e

    # Atomic increment.
    await db.execute(
        update(ChallengeTheory)
        .where(ChallengeTheory.id == theory_uuid)
        .values(upvotes=ChallengeTheory.upvotes + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(theory)
    logger.info("vote_recorded", theory_id=str(theory_uuid), upvotes=theory.upvotes)
    return theory


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


async def list_challenges(db: AsyncSession) -> list[MysteryChallenge]:
    result = await db.execute(select(MysteryChallenge).order_by(MysteryChallenge.created_at.desc()))
    return list(result.scalars())


def _clean_challenge_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    for key in ("description_en", "description_sq", "clues_en", "clues_sq"):
        if cleaned.get(key):
            cleaned[key] = sanitize_html(cleaned[key])
    for key in ("title_en", "title_sq"):
        if key in cleaned and cleaned[key] is not None:
            cleaned[key] = sanitize_plain_text(cleaned[key])
    return cleaned


async def create_challenge(db: AsyncSession, fields: dict[str, Any]) -> MysteryChallenge:
    challenge = MysteryChallenge(**_clean_challenge_fields(fields))
    db.add(challenge)
    await db.commit()
    logger.info("challenge_created", challenge_id=str(challenge.id))
    return challenge


async def get_challenge(db: AsyncSession, challenge_id: uuid.UUID) -> MysteryChallenge:
    challenge = await db.get(MysteryChallenge, challenge_id)
    if challenge is None:
        msg = "Challenge not found"
        raise NotFoundError(msg)
    return challenge


async def update_challenge(db: AsyncSession, challenge_id: uuid.UUID, fields: dict[str, Any]) -> MysteryChallenge:
    challenge = await get_challenge(db, challenge_id)
    for key, value in _clean_challenge_fields(fields).items():
        setattr(challenge, key, value)
    await db.commit()
    await db.refresh(challenge)
    logger.info("challenge_updated", challenge_id=str(challenge.id))
    return challenge


async def delete_challenge(db: AsyncSession, challenge_id: uuid.UUID) -> None:
    challenge = await get_challenge(db, challenge_id)
    await db.delete(challenge)
    await db.commit()
    logger.info("challenge_deleted", challenge_id=str(challenge_id))


async def send_winner_email(email_service: EmailService, name: str, email: str) -> bool:
    settings = get_settings()
    return await email_service.send_template(
        email,
        "mystery_winner",
        {"name": name, "site_url": settings.site_url},
    )


async def select_winner(
    db: AsyncSession,
    email_service: EmailService,
    challenge_id: uuid.UUID,
    theory_id: uuid.UUID,
) -> WinnerSelection:
    """
    Mark a theory as the challenge winner, close the challenge, credit the
    win on the author's reputation and send the winner email.

    The selection is committed before the email goes out; a delivery failure
    is reported in the result, not raised.
    """
    challenge = await get_challenge(db, challenge_id)
    theory = await db.get(ChallengeTheory, theory_id)
    if theory is None or theory.challenge_id != challenge.id:
        msg = "Theory not found"
        raise NotFoundError(msg)
    if challenge.winner_id is not None:
        msg = "A winner has already been selected for this challenge"
        raise InputValidationError(msg)

    theory.is_winner = True
    challenge.winner_id = theory.id
    challenge.is_active = False
    await record_challenge_win(db, theory.user_email, theory.user_name)
    await db.commit()
    logger.info("challenge_winner_selected", challenge_id=str(challenge.id), theory_id=str(theory.id))

    try:
        email_sent = await send_winner_email(email_service, theory.user_name, theory.user_email)
    except RateLimitedError:
        email_sent = False
    if not email_sent:
        logger.warning("winner_email_failed", theory_id=str(theory.id))
    return WinnerSelection(challenge=challenge, theory=theory, email_sent=email_sent)
