"""Public leaderboard and reputation lookup."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.database import get_session
from mysteria.reputation.schemas import LeaderboardEntry, LeaderboardResponse, ReputationResponse
from mysteria.reputation.service import get_leaderboard, get_public_reputation
from mysteria.validation import normalize_email

router = APIRouter(prefix="/api/v1", tags=["Reputation"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    period: Literal["all-time", "monthly"] = Query("all-time"),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> LeaderboardResponse:
    rows = await get_leaderboard(db, period)
    entries = [
        LeaderboardEntry.model_validate(row).model_copy(update={"rank": index})
        for index, row in enumerate(rows, start=1)
    ]
    return LeaderboardResponse(period=period, entries=entries)


@router.get("/reputation/{email}", response_model=ReputationResponse)
async def reputation(email: str, db: AsyncSession = Depends(get_session)) -> ReputationResponse:  # noqa: B008
    row = await get_public_reputation(db, normalize_email(email))
    return ReputationResponse.model_validate(row)
