"""Reputation response schemas. Emails are never exposed publicly."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class ReputationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    total_comments: int
    approved_comments: int
    total_replies: int
    challenge_wins: int
    reputation_score: int
    badge_level: str
    first_comment_at: datetime
    last_comment_at: datetime


class LeaderboardEntry(ReputationResponse):
    rank: int = 0


class LeaderboardResponse(BaseModel):
    period: Literal["all-time", "monthly"]
    entries: list[LeaderboardEntry]
