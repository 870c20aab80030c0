"""Mystery challenge request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SubmitTheoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    challenge_id: str | None = Field(default=None, alias="challengeId")
    user_name: str | None = Field(default=None, alias="userName")
    user_email: str | None = Field(default=None, alias="userEmail")
    theory_content: str | None = Field(default=None, alias="theoryContent")
    recaptcha_token: str | None = Field(default=None, alias="recaptchaToken")


class SubmitVoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    theory_id: str | None = Field(default=None, alias="theoryId")
    voter_email: str | None = Field(default=None, alias="voterEmail")
    fingerprint: str | None = None
    recaptcha_token: str | None = Field(default=None, alias="recaptchaToken")


class WinnerEmailRequest(BaseModel):
    name: str | None = None
    email: str | None = None


class SelectWinnerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    theory_id: uuid.UUID = Field(alias="theoryId")


class PublicTheory(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_name: str
    theory_content: str
    upvotes: int
    is_winner: bool
    created_at: datetime


class AdminTheory(PublicTheory):
    user_email: str


class ChallengeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title_en: str
    title_sq: str
    description_en: str
    description_sq: str
    clues_en: str | None
    clues_sq: str | None
    featured_image_url: str | None
    deadline: datetime
    is_active: bool
    winner_id: uuid.UUID | None
    created_at: datetime


class ActiveChallengeResponse(BaseModel):
    challenge: ChallengeResponse | None
    theories: list[PublicTheory] = []


class ChallengeCreate(BaseModel):
    title_en: str = Field(..., min_length=1, max_length=256)
    title_sq: str = Field(..., min_length=1, max_length=256)
    description_en: str = Field(..., min_length=1)
    description_sq: str = Field(..., min_length=1)
    clues_en: str | None = None
    clues_sq: str | None = None
    featured_image_url: str | None = Field(default=None, max_length=2048)
    deadline: datetime
    is_active: bool = True


class ChallengeUpdate(BaseModel):
    title_en: str | None = Field(default=None, min_length=1, max_length=256)
    title_sq: str | None = Field(default=None, min_length=1, max_length=256)
    description_en: str | None = None
    description_sq: str | None = None
    clues_en: str | None = None
    clues_sq: str | None = None
    featured_image_url: str | None = Field(default=None, max_length=2048)
    deadline: datetime | None = None
    is_active: bool | None = None


class WinnerSelectionResponse(BaseModel):
    success: bool = True
    message: str
    challenge: ChallengeResponse
    theory: AdminTheory
    email_sent: bool
