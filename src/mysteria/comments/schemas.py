"""Comment request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SubmitCommentRequest(BaseModel):
    """Field presence is checked by the handler so the error text stays uniform."""

    model_config = ConfigDict(populate_by_name=True)

    article_id: str | None = Field(default=None, alias="articleId")
    parent_comment_id: str | None = Field(default=None, alias="parentCommentId")
    name: str | None = None
    email: str | None = None
    content: str | None = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: str


class PublicComment(BaseModel):
    id: uuid.UUID
    parent_comment_id: uuid.UUID | None
    name: str
    content: str
    created_at: datetime
    badge_level: str = "newcomer"
    reputation_score: int = 0
    replies: list[PublicComment] = []


class AdminComment(BaseModel):
    id: uuid.UUID
    article_id: uuid.UUID
    article_title: str | None
    parent_comment_id: uuid.UUID | None
    name: str
    email: str
    content: str
    is_email_verified: bool
    is_approved: bool
    created_at: datetime
    badge_level: str | None = None
    reputation_score: int | None = None


CommentStatusFilter = Literal["all", "pending", "approved"]
