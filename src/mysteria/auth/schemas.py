"""Admin access request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class IpCheckResponse(BaseModel):
    allowed: bool
    ip: str | None
    message: str


class AdminLoginRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class AdminLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    email: str


class WhitelistedIpCreate(BaseModel):
    ip_address: str = Field(..., max_length=64)
    description: str | None = Field(default=None, max_length=256)


class WhitelistedIpResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    ip_address: str
    description: str | None
    is_active: bool
    created_by: uuid.UUID | None
    created_at: datetime
