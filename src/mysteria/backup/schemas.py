"""Backup request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BackupResponse(BaseModel):
    success: bool = True
    name: str
    timestamp: str
    tables: list[str]
    total_records: int
    deleted: list[str] = []


class RestoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    backup_file: str | None = Field(default=None, alias="backupFile")


class RestoreResponse(BaseModel):
    success: bool = True
    name: str
    timestamp: str
    restored_tables: list[str]
    total_records: int


class StoredBackupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    created_at: datetime
    size: int
