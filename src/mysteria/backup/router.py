"""Backup endpoints. Called with the service-role key, not an admin session."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.auth.dependencies import require_service_role
from mysteria.backup.schemas import BackupResponse, RestoreRequest, RestoreResponse, StoredBackupResponse
from mysteria.backup.service import create_backup, list_backups, restore_backup
from mysteria.database import get_session

router = APIRouter(prefix="/api/v1", tags=["Backups"], dependencies=[Depends(require_service_role)])


@router.post("/database-backup", response_model=BackupResponse)
async def database_backup(db: AsyncSession = Depends(get_session)) -> BackupResponse:  # noqa: B008
    result = await create_backup(db)
    return BackupResponse(**asdict(result))


@router.post("/restore-backup", response_model=RestoreResponse)
async def restore(body: RestoreRequest, db: AsyncSession = Depends(get_session)) -> RestoreResponse:  # noqa: B008
    result = await restore_backup(db, body.backup_file)
    return RestoreResponse(**asdict(result))


@router.get("/backups", response_model=list[StoredBackupResponse])
async def backups() -> Any:
    return await list_backups()
