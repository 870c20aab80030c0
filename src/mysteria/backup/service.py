"""
JSON snapshots of the content database.

Snapshot layout::

    {
      "timestamp": "...",
      "version": "1.0",
      "tables": {"<table>": [{...row...}, ...]},
      "metadata": {"total_tables": N, "total_records": M}
    }

Restore upserts by primary key in dependency order, so restoring the same
snapshot twice leaves the database unchanged.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import DateTime, Table, Uuid, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from mysteria.backup.storage import BaseBackupStorage, StoredBackup, check_backup_name, get_backup_storage
from mysteria.config import get_settings
from mysteria.db.base import Base
from mysteria.errors import InputValidationError, MysteriaError
from mysteria.timeutils import as_utc, utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

BACKUP_VERSION = "1.0"
# Keeps multi-row upserts under SQLite's bound-parameter limit.
UPSERT_CHUNK_SIZE = 200

# Parents before children.
BACKUP_TABLES: list[str] = [
    "categories",
    "articles",
    "article_views",
    "comments",
    "user_reputation",
    "mystery_challenges",
    "challenge_theories",
    "theory_votes",
    "whitelisted_ips",
    "admin_users",
]


@dataclass
class BackupResult:
    name: str
    timestamp: str
    tables: list[str]
    total_records: int
    deleted: list[str] = field(default_factory=list)


@dataclass
class RestoreResult:
    name: str
    timestamp: str
    restored_tables: list[str]
    total_records: int


def _json_default(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    msg = f"Cannot serialise {type(value).__name__}"
    raise TypeError(msg)


def _table(name: str) -> Table:
    return Base.metadata.tables[name]


def backup_file_name(now: datetime) -> str:
    return f"backup-{now.strftime('%Y-%m-%dT%H-%M-%S-%fZ')}.json"


async def dump_tables(db: AsyncSession) -> dict[str, list[dict[str, Any]]]:
    tables: dict[str, list[dict[str, Any]]] = {}
    for name in BACKUP_TABLES:
        result = await db.execute(select(_table(name)))
        tables[name] = [dict(row) for row in result.mappings()]
    return tables


async def sweep_old_backups(
    storage: BaseBackupStorage, retention_days: int, now: datetime | None = None
) -> list[str]:
    """Delete stored backups older than the retention window. Returns deleted names."""
    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    deleted = []
    for backup in await storage.list_backups():
        if as_utc(backup.created_at) < cutoff:
            await storage.delete(backup.name)
            deleted.append(backup.name)
    if deleted:
        logger.info("backups_swept", count=len(deleted))
    return deleted


async def create_backup(db: AsyncSession, storage: BaseBackupStorage | None = None) -> BackupResult:
    storage = storage or get_backup_storage()
    settings = get_settings()
    now = utcnow()
    try:
        tables = await dump_tables(db)
    except SQLAlchemyError as e:
        logger.exception("backup_dump_failed")
        msg = "Failed to create backup"
        raise MysteriaError(msg, 500) from e

    total_records = sum(len(rows) for rows in tables.values())
    payload = {
        "timestamp": now.isoformat(),
        "version": BACKUP_VERSION,
        "tables": tables,
        "metadata": {"total_tables": len(tables), "total_records": total_records},
    }
    name = backup_file_name(now)
    await storage.put(name, json.dumps(payload, default=_json_default, indent=2).encode())
    logger.info("backup_created", name=name, total_records=total_records)

    deleted = await sweep_old_backups(storage, settings.backup_retention_days, now)
    return BackupResult(
        name=name,
        timestamp=now.isoformat(),
        tables=list(tables),
        total_records=total_records,
        deleted=deleted,
    )


def _coerce_row(table: Table, row: dict[str, Any]) -> dict[str, Any]:
    """Turn JSON strings back into the column's Python type; drop unknown keys."""
    values: dict[str, Any] = {}
    for column in table.columns:
        if column.name not in row:
            continue
        value = row[column.name]
        if value is not None:
            if isinstance(column.type, Uuid):
                value = uuid.UUID(str(value))
            elif isinstance(column.type, DateTime):
                value = as_utc(datetime.fromisoformat(str(value)))
        values[column.name] = value
    return values


def _upsert(dialect: str, table: Table, rows: list[dict[str, Any]]) -> Any:  # noqa: ANN401
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    stmt = insert(table).values(rows)
    pk = [column.name for column in table.primary_key.columns]
    updates = {column.name: stmt.excluded[column.name] for column in table.columns if column.name not in pk}
    return stmt.on_conflict_do_update(index_elements=pk, set_=updates)


async def restore_backup(
    db: AsyncSession, name: str | None, storage: BaseBackupStorage | None = None
) -> RestoreResult:
    if not name:
        msg = "Backup file name is required"
        raise InputValidationError(msg)
    check_backup_name(name)
    storage = storage or get_backup_storage()
    raw = await storage.get(name)
    try:
        payload = json.loads(raw)
        snapshot = payload["tables"]
    except (ValueError, KeyError, TypeError) as e:
        msg = "Backup file is not a valid snapshot"
        raise InputValidationError(msg) from e
    if not isinstance(snapshot, dict):
        msg = "Backup file is not a valid snapshot"
        raise InputValidationError(msg)

    dialect = db.get_bind().dialect.name
    restored: list[str] = []
    total = 0
    try:
        for table_name in BACKUP_TABLES:
            records = snapshot.get(table_name)
            if not isinstance(records, list) or not records:
                continue
            table = _table(table_name)
            rows = [_coerce_row(table, record) for record in records]
            if table_name == "comments":
                # Top-level comments before their replies.
                rows.sort(key=lambda r: r.get("parent_comment_id") is not None)
            for start in range(0, len(rows), UPSERT_CHUNK_SIZE):
                await db.execute(_upsert(dialect, table, rows[start : start + UPSERT_CHUNK_SIZE]))
            restored.append(table_name)
            total += len(rows)
        await db.commit()
    except (SQLAlchemyError, ValueError) as e:
        await db.rollback()
        logger.exception("backup_restore_failed", name=name)
        msg = "Failed to restore backup"
        raise MysteriaError(msg, 500) from e

    logger.info("backup_restored", name=name, tables=restored, total_records=total)
    return RestoreResult(name=name, timestamp=utcnow().isoformat(), restored_tables=restored, total_records=total)


async def list_backups(storage: BaseBackupStorage | None = None) -> list[StoredBackup]:
    storage = storage or get_backup_storage()
    return await storage.list_backups()
