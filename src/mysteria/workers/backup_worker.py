"""Scheduled database backup job.

Runs inside the arq worker (see ``mysteria.workers.settings``) or can be
enqueued on demand.
"""

from __future__ import annotations

import logging

from mysteria.backup.service import create_backup
from mysteria.config import get_settings
from mysteria.database import close_db, get_session, init_db

logger = logging.getLogger(__name__)


async def backup_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialise the DB engine for the worker process."""
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["settings"] = settings
    logger.info("Backup worker started (storage=%s)", settings.backup_storage)


async def backup_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Backup worker stopped")


async def run_backup(ctx: dict) -> dict[str, object]:  # type: ignore[type-arg]
    """Take a snapshot and sweep snapshots past the retention window."""
    async for db in get_session():
        try:
            result = await create_backup(db)
        except Exception:
            logger.exception("Scheduled backup failed")
            raise
        logger.info(
            "Scheduled backup %s: %d records, %d expired backups removed",
            result.name,
            result.total_records,
            len(result.deleted),
        )
        return {"name": result.name, "total_records": result.total_records, "deleted": result.deleted}
    msg = "Failed to get database session"
    raise RuntimeError(msg)
