"""arq worker settings.

Start with::

    arq mysteria.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from mysteria.config import get_settings
from mysteria.workers.backup_worker import backup_shutdown, backup_startup, run_backup

_settings = get_settings()


class WorkerSettings:
    """arq worker settings for scheduled maintenance jobs."""

    functions = [run_backup]
    cron_jobs = [
        cron(run_backup, hour={_settings.backup_cron_hour}, minute={0}, run_at_startup=False),
    ]
    on_startup = backup_startup
    on_shutdown = backup_shutdown
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    max_jobs = 2
    job_timeout = 600
