"""
Backup blob storage.

Local directory for development and single-host installs, S3 bucket for
production. Both address backups by bare file name.
"""

from __future__ import annotations

import asyncio
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import structlog

from mysteria.config import get_settings
from mysteria.errors import ConfigurationError, InputValidationError, NotFoundError

logger = structlog.get_logger()

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*\.json$")


@dataclass(frozen=True)
class StoredBackup:
    name: str
    created_at: datetime
    size: int


def check_backup_name(name: str) -> str:
    """Reject anything that is not a plain ``*.json`` file name."""
    if not _NAME_RE.match(name) or ".." in name:
        msg = "Invalid backup file name"
        raise InputValidationError(msg)
    return name


class BaseBackupStorage(ABC):
    @abstractmethod
    async def put(self, name: str, data: bytes) -> None: ...

    @abstractmethod
    async def get(self, name: str) -> bytes:
        """Raises NotFoundError when the backup does not exist."""
        ...

    @abstractmethod
    async def list_backups(self) -> list[StoredBackup]: ...

    @abstractmethod
    async def delete(self, name: str) -> None: ...


class LocalBackupStorage(BaseBackupStorage):
    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / check_backup_name(name)

    async def put(self, name: str, data: bytes) -> None:
        path = self._path(name)
        await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)

    async def get(self, name: str) -> bytes:
        path = self._path(name)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            msg = "Backup not found"
            raise NotFoundError(msg) from e

    async def list_backups(self) -> list[StoredBackup]:
        def _scan() -> list[StoredBackup]:
            if not self.directory.is_dir():
                return []
            backups = []
            for path in self.directory.glob("*.json"):
                stat = path.stat()
                backups.append(
                    StoredBackup(
                        name=path.name,
                        created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                        size=stat.st_size,
                    )
                )
            return backups

        return sorted(await asyncio.to_thread(_scan), key=lambda b: b.created_at, reverse=True)

    async def delete(self, name: str) -> None:
        await asyncio.to_thread(self._path(name).unlink, missing_ok=True)


class S3BackupStorage(BaseBackupStorage):
    def __init__(self, bucket: str, region: str) -> None:
        self.bucket = bucket
        self.region = region

    def _client(self):  # noqa: ANN202
        import aioboto3

        return aioboto3.Session().client("s3", region_name=self.region)

    async def put(self, name: str, data: bytes) -> None:
        async with self._client() as s3:
            await s3.put_object(
                Bucket=self.bucket,
                Key=check_backup_name(name),
                Body=data,
                ContentType="application/json",
            )

    async def get(self, name: str) -> bytes:
        from botocore.exceptions import ClientError

        async with self._client() as s3:
            try:
                response = await s3.get_object(Bucket=self.bucket, Key=check_backup_name(name))
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                    msg = "Backup not found"
                    raise NotFoundError(msg) from e
                raise
            async with response["Body"] as stream:
                return await stream.read()

    async def list_backups(self) -> list[StoredBackup]:
        backups = []
        async with self._client() as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket):
                for item in page.get("Contents", []):
                    backups.append(StoredBackup(name=item["Key"], created_at=item["LastModified"], size=item["Size"]))
        return sorted(backups, key=lambda b: b.created_at, reverse=True)

    async def delete(self, name: str) -> None:
        async with self._client() as s3:
            await s3.delete_object(Bucket=self.bucket, Key=check_backup_name(name))


def get_backup_storage() -> BaseBackupStorage:
    settings = get_settings()
    backend = settings.backup_storage.lower()
    if backend == "local":
        return LocalBackupStorage(settings.backup_directory)
    if backend == "s3":
        return S3BackupStorage(settings.backup_bucket, settings.backup_s3_region)
    raise ConfigurationError(f"Unsupported backup storage: {backend}")
