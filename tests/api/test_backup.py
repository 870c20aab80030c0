"""Database backup and restore endpoints."""

import json
from pathlib import Path

from mysteria.config import get_settings
from mysteria.db.models import Article


async def _create_backup(client, service_headers) -> dict:
    response = await client.post("/api/v1/database-backup", headers=service_headers)
    assert response.status_code == 200
    return response.json()


class TestBackupAuth:
    async def test_missing_key(self, client):
        response = await client.post("/api/v1/database-backup")
        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}

    async def test_wrong_key(self, client):
        response = await client.post("/api/v1/database-backup", headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    async def test_admin_token_is_not_enough(self, client, admin_headers):
        response = await client.get("/api/v1/backups", headers=admin_headers)
        assert response.status_code == 401

    async def test_unconfigured_key_fails_closed(self, client, monkeypatch):
        monkeypatch.setenv("MYSTERIA_SERVICE_ROLE_KEY", "")
        get_settings.cache_clear()
        response = await client.post("/api/v1/database-backup", headers={"Authorization": "Bearer anything"})
        assert response.status_code == 500
        assert response.json() == {"error": "Server configuration error"}


class TestBackup:
    async def test_snapshot_written(self, client, service_headers, published_article, tmp_path: Path):
        data = await _create_backup(client, service_headers)
        assert data["success"] is True
        assert data["name"].startswith("backup-") and data["name"].endswith(".json")
        assert data["total_records"] == 1
        assert "articles" in data["tables"]

        snapshot = json.loads((tmp_path / "backups" / data["name"]).read_text())
        assert snapshot["version"] == "1.0"
        assert snapshot["metadata"] == {"total_tables": len(data["tables"]), "total_records": 1}
        [row] = snapshot["tables"]["articles"]
        assert row["id"] == str(published_article.id)
        assert row["slug"] == "the-haunted-lighthouse"

    async def test_list_backups(self, client, service_headers):
        data = await _create_backup(client, service_headers)
        response = await client.get("/api/v1/backups", headers=service_headers)
        assert response.status_code == 200
        assert [b["name"] for b in response.json()] == [data["name"]]


class TestRestore:
    async def test_restore_overwrites_changes(self, client, db_session, service_headers, published_article):
        backup = await _create_backup(client, service_headers)

        published_article.title_en = "Vandalised"
        published_article.view_count = 999
        await db_session.commit()

        for _ in range(2):
            response = await client.post(
                "/api/v1/restore-backup", json={"backupFile": backup["name"]}, headers=service_headers
            )
            assert response.status_code == 200
            data = response.json()
            assert data["restored_tables"] == ["articles"]
            assert data["total_records"] == 1

        db_session.expire_all()
        article = await db_session.get(Article, published_article.id)
        assert article.title_en == "The Haunted Lighthouse"
        assert article.view_count == 0

    async def test_restore_recreates_deleted_rows(self, client, db_session, service_headers, published_article):
        backup = await _create_backup(client, service_headers)
        await db_session.delete(published_article)
        await db_session.commit()

        response = await client.post(
            "/api/v1/restore-backup", json={"backupFile": backup["name"]}, headers=service_headers
        )
        assert response.status_code == 200

        db_session.expire_all()
        assert await db_session.get(Article, published_article.id) is not None

    async def test_missing_name(self, client, service_headers):
        response = await client.post("/api/v1/restore-backup", json={}, headers=service_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Backup file name is required"}

    async def test_path_traversal_rejected(self, client, service_headers):
        response = await client.post(
            "/api/v1/restore-backup", json={"backupFile": "../../etc/passwd.json"}, headers=service_headers
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid backup file name"}

    async def test_unknown_backup(self, client, service_headers):
        response = await client.post(
            "/api/v1/restore-backup", json={"backupFile": "backup-nope.json"}, headers=service_headers
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Backup not found"}

    async def test_corrupt_backup(self, client, service_headers, tmp_path: Path):
        (tmp_path / "backups").mkdir()
        (tmp_path / "backups" / "backup-bad.json").write_text("{not json")
        response = await client.post(
            "/api/v1/restore-backup", json={"backupFile": "backup-bad.json"}, headers=service_headers
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Backup file is not a valid snapshot"}
