"""Shared test fixtures."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from datetime import timedelta
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from mysteria.auth.jwt import create_admin_token, reset_keys
from mysteria.config import get_settings
from mysteria.database import close_db, get_engine, init_db
from mysteria.db.base import Base
from mysteria.db.models import Article, ChallengeTheory, MysteryChallenge
from mysteria.email.service import reset_email_service
from mysteria.main import create_app
from mysteria.redis_client import set_redis
from mysteria.timeutils import utcnow

SERVICE_ROLE_KEY = "test-service-role-key"


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._ops: list[tuple[str, tuple[Any, ...]]] = []

    def incr(self, key: str) -> FakePipeline:
        self._ops.append(("incr", (key,)))
        return self

    def expire(self, key: str, seconds: int) -> FakePipeline:
        self._ops.append(("expire", (key, seconds)))
        return self

    async def execute(self) -> list[Any]:
        results = [await getattr(self._redis, name)(*args) for name, args in self._ops]
        self._ops = []
        return results


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the app uses."""

    def __init__(self) -> None:
        self.store: dict[str, int | str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        value = self.store.get(key)
        return None if value is None else str(value)

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = value
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return key in self.store

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        return None


@pytest.fixture(scope="session")
def jwt_keys(tmp_path_factory: pytest.TempPathFactory) -> tuple[str, str]:
    """Generate an RSA key pair once per test session."""
    key_dir = tmp_path_factory.mktemp("keys")
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_path = key_dir / "jwt_private.pem"
    public_path = key_dir / "jwt_public.pem"
    private_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        key.public_key().public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
    )
    return str(private_path), str(public_path)


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, jwt_keys: tuple[str, str]) -> None:
    """Point settings at throwaway keys, secrets and directories for every test."""
    private_path, public_path = jwt_keys
    monkeypatch.setenv("MYSTERIA_JWT_PRIVATE_KEY_PATH", private_path)
    monkeypatch.setenv("MYSTERIA_JWT_PUBLIC_KEY_PATH", public_path)
    monkeypatch.setenv("MYSTERIA_RECAPTCHA_SECRET_KEY", "test-recaptcha-secret")
    monkeypatch.setenv("MYSTERIA_SERVICE_ROLE_KEY", SERVICE_ROLE_KEY)
    monkeypatch.setenv("MYSTERIA_EMAILLISTVERIFY_API_KEY", "")
    monkeypatch.setenv("MYSTERIA_ABSTRACT_API_KEY", "")
    monkeypatch.setenv("MYSTERIA_EMAIL_PROVIDER", "smtp")
    monkeypatch.setenv("MYSTERIA_BACKUP_STORAGE", "local")
    monkeypatch.setenv("MYSTERIA_BACKUP_DIRECTORY", str(tmp_path / "backups"))
    monkeypatch.setenv("MYSTERIA_LOG_FORMAT", "console")
    monkeypatch.setenv("MYSTERIA_PUBLIC_API_URL", "https://api.test")
    monkeypatch.setenv("MYSTERIA_SITE_URL", "https://site.test")
    get_settings.cache_clear()
    reset_keys()
    reset_email_service()
    yield
    get_settings.cache_clear()
    reset_keys()
    reset_email_service()


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """File-backed SQLite database with the full schema."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest.fixture
def fake_redis() -> FakeRedis:
    redis = FakeRedis()
    set_redis(redis)  # type: ignore[arg-type]
    yield redis
    set_redis(None)


@pytest_asyncio.fixture
async def client(database: None, fake_redis: FakeRedis) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against a fresh app. DB and Redis are set up by fixtures, not lifespan."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for seeding and assertions. Commit before calling the API."""
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield session


@pytest.fixture
def mock_email_service(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Mock the email service to prevent actual email sending."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    monkeypatch.setattr("mysteria.comments.router.get_email_service", lambda *a, **kw: mock_service)
    monkeypatch.setattr("mysteria.challenges.router.get_email_service", lambda *a, **kw: mock_service)
    return mock_service


@pytest.fixture
def mock_captcha(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """Accept every CAPTCHA token."""
    mock = AsyncMock(return_value=None)
    monkeypatch.setattr("mysteria.challenges.service.verify_captcha", mock)
    return mock


@pytest.fixture
def admin_headers() -> dict[str, str]:
    token = create_admin_token(uuid.uuid4(), "admin@mysteriarealm.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def service_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {SERVICE_ROLE_KEY}"}


@pytest_asyncio.fixture
async def published_article(db_session: AsyncSession) -> Article:
    article = Article(
        slug="the-haunted-lighthouse",
        title_en="The Haunted Lighthouse",
        title_sq="Fari i Përhumbur",
        content_en="A keeper vanished one winter night and the lamp kept burning.",
        content_sq="Një roje u zhduk një natë dimri dhe llamba vazhdoi të digjej.",
        published=True,
        published_at=utcnow(),
        view_count=0,
        reading_time_minutes=1,
    )
    db_session.add(article)
    await db_session.commit()
    return article


@pytest_asyncio.fixture
async def active_challenge(db_session: AsyncSession) -> MysteryChallenge:
    challenge = MysteryChallenge(
        title_en="The Locked Room",
        title_sq="Dhoma e Kyçur",
        description_en="Who left the room locked from the inside?",
        description_sq="Kush e la dhomën të kyçur nga brenda?",
        deadline=utcnow() + timedelta(days=7),
        is_active=True,
    )
    db_session.add(challenge)
    await db_session.commit()
    return challenge


@pytest_asyncio.fixture
async def theory(db_session: AsyncSession, active_challenge: MysteryChallenge) -> ChallengeTheory:
    row = ChallengeTheory(
        challenge_id=active_challenge.id,
        user_name="Agatha",
        user_email="agatha@example.com",
        theory_content="The butler used a magnet to slide the bolt from outside.",
        upvotes=0,
        is_winner=False,
    )
    db_session.add(row)
    await db_session.commit()
    return row
