"""Tests for server-side reCAPTCHA verification."""

from collections.abc import Callable

import httpx
import pytest

from mysteria.config import get_settings
from mysteria.errors import ConfigurationError, VerificationFailedError
from mysteria.integrations.captcha import CAPTCHA_REJECTED, verify_captcha

_RealAsyncClient = httpx.AsyncClient


def _install_transport(monkeypatch: pytest.MonkeyPatch, handler: Callable[[httpx.Request], httpx.Response]) -> None:
    def factory(*args: object, **kwargs: object) -> httpx.AsyncClient:
        return _RealAsyncClient(transport=httpx.MockTransport(handler))

    monkeypatch.setattr(httpx, "AsyncClient", factory)


async def test_accepts_successful_token(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"success": True})

    _install_transport(monkeypatch, handler)
    await verify_captcha("token-abc", remote_ip="203.0.113.5")

    assert "response=token-abc" in seen["body"]
    assert "remoteip=203.0.113.5" in seen["body"]
    assert "secret=test-recaptcha-secret" in seen["body"]


async def test_rejected_token(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_transport(
        monkeypatch, lambda request: httpx.Response(200, json={"success": False, "error-codes": ["invalid"]})
    )
    with pytest.raises(VerificationFailedError, match=CAPTCHA_REJECTED):
        await verify_captcha("bad-token")


async def test_provider_error_fails_closed(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_transport(monkeypatch, lambda request: httpx.Response(503))
    with pytest.raises(VerificationFailedError):
        await verify_captcha("token")


async def test_malformed_reply_fails_closed(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_transport(monkeypatch, lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(VerificationFailedError):
        await verify_captcha("token")


@pytest.mark.parametrize("body", [[], "ok", 1, None])
async def test_non_object_reply_fails_closed(monkeypatch: pytest.MonkeyPatch, body: object) -> None:
    _install_transport(monkeypatch, lambda request: httpx.Response(200, json=body))
    with pytest.raises(VerificationFailedError, match=CAPTCHA_REJECTED):
        await verify_captcha("token")


async def test_missing_secret_is_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MYSTERIA_RECAPTCHA_SECRET_KEY", "")
    get_settings.cache_clear()
    with pytest.raises(ConfigurationError) as exc_info:
        await verify_captcha("token")
    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Server configuration error"
