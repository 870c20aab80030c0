"""Tests for email templates and the rate-limited email service."""

from unittest.mock import AsyncMock

import pytest

from mysteria.config import get_settings
from mysteria.email.service import EmailService, SMTPProvider, _create_provider
from mysteria.email.templates import BG_DARK, VIOLET, comment_verification, mystery_winner
from mysteria.errors import ConfigurationError, RateLimitedError


class TestEmailTemplates:
    """Test that templates render without errors and contain expected content."""

    def test_comment_verification(self):
        subject, html, text = comment_verification("Ana", "https://api.test/api/v1/verify-comment?token=abc")
        assert "Confirm your comment" in subject
        assert "Ana" in html
        assert "https://api.test/api/v1/verify-comment?token=abc" in html
        assert "https://api.test/api/v1/verify-comment?token=abc" in text
        assert "24 hours" in text

    def test_comment_verification_escapes_name(self):
        _, html, _ = comment_verification("<b>Ana</b>", "https://api.test/verify")
        assert "<b>Ana</b>" not in html
        assert "&lt;b&gt;Ana&lt;/b&gt;" in html

    def test_mystery_winner(self):
        subject, html, text = mystery_winner("Sherlock", "https://site.test")
        assert subject == "Congratulations! You Won the Mystery Challenge!"
        assert "Sherlock" in html
        assert "Detective Badge" in html
        assert "+50 reputation points" in text
        assert "https://site.test" in text

    def test_html_has_dark_theme(self):
        _, html, _ = mystery_winner("Test", "https://site.test")
        assert BG_DARK in html
        assert VIOLET in html


class TestEmailService:
    def _service(self, redis=None, max_per_hour=5) -> EmailService:
        provider = AsyncMock()
        provider.send = AsyncMock(return_value=True)
        return EmailService(provider=provider, redis=redis, max_per_hour=max_per_hour)

    async def test_template_dispatch(self):
        service = self._service()
        sent = await service.send_template(
            "ana@example.com", "comment_verification", {"name": "Ana", "verify_url": "https://x"}
        )
        assert sent is True
        to, subject, html, text = service.provider.send.call_args.args
        assert to == "ana@example.com"
        assert "Confirm your comment" in subject

    async def test_unknown_template(self):
        service = self._service()
        with pytest.raises(ValueError, match="Unknown template"):
            await service.send_template("ana@example.com", "nonexistent", {})

    async def test_rate_limit_per_address(self, fake_redis):
        service = self._service(redis=fake_redis, max_per_hour=2)
        assert await service.send_email("ana@example.com", "s", "<p>h</p>", "t")
        assert await service.send_email("ANA@example.com", "s", "<p>h</p>", "t")
        with pytest.raises(RateLimitedError):
            await service.send_email("ana@example.com", "s", "<p>h</p>", "t")
        assert await service.send_email("other@example.com", "s", "<p>h</p>", "t")
        assert service.provider.send.await_count == 3

    async def test_provider_failure_is_reported(self):
        service = self._service()
        service.provider.send.return_value = False
        assert await service.send_email("ana@example.com", "s", "h", "t") is False


class TestProviderSelection:
    def test_smtp(self):
        assert isinstance(_create_provider(), SMTPProvider)

    def test_resend_without_key(self, monkeypatch):
        monkeypatch.setenv("MYSTERIA_EMAIL_PROVIDER", "resend")
        monkeypatch.setenv("MYSTERIA_RESEND_API_KEY", "")
        get_settings.cache_clear()
        with pytest.raises(ConfigurationError):
            _create_provider()

    def test_unknown(self, monkeypatch):
        monkeypatch.setenv("MYSTERIA_EMAIL_PROVIDER", "fax")
        get_settings.cache_clear()
        with pytest.raises(ConfigurationError):
            _create_provider()
