"""Server-side reCAPTCHA verification. Fails closed on every error path."""

from __future__ import annotations

import httpx
import structlog

from mysteria.config import get_settings
from mysteria.errors import ConfigurationError, VerificationFailedError

logger = structlog.get_logger()

CAPTCHA_REJECTED = "reCAPTCHA verification failed. Please try again."


async def verify_captcha(token: str, remote_ip: str | None = None) -> None:
    """
    Verify a reCAPTCHA token with Google.

    Raises:
        ConfigurationError: If no secret key is configured.
        VerificationFailedError: If the provider rejects the token or cannot be reached.
    """
    settings = get_settings()
    if not settings.recaptcha_secret_key:
        logger.error("captcha_not_configured")
        raise ConfigurationError("MYSTERIA_RECAPTCHA_SECRET_KEY is not set")

    form = {"secret": settings.recaptcha_secret_key, "response": token}
    if remote_ip:
        form["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.post(settings.recaptcha_verify_url, data=form)
            response.raise_for_status()
            payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("captcha_provider_error", error=str(e))
        raise VerificationFailedError(CAPTCHA_REJECTED) from e

    if not isinstance(payload, dict):
        payload = {}
    if payload.get("success") is not True:
        logger.info("captcha_rejected", error_codes=payload.get("error-codes"))
        raise VerificationFailedError(CAPTCHA_REJECTED)
