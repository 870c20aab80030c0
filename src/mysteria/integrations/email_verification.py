"""
Email deliverability checks with provider abstraction.

Supports EmailListVerify (plain-text status) and Abstract API (JSON).
Provider is selected via configuration; with no API key the check is skipped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx
import structlog

from mysteria.config import get_settings
from mysteria.errors import VerificationFailedError

logger = structlog.get_logger()

_ACCEPTED_STATUSES = frozenset({"ok", "ok_for_all", "unknown"})
_STATUS_MESSAGES = {
    "disposable": "Disposable email addresses are not allowed. Please use a real email address.",
    "invalid_syntax": "Invalid email format. Please check your email address.",
    "email_disabled": "This email address appears to be disabled or inactive.",
}
_UNVERIFIABLE = "This email address could not be verified. Please use a valid email address."


class EmailVerificationUnavailable(Exception):
    """The provider could not be reached or answered garbage."""


class BaseEmailVerifier(ABC):
    """Abstract base class for deliverability providers."""

    @abstractmethod
    async def check(self, email: str) -> None:
        """Return if deliverable, raise VerificationFailedError if not."""
        ...


class EmailListVerifyVerifier(BaseEmailVerifier):
    """EmailListVerify single-address API (answers a bare status word)."""

    URL = "https://apps.emaillistverify.com/api/verifyEmail"

    def __init__(self, api_key: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    async def check(self, email: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.URL, params={"secret": self.api_key, "email": email})
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise EmailVerificationUnavailable(str(e)) from e

        status = response.text.strip()
        logger.info("email_deliverability_checked", provider="emaillistverify", status=status)
        if status in _ACCEPTED_STATUSES:
            return
        raise VerificationFailedError(_STATUS_MESSAGES.get(status, _UNVERIFIABLE))


class AbstractApiVerifier(BaseEmailVerifier):
    """Abstract API email validation endpoint."""

    URL = "https://emailvalidation.abstractapi.com/v1/"

    def __init__(self, api_key: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    async def check(self, email: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.URL, params={"api_key": self.api_key, "email": email})
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EmailVerificationUnavailable(str(e)) from e
        if not isinstance(data, dict):
            msg = "Unexpected response body"
            raise EmailVerificationUnavailable(msg)

        format_check = data.get("is_valid_format")
        valid_format = isinstance(format_check, dict) and format_check.get("value") is True
        deliverability = data.get("deliverability")
        logger.info("email_deliverability_checked", provider="abstract", deliverability=deliverability)
        if not valid_format or deliverability != "DELIVERABLE":
            raise VerificationFailedError("Email address is not valid or deliverable")


def get_email_verifier() -> BaseEmailVerifier | None:
    """Build the configured verifier, or None when no key is set (check skipped)."""
    settings = get_settings()
    provider = settings.email_verifier.lower()
    if provider == "emaillistverify":
        if not settings.emaillistverify_api_key:
            return None
        return EmailListVerifyVerifier(settings.emaillistverify_api_key, settings.http_timeout_seconds)
    if provider == "abstract":
        if not settings.abstract_api_key:
            return None
        return AbstractApiVerifier(settings.abstract_api_key, settings.http_timeout_seconds)
    msg = f"Unsupported email verifier: {provider}"
    raise ValueError(msg)


async def check_deliverability(email: str, *, fail_open: bool) -> None:
    """
    Run the configured deliverability check.

    Args:
        email: Normalised address.
        fail_open: When the provider is unreachable, log and accept (True) or
            reject with a 400 (False).

    Raises:
        VerificationFailedError: Undeliverable address, or provider outage with fail_open=False.
    """
    verifier = get_email_verifier()
    if verifier is None:
        return
    try:
        await verifier.check(email)
    except EmailVerificationUnavailable as e:
        logger.warning("email_deliverability_unavailable", error=str(e), fail_open=fail_open)
        if not fail_open:
            msg = "Email verification service unavailable"
            raise VerificationFailedError(msg) from e
