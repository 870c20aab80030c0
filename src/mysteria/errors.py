"""Domain exceptions.

Every handler failure maps onto one of these. The global error handler turns
them into ``{"error": message}`` with the exception's status code.
"""

from __future__ import annotations


class MysteriaError(Exception):
    """Base class for errors that carry an HTTP status and a public message."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputValidationError(MysteriaError, ValueError):
    """Missing or malformed client input."""

    status_code = 400


class VerificationFailedError(MysteriaError):
    """A third-party check (CAPTCHA, deliverability) rejected the request."""

    status_code = 400


class DuplicateError(MysteriaError):
    """The action was already performed (e.g. a repeat vote)."""

    status_code = 400


class RateLimitedError(MysteriaError):
    """Cooldown or lockout in effect."""

    status_code = 429


class NotFoundError(MysteriaError):
    status_code = 404


class AuthError(MysteriaError):
    status_code = 401


class ForbiddenError(MysteriaError):
    status_code = 403


class ConfigurationError(MysteriaError):
    """A required secret or setting is missing. Fails closed."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__("Server configuration error")
        self.detail = detail
