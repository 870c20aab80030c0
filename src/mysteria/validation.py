"""
Input validation and sanitisation shared by the public handlers.

Every check raises :class:`InputValidationError` with a message that is safe to
show the visitor. Length checks run before any database or third-party call.
"""

from __future__ import annotations

import html
import math
import re
import unicodedata
import uuid
from typing import Any

import bleach
from email_validator import EmailNotValidError, validate_email

from mysteria.errors import InputValidationError

EMAIL_MAX_LENGTH = 255
NAME_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 5000
WORDS_PER_MINUTE = 200

# Letters (Latin-1 supplement and Latin extended cover Albanian ë/ç), digits,
# whitespace, apostrophes, periods, commas and hyphens.
_NAME_RE = re.compile(r"^[a-zA-Z0-9\sÀ-ɏḀ-ỿ'.,-]+$")

_TAG_RE = re.compile(r"<[^>]*>")

ALLOWED_TAGS = frozenset(
    {"a", "b", "blockquote", "br", "code", "em", "figcaption", "figure", "h2", "h3", "h4"}
    | {"hr", "i", "img", "li", "ol", "p", "pre", "s", "span", "strong", "u", "ul"}
)
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto", "data"})
# Entity-encoded markup is decoded and cleaned again, at most this many times.
_PLAIN_TEXT_PASSES = 4


def require_fields(**fields: Any) -> None:
    """Reject the request when any named field is missing or empty."""
    if any(value is None or value == "" for value in fields.values()):
        msg = "Missing required fields"
        raise InputValidationError(msg)


def check_email_length(value: str) -> str:
    email = value.strip()
    if len(email) > EMAIL_MAX_LENGTH:
        msg = "Email must be less than 255 characters"
        raise InputValidationError(msg)
    return email


def normalize_email(value: str) -> str:
    """Validate an email address and return it trimmed and lower-cased."""
    email = check_email_length(value)
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        msg = "Invalid email format"
        raise InputValidationError(msg) from e
    return email.lower()


def validate_name(value: str, min_length: int = 1) -> str:
    name = value.strip()
    if not name:
        msg = "Name cannot be empty"
        raise InputValidationError(msg)
    if len(name) < min_length or len(name) > NAME_MAX_LENGTH:
        if min_length > 1:
            msg = f"Name must be between {min_length} and {NAME_MAX_LENGTH} characters"
        else:
            msg = "Name must be less than 100 characters"
        raise InputValidationError(msg)
    if not _NAME_RE.match(name):
        msg = "Name can only contain letters, numbers, spaces, apostrophes, periods, commas, and hyphens"
        raise InputValidationError(msg)
    return name


def validate_content(
    value: str,
    min_length: int = 1,
    max_length: int = CONTENT_MAX_LENGTH,
    label: str = "Content",
) -> str:
    content = value.strip()
    if not content:
        msg = f"{label} cannot be empty"
        raise InputValidationError(msg)
    if len(content) < min_length or len(content) > max_length:
        if min_length > 1:
            msg = f"{label} must be between {min_length} and {max_length} characters"
        else:
            msg = f"{label} must be less than {max_length} characters"
        raise InputValidationError(msg)
    return content


def parse_uuid(value: str, message: str = "Invalid ID format") -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as e:
        raise InputValidationError(message) from e


def sanitize_plain_text(value: str) -> str:
    """Strip every tag and decode entities, repeating until decoded markup is gone too."""
    text = value
    for _ in range(_PLAIN_TEXT_PASSES):
        decoded = html.unescape(bleach.clean(text, tags=set(), strip=True))
        if decoded == text:
            return decoded.strip()
        text = decoded
    return bleach.clean(text, tags=set(), strip=True).strip()


def _is_data_url(value: str) -> bool:
    return "".join(value.split()).lower().startswith("data:")


def _link_attribute(_tag: str, name: str, value: str) -> bool:
    if name == "href":
        return not _is_data_url(value)
    return name in {"title", "rel", "target"}


def _image_attribute(_tag: str, name: str, value: str) -> bool:
    if name == "src":
        return not _is_data_url(value) or "".join(value.split()).lower().startswith("data:image/")
    return name in {"alt", "title", "width", "height"}


def sanitize_html(value: str) -> str:
    """
    Clean admin-authored HTML down to formatting tags.

    Scripts, frames, embeds and event handlers are dropped, along with
    ``javascript:`` links and any ``data:`` URL that is not an inline image.
    """
    return bleach.clean(
        value,
        tags=ALLOWED_TAGS,
        attributes={"a": _link_attribute, "img": _image_attribute},
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def reading_time_minutes(text: str) -> int:
    """Estimated minutes to read ``text`` at 200 words per minute, at least 1."""
    words = len(_TAG_RE.sub(" ", text).split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or uuid.uuid4().hex[:12]
