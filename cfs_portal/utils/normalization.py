"""Data normalization utilities for CFS intake."""

import re
from datetime import datetime, timezone
from typing import Optional


MIN_PHONE_DIGITS = 7
MAX_FILE_NAME_LENGTH = 120


def normalize_optional_text(value: Optional[str]) -> Optional[str]:
    """Strip whitespace; empty strings become None."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_email_target(value: Optional[str]) -> Optional[str]:
    """
    Normalize an email notify target.

    Returns the trimmed, lowercased address, or None when empty. Does not
    check for ``@``; callers validate the shape for the email channel.
    """
    if not value:
        return None
    trimmed = value.strip().lower()
    return trimmed or None


def normalize_phone_target(value: Optional[str]) -> Optional[str]:
    """
    Normalize an SMS notify target to digits, keeping a leading ``+``.

    "+1 (555) 123-4567" -> "+15551234567"
    "555-1234"          -> "5551234"
    Anything with fewer than 7 digits -> None
    """
    if not value:
        return None
    trimmed = value.strip()
    has_plus = trimmed.startswith("+")
    digits = re.sub(r"\D", "", trimmed)
    if len(digits) < MIN_PHONE_DIGITS:
        return None
    return f"+{digits}" if has_plus else digits


def normalize_notify_target(channel: str, value: Optional[str]) -> Optional[str]:
    """Normalize ``value`` for the given channel ("sms" or "email")."""
    if channel == "sms":
        return normalize_phone_target(value)
    return normalize_email_target(value)


def parse_urgency_indicators(value: Optional[str]) -> list[str]:
    """Split a comma list into trimmed, non-empty indicators."""
    if not value:
        return []
    return [entry.strip() for entry in value.split(",") if entry.strip()]


def parse_optional_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp. Unparsable or empty input yields None.

    Naive values are treated as UTC.
    """
    if not value or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def sanitize_file_name(name: Optional[str], fallback: str = "attachment") -> str:
    """
    Make an uploaded file name safe for an object path segment.

    Drops directory components, replaces anything outside ``[A-Za-z0-9._-]``
    with ``-``, collapses runs, and keeps the extension when truncating.
    """
    if not name:
        return fallback
    base = re.split(r"[\\/]", name.strip())[-1]
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", base)
    cleaned = re.sub(r"-{2,}", "-", cleaned).strip(".-")
    if not cleaned:
        return fallback
    if len(cleaned) > MAX_FILE_NAME_LENGTH:
        stem, dot, ext = cleaned.rpartition(".")
        if dot and 0 < len(ext) <= 10:
            cleaned = f"{stem[: MAX_FILE_NAME_LENGTH - len(ext) - 1]}.{ext}"
        else:
            cleaned = cleaned[:MAX_FILE_NAME_LENGTH]
    return cleaned
