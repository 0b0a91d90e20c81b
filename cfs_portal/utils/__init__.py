"""Utility modules."""

from cfs_portal.utils.normalization import (
    normalize_email_target,
    normalize_notify_target,
    normalize_phone_target,
    parse_optional_datetime,
    parse_urgency_indicators,
    sanitize_file_name,
)

__all__ = [
    "normalize_email_target",
    "normalize_notify_target",
    "normalize_phone_target",
    "parse_optional_datetime",
    "parse_urgency_indicators",
    "sanitize_file_name",
]
