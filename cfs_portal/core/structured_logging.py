"""Structured logging helpers (PII-safe).

Reporter names, phone numbers, emails and notify targets never go into
log context; only identifiers do.
"""

import logging
from typing import Any
from uuid import UUID


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once at process start."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def build_log_context(
    *,
    profile_id: UUID | str | None = None,
    org_id: int | None = None,
    cfs_id: int | None = None,
    operation: str | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict for ``extra=``."""
    context: dict[str, Any] = {}
    if profile_id:
        context["profile_id"] = str(profile_id)
    if org_id:
        context["org_id"] = org_id
    if cfs_id:
        context["cfs_id"] = cfs_id
    if operation:
        context["operation"] = operation
    if request_id:
        context["request_id"] = request_id
    return context
