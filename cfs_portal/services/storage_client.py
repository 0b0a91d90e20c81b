"""S3 client factory for the attachment blob store.

Clients are cached per (region, endpoint) pair. Call ``reset_s3_clients``
after changing storage settings at runtime.
"""

from __future__ import annotations

from functools import lru_cache

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from cfs_portal.core.config import settings


CONNECT_TIMEOUT_SECONDS = 5
READ_TIMEOUT_SECONDS = 30
MAX_ATTEMPTS = 3


def _build_s3_config() -> Config:
    options: dict = {
        "connect_timeout": CONNECT_TIMEOUT_SECONDS,
        "read_timeout": READ_TIMEOUT_SECONDS,
        "retries": {"max_attempts": MAX_ATTEMPTS, "mode": "standard"},
    }
    style = (settings.S3_URL_STYLE or "").strip().lower()
    if style in {"path", "virtual"}:
        options["s3"] = {"addressing_style": style}
    return Config(**options)


@lru_cache(maxsize=4)
def _cached_client(region: str | None, endpoint_url: str | None) -> BaseClient:
    return boto3.client(
        "s3",
        region_name=region,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=endpoint_url,
        config=_build_s3_config(),
    )


def get_s3_client(
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
) -> BaseClient:
    """Return an S3 client (S3-compatible endpoints such as MinIO work too)."""
    endpoint = (endpoint_url or settings.S3_ENDPOINT_URL or "").rstrip("/") or None
    return _cached_client(region or settings.S3_REGION or None, endpoint)


def reset_s3_clients() -> None:
    _cached_client.cache_clear()
