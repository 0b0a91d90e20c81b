"""Blob store for CFS evidence files.

Two operations, ``put`` and ``remove``, over the configured backend:
- local: files under ``LOCAL_STORAGE_PATH/<bucket>/<path>`` (dev/tests)
- s3: boto3 client from ``storage_client``

``put`` never overwrites an existing object. ``remove`` treats a missing
object as already removed; any other storage failure raises BlobStoreError.
"""

import logging
import os

from botocore.exceptions import BotoCoreError, ClientError

from cfs_portal.core.config import settings
from cfs_portal.services.storage_client import get_s3_client

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    """Storage backend failed."""

    pass


class BlobExistsError(BlobStoreError):
    """Object already exists at the target path."""

    pass


# =============================================================================
# Storage Backend
# =============================================================================

def _get_storage_backend() -> str:
    return (settings.STORAGE_BACKEND or "local").strip().lower()


def _local_path(bucket: str, path: str) -> str:
    root = os.path.abspath(settings.LOCAL_STORAGE_PATH)
    full = os.path.abspath(os.path.join(root, bucket, path))
    if not full.startswith(root + os.sep):
        raise BlobStoreError("Storage path escapes the storage root")
    return full


# =============================================================================
# Operations
# =============================================================================

def put(bucket: str, path: str, data: bytes, content_type: str | None = None) -> None:
    """Write ``data`` to ``bucket``/``path``. Fails if the object already exists."""
    backend = _get_storage_backend()

    if backend == "s3":
        s3 = get_s3_client()
        try:
            s3.put_object(
                Bucket=bucket,
                Key=path,
                Body=data,
                ContentType=content_type or "application/octet-stream",
                IfNoneMatch="*",
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in {"PreconditionFailed", "ConditionalRequestConflict"}:
                raise BlobExistsError(f"Object already exists: {bucket}/{path}") from exc
            raise BlobStoreError(f"Upload failed: {code or exc}") from exc
        except BotoCoreError as exc:
            raise BlobStoreError(f"Upload failed: {exc}") from exc
        return

    full = _local_path(bucket, path)
    os.makedirs(os.path.dirname(full), exist_ok=True)
    try:
        with open(full, "xb") as f:
            f.write(data)
    except FileExistsError as exc:
        raise BlobExistsError(f"Object already exists: {bucket}/{path}") from exc
    except OSError as exc:
        raise BlobStoreError(f"Upload failed: {exc}") from exc


def remove(bucket: str, path: str) -> None:
    """Delete ``bucket``/``path``. A missing object is not an error."""
    backend = _get_storage_backend()

    if backend == "s3":
        s3 = get_s3_client()
        try:
            s3.delete_object(Bucket=bucket, Key=path)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in {"NoSuchKey", "404", "NotFound"}:
                logger.info("Blob already absent", extra={"bucket": bucket})
                return
            raise BlobStoreError(f"Delete failed: {code or exc}") from exc
        except BotoCoreError as exc:
            raise BlobStoreError(f"Delete failed: {exc}") from exc
        return

    full = _local_path(bucket, path)
    try:
        os.remove(full)
    except FileNotFoundError:
        logger.info("Blob already absent", extra={"bucket": bucket})
    except OSError as exc:
        raise BlobStoreError(f"Delete failed: {exc}") from exc


def exists(bucket: str, path: str) -> bool:
    """Whether an object is present."""
    backend = _get_storage_backend()
    if backend == "s3":
        s3 = get_s3_client()
        try:
            s3.head_object(Bucket=bucket, Key=path)
            return True
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in {"NoSuchKey", "404", "NotFound"}:
                return False
            raise BlobStoreError(f"Lookup failed: {code or exc}") from exc
        except BotoCoreError as exc:
            raise BlobStoreError(f"Lookup failed: {exc}") from exc
    return os.path.exists(_local_path(bucket, path))
