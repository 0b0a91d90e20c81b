"""Attachment service for CFS evidence files.

Upload is a two-step saga: the blob is written first, then the metadata row.
If the metadata step fails the blob is removed and the original error is
re-raised. If that removal fails too, an orphaned blob exists and
CompensationFailure is raised (logged at CRITICAL).
"""

import hashlib
import logging
import uuid

from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext, require_capability, require_organization
from cfs_portal.core.config import settings
from cfs_portal.core.structured_logging import build_log_context
from cfs_portal.db.models import CfsAttachment
from cfs_portal.services import blob_store, cfs_procedures
from cfs_portal.services.cfs_errors import (
    CfsValidationError,
    CompensationFailure,
    NotFoundError,
    StoreProcedureError,
)
from cfs_portal.services.cfs_lifecycle import CfsActionResult, complete_transition
from cfs_portal.utils.normalization import normalize_optional_text, sanitize_file_name

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

def max_attachment_bytes() -> int:
    return settings.CFS_MAX_ATTACHMENT_BYTES


def size_limit_message() -> str:
    return f"Attachment must be under {max_attachment_bytes() // (1024 * 1024)} MB."


def build_storage_path(cfs_id: int, file_name: str) -> str:
    """``cfs/<id>/<random token>-<sanitized name>``"""
    return f"cfs/{cfs_id}/{uuid.uuid4().hex}-{sanitize_file_name(file_name)}"


def calculate_checksum(data: bytes) -> str:
    """SHA-256 of the uploaded bytes."""
    return hashlib.sha256(data).hexdigest()


# =============================================================================
# Service Functions
# =============================================================================

def upload_attachment(
    db: Session,
    ctx: AccessContext,
    cfs_id: int,
    *,
    file_name: str | None,
    content_type: str | None,
    data: bytes,
    file_size: int | None = None,
    notes: str | None = None,
) -> CfsActionResult:
    """Store an evidence file for a call and record its metadata."""
    require_capability(ctx, "can_update_cfs", "You do not have permission to upload attachments.")
    require_organization(ctx, "Select an acting organization to upload attachments.")

    size = file_size if file_size is not None else len(data)
    if size > max_attachment_bytes():
        message = size_limit_message()
        raise CfsValidationError(message, {"file": message})
    if size <= 0 or not data:
        raise CfsValidationError("Select a file to upload.", {"file": "Select a file to upload."})

    cfs_procedures.check_call_access(db, ctx, cfs_id)

    original_name = (file_name or "").strip() or "attachment"
    bucket = settings.CFS_ATTACHMENTS_BUCKET
    path = build_storage_path(cfs_id, original_name)
    log_context = build_log_context(
        profile_id=ctx.profile_id, org_id=ctx.organization_id, cfs_id=cfs_id, operation="attachment_upload"
    )

    try:
        blob_store.put(bucket, path, data, content_type)
    except blob_store.BlobStoreError as exc:
        logger.error("Attachment blob write failed", extra=log_context, exc_info=True)
        raise StoreProcedureError("Unable to store the attachment. Try again.", procedure="blob_put") from exc

    metadata = {"original_name": original_name, "checksum_sha256": calculate_checksum(data)}
    note = normalize_optional_text(notes)
    if note:
        metadata["notes"] = note

    try:
        attachment = cfs_procedures.insert_attachment(
            db,
            ctx,
            cfs_id,
            file_name=sanitize_file_name(original_name),
            file_type=content_type,
            file_size=size,
            storage_bucket=bucket,
            storage_path=path,
            metadata=metadata,
        )
    except Exception as exc:
        try:
            blob_store.remove(bucket, path)
        except Exception as cleanup_exc:
            logger.critical(
                "Orphaned attachment blob after metadata failure",
                extra={**log_context, "bucket": bucket, "path": path},
                exc_info=True,
            )
            raise CompensationFailure(
                "Attachment cleanup failed.", bucket=bucket, path=path, original=exc
            ) from cleanup_exc
        raise

    return complete_transition(db, ctx, cfs_id, "Attachment uploaded.", attachment_id=attachment.id)


def delete_attachment(
    db: Session,
    ctx: AccessContext,
    cfs_id: int,
    attachment_id: uuid.UUID,
) -> CfsActionResult:
    """Remove the blob, then the metadata row. A blob that is already gone is fine."""
    require_capability(ctx, "can_delete_cfs", "You do not have permission to delete attachments.")

    cfs_procedures.check_call_access(db, ctx, cfs_id)
    attachment = (
        db.query(CfsAttachment)
        .filter(CfsAttachment.id == attachment_id, CfsAttachment.cfs_id == cfs_id)
        .first()
    )
    if attachment is None:
        raise NotFoundError("Attachment not found.")
    bucket, path = attachment.storage_bucket, attachment.storage_path

    try:
        blob_store.remove(bucket, path)
    except blob_store.BlobStoreError as exc:
        logger.error(
            "Attachment blob delete failed",
            extra=build_log_context(
                profile_id=ctx.profile_id, org_id=ctx.organization_id, cfs_id=cfs_id, operation="attachment_delete"
            ),
            exc_info=True,
        )
        raise StoreProcedureError(procedure="blob_remove") from exc

    cfs_procedures.delete_attachment_row(db, ctx, cfs_id, attachment_id=attachment_id)
    return complete_transition(db, ctx, cfs_id, "Attachment deleted.")
