"""Evidence uploads: blob first, metadata second, compensation on failure."""

import hashlib

import pytest

from cfs_portal.core.config import settings
from cfs_portal.db.enums import AuditEventType
from cfs_portal.db.models import AuditLog, CfsAttachment
from cfs_portal.services import attachment_service, blob_store, cfs_procedures
from cfs_portal.services.cfs_errors import (
    GENERIC_ERROR_MESSAGE,
    AuthorizationError,
    CfsValidationError,
    CompensationFailure,
    NotFoundError,
    StoreProcedureError,
)


PHOTO = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _upload(db, ctx, cfs_id, data=PHOTO, **kwargs):
    kwargs.setdefault("file_name", "tent photo.png")
    kwargs.setdefault("content_type", "image/png")
    return attachment_service.upload_attachment(db, ctx, cfs_id, data=data, **kwargs)


def test_upload_stores_blob_and_metadata(db, create_call, intake_ctx):
    cfs_id = create_call()

    result = _upload(db, intake_ctx, cfs_id, notes=" north entrance ")

    attachment = db.get(CfsAttachment, result.attachment_id)
    assert result.message == "Attachment uploaded."
    assert attachment.file_name == "tent-photo.png"
    assert attachment.file_size == len(PHOTO)
    assert attachment.storage_bucket == settings.CFS_ATTACHMENTS_BUCKET
    assert attachment.storage_path.startswith(f"cfs/{cfs_id}/")
    assert attachment.storage_path.endswith("-tent-photo.png")
    assert attachment.attachment_metadata == {
        "original_name": "tent photo.png",
        "checksum_sha256": hashlib.sha256(PHOTO).hexdigest(),
        "notes": "north entrance",
    }
    assert blob_store.exists(attachment.storage_bucket, attachment.storage_path)


def test_storage_paths_are_unique_per_upload(db, create_call, admin_ctx):
    cfs_id = create_call()
    first = _upload(db, admin_ctx, cfs_id)
    second = _upload(db, admin_ctx, cfs_id)

    paths = {row.storage_path for row in db.query(CfsAttachment).all()}
    assert first.attachment_id != second.attachment_id
    assert len(paths) == 2


def test_upload_rejects_oversized_file(db, create_call, admin_ctx, monkeypatch):
    monkeypatch.setattr(settings, "CFS_MAX_ATTACHMENT_BYTES", 1024 * 1024)
    cfs_id = create_call()

    with pytest.raises(CfsValidationError) as exc_info:
        _upload(db, admin_ctx, cfs_id, data=b"", file_size=2 * 1024 * 1024)

    assert exc_info.value.field_errors == {"file": "Attachment must be under 1 MB."}
    assert db.query(CfsAttachment).count() == 0


def test_upload_rejects_empty_file(db, create_call, admin_ctx):
    cfs_id = create_call()
    with pytest.raises(CfsValidationError) as exc_info:
        _upload(db, admin_ctx, cfs_id, data=b"")
    assert exc_info.value.public_message == "Select a file to upload."


def test_upload_requires_update_capability(db, create_call, viewer_ctx, local_storage):
    cfs_id = create_call()
    with pytest.raises(AuthorizationError):
        _upload(db, viewer_ctx, cfs_id)
    assert not local_storage.exists() or not any(local_storage.rglob("*.png"))


def test_upload_to_unseen_call_writes_nothing(db, create_call, other_admin_ctx, local_storage):
    cfs_id = create_call()
    with pytest.raises(NotFoundError):
        _upload(db, other_admin_ctx, cfs_id)
    assert not local_storage.exists() or not any(local_storage.rglob("*.png"))


def test_blob_write_failure_surfaces_safe_message(db, create_call, admin_ctx, monkeypatch):
    cfs_id = create_call()

    def _boom(*_args, **_kwargs):
        raise blob_store.BlobStoreError("bucket unreachable")

    monkeypatch.setattr(blob_store, "put", _boom)

    with pytest.raises(StoreProcedureError) as exc_info:
        _upload(db, admin_ctx, cfs_id)
    assert exc_info.value.public_message == "Unable to store the attachment. Try again."
    assert db.query(CfsAttachment).count() == 0


def test_metadata_failure_removes_blob(db, create_call, admin_ctx, local_storage, monkeypatch):
    cfs_id = create_call()
    written: list[tuple[str, str]] = []
    real_put = blob_store.put

    def _tracking_put(bucket, path, data, content_type=None):
        written.append((bucket, path))
        real_put(bucket, path, data, content_type)

    def _fail_insert(*_args, **_kwargs):
        raise StoreProcedureError(procedure="cfs_insert_attachment")

    monkeypatch.setattr(blob_store, "put", _tracking_put)
    monkeypatch.setattr(cfs_procedures, "insert_attachment", _fail_insert)

    with pytest.raises(StoreProcedureError) as exc_info:
        _upload(db, admin_ctx, cfs_id)

    assert exc_info.value.procedure == "cfs_insert_attachment"
    ((bucket, path),) = written
    assert not blob_store.exists(bucket, path)
    assert db.query(CfsAttachment).count() == 0


def test_failed_compensation_raises_compensation_failure(db, create_call, admin_ctx, monkeypatch):
    cfs_id = create_call()

    def _fail_insert(*_args, **_kwargs):
        raise StoreProcedureError(procedure="cfs_insert_attachment")

    def _fail_remove(*_args, **_kwargs):
        raise blob_store.BlobStoreError("delete denied")

    monkeypatch.setattr(cfs_procedures, "insert_attachment", _fail_insert)
    monkeypatch.setattr(blob_store, "remove", _fail_remove)

    with pytest.raises(CompensationFailure) as exc_info:
        _upload(db, admin_ctx, cfs_id)

    failure = exc_info.value
    assert failure.public_message == GENERIC_ERROR_MESSAGE
    assert failure.path.startswith(f"cfs/{cfs_id}/")
    assert isinstance(failure.original, StoreProcedureError)
    assert blob_store.exists(failure.bucket, failure.path)


def test_delete_removes_blob_and_row(db, create_call, admin_ctx):
    cfs_id = create_call()
    attachment_id = _upload(db, admin_ctx, cfs_id).attachment_id
    attachment = db.get(CfsAttachment, attachment_id)
    bucket, path = attachment.storage_bucket, attachment.storage_path

    result = attachment_service.delete_attachment(db, admin_ctx, cfs_id, attachment_id)

    assert result.message == "Attachment deleted."
    assert db.get(CfsAttachment, attachment_id) is None
    assert not blob_store.exists(bucket, path)
    assert (
        db.query(AuditLog).filter(AuditLog.event_type == AuditEventType.CFS_ATTACHMENT_DELETED.value).count()
        == 1
    )


def test_delete_tolerates_missing_blob(db, create_call, admin_ctx):
    cfs_id = create_call()
    attachment_id = _upload(db, admin_ctx, cfs_id).attachment_id
    attachment = db.get(CfsAttachment, attachment_id)
    blob_store.remove(attachment.storage_bucket, attachment.storage_path)

    attachment_service.delete_attachment(db, admin_ctx, cfs_id, attachment_id)

    assert db.get(CfsAttachment, attachment_id) is None


def test_delete_requires_delete_capability(db, create_call, admin_ctx, coordinator_ctx):
    cfs_id = create_call()
    attachment_id = _upload(db, admin_ctx, cfs_id).attachment_id

    with pytest.raises(AuthorizationError):
        attachment_service.delete_attachment(db, coordinator_ctx, cfs_id, attachment_id)


def test_delete_attachment_from_other_call_not_found(db, create_call, admin_ctx):
    cfs_id = create_call()
    other_id = create_call()
    attachment_id = _upload(db, admin_ctx, cfs_id).attachment_id

    with pytest.raises(NotFoundError):
        attachment_service.delete_attachment(db, admin_ctx, other_id, attachment_id)
    assert db.get(CfsAttachment, attachment_id) is not None
