"""Attachment endpoints for call-for-service evidence files."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from cfs_portal.core.access import AccessContext
from cfs_portal.core.deps import get_access_context, get_db, require_csrf_header
from cfs_portal.routers.cfs import to_action_response
from cfs_portal.schemas.cfs import CfsActionResponse
from cfs_portal.services import attachment_service
from cfs_portal.services.cfs_errors import CfsValidationError
from cfs_portal.utils.file_upload import read_within_limit, request_too_large


router = APIRouter(prefix="/cfs", tags=["cfs-attachments"])


@router.post(
    "/{cfs_id}/attachments",
    response_model=CfsActionResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_attachment(
    cfs_id: int,
    request: Request,
    file: Annotated[UploadFile, File()],
    notes: Annotated[str | None, Form()] = None,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    """
    Upload an evidence file for a call.

    Oversized uploads are rejected from the Content-Length header or the
    spooled file size before the body is read into memory.
    """
    max_bytes = attachment_service.max_attachment_bytes()
    if request_too_large(request, max_bytes):
        message = attachment_service.size_limit_message()
        raise CfsValidationError(message, {"file": message})

    data, file_size = await read_within_limit(file, max_bytes)

    result = attachment_service.upload_attachment(
        db,
        ctx,
        cfs_id,
        file_name=file.filename,
        content_type=file.content_type,
        data=data,
        file_size=file_size,
        notes=notes,
    )
    return to_action_response(result)


@router.delete(
    "/{cfs_id}/attachments/{attachment_id}",
    response_model=CfsActionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def delete_attachment(
    cfs_id: int,
    attachment_id: UUID,
    ctx: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
):
    return to_action_response(attachment_service.delete_attachment(db, ctx, cfs_id, attachment_id))
