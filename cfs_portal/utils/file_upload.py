"""Upload size checks that avoid buffering oversized bodies."""

from __future__ import annotations

from os import SEEK_END

from fastapi import Request, UploadFile
from starlette.concurrency import run_in_threadpool


# Multipart boundaries and form fields around the file part
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def request_too_large(request: Request, max_file_bytes: int) -> bool:
    """True when the declared Content-Length cannot fit one file of ``max_file_bytes``."""
    header = request.headers.get("content-length")
    if not header or not header.isdigit():
        return False
    return int(header) > max_file_bytes + MULTIPART_OVERHEAD_BYTES


async def spooled_size(file: UploadFile) -> int:
    """Size of the spooled upload; the read position is left unchanged."""

    def _measure() -> int:
        stream = file.file
        position = stream.tell()
        try:
            stream.seek(0, SEEK_END)
            return stream.tell()
        finally:
            stream.seek(position)

    return await run_in_threadpool(_measure)


async def read_within_limit(file: UploadFile, max_file_bytes: int) -> tuple[bytes, int]:
    """
    Return ``(data, size)`` for an upload.

    Bodies that are empty or over the limit are not read; ``data`` is
    empty and ``size`` lets the caller report which case it was.
    """
    size = await spooled_size(file)
    if size <= 0 or size > max_file_bytes:
        return b"", size
    await file.seek(0)
    return await file.read(), size
