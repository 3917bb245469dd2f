import logging
import mimetypes
import os
from dataclasses import dataclass

from fastapi import HTTPException, UploadFile, status

from drivecore.core.config import settings

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class IncomingContent:
    """Bytes received from a client, before they reach the blob store."""

    name: str
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def detect_mime_type(filename: str, declared: str | None = None) -> str:
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def display_name(filename: str) -> str:
    # Browsers may send a full client path
    return os.path.basename(filename.replace("\\", "/")).strip()


async def read_upload(file: UploadFile) -> IncomingContent:
    """Read an upload fully, enforcing the configured size limit."""
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    chunks = []
    received = 0
    while True:
        chunk = await file.read(_CHUNK_SIZE)
        if not chunk:
            break
        received += len(chunk)
        if received > max_bytes:
            logger.warning("Upload %s exceeds %d MB limit", file.filename, settings.max_upload_size_mb)
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File is too large. Maximum size is {settings.max_upload_size_mb}MB",
            )
        chunks.append(chunk)

    name = display_name(file.filename)
    return IncomingContent(
        name=name,
        data=b"".join(chunks),
        mime_type=detect_mime_type(name, file.content_type),
    )
