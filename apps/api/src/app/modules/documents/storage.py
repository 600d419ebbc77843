"""
Document File Storage

Uploaded files live under `<documents_dir>/<owner id>/<timestamp>-<token>-<name>`.
Files are created exclusively; an existing path is never overwritten.
Disk I/O runs in worker threads to keep the event loop free.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from fastapi import UploadFile

from app.core.config import settings
from app.core.errors import ValidationError
from app.modules.shared.formatters import format_bytes, generate_unique_filename
from app.modules.shared.validators import validate_file_extension

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    path: Path
    file_name: str
    size: int
    mime_type: str


def validate_upload_name(filename: str | None) -> str:
    """
    Raises:
        ValidationError: Missing filename or extension not allowed
    """
    if not filename:
        raise ValidationError("A file is required.", error_code="FILE_REQUIRED")
    allowed = settings.allowed_extensions_list
    if not validate_file_extension(filename, allowed):
        raise ValidationError(
            f"File type not allowed. Allowed extensions: {', '.join(allowed)}.",
            error_code="INVALID_FILE_TYPE",
            details={"allowed": allowed},
        )
    return filename


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("xb") as f:
        f.write(data)


async def save_upload(upload: UploadFile, owner_id: UUID) -> StoredFile:
    """
    Persist an upload for `owner_id`.

    Raises:
        ValidationError: Bad extension, empty file or file over the size limit
    """
    original_name = validate_upload_name(upload.filename)
    max_size = settings.max_upload_size_bytes

    data = await upload.read(max_size + 1)
    if not data:
        raise ValidationError("The uploaded file is empty.", error_code="EMPTY_FILE")
    if len(data) > max_size:
        raise ValidationError(
            f"File exceeds the maximum size of {format_bytes(max_size)}.",
            error_code="FILE_TOO_LARGE",
        )

    path = settings.documents_dir / str(owner_id) / generate_unique_filename(original_name)
    await asyncio.to_thread(_write_file, path, data)

    mime_type = (
        upload.content_type
        or mimetypes.guess_type(original_name)[0]
        or "application/octet-stream"
    )
    logger.info(f"Stored upload {path} ({format_bytes(len(data))})")
    return StoredFile(path=path, file_name=original_name, size=len(data), mime_type=mime_type)


async def delete_file(path: str | Path) -> None:
    """Remove a stored file; a missing file is ignored."""
    try:
        await asyncio.to_thread(Path(path).unlink, missing_ok=True)
    except OSError as e:
        logger.error(f"Failed to delete stored file {path}: {e}")


async def file_exists(path: str | Path) -> bool:
    return await asyncio.to_thread(Path(path).is_file)
