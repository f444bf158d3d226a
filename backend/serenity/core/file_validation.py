"""File validation utilities for onboarding document uploads.

Security: Validates file content (magic bytes), enforces size limits,
and sanitizes filenames before they reach storage.
"""

import re
from typing import TYPE_CHECKING

import magic
import structlog

if TYPE_CHECKING:
    from fastapi import UploadFile

from serenity.core.errors import ValidationError

logger = structlog.get_logger()

# Maximum file size (10 MB)
MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

# Chunk size for reading files (64 KB)
CHUNK_SIZE_BYTES = 64 * 1024

# Allowed MIME types and their corresponding file types
ALLOWED_MIMES: dict[str, str] = {
    "application/pdf": "PDF",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "image/png": "PNG",
    "image/jpeg": "JPEG",
}

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


async def read_file_with_size_limit(
    file: "UploadFile",
    max_size: int = MAX_FILE_SIZE_BYTES,
) -> bytes:
    """Read file content with size limit to prevent DoS.

    Args:
        file: UploadFile from FastAPI.
        max_size: Maximum allowed file size in bytes.

    Returns:
        File content as bytes.

    Raises:
        ValidationError: If file is empty or exceeds size limit.
    """
    content = b""
    total_size = 0

    while True:
        chunk = await file.read(CHUNK_SIZE_BYTES)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_size:
            raise ValidationError(
                message=f"File too large. Maximum size: {max_size // (1024 * 1024)}MB",
                details=[{"field": "file", "error": "FILE_TOO_LARGE"}],
            )
        content += chunk

    if not content:
        raise ValidationError(
            message="No file uploaded",
            details=[{"field": "file", "error": "FILE_EMPTY"}],
        )

    return content


def validate_file_content(content: bytes, filename: str) -> str:
    """Validate file content using magic bytes (not just extension).

    Args:
        content: File binary content.
        filename: Original filename (for log context only).

    Returns:
        Detected MIME type.

    Raises:
        ValidationError: If file content doesn't match allowed MIME types.
    """
    detected_mime = magic.from_buffer(content, mime=True)

    if detected_mime not in ALLOWED_MIMES:
        # Log detected MIME for server-side debugging; do NOT expose to client
        logger.warning(
            "File content validation failed",
            detected_mime=detected_mime,
            filename=filename,
        )
        raise ValidationError(
            message="Invalid file type. Allowed: PDF, DOCX, PNG, JPEG.",
            details=[{"field": "file", "error": "INVALID_FILE_CONTENT"}],
        )

    return detected_mime


def sanitize_filename(filename: str, max_length: int = 120) -> str:
    """Reduce a client-supplied filename to a safe storage name.

    Args:
        filename: Original filename.
        max_length: Maximum allowed filename length.

    Returns:
        Filename containing only letters, digits, dot, dash and underscore.
    """
    safe = _UNSAFE_FILENAME_RE.sub("_", filename).strip("._")

    if len(safe) > max_length:
        if "." in safe:
            name, ext = safe.rsplit(".", 1)
            ext = f".{ext}"
            safe = name[: max_length - len(ext)] + ext
        else:
            safe = safe[:max_length]

    return safe or "document"
