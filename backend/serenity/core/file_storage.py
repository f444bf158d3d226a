"""Document storage for onboarding uploads.

Certifications, portfolio items, identity documents and signed contracts
are written through a ``FileStore`` and referenced from onboarding records
by URL only.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from serenity.core.config import settings
from serenity.core.file_validation import sanitize_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    """Location of a stored upload.

    Attributes:
        url: Public URL the document is served from.
        name: Sanitized filename used for storage.
        content_type: Validated MIME type.
        size: Size in bytes.
    """

    url: str
    name: str
    content_type: str
    size: int


class FileStore(Protocol):
    """Storage backend for uploaded onboarding documents."""

    async def upload_file(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        folder: str,
    ) -> StoredFile: ...


class LocalFileStore:
    """FileStore writing uploads below a local directory.

    Each upload gets a random prefix so repeated filenames never collide.

    Args:
        root: Directory uploads are written under.
        base_url: URL prefix the directory is served from.
    """

    def __init__(self, root: str | Path, base_url: str) -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    async def upload_file(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        folder: str,
    ) -> StoredFile:
        """Write content to ``{root}/{folder}/{uuid}-{filename}``."""
        safe_name = f"{uuid.uuid4().hex}-{sanitize_filename(filename)}"
        safe_folder = sanitize_filename(folder)
        target = self._root / safe_folder / safe_name

        await asyncio.to_thread(_write_bytes, target, content)
        logger.info("Stored upload %s (%d bytes)", target, len(content))

        return StoredFile(
            url=f"{self._base_url}/{safe_folder}/{safe_name}",
            name=safe_name,
            content_type=content_type,
            size=len(content),
        )


def _write_bytes(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


def get_file_store() -> FileStore:
    """Build the configured file store."""
    return LocalFileStore(settings.upload_dir, settings.upload_base_url)
