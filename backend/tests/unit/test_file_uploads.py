"""Tests for upload validation and local document storage."""

import io
from unittest.mock import patch

import pytest
from fastapi import UploadFile

from serenity.core.errors import ValidationError
from serenity.core.file_storage import LocalFileStore
from serenity.core.file_validation import (
    read_file_with_size_limit,
    sanitize_filename,
    validate_file_content,
)

# =============================================================================
# Validation
# =============================================================================


class TestSanitizeFilename:
    def test_replaces_unsafe_characters(self) -> None:
        assert sanitize_filename("../../etc/pass wd.pdf") == "etc_pass_wd.pdf"

    def test_keeps_extension_when_truncating(self) -> None:
        safe = sanitize_filename("a" * 200 + ".pdf", max_length=20)

        assert len(safe) == 20
        assert safe.endswith(".pdf")

    def test_empty_result_falls_back(self) -> None:
        assert sanitize_filename("...") == "document"


class TestValidateFileContent:
    def test_allowed_mime_is_returned(self) -> None:
        with patch("magic.from_buffer", return_value="application/pdf"):
            assert validate_file_content(b"%PDF", "a.pdf") == "application/pdf"

    def test_disallowed_mime_is_rejected(self) -> None:
        with (
            patch("magic.from_buffer", return_value="application/x-msdownload"),
            pytest.raises(ValidationError) as exc_info,
        ):
            validate_file_content(b"MZ", "a.pdf")

        assert exc_info.value.details == [
            {"field": "file", "error": "INVALID_FILE_CONTENT"}
        ]


class TestReadFileWithSizeLimit:
    @pytest.mark.asyncio
    async def test_reads_content(self) -> None:
        upload = UploadFile(file=io.BytesIO(b"hello"), filename="a.txt")

        assert await read_file_with_size_limit(upload) == b"hello"

    @pytest.mark.asyncio
    async def test_rejects_oversized_file(self) -> None:
        upload = UploadFile(file=io.BytesIO(b"x" * 11), filename="a.txt")

        with pytest.raises(ValidationError) as exc_info:
            await read_file_with_size_limit(upload, max_size=10)

        assert exc_info.value.details[0]["error"] == "FILE_TOO_LARGE"

    @pytest.mark.asyncio
    async def test_rejects_empty_file(self) -> None:
        upload = UploadFile(file=io.BytesIO(b""), filename="a.txt")

        with pytest.raises(ValidationError) as exc_info:
            await read_file_with_size_limit(upload)

        assert exc_info.value.details[0]["error"] == "FILE_EMPTY"


# =============================================================================
# Storage
# =============================================================================


class TestLocalFileStore:
    @pytest.mark.asyncio
    async def test_writes_file_under_folder(self, tmp_path) -> None:
        store = LocalFileStore(tmp_path, "/uploads/")

        stored = await store.upload_file(
            b"%PDF-1.4", "my brief.pdf", "application/pdf", "client-onboarding"
        )

        assert stored.name.endswith("-my_brief.pdf")
        assert stored.url == f"/uploads/client-onboarding/{stored.name}"
        assert stored.size == 8
        assert (tmp_path / "client-onboarding" / stored.name).read_bytes() == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_same_filename_never_collides(self, tmp_path) -> None:
        store = LocalFileStore(tmp_path, "/uploads")

        first = await store.upload_file(b"1", "a.pdf", "application/pdf", "f")
        second = await store.upload_file(b"2", "a.pdf", "application/pdf", "f")

        assert first.url != second.url
