"""Tests for upload validation."""

from collections.abc import Callable

import pytest

from attachctx.errors import UploadValidationError
from attachctx.validation import (
    DEFAULT_ALLOWED_EXTENSIONS,
    extensions_to_accept_values,
    extensions_to_mime_types,
    file_extension,
    validate_upload,
)


def test_file_extension() -> None:
    assert file_extension("Report.PDF") == "pdf"
    assert file_extension("archive.tar.gz") == "gz"
    assert file_extension("README") == ""


def test_accepts_allowed_files(png_bytes: Callable[..., bytes]) -> None:
    assert validate_upload("notes.md", 10) == "text/markdown"
    assert validate_upload("photo.PNG", 1024, data=png_bytes()) == "image/png"
    assert validate_upload("table.csv", 10, data=b"a,b\n1,2\n") == "text/csv"


@pytest.mark.parametrize("filename", ["malware.exe", "README", "photo.svg"])
def test_rejects_disallowed_extensions(filename: str) -> None:
    with pytest.raises(UploadValidationError, match="not allowed"):
        validate_upload(filename, 10)


def test_custom_allow_list() -> None:
    assert validate_upload("photo.gif", 10, allowed_extensions=[".GIF"]) == "image/gif"
    with pytest.raises(UploadValidationError):
        validate_upload("doc.pdf", 10, allowed_extensions=["gif"])


def test_rejects_oversized_files() -> None:
    limit = 5 * 1024 * 1024
    assert validate_upload("doc.pdf", limit) == "application/pdf"
    with pytest.raises(UploadValidationError, match="too large"):
        validate_upload("doc.pdf", limit + 1)
    with pytest.raises(UploadValidationError, match="too large"):
        validate_upload("doc.pdf", 2 * 1024 * 1024, max_size_mb=1)


def test_rejects_negative_size() -> None:
    with pytest.raises(UploadValidationError):
        validate_upload("doc.pdf", -1)


def test_rejects_content_not_matching_extension(jpeg_bytes: Callable[..., bytes]) -> None:
    with pytest.raises(UploadValidationError, match="does not match"):
        validate_upload("photo.png", 100, data=jpeg_bytes())
    with pytest.raises(UploadValidationError, match="detected unknown"):
        validate_upload("doc.pdf", 100, data=b"<html>")


def test_jpg_and_jpeg_share_a_mime_type(jpeg_bytes: Callable[..., bytes]) -> None:
    assert validate_upload("photo.jpg", 100, data=jpeg_bytes()) == "image/jpeg"
    assert validate_upload("photo.jpeg", 100, data=jpeg_bytes()) == "image/jpeg"


def test_extensions_to_mime_types_deduplicates() -> None:
    assert extensions_to_mime_types(["jpg", "JPEG", ".png", "exe", " "]) == ["image/jpeg", "image/png"]
    assert len(extensions_to_mime_types(DEFAULT_ALLOWED_EXTENSIONS)) == 8


def test_extensions_to_accept_values() -> None:
    assert extensions_to_accept_values(["pdf", ".PNG"]) == ".pdf,.png"
    assert extensions_to_accept_values([]) == ""
