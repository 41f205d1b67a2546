"""Upload validation: extension allow-list, size limit, and magic-number checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from attachctx.encoding import detect_media_type
from attachctx.errors import UploadValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_ALLOWED_EXTENSIONS: tuple[str, ...] = ("pdf", "txt", "md", "csv", "jpg", "jpeg", "png", "gif", "webp")
DEFAULT_MAX_SIZE_MB = 5

EXTENSION_TO_MIME: dict[str, str] = {
    "pdf": "application/pdf",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


def file_extension(filename: str) -> str:
    """Return the lowercased extension of ``filename`` without the dot, or ``""``."""
    _, dot, extension = filename.rpartition(".")
    return extension.lower() if dot else ""


def _normalize_extensions(extensions: Iterable[str]) -> list[str]:
    return [ext.strip().lstrip(".").lower() for ext in extensions if ext.strip()]


def extensions_to_mime_types(extensions: Iterable[str]) -> list[str]:
    """Return the distinct MIME types for known extensions, in first-seen order."""
    mime_types: list[str] = []
    for ext in _normalize_extensions(extensions):
        mime_type = EXTENSION_TO_MIME.get(ext)
        if mime_type is not None and mime_type not in mime_types:
            mime_types.append(mime_type)
    return mime_types


def extensions_to_accept_values(extensions: Iterable[str]) -> str:
    """Return an HTML ``accept`` attribute value such as ``".pdf,.png"``."""
    return ",".join(f".{ext}" for ext in _normalize_extensions(extensions))


def validate_upload(
    filename: str,
    size: int,
    *,
    data: bytes | None = None,
    allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
    max_size_mb: float = DEFAULT_MAX_SIZE_MB,
) -> str:
    """Validate an uploaded file and return its MIME type.

    When ``data`` is given, image and PDF uploads must start with the magic
    number of the type their extension claims.

    Raises:
        UploadValidationError: If the extension, size, or content is rejected.
    """
    extension = file_extension(filename)
    allowed = _normalize_extensions(allowed_extensions)
    if not extension or extension not in allowed:
        msg = f"File type '.{extension}' is not allowed. Allowed: {', '.join(allowed)}"
        raise UploadValidationError(msg)

    if size < 0:
        msg = "File size must be >= 0."
        raise UploadValidationError(msg)
    max_bytes = int(max_size_mb * 1024 * 1024)
    if size > max_bytes:
        msg = f"File too large: {size} bytes exceeds {max_size_mb} MB limit."
        raise UploadValidationError(msg)

    mime_type = EXTENSION_TO_MIME.get(extension, "application/octet-stream")
    if data is not None and (mime_type.startswith("image/") or mime_type == "application/pdf"):
        detected = detect_media_type(data)
        if detected != mime_type:
            msg = f"File content does not match its extension '.{extension}' (detected {detected or 'unknown'})."
            raise UploadValidationError(msg)
    return mime_type
