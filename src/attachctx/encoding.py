"""MIME sniffing and data-URL encoding helpers."""

from __future__ import annotations

import base64
import math

PNG_SIGNATURE = b"\x89PNG"
JPEG_SIGNATURE = b"\xff\xd8\xff"
GIF_SIGNATURES = (b"GIF87a", b"GIF89a")
PDF_SIGNATURE = b"%PDF-"
SNIFF_LENGTH = 16


def sniff_image_mime(head: bytes) -> str:
    """Return the image MIME type for a stream prefix.

    Only PNG and JPEG are recognised; anything else is reported as PNG,
    which is what page rasterisers emit by default.
    """
    if head.startswith(PNG_SIGNATURE):
        return "image/png"
    if head.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    return "image/png"


def detect_media_type(data: bytes, *, default: str | None = None) -> str | None:
    """Detect a media type from magic numbers, falling back to ``default``."""
    if data.startswith(PNG_SIGNATURE):
        return "image/png"
    if data.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    if data.startswith(GIF_SIGNATURES):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith(PDF_SIGNATURE):
        return "application/pdf"
    return default


def to_data_url(data: bytes, media_type: str) -> str:
    """Encode bytes as ``data:<media_type>;base64,<payload>``."""
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{b64}"


def text_data_url(text: str) -> str:
    """Encode UTF-8 text as a ``text/plain`` data URL."""
    return to_data_url(text.encode("utf-8"), "text/plain")


def data_url_media_type(data_url: str) -> str | None:
    """Return the media type declared by a data URL, or ``None`` if it is not one."""
    if not data_url.startswith("data:"):
        return None
    header, _, _ = data_url.partition(",")
    media_type = header[len("data:") :].split(";", 1)[0]
    return media_type or None


def estimate_base64_size(binary_size: int) -> int:
    """Return the number of base64 characters needed for ``binary_size`` bytes."""
    return math.ceil(binary_size * 4 / 3)
