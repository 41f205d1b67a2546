"""ImageOptimizer: bound and recompress raw image bytes before sending them to a model."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image

from attachctx.errors import EncodingError
from attachctx.flavours._machines import IMAGE_DECODE_ERRORS, PNG_COMPRESS_LEVEL, has_transparency

MAX_DIMENSION = 1024
JPEG_QUALITY = 85


@dataclass(frozen=True, slots=True)
class OptimizedImage:
    """Optimizer output: encoded bytes and their MIME type."""

    data: bytes
    mime_type: str


def calculate_optimal_size(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> tuple[int, int]:
    """Return dimensions whose longest edge is at most ``max_dimension``, keeping aspect ratio."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    ratio = width / height
    if width > height:
        return max_dimension, max(1, round(max_dimension / ratio))
    return max(1, round(max_dimension * ratio)), max_dimension


class ImageOptimizer:
    """Deterministic image recompressor.

    Images larger than ``max_dimension`` on either edge are downscaled. Output is
    JPEG at ``jpeg_quality``, except PNG input with transparency, which stays
    PNG. A JPEG that needs no resize is returned untouched.
    """

    def __init__(
        self,
        *,
        max_dimension: int = MAX_DIMENSION,
        jpeg_quality: int = JPEG_QUALITY,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with the size bound and JPEG quality."""
        if max_dimension < 1:
            msg = "max_dimension must be >= 1."
            raise ValueError(msg)
        if not 1 <= jpeg_quality <= 100:
            msg = "jpeg_quality must be within 1..100."
            raise ValueError(msg)
        self._max_dimension = max_dimension
        self._jpeg_quality = jpeg_quality
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    def optimize(self, data: bytes, mime_type: str) -> OptimizedImage:
        """Optimize raw image bytes.

        Raises:
            EncodingError: If the bytes cannot be decoded as an image or re-encoded.
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                width, height = image.size
                new_size = calculate_optimal_size(width, height, self._max_dimension)
                if new_size == (width, height) and mime_type == "image/jpeg":
                    return OptimizedImage(data=data, mime_type=mime_type)

                keep_png = mime_type == "image/png" and has_transparency(image)
                working = image.convert("RGBA" if keep_png else "RGB")
                if new_size != (width, height):
                    working = working.resize(new_size, Image.Resampling.LANCZOS)

                output = io.BytesIO()
                if keep_png:
                    working.save(output, format="PNG", compress_level=PNG_COMPRESS_LEVEL)
                    final_mime = "image/png"
                else:
                    working.save(output, format="JPEG", quality=self._jpeg_quality)
                    final_mime = "image/jpeg"
        except IMAGE_DECODE_ERRORS as exc:
            raise EncodingError(mime_type, str(exc)) from exc

        optimized = output.getvalue()
        self._logger.debug(
            "Image optimized: %dx%d %d bytes -> %dx%d %d bytes",
            width,
            height,
            len(data),
            new_size[0],
            new_size[1],
            len(optimized),
        )
        return OptimizedImage(data=optimized, mime_type=final_mime)
