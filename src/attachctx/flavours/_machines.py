"""Machines: the deterministic transforms behind each TransformKind."""

from __future__ import annotations

import io
import struct
from typing import TYPE_CHECKING

import pymupdf
from PIL import Image, ImageOps

from attachctx.errors import TransformUnavailableError
from attachctx.flavours._definitions import CropToSquare, ExtractPages, FitToSquare

if TYPE_CHECKING:
    from attachctx.flavours._definitions import TransformDefinition, TransformKind

PNG_COMPRESS_LEVEL = 6

# Pillow reports truncated or mangled image data with any of these.
IMAGE_DECODE_ERRORS: tuple[type[Exception], ...] = (
    OSError,
    ValueError,
    SyntaxError,
    EOFError,
    IndexError,
    struct.error,
    Image.DecompressionBombError,
)

# PyMuPDF raises mupdf errors that do not derive from RuntimeError.
PDF_ERRORS: tuple[type[Exception], ...] = (RuntimeError, ValueError, pymupdf.mupdf.FzErrorBase)


def has_transparency(image: Image.Image) -> bool:
    """Return whether any pixel of the image is not fully opaque."""
    if image.mode in ("RGBA", "LA", "PA"):
        minimum, _ = image.getchannel("A").getextrema()
        return minimum < 255
    return image.mode == "P" and "transparency" in image.info


def encode_image(image: Image.Image, *, quality: int) -> bytes:
    """Encode as PNG when the image carries transparency, JPEG at ``quality`` otherwise."""
    output = io.BytesIO()
    if has_transparency(image):
        image.convert("RGBA").save(output, format="PNG", compress_level=PNG_COMPRESS_LEVEL)
    else:
        image.convert("RGB").save(output, format="JPEG", quality=quality)
    return output.getvalue()


def _open_image(data: bytes, kind: TransformKind) -> Image.Image:
    """Decode, apply EXIF orientation, and normalise the mode to RGB or RGBA."""
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            image = ImageOps.exif_transpose(source)
    except IMAGE_DECODE_ERRORS as exc:
        raise TransformUnavailableError(kind.value, f"cannot decode image: {exc}") from exc
    return image.convert("RGBA" if has_transparency(image) else "RGB")


def crop_to_square(data: bytes, definition: CropToSquare) -> tuple[bytes, ...]:
    """Centre-crop an image to a square no larger than ``definition.max_size``."""
    image = _open_image(data, definition.kind)
    width, height = image.size
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    square = image.crop((left, top, left + side, top + side))
    if side > definition.max_size:
        square = square.resize((definition.max_size, definition.max_size), Image.Resampling.LANCZOS)
    return (encode_image(square, quality=definition.quality),)


def fit_to_square(data: bytes, definition: FitToSquare) -> tuple[bytes, ...]:
    """Downscale an image to fit a ``definition.max_size`` square."""
    image = _open_image(data, definition.kind)
    image.thumbnail((definition.max_size, definition.max_size), Image.Resampling.LANCZOS)
    return (encode_image(image, quality=definition.quality),)


def extract_pages(data: bytes, definition: ExtractPages) -> tuple[bytes, ...]:
    """Rasterise up to ``definition.max_pages`` PDF pages, longest edge ``max_size``."""
    try:
        document = pymupdf.open(stream=data, filetype="pdf")
    except PDF_ERRORS as exc:
        raise TransformUnavailableError(definition.kind.value, f"cannot open PDF: {exc}") from exc

    pages: list[bytes] = []
    with document:
        try:
            for index in range(min(document.page_count, definition.max_pages)):
                pages.append(_render_page(document.load_page(index), index, definition))
        except PDF_ERRORS as exc:
            raise TransformUnavailableError(definition.kind.value, f"cannot render PDF: {exc}") from exc
    return tuple(pages)


def _render_page(page: pymupdf.Page, index: int, definition: ExtractPages) -> bytes:
    longest = max(page.rect.width, page.rect.height)
    if longest <= 0:
        msg = f"page {index + 1} has an empty media box"
        raise TransformUnavailableError(definition.kind.value, msg)
    scale = definition.max_size / longest
    pixmap = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
    image = Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
    if not definition.maintain_aspect_ratio:
        canvas = Image.new("RGB", (definition.max_size, definition.max_size), "white")
        canvas.paste(image, ((definition.max_size - image.width) // 2, (definition.max_size - image.height) // 2))
        image = canvas
    return encode_image(image, quality=definition.quality)


def run_machine(definition: TransformDefinition, data: bytes) -> tuple[bytes, ...]:
    """Dispatch a definition to its machine and return the produced streams in order."""
    if isinstance(definition, CropToSquare):
        return crop_to_square(data, definition)
    if isinstance(definition, FitToSquare):
        return fit_to_square(data, definition)
    if isinstance(definition, ExtractPages):
        return extract_pages(data, definition)
    msg = f"Unsupported transform definition: {type(definition).__name__}"
    raise TypeError(msg)
