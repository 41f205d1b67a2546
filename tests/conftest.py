"""Shared fixtures: real images and PDFs generated in-process, and a wired pipeline."""

import io
import random
from collections.abc import Callable

import pymupdf
import pytest
from PIL import Image

from attachctx.blobs import InMemoryBlobStore
from attachctx.flavours import RepresentationCache
from attachctx.resources import LocalResourceStore


def encode(image: Image.Image, fmt: str) -> bytes:
    output = io.BytesIO()
    image.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    def _make(width: int = 64, height: int = 48, *, transparent: bool = False) -> bytes:
        if transparent:
            return encode(Image.new("RGBA", (width, height), (255, 0, 0, 128)), "PNG")
        return encode(Image.new("RGB", (width, height), (0, 128, 255)), "PNG")

    return _make


@pytest.fixture
def jpeg_bytes() -> Callable[..., bytes]:
    def _make(width: int = 64, height: int = 48) -> bytes:
        return encode(Image.new("RGB", (width, height), (20, 200, 20)), "JPEG")

    return _make


@pytest.fixture
def corrupt_png_bytes() -> bytes:
    """A noisy PNG spanning several IDAT chunks, with the second chunk type mangled."""
    noise = random.Random(7).randbytes(300 * 300 * 3)
    data = encode(Image.frombytes("RGB", (300, 300), noise), "PNG")
    first = data.index(b"IDAT")
    second = data.index(b"IDAT", first + 4)
    return data[:second] + b"\xfcp\xd7F" + data[second + 4 :]


@pytest.fixture
def pdf_bytes() -> Callable[..., bytes]:
    def _make(pages: int = 1, *, width: float = 595, height: float = 842) -> bytes:
        document = pymupdf.open()
        for number in range(1, pages + 1):
            page = document.new_page(width=width, height=height)
            page.insert_text((72, 72), f"Page {number}")
        data = document.tobytes()
        document.close()
        return data

    return _make


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def resources(blob_store: InMemoryBlobStore) -> LocalResourceStore:
    return LocalResourceStore(blob_store)


@pytest.fixture
def cache(resources: LocalResourceStore, blob_store: InMemoryBlobStore) -> RepresentationCache:
    return RepresentationCache(resources, blob_store, url_prefix="http://localhost/thumbs")
