"""Representation: a cached derived artifact and the stream resolvers behind it."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

from attachctx.config import DEFAULT_REMOTE_TIMEOUT_SECONDS
from attachctx.delivery import fetch_bytes
from attachctx.errors import BlobIntegrityError, BlobNotFoundError, StreamReadError

if TYPE_CHECKING:
    import httpx

    from attachctx.blobs import BlobReference, BlobStore


@runtime_checkable
class StreamResolver(Protocol):
    """Opens one stream of a representation on demand."""

    def open(self) -> BinaryIO:
        """Open the stream for reading; raise ``StreamReadError`` on failure."""
        ...


@dataclass(frozen=True, slots=True)
class BlobStreamResolver:
    """Stream held in a BlobStore."""

    store: BlobStore
    ref: BlobReference

    def open(self) -> BinaryIO:
        """Read the blob into a fresh in-memory stream."""
        try:
            return io.BytesIO(self.store.get_blob(self.ref))
        except (BlobNotFoundError, BlobIntegrityError) as exc:
            raise StreamReadError(self.ref.id, str(exc)) from exc


@dataclass(frozen=True, slots=True)
class UrlStreamResolver:
    """Stream published at a URL, fetched with a bounded timeout."""

    url: str
    timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS
    client: httpx.Client | None = None

    def open(self) -> BinaryIO:
        """Download the stream into memory."""
        return io.BytesIO(fetch_bytes(self.url, timeout=self.timeout, client=self.client))


@dataclass(frozen=True, slots=True)
class Representation:
    """Derived artifact of one resource revision under one transform definition.

    Images have a single stream; extracted PDFs have one stream per page, in
    page order.
    """

    resource_id: str
    definition_id: str
    revision: int
    streams: tuple[StreamResolver, ...]

    def __post_init__(self) -> None:
        """Normalize the streams container to a tuple."""
        object.__setattr__(self, "streams", tuple(self.streams))

    def __len__(self) -> int:
        """Return the number of streams."""
        return len(self.streams)

    def read(self, index: int = 0) -> bytes:
        """Read one stream in full."""
        with self.streams[index].open() as stream:
            return stream.read()

