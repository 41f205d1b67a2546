"""BlobStore protocol and the value types shared by its backends."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from attachctx.errors import BlobIntegrityError


@dataclass(frozen=True, slots=True)
class BlobReference:
    """Immutable handle to bytes held by a BlobStore.

    ``kind`` tells originals (uploaded files) apart from derived payloads
    (``"representation"``) so both can share one store.
    """

    id: str
    sha256: str
    media_type: str | None
    kind: str
    size: int


@dataclass(frozen=True, slots=True)
class BlobEntry:
    """One stored blob and its store-side metadata."""

    ref: BlobReference
    created_at: datetime


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def normalize_blob_id(ref_or_id: BlobReference | str) -> str:
    """Normalize a blob selector into a blob ID string."""
    if isinstance(ref_or_id, str):
        return ref_or_id
    return ref_or_id.id


def verify_digest(ref: BlobReference, data: bytes) -> bytes:
    """Return ``data`` unchanged when it matches ``ref.sha256``."""
    actual = hashlib.sha256(data).hexdigest()
    if actual != ref.sha256:
        raise BlobIntegrityError(ref.id, ref.sha256, actual)
    return data


def entry_matches_filters(
    entry: BlobEntry,
    *,
    kind: str | None = None,
    media_type: str | None = None,
) -> bool:
    """Return whether an entry matches list_blobs filters."""
    if kind is not None and entry.ref.kind != kind:
        return False
    return media_type is None or entry.ref.media_type == media_type


@runtime_checkable
class BlobStore(Protocol):
    """Blob storage protocol.

    ``put_blob`` must make a blob visible only once its bytes are fully
    written; readers never observe a partial payload.
    """

    def put_blob(
        self,
        data: bytes,
        *,
        media_type: str | None = None,
        kind: str = "original",
    ) -> BlobReference:
        """Store bytes and return a BlobReference."""
        ...

    def get_blob(self, ref: BlobReference) -> bytes:
        """Retrieve bytes by BlobReference."""
        ...

    def has_blob(self, ref: BlobReference) -> bool:
        """Check whether a blob exists."""
        ...

    def delete_blob(self, ref_or_id: BlobReference | str) -> bool:
        """Delete a blob by reference or ID. Return ``True`` when deleted."""
        ...

    def list_blobs(
        self,
        *,
        kind: str | None = None,
        media_type: str | None = None,
    ) -> tuple[BlobEntry, ...]:
        """List stored blobs, optionally filtered by kind/media type."""
        ...
