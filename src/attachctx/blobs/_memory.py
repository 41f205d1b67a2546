"""InMemoryBlobStore: dict-based blob storage for development and testing."""

from __future__ import annotations

import hashlib
import threading
import uuid

from attachctx.blobs._store import (
    BlobEntry,
    BlobReference,
    entry_matches_filters,
    normalize_blob_id,
    utc_now,
    verify_digest,
)
from attachctx.errors import BlobNotFoundError


class InMemoryBlobStore:
    """In-memory blob store for development and testing."""

    def __init__(self) -> None:
        """Initialize an empty in-memory store."""
        self._lock = threading.Lock()
        self._blobs: dict[str, bytes] = {}
        self._entries: dict[str, BlobEntry] = {}

    def put_blob(
        self,
        data: bytes,
        *,
        media_type: str | None = None,
        kind: str = "original",
    ) -> BlobReference:
        """Store bytes and return a BlobReference."""
        ref = BlobReference(
            id=uuid.uuid4().hex,
            sha256=hashlib.sha256(data).hexdigest(),
            media_type=media_type,
            kind=kind,
            size=len(data),
        )
        with self._lock:
            self._blobs[ref.id] = bytes(data)
            self._entries[ref.id] = BlobEntry(ref=ref, created_at=utc_now())
        return ref

    def get_blob(self, ref: BlobReference) -> bytes:
        """Retrieve bytes and verify SHA-256 integrity."""
        data = self._blobs.get(ref.id)
        if data is None:
            raise BlobNotFoundError(ref.id)
        return verify_digest(ref, data)

    def has_blob(self, ref: BlobReference) -> bool:
        """Check whether a blob exists."""
        return ref.id in self._blobs

    def delete_blob(self, ref_or_id: BlobReference | str) -> bool:
        """Delete a blob by reference or ID."""
        blob_id = normalize_blob_id(ref_or_id)
        with self._lock:
            removed = self._blobs.pop(blob_id, None)
            self._entries.pop(blob_id, None)
        return removed is not None

    def list_blobs(
        self,
        *,
        kind: str | None = None,
        media_type: str | None = None,
    ) -> tuple[BlobEntry, ...]:
        """List stored blobs, optionally filtered by kind/media type."""
        entries = [
            entry
            for entry in tuple(self._entries.values())
            if entry_matches_filters(entry, kind=kind, media_type=media_type)
        ]
        return tuple(sorted(entries, key=lambda entry: (entry.created_at, entry.ref.id)))
