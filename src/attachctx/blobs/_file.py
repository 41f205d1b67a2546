"""FileBlobStore: file-system-based blob storage."""

from __future__ import annotations

import hashlib
import json
import os
import threading
import uuid
from datetime import datetime
from pathlib import Path

from attachctx.blobs._store import (
    BlobEntry,
    BlobReference,
    entry_matches_filters,
    normalize_blob_id,
    utc_now,
    verify_digest,
)
from attachctx.errors import BlobNotFoundError

_PAYLOAD_SUFFIX = ".blob"
_META_SUFFIX = ".meta.json"
_TEMP_PREFIX = ".tmp-"


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so that readers see either nothing or all of it."""
    temp_path = path.with_name(f"{_TEMP_PREFIX}{uuid.uuid4().hex}-{path.name}")
    try:
        with temp_path.open("wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    finally:
        temp_path.unlink(missing_ok=True)


def publish_once(path: Path, data: bytes) -> bool:
    """Publish ``data`` at ``path`` unless another writer already did.

    Return ``True`` when this call created the file. The payload is fully
    written under a temporary name and hard-linked into place, so the first
    complete writer wins and later writers leave it untouched.
    """
    temp_path = path.with_name(f"{_TEMP_PREFIX}{uuid.uuid4().hex}-{path.name}")
    try:
        with temp_path.open("wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        try:
            os.link(temp_path, path)
        except FileExistsError:
            return False
        return True
    finally:
        temp_path.unlink(missing_ok=True)


class FileBlobStore:
    """File-system-based blob store.

    Store each blob payload as ``<id>.blob`` and metadata as ``<id>.meta.json`` under a root directory.
    The payload is written before its sidecar, and both through a rename, so a
    blob is listed only once it is complete.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory, creating it if needed."""
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._entries: dict[str, BlobEntry] = {}
        self._load_entries()

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    def _resolve_path(self, blob_id: str, *, suffix: str) -> Path | None:
        """Resolve blob path and ensure it stays under the store root."""
        root = self._root.resolve()
        candidate = (self._root / f"{blob_id}{suffix}").resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None
        return candidate

    def _payload_path(self, blob_id: str) -> Path | None:
        return self._resolve_path(blob_id, suffix=_PAYLOAD_SUFFIX)

    def _meta_path(self, blob_id: str) -> Path | None:
        return self._resolve_path(blob_id, suffix=_META_SUFFIX)

    def _entry_from_payload(self, payload: object, *, blob_id: str) -> BlobEntry | None:
        """Deserialize one metadata sidecar, returning ``None`` when it is malformed."""
        if not isinstance(payload, dict):
            return None
        sha256 = payload.get("sha256")
        media_type = payload.get("media_type")
        kind = payload.get("kind")
        size = payload.get("size")
        created_at_raw = payload.get("created_at")
        if (
            payload.get("id") != blob_id
            or not isinstance(sha256, str)
            or (media_type is not None and not isinstance(media_type, str))
            or not isinstance(kind, str)
            or not isinstance(size, int)
            or not isinstance(created_at_raw, str)
        ):
            return None
        try:
            created_at = datetime.fromisoformat(created_at_raw)
        except ValueError:
            return None
        ref = BlobReference(id=blob_id, sha256=sha256, media_type=media_type, kind=kind, size=size)
        return BlobEntry(ref=ref, created_at=created_at)

    def _load_entries(self) -> None:
        """Load metadata sidecars into the in-memory index."""
        for meta_path in self._root.glob(f"*{_META_SUFFIX}"):
            if meta_path.name.startswith(_TEMP_PREFIX):
                continue
            blob_id = meta_path.name[: -len(_META_SUFFIX)]
            payload_path = self._payload_path(blob_id)
            if payload_path is None or not payload_path.exists():
                continue
            try:
                raw = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                continue
            entry = self._entry_from_payload(raw, blob_id=blob_id)
            if entry is not None:
                self._entries[blob_id] = entry

    def put_blob(
        self,
        data: bytes,
        *,
        media_type: str | None = None,
        kind: str = "original",
    ) -> BlobReference:
        """Store bytes as a file and return a BlobReference."""
        blob_id = uuid.uuid4().hex
        payload_path = self._payload_path(blob_id)
        meta_path = self._meta_path(blob_id)
        if payload_path is None or meta_path is None:
            msg = f"Generated blob ID {blob_id!r} resolves outside store root."
            raise ValueError(msg)

        ref = BlobReference(
            id=blob_id,
            sha256=hashlib.sha256(data).hexdigest(),
            media_type=media_type,
            kind=kind,
            size=len(data),
        )
        entry = BlobEntry(ref=ref, created_at=utc_now())
        meta = {
            "id": ref.id,
            "sha256": ref.sha256,
            "media_type": ref.media_type,
            "kind": ref.kind,
            "size": ref.size,
            "created_at": entry.created_at.isoformat(),
        }
        write_atomic(payload_path, data)
        write_atomic(meta_path, json.dumps(meta, ensure_ascii=False).encode("utf-8"))
        with self._lock:
            self._entries[blob_id] = entry
        return ref

    def get_blob(self, ref: BlobReference) -> bytes:
        """Read a blob file and verify SHA-256 integrity."""
        path = self._payload_path(ref.id)
        if path is None or not path.exists():
            raise BlobNotFoundError(ref.id)
        return verify_digest(ref, path.read_bytes())

    def has_blob(self, ref: BlobReference) -> bool:
        """Check whether a blob file exists."""
        path = self._payload_path(ref.id)
        return path is not None and path.exists()

    def delete_blob(self, ref_or_id: BlobReference | str) -> bool:
        """Delete a blob payload and metadata sidecar by ref or ID."""
        blob_id = normalize_blob_id(ref_or_id)
        deleted = False
        for path in (self._meta_path(blob_id), self._payload_path(blob_id)):
            if path is not None and path.exists():
                path.unlink(missing_ok=True)
                deleted = True
        with self._lock:
            self._entries.pop(blob_id, None)
        return deleted

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
            if self.has_blob(entry.ref) and entry_matches_filters(entry, kind=kind, media_type=media_type)
        ]
        return tuple(sorted(entries, key=lambda entry: (entry.created_at, entry.ref.id)))
