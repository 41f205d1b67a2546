"""Manifest indexes: which blobs make up the representation of a cache key."""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from attachctx.blobs import BlobReference, publish_once, write_atomic
from attachctx.serde import as_str_object_dict, optional_string, require_int, require_string


@dataclass(frozen=True, slots=True)
class Manifest:
    """Published cache entry for ``(resource_id, definition_id)``."""

    resource_id: str
    definition_id: str
    revision: int
    blobs: tuple[BlobReference, ...]

    def __post_init__(self) -> None:
        """Normalize the blob container to a tuple."""
        object.__setattr__(self, "blobs", tuple(self.blobs))

    def to_dict(self) -> dict[str, object]:
        """Serialize Manifest to a plain dictionary."""
        return {
            "resource_id": self.resource_id,
            "definition_id": self.definition_id,
            "revision": self.revision,
            "blobs": [
                {
                    "id": ref.id,
                    "sha256": ref.sha256,
                    "media_type": ref.media_type,
                    "kind": ref.kind,
                    "size": ref.size,
                }
                for ref in self.blobs
            ],
        }

    @classmethod
    def from_dict(cls, value: object) -> Manifest:
        """Deserialize Manifest from a plain dictionary."""
        data = as_str_object_dict(value, field_name="Manifest")
        raw_blobs = data.get("blobs")
        if not isinstance(raw_blobs, list):
            msg = "Manifest.blobs must be a list."
            raise TypeError(msg)

        blobs: list[BlobReference] = []
        for index, item in enumerate(raw_blobs):
            field_name = f"Manifest.blobs[{index}]"
            blob = as_str_object_dict(item, field_name=field_name)
            blobs.append(
                BlobReference(
                    id=require_string(blob.get("id"), field_name=f"{field_name}.id"),
                    sha256=require_string(blob.get("sha256"), field_name=f"{field_name}.sha256"),
                    media_type=optional_string(blob.get("media_type"), field_name=f"{field_name}.media_type"),
                    kind=require_string(blob.get("kind"), field_name=f"{field_name}.kind"),
                    size=require_int(blob.get("size"), field_name=f"{field_name}.size"),
                )
            )

        return cls(
            resource_id=require_string(data.get("resource_id"), field_name="Manifest.resource_id"),
            definition_id=require_string(data.get("definition_id"), field_name="Manifest.definition_id"),
            revision=require_int(data.get("revision"), field_name="Manifest.revision"),
            blobs=tuple(blobs),
        )


@runtime_checkable
class ManifestIndex(Protocol):
    """Storage for published manifests.

    ``publish`` is first-writer-wins and must never expose a partial entry.
    """

    def get(self, resource_id: str, definition_id: str) -> Manifest | None:
        """Return the published manifest for a key, if any."""
        ...

    def publish(self, manifest: Manifest) -> bool:
        """Publish a manifest unless one exists. Return ``True`` when this call published it."""
        ...

    def replace(self, manifest: Manifest) -> None:
        """Publish a manifest, overwriting any existing entry atomically."""
        ...

    def delete(self, resource_id: str, definition_id: str) -> Manifest | None:
        """Remove and return the manifest for a key."""
        ...

    def manifests_for(self, resource_id: str) -> tuple[Manifest, ...]:
        """Return every manifest published for a resource."""
        ...


class InMemoryManifestIndex:
    """Process-local manifest index."""

    def __init__(self) -> None:
        """Initialize an empty index."""
        self._lock = threading.Lock()
        self._manifests: dict[tuple[str, str], Manifest] = {}

    def get(self, resource_id: str, definition_id: str) -> Manifest | None:
        """Return the published manifest for a key, if any."""
        return self._manifests.get((resource_id, definition_id))

    def publish(self, manifest: Manifest) -> bool:
        """Publish a manifest unless one exists."""
        key = (manifest.resource_id, manifest.definition_id)
        with self._lock:
            if key in self._manifests:
                return False
            self._manifests[key] = manifest
        return True

    def replace(self, manifest: Manifest) -> None:
        """Publish a manifest, overwriting any existing entry."""
        with self._lock:
            self._manifests[(manifest.resource_id, manifest.definition_id)] = manifest

    def delete(self, resource_id: str, definition_id: str) -> Manifest | None:
        """Remove and return the manifest for a key."""
        with self._lock:
            return self._manifests.pop((resource_id, definition_id), None)

    def manifests_for(self, resource_id: str) -> tuple[Manifest, ...]:
        """Return every manifest published for a resource."""
        return tuple(manifest for (owner, _), manifest in tuple(self._manifests.items()) if owner == resource_id)


class FileManifestIndex:
    """Manifest index stored as JSON files under ``<root>/<sha256(resource_id)>/<definition_id>.json``.

    Entries are published with ``publish_once``/``write_atomic`` so concurrent
    processes sharing the directory never read a partial manifest.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory, creating it if needed."""
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    def _resource_dir(self, resource_id: str) -> Path:
        return self._root / hashlib.sha256(resource_id.encode("utf-8")).hexdigest()

    def _path(self, resource_id: str, definition_id: str) -> Path:
        if not definition_id.isalnum():
            msg = f"Definition ID {definition_id!r} is not a content hash."
            raise ValueError(msg)
        return self._resource_dir(resource_id) / f"{definition_id}.json"

    def _read(self, path: Path) -> Manifest | None:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        try:
            return Manifest.from_dict(raw)
        except TypeError:
            return None

    def _encode(self, manifest: Manifest) -> bytes:
        return json.dumps(manifest.to_dict(), ensure_ascii=False, sort_keys=True).encode("utf-8")

    def get(self, resource_id: str, definition_id: str) -> Manifest | None:
        """Return the published manifest for a key, if any."""
        return self._read(self._path(resource_id, definition_id))

    def publish(self, manifest: Manifest) -> bool:
        """Publish a manifest unless one exists."""
        path = self._path(manifest.resource_id, manifest.definition_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        return publish_once(path, self._encode(manifest))

    def replace(self, manifest: Manifest) -> None:
        """Publish a manifest, overwriting any existing entry atomically."""
        path = self._path(manifest.resource_id, manifest.definition_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        write_atomic(path, self._encode(manifest))

    def delete(self, resource_id: str, definition_id: str) -> Manifest | None:
        """Remove and return the manifest for a key."""
        path = self._path(resource_id, definition_id)
        manifest = self._read(path)
        path.unlink(missing_ok=True)
        return manifest

    def manifests_for(self, resource_id: str) -> tuple[Manifest, ...]:
        """Return every manifest published for a resource."""
        directory = self._resource_dir(resource_id)
        if not directory.is_dir():
            return ()
        manifests = (self._read(path) for path in sorted(directory.glob("*.json")) if not path.name.startswith("."))
        return tuple(manifest for manifest in manifests if manifest is not None)
