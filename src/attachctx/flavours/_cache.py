"""RepresentationCache: generate a derived artifact once, reuse it thereafter."""

from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from attachctx.config import DEFAULT_REMOTE_TIMEOUT_SECONDS
from attachctx.encoding import detect_media_type
from attachctx.errors import TransformUnavailableError
from attachctx.flavours._index import InMemoryManifestIndex, Manifest, ManifestIndex
from attachctx.flavours._machines import run_machine
from attachctx.flavours._representation import BlobStreamResolver, Representation, UrlStreamResolver

if TYPE_CHECKING:
    from collections.abc import Iterator

    import httpx

    from attachctx.blobs import BlobStore
    from attachctx.flavours._definitions import TransformDefinition
    from attachctx.resources import ResourceId, ResourceStore

REPRESENTATION_KIND = "representation"


@dataclass(slots=True)
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class RepresentationCache:
    """Content-addressed cache of transform outputs keyed by ``(resource, definition.id)``.

    ``ensure`` never raises: a failed generation is logged and ``get`` keeps
    reporting ``None``. Payload blobs are stored before the manifest is
    published, so readers observe either no entry or a complete one. Entries
    generated from an older revision read as missing and are regenerated.

    Definitions with ``persist=False`` are cached in a process-local index only.
    With ``single_flight`` enabled, concurrent ``ensure`` calls for one key in
    this process run the transform once; across processes, redundant
    generation is harmless because transforms are deterministic and the first
    published manifest wins.
    """

    def __init__(
        self,
        resources: ResourceStore,
        blobs: BlobStore,
        *,
        index: ManifestIndex | None = None,
        url_prefix: str | None = None,
        single_flight: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with the resource store to read from and the blob store to write to."""
        self._resources = resources
        self._blobs = blobs
        self._index = index if index is not None else InMemoryManifestIndex()
        self._transient = InMemoryManifestIndex()
        self._url_prefix = url_prefix.rstrip("/") if url_prefix else None
        self._single_flight = single_flight
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._locks_guard = threading.Lock()
        self._key_locks: dict[tuple[str, str], _KeyLock] = {}

    def _index_for(self, definition: TransformDefinition) -> ManifestIndex:
        return self._index if definition.persist else self._transient

    @contextlib.contextmanager
    def _guard(self, key: tuple[str, str]) -> Iterator[None]:
        if not self._single_flight:
            yield
            return
        with self._locks_guard:
            entry = self._key_locks.setdefault(key, _KeyLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            # Only keys with an ensure in flight keep a lock.
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._key_locks[key]

    def _is_current(self, manifest: Manifest, revision: int) -> bool:
        return manifest.revision == revision and all(self._blobs.has_blob(ref) for ref in manifest.blobs)

    def _discard(self, manifest: Manifest) -> None:
        for ref in manifest.blobs:
            self._blobs.delete_blob(ref)

    def ensure(self, resource_id: ResourceId, definition: TransformDefinition) -> None:
        """Generate and publish the representation unless a current one exists."""
        with self._guard((resource_id.id, definition.id)):
            try:
                self._generate(resource_id, definition)
            except Exception as exc:
                self._logger.warning(
                    "Failed to ensure %s representation of %s: %s",
                    definition.kind.value,
                    resource_id.id,
                    exc,
                )

    def _generate(self, resource_id: ResourceId, definition: TransformDefinition) -> None:
        index = self._index_for(definition)
        revision = self._resources.get_current_revision(resource_id)
        existing = index.get(resource_id.id, definition.id)
        if existing is not None and self._is_current(existing, revision.number):
            self._logger.debug("Representation %s of %s already cached", definition.kind.value, resource_id.id)
            return

        with self._resources.stream(resource_id) as stream:
            data = stream.read()
        if not data:
            raise TransformUnavailableError(definition.kind.value, "source resource is empty")
        outputs = run_machine(definition, data)

        refs = tuple(
            self._blobs.put_blob(
                output,
                media_type=detect_media_type(output, default="application/octet-stream"),
                kind=REPRESENTATION_KIND,
            )
            for output in outputs
        )
        manifest = Manifest(
            resource_id=resource_id.id,
            definition_id=definition.id,
            revision=revision.number,
            blobs=refs,
        )

        if existing is None:
            if not index.publish(manifest):
                self._logger.debug("Lost publish race for %s of %s", definition.kind.value, resource_id.id)
                self._discard(manifest)
                return
        else:
            index.replace(manifest)
            self._discard(existing)
        self._logger.debug(
            "Published %s representation of %s with %d stream(s)",
            definition.kind.value,
            resource_id.id,
            len(refs),
        )

    def get(self, resource_id: ResourceId, definition: TransformDefinition) -> Representation | None:
        """Return the cached representation, or ``None``. Never generates."""
        try:
            manifest = self._index_for(definition).get(resource_id.id, definition.id)
            if manifest is None:
                return None
            revision = self._resources.get_current_revision(resource_id)
        except Exception as exc:
            self._logger.warning("Failed to read %s representation of %s: %s", definition.kind.value, resource_id.id, exc)
            return None
        if manifest.revision != revision.number:
            self._logger.debug("Cached %s of %s is stale", definition.kind.value, resource_id.id)
            return None
        return Representation(
            resource_id=manifest.resource_id,
            definition_id=manifest.definition_id,
            revision=manifest.revision,
            streams=tuple(BlobStreamResolver(self._blobs, ref) for ref in manifest.blobs),
        )

    def url_for(self, representation: Representation, index: int = 0) -> str:
        """Return a delivery URL for one stream of a representation."""
        stream = representation.streams[index]
        if isinstance(stream, UrlStreamResolver):
            return stream.url
        if isinstance(stream, BlobStreamResolver) and self._url_prefix is not None:
            return f"{self._url_prefix}/{stream.ref.id}"
        raise TransformUnavailableError("url", "no delivery URL for this representation")

    def remote_stream(
        self,
        representation: Representation,
        index: int = 0,
        *,
        timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> UrlStreamResolver:
        """Return a resolver that downloads one stream from its delivery URL."""
        return UrlStreamResolver(self.url_for(representation, index), timeout=timeout, client=client)

    def invalidate(self, resource_id: ResourceId) -> int:
        """Drop every cached representation of a resource. Return the number removed."""
        removed = 0
        for index in (self._index, self._transient):
            for manifest in index.manifests_for(resource_id.id):
                if index.delete(manifest.resource_id, manifest.definition_id) is not None:
                    self._discard(manifest)
                    removed += 1
        return removed
