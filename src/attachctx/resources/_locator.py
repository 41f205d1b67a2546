"""ResourceLocator: serialized reference to current revision, without raising."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO

from attachctx.errors import AttachctxError, ResourceNotFoundError

if TYPE_CHECKING:
    from attachctx.resources._store import ResourceId, ResourceStore, Revision


@dataclass(frozen=True, slots=True)
class LocatedResource:
    """A resolved resource: its identification, current revision, and byte access."""

    resource_id: ResourceId
    revision: Revision
    store: ResourceStore

    @property
    def title(self) -> str:
        """Return the revision title."""
        return self.revision.title

    @property
    def mime_type(self) -> str:
        """Return the revision MIME type."""
        return self.revision.mime_type

    def open(self) -> BinaryIO:
        """Open the original bytes for reading."""
        return self.store.stream(self.resource_id)

    def read(self) -> bytes:
        """Read the original bytes in full."""
        with self.open() as stream:
            return stream.read()


class ResourceLocator:
    """Resolve serialized references to their current revision.

    Absence is a value, not an error: ``resolve`` returns ``None`` for empty,
    unknown or revision-less references and for store failures.
    """

    def __init__(self, store: ResourceStore, *, logger: logging.Logger | None = None) -> None:
        """Initialize with the resource store to query."""
        self._store = store
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    @property
    def store(self) -> ResourceStore:
        """Return the underlying resource store."""
        return self._store

    def resolve(self, serialized: str | None) -> LocatedResource | None:
        """Return the located resource, or ``None`` when it cannot be found."""
        if not serialized:
            return None
        try:
            resource_id = self._store.find(serialized)
            if resource_id is None:
                self._logger.debug("Resource %s not found", serialized)
                return None
            revision = self._store.get_current_revision(resource_id)
        except ResourceNotFoundError:
            self._logger.debug("Resource %s has no current revision", serialized)
            return None
        except (AttachctxError, OSError) as exc:
            self._logger.warning("Failed to resolve resource %s: %s", serialized, exc)
            return None
        return LocatedResource(resource_id=resource_id, revision=revision, store=self._store)
