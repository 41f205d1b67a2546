"""ResourceStore protocol and revision value types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

if TYPE_CHECKING:
    from attachctx.blobs import BlobReference


@dataclass(frozen=True, slots=True)
class ResourceId:
    """Identification of a stored resource; ``id`` is its serialized form."""

    id: str

    def serialize(self) -> str:
        """Return the opaque string form stored in attachment rows."""
        return self.id


@dataclass(frozen=True, slots=True)
class Revision:
    """One immutable upload of a resource."""

    resource_id: ResourceId
    number: int
    title: str
    mime_type: str
    size: int
    blob: BlobReference


@runtime_checkable
class ResourceStore(Protocol):
    """Storage service consumed by the resolution pipeline.

    ``find`` returns ``None`` for unknown references. The remaining calls
    raise ``ResourceNotFoundError`` when the resource has no revision.
    """

    def find(self, serialized: str) -> ResourceId | None:
        """Resolve a serialized reference into a ResourceId."""
        ...

    def get_current_revision(self, resource_id: ResourceId) -> Revision:
        """Return the current revision of a resource."""
        ...

    def stream(self, resource_id: ResourceId) -> BinaryIO:
        """Open the current revision's bytes for reading."""
        ...

    def src(self, resource_id: ResourceId) -> str | None:
        """Return the canonical delivery URL, or ``None`` when none can be produced."""
        ...
