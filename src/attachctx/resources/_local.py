"""LocalResourceStore: revisioned resources kept in a BlobStore."""

from __future__ import annotations

import io
import mimetypes
import threading
import uuid
from typing import TYPE_CHECKING, BinaryIO

from attachctx.config import DEFAULT_DELIVERY_PATH
from attachctx.encoding import detect_media_type
from attachctx.errors import BlobNotFoundError, ResourceNotFoundError, StreamReadError
from attachctx.resources._store import ResourceId, Revision

if TYPE_CHECKING:
    from attachctx.blobs import BlobStore

_FALLBACK_MIME_TYPE = "application/octet-stream"


def guess_mime_type(title: str, data: bytes) -> str:
    """Guess a MIME type from the file title, then from magic numbers."""
    guessed, _ = mimetypes.guess_type(title)
    if guessed:
        return guessed
    return detect_media_type(data, default=_FALLBACK_MIME_TYPE) or _FALLBACK_MIME_TYPE


class LocalResourceStore:
    """Resource store keeping revision metadata in memory and bytes in a BlobStore.

    Each upload creates a resource with revision 1; ``add_revision`` replaces the
    current revision. Delivery URLs have the form ``<base_url>/<delivery_path>/<id>``.
    """

    def __init__(
        self,
        blobs: BlobStore,
        *,
        base_url: str = "http://localhost",
        delivery_path: str = DEFAULT_DELIVERY_PATH,
    ) -> None:
        """Initialize with the blob backend and the URL layout used by ``src``."""
        self._blobs = blobs
        self._base_url = base_url.rstrip("/")
        self._delivery_path = delivery_path.strip("/")
        self._lock = threading.Lock()
        self._revisions: dict[str, list[Revision]] = {}

    @property
    def blobs(self) -> BlobStore:
        """Return the underlying blob store."""
        return self._blobs

    def upload(self, data: bytes, *, title: str, mime_type: str | None = None) -> ResourceId:
        """Store a new resource and return its identification."""
        resource_id = ResourceId(uuid.uuid4().hex)
        with self._lock:
            self._revisions[resource_id.id] = []
        self.add_revision(resource_id, data, title=title, mime_type=mime_type)
        return resource_id

    def add_revision(
        self,
        resource_id: ResourceId,
        data: bytes,
        *,
        title: str | None = None,
        mime_type: str | None = None,
    ) -> Revision:
        """Append a revision, inheriting the title of the previous one when omitted."""
        history = self._revisions.get(resource_id.id)
        if history is None:
            raise ResourceNotFoundError(resource_id.id)
        previous = history[-1] if history else None
        if title is None:
            title = previous.title if previous is not None else resource_id.id
        if mime_type is None:
            mime_type = guess_mime_type(title, data)

        blob = self._blobs.put_blob(data, media_type=mime_type, kind="original")
        with self._lock:
            revision = Revision(
                resource_id=resource_id,
                number=len(history) + 1,
                title=title,
                mime_type=mime_type,
                size=len(data),
                blob=blob,
            )
            history.append(revision)
        return revision

    def remove(self, resource_id: ResourceId) -> bool:
        """Delete a resource and all of its revisions."""
        with self._lock:
            history = self._revisions.pop(resource_id.id, None)
        if history is None:
            return False
        for revision in history:
            self._blobs.delete_blob(revision.blob)
        return True

    def find(self, serialized: str) -> ResourceId | None:
        """Resolve a serialized reference into a ResourceId."""
        if serialized not in self._revisions:
            return None
        return ResourceId(serialized)

    def get_current_revision(self, resource_id: ResourceId) -> Revision:
        """Return the latest revision of a resource."""
        history = self._revisions.get(resource_id.id)
        if not history:
            raise ResourceNotFoundError(resource_id.id)
        return history[-1]

    def stream(self, resource_id: ResourceId) -> BinaryIO:
        """Open the current revision's bytes for reading."""
        revision = self.get_current_revision(resource_id)
        try:
            data = self._blobs.get_blob(revision.blob)
        except BlobNotFoundError as exc:
            raise StreamReadError(revision.blob.id, "payload missing from blob store") from exc
        return io.BytesIO(data)

    def src(self, resource_id: ResourceId) -> str | None:
        """Return the delivery URL of the resource's current revision."""
        if resource_id.id not in self._revisions:
            return None
        return f"{self._base_url}/{self._delivery_path}/{resource_id.id}"
