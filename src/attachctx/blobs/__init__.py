"""BlobStore and BlobReference: binary payload storage for attachctx."""

from attachctx.blobs._file import FileBlobStore, publish_once, write_atomic
from attachctx.blobs._memory import InMemoryBlobStore
from attachctx.blobs._store import BlobEntry, BlobReference, BlobStore

__all__ = [
    "BlobEntry",
    "BlobReference",
    "BlobStore",
    "FileBlobStore",
    "InMemoryBlobStore",
    "publish_once",
    "write_atomic",
]
