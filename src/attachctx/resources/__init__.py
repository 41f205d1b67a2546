"""Stored resources: revisions, the store protocol, and the locator."""

from attachctx.resources._helpers import upload_file
from attachctx.resources._local import LocalResourceStore, guess_mime_type
from attachctx.resources._locator import LocatedResource, ResourceLocator
from attachctx.resources._store import ResourceId, ResourceStore, Revision

__all__ = [
    "LocalResourceStore",
    "LocatedResource",
    "ResourceId",
    "ResourceLocator",
    "ResourceStore",
    "Revision",
    "guess_mime_type",
    "upload_file",
]
