"""Helper functions for resource uploads."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from attachctx.resources._local import LocalResourceStore
    from attachctx.resources._store import ResourceId


def upload_file(
    store: LocalResourceStore,
    path: str | Path,
    *,
    title: str | None = None,
    mime_type: str | None = None,
) -> ResourceId:
    """Store a file from disk as a new resource.

    The title defaults to the file name; the MIME type is guessed from the
    title and, failing that, from the file's magic numbers.
    """
    path = Path(path)
    return store.upload(path.read_bytes(), title=title or path.name, mime_type=mime_type)
