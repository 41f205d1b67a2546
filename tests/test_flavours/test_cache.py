"""Tests for RepresentationCache."""

import io
import logging
import threading
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

import attachctx.flavours._cache as cache_module
from attachctx.blobs import FileBlobStore, InMemoryBlobStore
from attachctx.errors import TransformUnavailableError
from attachctx.flavours import (
    AI_PDF_PAGES,
    CHAT_THUMBNAIL,
    FileManifestIndex,
    FitToSquare,
    InMemoryManifestIndex,
    Manifest,
    Representation,
    RepresentationCache,
    UrlStreamResolver,
)
from attachctx.resources import LocalResourceStore


def _derived_count(blobs: InMemoryBlobStore | FileBlobStore) -> int:
    return len(blobs.list_blobs(kind="representation"))


def test_get_before_ensure_is_missing(resources: LocalResourceStore, cache: RepresentationCache) -> None:
    resource_id = resources.upload(b"data", title="a.png")
    assert cache.get(resource_id, CHAT_THUMBNAIL) is None


def test_ensure_then_get(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    png_bytes: Callable[..., bytes],
) -> None:
    resource_id = resources.upload(png_bytes(400, 300), title="photo.png")
    cache.ensure(resource_id, CHAT_THUMBNAIL)

    representation = cache.get(resource_id, CHAT_THUMBNAIL)
    assert representation is not None
    assert representation.definition_id == CHAT_THUMBNAIL.id
    assert representation.revision == 1
    assert len(representation) == 1
    assert Image.open(io.BytesIO(representation.read())).size == (150, 150)


def test_ensure_is_idempotent(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    blob_store: InMemoryBlobStore,
    png_bytes: Callable[..., bytes],
) -> None:
    resource_id = resources.upload(png_bytes(), title="photo.png")
    cache.ensure(resource_id, CHAT_THUMBNAIL)
    first = cache.get(resource_id, CHAT_THUMBNAIL)
    cache.ensure(resource_id, CHAT_THUMBNAIL)
    second = cache.get(resource_id, CHAT_THUMBNAIL)

    assert first == second
    assert _derived_count(blob_store) == 1


def test_pdf_pages_are_cached_in_order(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    pdf_bytes: Callable[..., bytes],
) -> None:
    resource_id = resources.upload(pdf_bytes(3), title="doc.pdf")
    cache.ensure(resource_id, AI_PDF_PAGES)
    representation = cache.get(resource_id, AI_PDF_PAGES)
    assert representation is not None
    assert len(representation) == 3
    assert all(representation.read(index)[:3] == b"\xff\xd8\xff" for index in range(3))


def test_new_revision_makes_entry_stale_and_ensure_regenerates(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    blob_store: InMemoryBlobStore,
    png_bytes: Callable[..., bytes],
) -> None:
    resource_id = resources.upload(png_bytes(300, 300), title="photo.png")
    cache.ensure(resource_id, CHAT_THUMBNAIL)
    old = cache.get(resource_id, CHAT_THUMBNAIL)
    assert old is not None

    resources.add_revision(resource_id, png_bytes(40, 40))
    assert cache.get(resource_id, CHAT_THUMBNAIL) is None

    cache.ensure(resource_id, CHAT_THUMBNAIL)
    fresh = cache.get(resource_id, CHAT_THUMBNAIL)
    assert fresh is not None
    assert fresh.revision == 2
    assert Image.open(io.BytesIO(fresh.read())).size == (40, 40)
    assert _derived_count(blob_store) == 1


def test_ensure_failure_is_logged_not_raised(
    resources: LocalResourceStore,
    blob_store: InMemoryBlobStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    cache = RepresentationCache(resources, blob_store, logger=logging.getLogger("test.cache"))
    resource_id = resources.upload(b"not an image", title="broken.png")
    with caplog.at_level(logging.WARNING, logger="test.cache"):
        cache.ensure(resource_id, CHAT_THUMBNAIL)
    assert cache.get(resource_id, CHAT_THUMBNAIL) is None
    assert "crop_to_square" in caplog.text
    assert _derived_count(blob_store) == 0


def test_empty_source_yields_no_representation(resources: LocalResourceStore, cache: RepresentationCache) -> None:
    resource_id = resources.upload(b"", title="empty.png", mime_type="image/png")
    cache.ensure(resource_id, CHAT_THUMBNAIL)
    assert cache.get(resource_id, CHAT_THUMBNAIL) is None


def test_transient_definitions_are_not_written_to_the_index(
    tmp_path: Path,
    resources: LocalResourceStore,
    blob_store: InMemoryBlobStore,
    png_bytes: Callable[..., bytes],
) -> None:
    index = FileManifestIndex(tmp_path)
    cache = RepresentationCache(resources, blob_store, index=index)
    transient = FitToSquare(64, 80, persist=False)
    resource_id = resources.upload(png_bytes(), title="photo.png")

    cache.ensure(resource_id, transient)
    assert cache.get(resource_id, transient) is not None
    assert not list(tmp_path.rglob("*.json"))


def test_file_index_is_shared_between_caches(
    tmp_path: Path,
    resources: LocalResourceStore,
    png_bytes: Callable[..., bytes],
) -> None:
    blobs = FileBlobStore(tmp_path / "blobs")
    resource_id = resources.upload(png_bytes(), title="photo.png")
    first = RepresentationCache(resources, blobs, index=FileManifestIndex(tmp_path / "index"))
    second = RepresentationCache(resources, blobs, index=FileManifestIndex(tmp_path / "index"))

    first.ensure(resource_id, CHAT_THUMBNAIL)
    second.ensure(resource_id, CHAT_THUMBNAIL)

    assert _derived_count(blobs) == 1
    assert second.get(resource_id, CHAT_THUMBNAIL) == first.get(resource_id, CHAT_THUMBNAIL)


class _RacingIndex(InMemoryManifestIndex):
    """Index where another writer publishes just before this one."""

    def publish(self, manifest: Manifest) -> bool:
        rival = Manifest(
            resource_id=manifest.resource_id,
            definition_id=manifest.definition_id,
            revision=manifest.revision,
            blobs=(),
        )
        InMemoryManifestIndex.publish(self, rival)
        return InMemoryManifestIndex.publish(self, manifest)


def test_losing_the_publish_race_discards_own_blobs(
    resources: LocalResourceStore,
    blob_store: InMemoryBlobStore,
    png_bytes: Callable[..., bytes],
) -> None:
    index = _RacingIndex()
    cache = RepresentationCache(resources, blob_store, index=index)
    resource_id = resources.upload(png_bytes(), title="photo.png")

    cache.ensure(resource_id, CHAT_THUMBNAIL)

    published = index.get(resource_id.id, CHAT_THUMBNAIL.id)
    assert published is not None
    assert published.blobs == ()
    assert _derived_count(blob_store) == 0


def test_single_flight_runs_the_machine_once(
    monkeypatch: pytest.MonkeyPatch,
    resources: LocalResourceStore,
    cache: RepresentationCache,
    png_bytes: Callable[..., bytes],
) -> None:
    calls: list[str] = []
    real_run_machine = cache_module.run_machine

    def counting_run_machine(definition: object, data: bytes) -> tuple[bytes, ...]:
        calls.append("run")
        return real_run_machine(definition, data)  # type: ignore[arg-type]

    monkeypatch.setattr(cache_module, "run_machine", counting_run_machine)
    resource_id = resources.upload(png_bytes(), title="photo.png")
    threads = [threading.Thread(target=cache.ensure, args=(resource_id, CHAT_THUMBNAIL)) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == ["run"]
    assert cache.get(resource_id, CHAT_THUMBNAIL) is not None


def test_url_for_blob_streams(
    resources: LocalResourceStore,
    blob_store: InMemoryBlobStore,
    png_bytes: Callable[..., bytes],
) -> None:
    resource_id = resources.upload(png_bytes(), title="photo.png")
    with_prefix = RepresentationCache(resources, blob_store, url_prefix="https://lms.example.org/thumbs/")
    with_prefix.ensure(resource_id, CHAT_THUMBNAIL)
    representation = with_prefix.get(resource_id, CHAT_THUMBNAIL)
    assert representation is not None

    blob_id = representation.streams[0].ref.id  # type: ignore[attr-defined]
    assert with_prefix.url_for(representation) == f"https://lms.example.org/thumbs/{blob_id}"

    without_prefix = RepresentationCache(resources, blob_store)
    with pytest.raises(TransformUnavailableError):
        without_prefix.url_for(representation)


def test_url_for_url_streams(cache: RepresentationCache) -> None:
    representation = Representation("res", "def", 1, (UrlStreamResolver("https://cdn.example.org/p1.png"),))
    assert cache.url_for(representation) == "https://cdn.example.org/p1.png"


def test_invalidate_drops_entries_and_blobs(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    blob_store: InMemoryBlobStore,
    png_bytes: Callable[..., bytes],
) -> None:
    resource_id = resources.upload(png_bytes(), title="photo.png")
    transient = FitToSquare(64, 80, persist=False)
    cache.ensure(resource_id, CHAT_THUMBNAIL)
    cache.ensure(resource_id, transient)

    assert cache.invalidate(resource_id) == 2
    assert cache.get(resource_id, CHAT_THUMBNAIL) is None
    assert cache.get(resource_id, transient) is None
    assert _derived_count(blob_store) == 0
    assert cache.invalidate(resource_id) == 0


def test_ensure_absorbs_errors_outside_the_library_hierarchy(
    monkeypatch: pytest.MonkeyPatch,
    resources: LocalResourceStore,
    cache: RepresentationCache,
    pdf_bytes: Callable[..., bytes],
) -> None:
    class FormatError(Exception):
        pass

    def failing_run_machine(definition: object, data: bytes) -> tuple[bytes, ...]:
        msg = "malformed page tree"
        raise FormatError(msg)

    monkeypatch.setattr(cache_module, "run_machine", failing_run_machine)
    resource_id = resources.upload(pdf_bytes(2), title="doc.pdf")
    cache.ensure(resource_id, AI_PDF_PAGES)
    assert cache.get(resource_id, AI_PDF_PAGES) is None


def test_corrupt_image_is_absorbed(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    blob_store: InMemoryBlobStore,
    corrupt_png_bytes: bytes,
) -> None:
    resource_id = resources.upload(corrupt_png_bytes, title="scan.png", mime_type="image/png")
    cache.ensure(resource_id, CHAT_THUMBNAIL)
    assert cache.get(resource_id, CHAT_THUMBNAIL) is None
    assert _derived_count(blob_store) == 0


def test_key_locks_are_released_after_ensure(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    png_bytes: Callable[..., bytes],
) -> None:
    for index in range(5):
        resource_id = resources.upload(png_bytes(), title=f"photo-{index}.png")
        cache.ensure(resource_id, CHAT_THUMBNAIL)
    cache.ensure(resources.upload(b"not an image", title="broken.png"), CHAT_THUMBNAIL)
    assert cache._key_locks == {}


def test_remote_stream_targets_delivery_url(
    resources: LocalResourceStore,
    cache: RepresentationCache,
    png_bytes: Callable[..., bytes],
) -> None:
    resource_id = resources.upload(png_bytes(), title="photo.png")
    cache.ensure(resource_id, CHAT_THUMBNAIL)
    representation = cache.get(resource_id, CHAT_THUMBNAIL)
    assert representation is not None

    remote = cache.remote_stream(representation, timeout=4.0)
    assert isinstance(remote, UrlStreamResolver)
    assert remote.url == cache.url_for(representation)
    assert remote.timeout == 4.0
