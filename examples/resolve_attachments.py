"""Resolve an image and a PDF attachment for the chat UI and for a multimodal model."""

import logging
import tempfile
from pathlib import Path

import pymupdf
from PIL import Image

from attachctx import (
    AttachmentInput,
    BackgroundFile,
    ContentResolver,
    FileBlobStore,
    FileManifestIndex,
    LocalResourceStore,
    RepresentationCache,
    ResolverConfig,
    build_context_resources,
    to_image_url_parts,
    upload_file,
    validate_upload,
)

logging.basicConfig(level=logging.INFO)

with tempfile.TemporaryDirectory() as tmpdir:
    root = Path(tmpdir)

    # ---- Sample files ----
    photo = root / "whiteboard.png"
    Image.new("RGB", (1600, 1200), (230, 230, 210)).save(photo, format="PNG")

    document = pymupdf.open()
    for number in range(1, 4):
        document.new_page().insert_text((72, 72), f"Lecture notes, page {number}")
    slides = root / "lecture.pdf"
    slides.write_bytes(document.tobytes())
    document.close()

    for path in (photo, slides):
        mime_type = validate_upload(path.name, path.stat().st_size, data=path.read_bytes())
        print(f"[validate] {path.name}: {mime_type}")

    # ---- Wiring ----
    config = ResolverConfig(external_base_url="https://lms.example.org")
    blobs = FileBlobStore(root / "blobs")
    resources = LocalResourceStore(blobs, base_url=config.external_base_url, delivery_path=config.delivery_path)
    cache = RepresentationCache(
        resources,
        blobs,
        index=FileManifestIndex(root / "manifests"),
        url_prefix=f"{config.external_base_url}/thumbs",
    )
    resolver = ContentResolver(resources, cache, config=config)

    photo_id = upload_file(resources, photo)
    slides_id = upload_file(resources, slides)

    # ---- Display ----
    view = resolver.to_view(AttachmentInput(id=1, resource_ref=photo_id.serialize())).to_dict()
    print(f"\n[view] {view['title']} ({view['file_type']}, {view['size']} bytes)")
    print(f"  download_url = {view['download_url']}")
    print(f"  preview_url  = {view['preview_url']}")
    print(f"  data_url     = {str(view['data_url'])[:48]}...")

    missing = resolver.resolve_for_display(AttachmentInput(id=2, resource_ref="no-such-resource"))
    print(f"  missing resource -> {missing}")

    # ---- AI context ----
    pages = resolver.resolve_parts_for_ai(BackgroundFile(file_id=slides_id.serialize()))
    print(f"\n[ai] {slides.name}: {len(pages)} page(s)")

    entries = build_context_resources(
        [AttachmentInput(id=1, resource_ref=photo_id.serialize()), BackgroundFile(file_id=slides_id.serialize())],
        resolver,
    )
    for entry in entries:
        print(f"  {entry.id}: {entry.title} [{entry.mime_type}]")

    content = [{"type": "text", "text": "Summarize the attached material."}, *to_image_url_parts(entries)]
    print(f"  request content parts = {len(content)}")

    # ---- Cache reuse ----
    # A second resolver over the same directories finds the published representations.
    reopened = RepresentationCache(resources, FileBlobStore(root / "blobs"), index=FileManifestIndex(root / "manifests"))
    thumbnails = len(blobs.list_blobs(kind="representation"))
    ContentResolver(resources, reopened, config=config).resolve_for_display(
        AttachmentInput(id=1, resource_ref=photo_id.serialize())
    )
    after = len(FileBlobStore(root / "blobs").list_blobs(kind="representation"))
    print(f"\n[cache] representation blobs before={thumbnails}, after={after}")
