"""ContentResolver: attachments to display URLs and AI-ready data URLs.

Every output is produced by an ordered list of strategies evaluated with
``first_success``: a strategy either yields a value or defers to the next
one, and only exhausting them all yields ``None``. Nothing raised inside a
strategy reaches the caller.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import quote

from attachctx._stages import first_success
from attachctx.attachments import AttachmentView, DisplayUrls
from attachctx.config import ResolverConfig
from attachctx.encoding import detect_media_type, to_data_url
from attachctx.errors import StreamReadError
from attachctx.flavours import AI_OPTIMIZED_IMAGE, CHAT_THUMBNAIL
from attachctx.optimizer import ImageOptimizer
from attachctx.pdf import PdfPageExtractor, pdf_placeholder
from attachctx.resources import ResourceLocator

if TYPE_CHECKING:
    import httpx

    from attachctx.attachments import AttachmentSource, FileType
    from attachctx.flavours import Representation, RepresentationCache
    from attachctx.resources import LocatedResource, ResourceStore

_UNKNOWN_TITLE = "Unknown"
_UNKNOWN_MIME_TYPE = "application/octet-stream"


def classify(mime_type: str | None) -> FileType:
    """Map any MIME type string onto exactly one of image, pdf, text, other."""
    essence = (mime_type or "").split(";", 1)[0].strip().lower()
    if essence.startswith("image/"):
        return "image"
    if essence == "application/pdf":
        return "pdf"
    if essence.startswith("text/"):
        return "text"
    return "other"


def select_src(
    file_type: FileType,
    *,
    preview_url: str | None,
    data_url: str | None,
    download_url: str | None,
) -> str | None:
    """Pick the URL the UI should render for an attachment.

    Images prefer the thumbnail, then the inline data URL, then the download.
    PDFs get no ``src``: the UI shows an icon and opens ``download_url``.
    """
    if file_type == "image":
        return preview_url or data_url or download_url
    if file_type == "pdf":
        return None
    return download_url


def as_content_parts(resolved: str | list[str] | None) -> list[str]:
    """Normalize a ``resolve_for_ai`` result into a list of data URLs."""
    if resolved is None:
        return []
    if isinstance(resolved, str):
        return [resolved]
    return list(resolved)


class ContentResolver:
    """Resolve attachments for the chat UI and for multimodal model requests."""

    def __init__(
        self,
        store: ResourceStore,
        cache: RepresentationCache,
        optimizer: ImageOptimizer | None = None,
        *,
        config: ResolverConfig | None = None,
        pdf_extractor: PdfPageExtractor | None = None,
        http_client: httpx.Client | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with the injected store, cache, optimizer and logger."""
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._config = config if config is not None else ResolverConfig()
        self._locator = ResourceLocator(store, logger=self._logger)
        self._cache = cache
        self._http_client = http_client
        self._optimizer = optimizer if optimizer is not None else ImageOptimizer(logger=self._logger)
        self._pdf = pdf_extractor or PdfPageExtractor(
            cache,
            self._optimizer,
            max_pages=self._config.max_ai_pages,
            remote_timeout=self._config.remote_timeout_seconds,
            client=http_client,
            logger=self._logger,
        )
        self._delivery_suffix = re.compile(rf".*/({re.escape(self._config.delivery_path)}/.+)$")

    @property
    def config(self) -> ResolverConfig:
        """Return the resolver configuration."""
        return self._config

    def locate(self, attachment: AttachmentSource) -> LocatedResource | None:
        """Resolve an attachment's resource reference to its current revision."""
        return self._locator.resolve(attachment.as_input().resource_ref)

    # --- display ---------------------------------------------------------

    def resolve_for_display(self, attachment: AttachmentSource) -> DisplayUrls:
        """Return download, preview, src and data URLs; all ``None`` when the resource is missing."""
        located = self.locate(attachment)
        if located is None:
            return DisplayUrls()
        return self._display_urls(located)

    def _display_urls(self, located: LocatedResource) -> DisplayUrls:
        file_type = classify(located.mime_type)
        download_url = self.download_url(located)
        preview_url = self.preview_url(located) if file_type == "image" else None
        data_url = self.optimized_data_url(located) if file_type == "image" else None
        return DisplayUrls(
            download_url=download_url,
            preview_url=preview_url,
            src=select_src(file_type, preview_url=preview_url, data_url=data_url, download_url=download_url),
            data_url=data_url,
        )

    def plugin_download_url(self, serialized_ref: str) -> str:
        """Return the plugin-hosted download endpoint URL for a resource."""
        return (
            f"{self._config.external_base_url}/{self._config.plugin_download_path}"
            f"?resource_id={quote(serialized_ref, safe='')}"
        )

    def download_url(self, located: LocatedResource) -> str | None:
        """Return the canonical download URL, repaired or replaced when the store's is unusable."""

        def store_src() -> str | None:
            url = located.store.src(located.resource_id)
            if not url:
                self._logger.warning("Store returned no URL for %s", located.resource_id.id)
                return None
            if self._config.bad_path_marker in url:
                match = self._delivery_suffix.match(url)
                if match is not None:
                    corrected = f"{self._config.external_base_url}/{match.group(1)}"
                    self._logger.debug("Corrected delivery URL %s -> %s", url, corrected)
                    return corrected
            return url

        return first_success(
            (
                ("store_src", store_src),
                ("plugin_download", lambda: self.plugin_download_url(located.resource_id.serialize())),
            ),
            logger=self._logger,
            subject=located.resource_id.id,
        )

    def preview_url(self, located: LocatedResource) -> str | None:
        """Return a square thumbnail URL for images, ``None`` for anything else."""
        if classify(located.mime_type) != "image":
            return None

        def thumbnail_flavour() -> str | None:
            self._cache.ensure(located.resource_id, CHAT_THUMBNAIL)
            representation = self._cache.get(located.resource_id, CHAT_THUMBNAIL)
            if representation is None or not representation.streams:
                return None
            url = self._cache.url_for(representation)
            if self._config.bad_path_marker in url:
                self._logger.debug("Thumbnail URL %s has a plugin path, skipping", url)
                return None
            return url

        def raw_delivery() -> str:
            return f"{self._config.delivery_base_url}/{located.resource_id.serialize()}"

        return first_success(
            (("thumbnail_flavour", thumbnail_flavour), ("raw_delivery", raw_delivery)),
            logger=self._logger,
            subject=located.resource_id.id,
        )

    # --- data URLs -------------------------------------------------------

    def optimized_data_url(self, located: LocatedResource) -> str | None:
        """Return the image as a data URL: cached flavour, then optimizer, then raw bytes."""

        def cached_flavour() -> str | None:
            self._cache.ensure(located.resource_id, AI_OPTIMIZED_IMAGE)
            representation = self._cache.get(located.resource_id, AI_OPTIMIZED_IMAGE)
            if representation is None or not representation.streams:
                return None
            data = self._read_representation(representation)
            if not data:
                return None
            return to_data_url(data, detect_media_type(data, default="image/jpeg") or "image/jpeg")

        def optimizer() -> str | None:
            original = located.read()
            if not original:
                return None
            optimized = self._optimizer.optimize(original, located.mime_type)
            return to_data_url(optimized.data, optimized.mime_type)

        def raw_bytes() -> str | None:
            original = located.read()
            if not original:
                return None
            return to_data_url(original, located.mime_type)

        return first_success(
            (("cached_flavour", cached_flavour), ("optimizer", optimizer), ("raw_bytes", raw_bytes)),
            logger=self._logger,
            subject=located.resource_id.id,
        )

    def _read_representation(self, representation: Representation) -> bytes:
        """Read the first stream, downloading it from its delivery URL when the local read fails."""
        try:
            return representation.read()
        except StreamReadError as exc:
            self._logger.info("Cached %s unreadable locally (%s), downloading", representation.resource_id, exc)
            remote = self._cache.remote_stream(
                representation,
                timeout=self._config.remote_timeout_seconds,
                client=self._http_client,
            )
            with remote.open() as stream:
                return stream.read()

    def resolve_for_ai(self, attachment: AttachmentSource) -> str | list[str] | None:
        """Return a data URL for images, ordered page data URLs for PDFs, ``None`` otherwise."""
        located = self.locate(attachment)
        if located is None:
            return None
        file_type = classify(located.mime_type)
        if file_type == "image":
            return self.optimized_data_url(located)
        if file_type == "pdf":
            return self.pdf_pages(located)
        return None

    def pdf_pages(self, located: LocatedResource) -> list[str]:
        """Return ordered page data URLs for a PDF, or the one-element text placeholder."""
        pages = first_success(
            (
                ("pdf_pages", lambda: self._pdf.extract(located)),
                ("pdf_placeholder", lambda: [pdf_placeholder(located.title)]),
            ),
            logger=self._logger,
            subject=located.resource_id.id,
        )
        return pages if pages is not None else [pdf_placeholder(located.title)]

    def resolve_parts_for_ai(self, attachment: AttachmentSource) -> list[str]:
        """Return ``resolve_for_ai`` as a list of content parts (empty when unresolved)."""
        return as_content_parts(self.resolve_for_ai(attachment))

    def content_as_base64(self, attachment: AttachmentSource) -> str | None:
        """Return the untouched original bytes base64-encoded, or ``None``."""
        located = self.locate(attachment)
        if located is None:
            return None
        try:
            return base64.b64encode(located.read()).decode("ascii")
        except Exception as exc:
            self._logger.warning("Failed to read attachment content of %s: %s", located.resource_id.id, exc)
            return None

    # --- views -----------------------------------------------------------

    def to_view(self, attachment: AttachmentSource) -> AttachmentView:
        """Build the attachment JSON view, using placeholders when the resource is missing."""
        source = attachment.as_input()
        located = self.locate(attachment)
        if located is None:
            mime_type = source.mime_hint or _UNKNOWN_MIME_TYPE
            return AttachmentView(
                id=source.id,
                title=source.title or _UNKNOWN_TITLE,
                size=0,
                mime_type=mime_type,
                file_type=classify(mime_type),
                urls=DisplayUrls(),
            )
        return AttachmentView(
            id=source.id,
            title=located.title,
            size=located.revision.size,
            mime_type=located.mime_type,
            file_type=classify(located.mime_type),
            urls=self._display_urls(located),
        )
