"""PdfPageExtractor: cached PDF pages turned into an ordered list of image data URLs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from attachctx.config import DEFAULT_MAX_AI_PAGES, DEFAULT_REMOTE_TIMEOUT_SECONDS
from attachctx.encoding import SNIFF_LENGTH, sniff_image_mime, text_data_url, to_data_url
from attachctx.errors import StreamReadError
from attachctx.flavours import AI_PDF_PAGES

if TYPE_CHECKING:
    import httpx

    from attachctx.flavours import ExtractPages, Representation, RepresentationCache, StreamResolver
    from attachctx.optimizer import ImageOptimizer
    from attachctx.resources import LocatedResource

MAX_AI_PAGES = DEFAULT_MAX_AI_PAGES


def pdf_placeholder(title: str) -> str:
    """Return the one-line text data URL standing in for an unreadable PDF."""
    return text_data_url(f"PDF Document: {title}")


def _read_stream(stream: StreamResolver) -> tuple[bytes, bytes]:
    with stream.open() as handle:
        head = handle.read(SNIFF_LENGTH)
        return head, head + handle.read()


class PdfPageExtractor:
    """Turn a PDF resource into at most ``max_pages`` page images for a model.

    Pages come from the cache's page-extraction representation, in original
    order. A page whose local stream cannot be read is downloaded from its
    delivery URL with ``remote_timeout`` seconds. A page that still cannot be
    read or optimized is skipped and the next one is tried; the cap counts
    pages actually produced. When no page is produced the result is a single
    text placeholder naming the document.
    """

    def __init__(
        self,
        cache: RepresentationCache,
        optimizer: ImageOptimizer,
        *,
        definition: ExtractPages = AI_PDF_PAGES,
        max_pages: int = MAX_AI_PAGES,
        remote_timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize with the cache, the final-pass optimizer, and the page cap."""
        if max_pages < 1:
            msg = "max_pages must be >= 1."
            raise ValueError(msg)
        self._cache = cache
        self._optimizer = optimizer
        self._definition = definition
        self._max_pages = max_pages
        self._remote_timeout = remote_timeout
        self._client = client
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    @property
    def max_pages(self) -> int:
        """Return the page cap."""
        return self._max_pages

    def extract(self, resource: LocatedResource) -> list[str]:
        """Return page data URLs in page order, or a one-element text placeholder."""
        self._cache.ensure(resource.resource_id, self._definition)
        representation = self._cache.get(resource.resource_id, self._definition)
        if representation is None or not representation.streams:
            self._logger.debug("No cached pages for PDF %s, using text placeholder", resource.resource_id.id)
            return [pdf_placeholder(resource.title)]

        pages: list[str] = []
        for index in range(len(representation)):
            if len(pages) >= self._max_pages:
                self._logger.debug("PDF %s limited to %d pages", resource.resource_id.id, self._max_pages)
                break
            try:
                pages.append(self._page_data_url(representation, index))
            except Exception as exc:
                self._logger.warning("Skipping page %d of PDF %s: %s", index + 1, resource.resource_id.id, exc)

        if not pages:
            self._logger.warning("No page of PDF %s could be processed, using text placeholder", resource.resource_id.id)
            return [pdf_placeholder(resource.title)]
        return pages

    def _page_data_url(self, representation: Representation, index: int) -> str:
        try:
            head, content = _read_stream(representation.streams[index])
        except StreamReadError as exc:
            self._logger.info(
                "Page %d of %s unreadable locally (%s), downloading",
                index + 1,
                representation.resource_id,
                exc,
            )
            remote = self._cache.remote_stream(representation, index, timeout=self._remote_timeout, client=self._client)
            head, content = _read_stream(remote)
        if not content:
            msg = "empty page stream"
            raise ValueError(msg)
        optimized = self._optimizer.optimize(content, sniff_image_mime(head))
        return to_data_url(optimized.data, optimized.mime_type)
