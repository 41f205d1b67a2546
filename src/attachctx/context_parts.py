"""Assemble resolved attachments into ordered context entries and model content parts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from attachctx.encoding import data_url_media_type
from attachctx.resolver import classify

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from attachctx.attachments import AttachmentSource
    from attachctx.resolver import ContentResolver

ContextKind = Literal["image_file", "pdf_page"]


@dataclass(frozen=True, slots=True)
class ContextResource:
    """One image handed to a model: a whole image file or a single PDF page."""

    kind: ContextKind
    id: str
    title: str
    mime_type: str
    url: str
    page_number: int | None = None
    source_file: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary, omitting page fields for image files."""
        out: dict[str, object] = {
            "kind": self.kind,
            "id": self.id,
            "title": self.title,
            "mime_type": self.mime_type,
            "url": self.url,
        }
        if self.page_number is not None:
            out["page_number"] = self.page_number
        if self.source_file is not None:
            out["source_file"] = self.source_file
        return out


def build_context_resources(
    sources: Iterable[AttachmentSource],
    resolver: ContentResolver,
) -> list[ContextResource]:
    """Resolve sources in order into context entries.

    Images become one ``image_file`` entry; PDFs become one ``pdf_page`` entry
    per page. Sources that do not resolve, and non-visual files, are skipped.
    """
    entries: list[ContextResource] = []
    for source in sources:
        located = resolver.locate(source)
        if located is None:
            continue
        prefix = source.context_prefix
        resource = located.resource_id.id
        file_type = classify(located.mime_type)

        if file_type == "image":
            url = resolver.optimized_data_url(located)
            if url is None:
                continue
            entries.append(
                ContextResource(
                    kind="image_file",
                    id=f"{prefix}-img-{resource}",
                    title=located.title,
                    mime_type=data_url_media_type(url) or located.mime_type,
                    url=url,
                )
            )
        elif file_type == "pdf":
            for number, url in enumerate(resolver.pdf_pages(located), start=1):
                entries.append(
                    ContextResource(
                        kind="pdf_page",
                        id=f"{prefix}-pdf-{resource}-p{number}",
                        title=f"{located.title} (Page {number})",
                        mime_type=data_url_media_type(url) or "image/png",
                        url=url,
                        page_number=number,
                        source_file=located.title,
                    )
                )
    return entries


def to_image_url_parts(entries: Sequence[ContextResource]) -> list[dict[str, object]]:
    """Convert context entries into ``image_url`` content parts for a chat-completions request."""
    return [{"type": "image_url", "image_url": {"url": entry.url}} for entry in entries]
