"""Attachment inputs and the JSON view produced for the chat UI."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Literal

from attachctx.serde import optional_identifier, optional_string

if TYPE_CHECKING:
    from datetime import datetime

FileType = Literal["image", "pdf", "text", "other"]


@dataclass(frozen=True, slots=True)
class AttachmentInput:
    """Minimal view of an attachment consumed by the resolver."""

    id: int | str | None
    resource_ref: str | None
    mime_hint: str | None = None
    title: str | None = None

    # Prefix for ids of AI context entries built from this attachment.
    context_prefix: ClassVar[str] = "att"

    def as_input(self) -> AttachmentInput:
        """Return self; lets inputs be mixed with the richer variants below."""
        return self

    def to_dict(self) -> dict[str, object]:
        """Serialize AttachmentInput to a plain dictionary."""
        return {
            "id": self.id,
            "resource_ref": self.resource_ref,
            "mime_hint": self.mime_hint,
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> AttachmentInput:
        """Deserialize AttachmentInput from a plain dictionary."""
        return cls(
            id=optional_identifier(value.get("id"), field_name="AttachmentInput.id"),
            resource_ref=optional_string(value.get("resource_ref"), field_name="AttachmentInput.resource_ref"),
            mime_hint=optional_string(value.get("mime_hint"), field_name="AttachmentInput.mime_hint"),
            title=optional_string(value.get("title"), field_name="AttachmentInput.title"),
        )


@dataclass(frozen=True, slots=True)
class MessageAttachment:
    """A file uploaded into a chat message, as persisted by the chat store."""

    id: int
    message_id: int | None
    chat_id: str | None
    user_id: int | None
    resource_id: str | None
    timestamp: datetime | None = None

    context_prefix: ClassVar[str] = "att"

    def as_input(self) -> AttachmentInput:
        """Return the resolver's view of this attachment."""
        return AttachmentInput(id=self.id, resource_ref=self.resource_id)


@dataclass(frozen=True, slots=True)
class BackgroundFile:
    """A file configured as standing context for a chat, addressed by its resource reference."""

    file_id: str
    title: str | None = None

    context_prefix: ClassVar[str] = "bg"

    def as_input(self) -> AttachmentInput:
        """Return the resolver's view of this file."""
        return AttachmentInput(id=self.file_id, resource_ref=self.file_id, title=self.title)


AttachmentSource = AttachmentInput | MessageAttachment | BackgroundFile


@dataclass(frozen=True, slots=True)
class DisplayUrls:
    """URLs the UI uses to show an attachment."""

    download_url: str | None = None
    preview_url: str | None = None
    src: str | None = None
    data_url: str | None = None


@dataclass(frozen=True, slots=True)
class AttachmentView:
    """Attachment metadata and URLs, serialized for API responses."""

    id: int | str | None
    title: str
    size: int
    mime_type: str
    file_type: FileType
    urls: DisplayUrls

    @property
    def is_image(self) -> bool:
        """Return whether the attachment is classified as an image."""
        return self.file_type == "image"

    def to_dict(self) -> dict[str, object]:
        """Serialize to the JSON shape consumed by the chat UI."""
        return {
            "id": self.id,
            "title": self.title,
            "filename": self.title,
            "size": self.size,
            "mime_type": self.mime_type,
            "file_type": self.file_type,
            "is_image": self.is_image,
            "download_url": self.urls.download_url,
            "preview_url": self.urls.preview_url,
            "thumbnail_url": self.urls.preview_url,
            "src": self.urls.src,
            "data_url": self.urls.data_url,
        }
