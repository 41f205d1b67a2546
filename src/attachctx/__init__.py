"""attachctx: derived representations of chat attachments for UIs and multimodal models."""

import importlib.metadata as importlib_metadata

from attachctx.attachments import (
    AttachmentInput,
    AttachmentSource,
    AttachmentView,
    BackgroundFile,
    DisplayUrls,
    FileType,
    MessageAttachment,
)
from attachctx.blobs import BlobReference, BlobStore, FileBlobStore, InMemoryBlobStore
from attachctx.config import ResolverConfig
from attachctx.context_parts import ContextResource, build_context_resources, to_image_url_parts
from attachctx.errors import (
    AttachctxError,
    BlobIntegrityError,
    BlobNotFoundError,
    ConfigurationError,
    EncodingError,
    ResourceNotFoundError,
    StreamReadError,
    TransformUnavailableError,
    UploadValidationError,
)
from attachctx.flavours import (
    AI_OPTIMIZED_IMAGE,
    AI_PDF_PAGES,
    CHAT_THUMBNAIL,
    CropToSquare,
    ExtractPages,
    FileManifestIndex,
    FitToSquare,
    InMemoryManifestIndex,
    Representation,
    RepresentationCache,
)
from attachctx.optimizer import ImageOptimizer, OptimizedImage
from attachctx.pdf import PdfPageExtractor
from attachctx.resolver import ContentResolver, classify
from attachctx.resources import LocalResourceStore, ResourceId, ResourceLocator, ResourceStore, upload_file
from attachctx.validation import validate_upload


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("attachctx")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "AI_OPTIMIZED_IMAGE",
    "AI_PDF_PAGES",
    "CHAT_THUMBNAIL",
    "AttachctxError",
    "AttachmentInput",
    "AttachmentSource",
    "AttachmentView",
    "BackgroundFile",
    "BlobIntegrityError",
    "BlobNotFoundError",
    "BlobReference",
    "BlobStore",
    "ConfigurationError",
    "ContentResolver",
    "ContextResource",
    "CropToSquare",
    "DisplayUrls",
    "EncodingError",
    "ExtractPages",
    "FileBlobStore",
    "FileManifestIndex",
    "FileType",
    "FitToSquare",
    "ImageOptimizer",
    "InMemoryBlobStore",
    "InMemoryManifestIndex",
    "LocalResourceStore",
    "MessageAttachment",
    "OptimizedImage",
    "PdfPageExtractor",
    "Representation",
    "RepresentationCache",
    "ResolverConfig",
    "ResourceId",
    "ResourceLocator",
    "ResourceNotFoundError",
    "ResourceStore",
    "StreamReadError",
    "TransformUnavailableError",
    "UploadValidationError",
    "build_context_resources",
    "classify",
    "to_image_url_parts",
    "upload_file",
    "validate_upload",
]
