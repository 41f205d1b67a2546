"""Flavours: transform definitions, machines, and the representation cache."""

from attachctx.flavours._cache import RepresentationCache
from attachctx.flavours._definitions import (
    AI_OPTIMIZED_IMAGE,
    AI_PDF_PAGES,
    CHAT_THUMBNAIL,
    CropToSquare,
    ExtractPages,
    FitToSquare,
    TransformDefinition,
    TransformKind,
)
from attachctx.flavours._index import FileManifestIndex, InMemoryManifestIndex, Manifest, ManifestIndex
from attachctx.flavours._machines import run_machine
from attachctx.flavours._representation import (
    BlobStreamResolver,
    Representation,
    StreamResolver,
    UrlStreamResolver,
)

__all__ = [
    "AI_OPTIMIZED_IMAGE",
    "AI_PDF_PAGES",
    "CHAT_THUMBNAIL",
    "BlobStreamResolver",
    "CropToSquare",
    "ExtractPages",
    "FileManifestIndex",
    "FitToSquare",
    "InMemoryManifestIndex",
    "Manifest",
    "ManifestIndex",
    "Representation",
    "RepresentationCache",
    "StreamResolver",
    "TransformDefinition",
    "TransformKind",
    "UrlStreamResolver",
    "run_machine",
]
