"""Transform definitions: a closed set of typed, content-hashed recipes."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class TransformKind(str, Enum):
    """Machines that can produce a representation."""

    CROP_TO_SQUARE = "crop_to_square"
    FIT_TO_SQUARE = "fit_to_square"
    EXTRACT_PAGES = "extract_pages"


def _validate_common(name: str, max_size: int, quality: int) -> None:
    if max_size < 1:
        msg = f"{name}.max_size must be >= 1."
        raise ValueError(msg)
    if not 1 <= quality <= 100:
        msg = f"{name}.quality must be within 1..100."
        raise ValueError(msg)


def _definition_id(kind: TransformKind, params: dict[str, object], *, persist: bool) -> str:
    """Hash the canonical JSON form of a definition."""
    canonical = json.dumps(
        {"kind": kind.value, "params": params, "persist": persist},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class CropToSquare:
    """Centre-crop to a square and downscale to at most ``max_size`` pixels."""

    kind: ClassVar[TransformKind] = TransformKind.CROP_TO_SQUARE

    max_size: int
    quality: int
    persist: bool = True

    def __post_init__(self) -> None:
        """Reject out-of-range parameters."""
        _validate_common("CropToSquare", self.max_size, self.quality)

    @property
    def params(self) -> dict[str, object]:
        """Return the transform parameters."""
        return {"max_size": self.max_size, "quality": self.quality}

    @property
    def id(self) -> str:
        """Return the content hash identifying this definition."""
        return _definition_id(self.kind, self.params, persist=self.persist)


@dataclass(frozen=True, slots=True)
class FitToSquare:
    """Downscale to fit a ``max_size`` square, preserving aspect ratio."""

    kind: ClassVar[TransformKind] = TransformKind.FIT_TO_SQUARE

    max_size: int
    quality: int
    persist: bool = True

    def __post_init__(self) -> None:
        """Reject out-of-range parameters."""
        _validate_common("FitToSquare", self.max_size, self.quality)

    @property
    def params(self) -> dict[str, object]:
        """Return the transform parameters."""
        return {"max_size": self.max_size, "quality": self.quality}

    @property
    def id(self) -> str:
        """Return the content hash identifying this definition."""
        return _definition_id(self.kind, self.params, persist=self.persist)


@dataclass(frozen=True, slots=True)
class ExtractPages:
    """Rasterise the first ``max_pages`` pages of a PDF, one stream per page."""

    kind: ClassVar[TransformKind] = TransformKind.EXTRACT_PAGES

    max_size: int
    max_pages: int
    quality: int
    maintain_aspect_ratio: bool = True
    persist: bool = True

    def __post_init__(self) -> None:
        """Reject out-of-range parameters."""
        _validate_common("ExtractPages", self.max_size, self.quality)
        if self.max_pages < 1:
            msg = "ExtractPages.max_pages must be >= 1."
            raise ValueError(msg)

    @property
    def params(self) -> dict[str, object]:
        """Return the transform parameters."""
        return {
            "max_size": self.max_size,
            "max_pages": self.max_pages,
            "quality": self.quality,
            "maintain_aspect_ratio": self.maintain_aspect_ratio,
        }

    @property
    def id(self) -> str:
        """Return the content hash identifying this definition."""
        return _definition_id(self.kind, self.params, persist=self.persist)


TransformDefinition = CropToSquare | FitToSquare | ExtractPages

CHAT_THUMBNAIL = CropToSquare(max_size=150, quality=75)
AI_OPTIMIZED_IMAGE = FitToSquare(max_size=1024, quality=85)
AI_PDF_PAGES = ExtractPages(max_size=1024, max_pages=50, quality=85, maintain_aspect_ratio=True)
