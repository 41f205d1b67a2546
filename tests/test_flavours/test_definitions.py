"""Tests for transform definitions."""

import dataclasses

import pytest

from attachctx.flavours import (
    AI_OPTIMIZED_IMAGE,
    AI_PDF_PAGES,
    CHAT_THUMBNAIL,
    CropToSquare,
    ExtractPages,
    FitToSquare,
    TransformKind,
)


def test_kinds() -> None:
    assert CropToSquare(150, 75).kind is TransformKind.CROP_TO_SQUARE
    assert FitToSquare(1024, 85).kind is TransformKind.FIT_TO_SQUARE
    assert ExtractPages(1024, 50, 85).kind is TransformKind.EXTRACT_PAGES


def test_id_is_a_stable_content_hash() -> None:
    assert CropToSquare(150, 75).id == CropToSquare(max_size=150, quality=75).id
    assert len(CHAT_THUMBNAIL.id) == 64
    assert CHAT_THUMBNAIL.id.isalnum()


def test_id_depends_on_kind_params_and_persist() -> None:
    ids = {
        CropToSquare(150, 75).id,
        CropToSquare(150, 80).id,
        FitToSquare(150, 75).id,
        CropToSquare(150, 75, persist=False).id,
        ExtractPages(1024, 50, 85, maintain_aspect_ratio=False).id,
        ExtractPages(1024, 50, 85).id,
    }
    assert len(ids) == 6


def test_params() -> None:
    assert AI_PDF_PAGES.params == {"max_size": 1024, "max_pages": 50, "quality": 85, "maintain_aspect_ratio": True}
    assert AI_OPTIMIZED_IMAGE.params == {"max_size": 1024, "quality": 85}
    assert CHAT_THUMBNAIL.params == {"max_size": 150, "quality": 75}


@pytest.mark.parametrize(
    "factory",
    [
        lambda: CropToSquare(0, 75),
        lambda: FitToSquare(100, 0),
        lambda: FitToSquare(100, 101),
        lambda: ExtractPages(100, 0, 85),
    ],
)
def test_invalid_parameters_raise(factory: object) -> None:
    with pytest.raises(ValueError):
        factory()  # type: ignore[operator]


def test_definitions_are_frozen() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        CHAT_THUMBNAIL.max_size = 10  # type: ignore[misc]
