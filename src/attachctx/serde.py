"""Shared validation utilities for to_dict / from_dict round-trips."""

from collections.abc import Mapping


def as_str_object_dict(value: object, *, field_name: str) -> dict[str, object]:
    """Validate and normalize a mapping value into ``dict[str, object]``."""
    if not isinstance(value, Mapping):
        msg = f"{field_name} must be a mapping."
        raise TypeError(msg)
    return {str(key): item for key, item in value.items()}


def optional_string(value: object, *, field_name: str) -> str | None:
    """Validate an optional string field."""
    if value is None:
        return None
    if not isinstance(value, str):
        msg = f"{field_name} must be a string or None."
        raise TypeError(msg)
    return value


def require_string(value: object, *, field_name: str) -> str:
    """Validate a required, non-empty string field."""
    if not isinstance(value, str) or not value:
        msg = f"{field_name} must be a non-empty string."
        raise TypeError(msg)
    return value


def require_int(value: object, *, field_name: str) -> int:
    """Validate a required integer field (rejects booleans)."""
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"{field_name} must be an int."
        raise TypeError(msg)
    return value


def require_float(value: object, *, field_name: str) -> float:
    """Validate a required float field (accepts ints, rejects booleans)."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        msg = f"{field_name} must be a float."
        raise TypeError(msg)
    return float(value)


def optional_identifier(value: object, *, field_name: str) -> int | str | None:
    """Validate an optional record identifier (int or string, rejects booleans)."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        msg = f"{field_name} must be an int, a string or None."
        raise TypeError(msg)
    return value
