"""Tests for attachctx.serde validators."""

import pytest

from attachctx.serde import (
    as_str_object_dict,
    optional_identifier,
    optional_string,
    require_float,
    require_int,
    require_string,
)


def test_as_str_object_dict_stringifies_keys() -> None:
    assert as_str_object_dict({1: "a", "b": 2}, field_name="x") == {"1": "a", "b": 2}


def test_as_str_object_dict_rejects_non_mapping() -> None:
    with pytest.raises(TypeError, match="x must be a mapping"):
        as_str_object_dict([("a", 1)], field_name="x")


def test_optional_string() -> None:
    assert optional_string(None, field_name="x") is None
    assert optional_string("value", field_name="x") == "value"
    with pytest.raises(TypeError, match="x must be a string or None"):
        optional_string(3, field_name="x")


def test_require_string_rejects_empty() -> None:
    assert require_string("abc", field_name="x") == "abc"
    with pytest.raises(TypeError, match="non-empty string"):
        require_string("", field_name="x")


def test_require_int_rejects_bool() -> None:
    assert require_int(4, field_name="n") == 4
    with pytest.raises(TypeError, match="n must be an int"):
        require_int(True, field_name="n")
    with pytest.raises(TypeError):
        require_int("4", field_name="n")


def test_require_float_accepts_int() -> None:
    assert require_float(3, field_name="t") == 3.0
    assert isinstance(require_float(3, field_name="t"), float)
    with pytest.raises(TypeError):
        require_float(False, field_name="t")


def test_optional_identifier() -> None:
    assert optional_identifier(None, field_name="id") is None
    assert optional_identifier(7, field_name="id") == 7
    assert optional_identifier("att-7", field_name="id") == "att-7"
    with pytest.raises(TypeError, match="id must be an int, a string or None"):
        optional_identifier(True, field_name="id")
    with pytest.raises(TypeError):
        optional_identifier(1.5, field_name="id")
