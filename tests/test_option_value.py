from __future__ import annotations

import pytest

from taskos.ledger.option_value import (
    OptionShape,
    classify_optional,
    decode_optional_int,
    decode_optional_string,
    dig,
    first_non_empty,
    safe_int,
    safe_str,
)


@pytest.mark.parametrize(
    "raw,shape,text",
    [
        (None, OptionShape.ABSENT, ""),
        ("blob-1", OptionShape.PLAIN, "blob-1"),
        (["blob-2"], OptionShape.LIST, "blob-2"),
        ([], OptionShape.LIST, ""),
        ({"vec": ["blob-3"]}, OptionShape.VEC_WRAPPER, "blob-3"),
        ({"vec": []}, OptionShape.VEC_WRAPPER, ""),
        ({"fields": {"some": "blob-4"}}, OptionShape.SOME_SCALAR, "blob-4"),
        ({"fields": {"some": {"fields": {"bytes": "blob-5"}}}}, OptionShape.SOME_BYTES, "blob-5"),
        ({}, OptionShape.UNKNOWN, ""),
        (42, OptionShape.UNKNOWN, ""),
    ],
)
def test_each_wire_shape_decodes(raw, shape, text) -> None:
    assert classify_optional(raw) == (shape, text)


def test_null_and_empty_object_decode_to_empty_string() -> None:
    assert decode_optional_string(None) == ""
    assert decode_optional_string({}) == ""


def test_vec_wrapper_wins_over_variant_wrapper() -> None:
    raw = {"vec": ["from-vec"], "fields": {"some": "from-some"}}
    assert classify_optional(raw) == (OptionShape.VEC_WRAPPER, "from-vec")


def test_some_bytes_as_byte_array() -> None:
    raw = {"fields": {"some": {"fields": {"bytes": list(b"hello")}}}}
    assert decode_optional_string(raw) == "hello"


def test_some_bytes_empty_is_unknown() -> None:
    raw = {"fields": {"some": {"fields": {"bytes": ""}}}}
    assert classify_optional(raw) == (OptionShape.UNKNOWN, "")


def test_decode_optional_int() -> None:
    assert decode_optional_int(7) == 7
    assert decode_optional_int("12") == 12
    assert decode_optional_int({"vec": ["5"]}) == 5
    assert decode_optional_int({"vec": []}, default=3) == 3
    assert decode_optional_int(True, default=9) == 9


def test_first_non_empty_keeps_argument_order() -> None:
    assert first_non_empty(None, {"vec": []}, "b", "c") == "b"
    assert first_non_empty({"vec": ["a"]}, "b") == "a"
    assert first_non_empty(None, "") == ""


def test_safe_int_soft_fails() -> None:
    assert safe_int("10") == 10
    assert safe_int(" 4 ") == 4
    assert safe_int("abc", 1) == 1
    assert safe_int("", 2) == 2
    assert safe_int(None, 3) == 3
    assert safe_int(True, 5) == 5
    assert safe_int(1.9) == 1


def test_safe_str_defaults() -> None:
    assert safe_str(None, "x") == "x"
    assert safe_str("", "x") == "x"
    assert safe_str(False, "x") == "x"
    assert safe_str(0) == "0"
    assert safe_str({"vec": ["y"]}) == "y"
    assert safe_str({"vec": []}, "d") == "d"


def test_dig() -> None:
    obj = {"a": {"b": {"c": 1}}}
    assert dig(obj, "a", "b", "c") == 1
    assert dig(obj, "a", "x", "c") is None
    assert dig("not-a-dict", "a") is None


def test_struct_element_in_vector_has_no_text() -> None:
    assert decode_optional_string([{"a": 1}]) == ""
    assert decode_optional_string({"vec": [{"fields": {"x": "1"}}]}) == ""
    assert decode_optional_string([["nested", "list"]]) == ""
    assert decode_optional_string([[104, 105]]) == "hi"
    assert safe_str([{"a": 1}], "fallback") == "fallback"
