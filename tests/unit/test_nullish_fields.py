"""Unit tests for the storage/form value codec."""

from __future__ import annotations

import pytest

from veto.codec.nullish_fields import FLAT_ARRAY_KEY
from veto.codec.nullish_fields import decode
from veto.codec.nullish_fields import encode
from veto.codec.nullish_fields import from_nullish_string
from veto.codec.nullish_fields import is_value_empty
from veto.codec.nullish_fields import name_to_test_id
from veto.codec.nullish_fields import to_form_format
from veto.codec.nullish_fields import to_nullish_string
from veto.codec.nullish_fields import to_submit_format
from veto.codec.nullish_fields import to_validation_format


def test_to_form_format_wraps_primitive_arrays_and_drops_empty_fields() -> None:
    encoded = to_form_format(
        {
            "name": "John",
            "scores": [0, 75, 100],
            "fax": None,
            "nickname": "",
            "active": False,
            "count": 0,
        }
    )

    assert encoded == {
        "name": "John",
        "scores": [{FLAT_ARRAY_KEY: 0}, {FLAT_ARRAY_KEY: 75}, {FLAT_ARRAY_KEY: 100}],
        "active": False,
        "count": 0,
    }


def test_to_form_format_recurses_into_object_arrays() -> None:
    encoded = to_form_format({"contacts": [{"email": "a@b.c", "phone": None, "tags": ["x"]}]})

    assert encoded == {"contacts": [{"email": "a@b.c", "tags": [{FLAT_ARRAY_KEY: "x"}]}]}


def test_to_form_format_keeps_mixed_arrays_unwrapped() -> None:
    encoded = to_form_format({"mixed": [1, {"a": None, "b": 2}]})

    assert encoded == {"mixed": [1, {"b": 2}]}


def test_to_form_format_keeps_null_entries_inside_wrappers() -> None:
    encoded = to_form_format({"tags": [None, "a"]})

    assert encoded == {"tags": [{FLAT_ARRAY_KEY: None}, {FLAT_ARRAY_KEY: "a"}]}


def test_to_form_format_does_not_mutate_input() -> None:
    fields = {"scores": [1, 2], "nested": {"fax": None}}

    to_form_format(fields)

    assert fields == {"scores": [1, 2], "nested": {"fax": None}}


def test_to_validation_format_unwraps_and_removes_empty_values() -> None:
    decoded = to_validation_format(
        {
            "scores": [{FLAT_ARRAY_KEY: 0}, {FLAT_ARRAY_KEY: 75}],
            "fax": "__NULL__",
            "nickname": "",
            "tags": [],
            "active": "__FALSE__",
            "count": "__ZERO__",
        }
    )

    assert decoded == {"scores": [0, 75], "active": False, "count": 0}


def test_to_validation_format_maps_empty_wrapped_entries_to_none() -> None:
    decoded = to_validation_format({"tags": [{FLAT_ARRAY_KEY: ""}, {FLAT_ARRAY_KEY: "a"}]})

    assert decoded == {"tags": [None, "a"]}


def test_to_validation_format_drops_keys_holding_empty_wrappers() -> None:
    decoded = to_validation_format({"single": {FLAT_ARRAY_KEY: ""}, "kept": {FLAT_ARRAY_KEY: 3}})

    assert decoded == {"kept": 3}


def test_to_validation_format_passes_none_through() -> None:
    assert to_validation_format(None) is None


def test_decode_reverses_encode_for_storage_values() -> None:
    stored = {
        "name": "Jane",
        "scores": [0, 1],
        "address": {"city": "Berlin", "zip": "10115"},
        "contacts": [{"email": "x@y.z"}],
        "active": False,
    }

    assert decode(encode(stored)) == stored


def test_to_nullish_string_and_back() -> None:
    assert to_nullish_string(None) == "__NULL__"
    assert to_nullish_string("") == "__NULL__"
    assert to_nullish_string(False) == "__FALSE__"
    assert to_nullish_string(0) == "__ZERO__"
    assert to_nullish_string("text") == "text"
    assert to_nullish_string([1, 2]) == [{FLAT_ARRAY_KEY: 1}, {FLAT_ARRAY_KEY: 2}]

    assert from_nullish_string("__NULL__") is None
    assert from_nullish_string("__FALSE__") is False
    assert from_nullish_string("__ZERO__") == 0
    assert from_nullish_string([{FLAT_ARRAY_KEY: "__ZERO__"}]) == [0]


def test_to_submit_format_removes_empty_objects_recursively() -> None:
    submitted = to_submit_format(
        {
            "address": {"street": "", "meta": {}},
            "contacts": [{}, {"email": "a@b.c"}],
            "name": "Joe",
        }
    )

    assert submitted == {"contacts": [{"email": "a@b.c"}], "name": "Joe"}


def test_to_validation_format_keeps_empty_objects_for_refinements() -> None:
    assert to_validation_format({"address": {"street": ""}}) == {"address": {}}


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, True),
        ("", True),
        ("__NULL__", True),
        ([], True),
        ({FLAT_ARRAY_KEY: ""}, True),
        ({"a": None, "b": ""}, True),
        (False, False),
        (0, False),
        ("__ZERO__", False),
        ({"a": 1}, False),
    ],
)
def test_is_value_empty(value: object, expected: bool) -> None:
    assert is_value_empty(value) is expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("email", "email"),
        ("address.city", "address_city"),
        ("tags.0.__FLAT__", "tags_0"),
        ("__FLAT__", ""),
        (["tags", 0, "__FLAT__"], "tags_0"),
        ("Straße Name", "strae_name"),
        ("Café.Größe", "cafe_groe"),
    ],
)
def test_name_to_test_id(name: object, expected: str) -> None:
    assert name_to_test_id(name) == expected
