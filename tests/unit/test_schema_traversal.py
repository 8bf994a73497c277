"""Unit tests for schema path traversal over serialized schemas."""

from __future__ import annotations

import pytest

from veto.core.errors import SchemaPathError
from veto.core.errors import SchemaSerializationError
from veto.introspection.serializer import SchemaKind
from veto.introspection.serializer import resolve_node
from veto.introspection.traversal import check_serialized_schema_path
from veto.introspection.traversal import is_index_segment
from veto.introspection.traversal import is_required_node
from veto.introspection.traversal import normalize_path
from veto.introspection.traversal import traverse_schema_path

USER_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "required": ["name", "tags", "address", "pet"],
    "properties": {
        "name": {"type": "string"},
        "nickname": {"type": "string"},
        "fax": {"anyOf": [{"type": "string"}, {"type": "null"}]},
        "tags": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        "notes": {"type": "array", "items": {"type": "string"}},
        "address": {"$ref": "#/$defs/Address"},
        "pet": {
            "oneOf": [{"$ref": "#/$defs/Cat"}, {"$ref": "#/$defs/Dog"}],
            "discriminator": {
                "propertyName": "kind",
                "mapping": {"cat": "#/$defs/Cat", "dog": "#/$defs/Dog"},
            },
        },
        "scores": {"type": "object", "additionalProperties": {"type": "integer"}},
        "profile": {"allOf": [{"$ref": "#/$defs/Names"}, {"$ref": "#/$defs/Ages"}]},
    },
    "$defs": {
        "Address": {
            "type": "object",
            "additionalProperties": False,
            "required": ["city"],
            "properties": {"city": {"type": "string"}, "zip": {"type": "string"}},
        },
        "Cat": {
            "type": "object",
            "additionalProperties": False,
            "required": ["kind", "lives"],
            "properties": {"kind": {"const": "cat"}, "lives": {"type": "integer"}},
        },
        "Dog": {
            "type": "object",
            "additionalProperties": False,
            "required": ["kind"],
            "properties": {"kind": {"const": "dog"}, "lives": {"type": "integer"}},
        },
        "Names": {
            "type": "object",
            "additionalProperties": False,
            "required": ["first"],
            "properties": {"first": {"type": "string"}},
        },
        "Ages": {
            "type": "object",
            "additionalProperties": False,
            "required": ["age"],
            "properties": {"age": {"type": "integer"}},
        },
    },
}

TREE_SCHEMA = {
    "$ref": "#/$defs/Node",
    "$defs": {
        "Node": {
            "type": "object",
            "additionalProperties": False,
            "required": ["label"],
            "properties": {
                "label": {"type": "string"},
                "children": {"type": "array", "items": {"$ref": "#/$defs/Node"}},
            },
        }
    },
}


def _required(path: object) -> bool:
    return check_serialized_schema_path(USER_SCHEMA, is_required_node, path)


def test_required_and_optional_fields() -> None:
    assert _required("name") is True
    assert _required("nickname") is False
    assert _required("fax") is False
    assert _required("address.city") is True
    assert _required("address.zip") is False


def test_array_with_min_items_is_required_even_when_optional_elsewhere() -> None:
    assert _required("tags") is True
    assert _required("notes") is False


def test_array_paths_work_with_and_without_indexes() -> None:
    with_index = traverse_schema_path(USER_SCHEMA, "tags.0")
    without_index = traverse_schema_path(USER_SCHEMA, ["tags"])

    assert [node.type for node in with_index] == ["string"]
    assert without_index[0].kind is SchemaKind.ARRAY


def test_union_path_requires_every_branch_to_satisfy_check() -> None:
    assert _required("pet.kind") is True
    # required on Cat but optional on Dog
    assert _required("pet.lives") is False
    # declared in neither branch
    assert _required("pet.nope") is False


def test_union_branches_are_annotated_on_reached_node() -> None:
    (node,) = traverse_schema_path(USER_SCHEMA, "pet")

    assert node.kind is SchemaKind.UNION
    assert {branch["properties"]["kind"]["const"] for branch in node.branches} == {"cat", "dog"}


def test_intersection_fans_out_to_the_member_declaring_the_field() -> None:
    assert _required("profile.first") is True
    assert _required("profile.age") is True
    assert len(traverse_schema_path(USER_SCHEMA, "profile.age")) == 1


def test_record_values_are_always_optional() -> None:
    (node,) = traverse_schema_path(USER_SCHEMA, "scores.math")

    assert node.type == "integer"
    assert node.is_optional is True


def test_undeclared_key_descends_into_catch_all_as_optional() -> None:
    schema = {
        "type": "object",
        "required": ["label"],
        "properties": {"label": {"type": "string"}},
        "additionalProperties": {"type": "integer"},
    }

    (declared,) = traverse_schema_path(schema, "label")
    (extra,) = traverse_schema_path(schema, "zz")

    assert declared.kind is SchemaKind.LEAF
    assert declared.is_optional is False
    assert extra.type == "integer"
    assert extra.is_optional is True
    assert check_serialized_schema_path(schema, is_required_node, "zz") is False


def test_unknown_path_is_never_satisfied() -> None:
    assert traverse_schema_path(USER_SCHEMA, "missing.field") == []
    assert check_serialized_schema_path(USER_SCHEMA, lambda node: True, "missing") is False


def test_empty_path_checks_the_root() -> None:
    assert check_serialized_schema_path(USER_SCHEMA, lambda node: node.kind is SchemaKind.OBJECT) is True


def test_recursive_definitions_are_traversed_lazily() -> None:
    (node,) = traverse_schema_path(TREE_SCHEMA, "children.0.children.1.label")

    assert node.type == "string"
    assert node.is_optional is False


def test_children_of_optional_array_inherit_optionality() -> None:
    (node,) = traverse_schema_path(TREE_SCHEMA, "children.0")

    assert node.is_optional is True


def test_normalize_path_rejects_non_segment_values() -> None:
    with pytest.raises(SchemaPathError) as exc_info:
        normalize_path(["tags", 1.5])

    assert exc_info.value.path == ("tags", 1.5)


def test_normalize_path_splits_dotted_names() -> None:
    assert normalize_path("a.0.b") == ["a", "0", "b"]
    assert normalize_path(None) == []


def test_resolve_node_rejects_unknown_references() -> None:
    with pytest.raises(SchemaSerializationError):
        resolve_node({"$ref": "#/$defs/Nope"}, {})


@pytest.mark.parametrize(
    ("segment", "expected"),
    [
        (0, True),
        (12, True),
        (-1, False),
        ("0", True),
        ("42", True),
        ("0\n", False),
        ("\u0661", False),
        ("1a", False),
        ("", False),
        ("name", False),
    ],
)
def test_is_index_segment_accepts_ascii_digits_only(segment: object, expected: bool) -> None:
    assert is_index_segment(segment) is expected


def test_ascii_digit_lookalikes_are_not_array_indexes() -> None:
    assert [node.type for node in traverse_schema_path(USER_SCHEMA, ["tags", "0"])] == ["string"]
    # treated as a field name on the string elements, which have none
    assert traverse_schema_path(USER_SCHEMA, ["tags", "\u0661"]) == []
