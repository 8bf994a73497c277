"""Serialize schemas into declarative JSON Schema trees and classify their nodes."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import PydanticUserError
from pydantic import TypeAdapter
from pydantic.json_schema import GenerateJsonSchema

from veto.core.errors import SchemaSerializationError

SerializedSchema = dict[str, Any]

_DEFS_PREFIX = "#/$defs/"


class SchemaKind(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    UNION = "union"
    INTERSECTION = "intersection"
    RECORD = "record"
    LEAF = "leaf"


class _PermissiveJsonSchema(GenerateJsonSchema):
    """Render types without a JSON Schema form as ``{}`` (accept anything)."""

    def handle_invalid_for_json_schema(self, schema, error_info):
        return {}


def serialize_schema(schema: Any) -> SerializedSchema:
    """Serialize a schema (type or ``TypeAdapter``) into its validation-mode JSON Schema."""
    try:
        adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
        return adapter.json_schema(schema_generator=_PermissiveJsonSchema, mode="validation")
    except (PydanticUserError, TypeError, ValueError) as exc:
        raise SchemaSerializationError(f"Unable to serialize schema {schema!r}: {exc}") from exc


def schema_definitions(serialized: SerializedSchema) -> dict[str, SerializedSchema]:
    """Return the shared ``$defs`` table of a serialized root schema."""
    definitions = serialized.get("$defs", {})
    if not isinstance(definitions, dict):
        raise SchemaSerializationError("`$defs` must be an object")
    return definitions


def _definition_name(ref: str) -> str:
    if not ref.startswith(_DEFS_PREFIX):
        raise SchemaSerializationError(f"Unsupported schema reference `{ref}`")
    return ref[len(_DEFS_PREFIX) :].replace("~1", "/").replace("~0", "~")


def resolve_node(
    node: SerializedSchema,
    definitions: dict[str, SerializedSchema],
) -> SerializedSchema:
    """Follow local ``$ref`` links; sibling keys override the referenced definition."""
    seen: set[str] = set()
    while isinstance(node, dict) and "$ref" in node:
        ref = node["$ref"]
        if ref in seen:
            raise SchemaSerializationError(f"Circular schema reference `{ref}`")
        seen.add(ref)

        name = _definition_name(ref)
        if name not in definitions:
            raise SchemaSerializationError(f"Unknown schema reference `{ref}`")
        siblings = {key: value for key, value in node.items() if key != "$ref"}
        node = {**definitions[name], **siblings}

    if not isinstance(node, dict):
        raise SchemaSerializationError(f"Schema nodes must be objects, got {node!r}")
    return node


def _type_includes(node: SerializedSchema, type_name: str) -> bool:
    declared = node.get("type")
    if isinstance(declared, list):
        return type_name in declared
    return declared == type_name


def classify_node(node: SerializedSchema) -> SchemaKind:
    """Return the kind of a resolved schema node."""
    if _type_includes(node, "array") and "items" in node:
        return SchemaKind.ARRAY
    if isinstance(node.get("oneOf"), list) or isinstance(node.get("anyOf"), list):
        return SchemaKind.UNION
    if isinstance(node.get("allOf"), list):
        return SchemaKind.INTERSECTION
    if _type_includes(node, "object") and "properties" in node:
        return SchemaKind.OBJECT
    if _type_includes(node, "object") and isinstance(node.get("additionalProperties"), dict):
        return SchemaKind.RECORD
    return SchemaKind.LEAF


def branch_nodes(node: SerializedSchema) -> list[SerializedSchema]:
    """Return the raw branch list of a union (``oneOf`` first) or intersection node."""
    for key in ("oneOf", "anyOf", "allOf"):
        branches = node.get(key)
        if isinstance(branches, list):
            return branches
    return []


def catch_all_schema(node: SerializedSchema) -> SerializedSchema | None:
    """Return the open-map value schema of an object node, if it has one."""
    additional = node.get("additionalProperties")
    if isinstance(additional, dict):
        return additional
    return None


def is_nullable_node(node: SerializedSchema) -> bool:
    """Return whether a node admits a literal null through a null-inclusive type union."""
    declared = node.get("type")
    if isinstance(declared, list) and "null" in declared:
        return True
    options = node.get("anyOf")
    if isinstance(options, list):
        return any(isinstance(option, dict) and option.get("type") == "null" for option in options)
    return False


def may_be_absent(node: SerializedSchema) -> bool:
    """Return whether a node's own shape allows the value to be left out."""
    options = node.get("anyOf")
    if isinstance(options, list):
        return any(isinstance(option, dict) and (not option or "not" in option) for option in options)
    return False
