"""Traverse field paths through serialized schemas.

A path can cross arrays (with or without explicit indexes), unions and
intersections (fan-out over every branch), objects and open maps. Each reached
node is annotated with whether the field may be left out (``is_optional``)
and whether it admits ``null`` (``is_nullable``).
"""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol
import re

from veto.codec.nullish_fields import FLAT_ARRAY_KEY
from veto.core.errors import SchemaPathError
from veto.introspection.serializer import SchemaKind
from veto.introspection.serializer import SerializedSchema
from veto.introspection.serializer import branch_nodes
from veto.introspection.serializer import catch_all_schema
from veto.introspection.serializer import classify_node
from veto.introspection.serializer import is_nullable_node
from veto.introspection.serializer import may_be_absent
from veto.introspection.serializer import resolve_node
from veto.introspection.serializer import schema_definitions

PathSegment = str | int

_INDEX_PATTERN = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class SchemaPathNode:
    """Schema node reached by a path traversal."""

    schema: SerializedSchema
    kind: SchemaKind
    is_optional: bool
    is_nullable: bool
    branches: tuple[SerializedSchema, ...] = ()

    @property
    def type(self) -> str | list[str] | None:
        return self.schema.get("type")

    @property
    def min_items(self) -> int:
        return int(self.schema.get("minItems", 0))


SchemaPathCheck = Callable[[SchemaPathNode], bool]


def normalize_path(path: Sequence[PathSegment] | str | None) -> list[PathSegment]:
    """Return path segments from a segment sequence or a dotted field name."""
    if path is None:
        return []
    if isinstance(path, str):
        return [segment for segment in path.split(".") if segment != ""]

    segments = list(path)
    for segment in segments:
        if isinstance(segment, bool) or not isinstance(segment, (str, int)):
            raise SchemaPathError(
                f"Path segments must be field names or indexes, got {segment!r}",
                path=segments,
            )
    return segments


def is_index_segment(segment: PathSegment) -> bool:
    """Return whether a path segment addresses an array element."""
    if isinstance(segment, int):
        return segment >= 0
    return _INDEX_PATTERN.fullmatch(segment) is not None


class _Traversal:
    def __init__(self, serialized: SerializedSchema) -> None:
        self._definitions = schema_definitions(serialized)

    def annotate(self, node: SerializedSchema, is_optional_from_parent: bool) -> SchemaPathNode:
        kind = classify_node(node)
        branches: tuple[SerializedSchema, ...] = ()
        if kind in (SchemaKind.UNION, SchemaKind.INTERSECTION):
            branches = tuple(resolve_node(branch, self._definitions) for branch in branch_nodes(node))
        return SchemaPathNode(
            schema=node,
            kind=kind,
            is_optional=is_optional_from_parent or may_be_absent(node),
            is_nullable=is_nullable_node(node),
            branches=branches,
        )

    def walk(
        self,
        node: SerializedSchema,
        path: list[PathSegment],
        is_optional: bool,
        visiting: frozenset[tuple[str, int]],
    ) -> list[SchemaPathNode]:
        ref = node.get("$ref")
        if ref is not None:
            marker = (ref, len(path))
            if marker in visiting:
                # recursive definition re-entered without consuming a segment
                return []
            visiting = visiting | {marker}
        node = resolve_node(node, self._definitions)

        if not path:
            return [self.annotate(node, is_optional)]

        current, remaining = path[0], path[1:]
        kind = classify_node(node)

        if kind is SchemaKind.ARRAY:
            # array items inherit the array's own optionality
            next_path = remaining if is_index_segment(current) else path
            return self.walk(node["items"], next_path, is_optional, visiting)

        if kind in (SchemaKind.UNION, SchemaKind.INTERSECTION):
            found: list[SchemaPathNode] = []
            for branch in branch_nodes(node):
                found.extend(self.walk(branch, path, is_optional, visiting))
            return found

        if kind is SchemaKind.OBJECT:
            key = str(current)
            properties = node["properties"]
            if key in properties:
                required = node.get("required", [])
                return self.walk(properties[key], remaining, key not in required, visiting)
            catch_all = catch_all_schema(node)
            if catch_all is not None:
                return self.walk(catch_all, remaining, True, visiting)
            return []

        if kind is SchemaKind.RECORD:
            # any record key can be missing
            return self.walk(node["additionalProperties"], remaining, True, visiting)

        if kind is SchemaKind.LEAF:
            return []

        raise AssertionError(f"Unhandled schema kind {kind!r}")


def traverse_schema_path(
    serialized: SerializedSchema,
    path: Sequence[PathSegment] | str,
    is_optional_from_parent: bool = False,
) -> list[SchemaPathNode]:
    """Return every schema node reached by ``path`` (possibly none)."""
    segments = normalize_path(path)
    return _Traversal(serialized).walk(serialized, segments, is_optional_from_parent, frozenset())


def check_serialized_schema_path(
    serialized: SerializedSchema,
    check_fn: SchemaPathCheck,
    path: Sequence[PathSegment] | str | None = None,
) -> bool:
    """Return True only if every node reached by ``path`` satisfies ``check_fn``.

    An empty path checks the root. A path that reaches no node is never satisfied.
    """
    segments = normalize_path(path)
    traversal = _Traversal(serialized)
    if not segments:
        root = resolve_node(serialized, schema_definitions(serialized))
        return bool(check_fn(traversal.annotate(root, False)))

    found = traversal.walk(serialized, segments, False, frozenset())
    if not found:
        return False
    return all(check_fn(node) for node in found)


def is_required_node(node: SchemaPathNode) -> bool:
    """Return whether a reached node should be rendered as a required field."""
    if node.kind is SchemaKind.ARRAY and node.min_items > 0:
        return True
    return not node.is_optional and not node.is_nullable


class SupportsSchemaPathCheck(Protocol):
    def check_schema_path(
        self,
        check_fn: SchemaPathCheck,
        path: Sequence[PathSegment] | str | None = None,
    ) -> bool: ...


def check_field_is_required(
    validator: SupportsSchemaPathCheck,
    path: Sequence[PathSegment] | str,
) -> bool:
    """Return whether the field at ``path`` is required by the validator's schema.

    A trailing flat-wrapper segment is dropped so the array element schema is
    checked for wrapped primitive entries (``tags.0.__FLAT__``).
    """
    segments = normalize_path(path)
    if segments and segments[-1] == FLAT_ARRAY_KEY:
        segments = segments[:-1]
    return validator.check_schema_path(is_required_node, segments)
