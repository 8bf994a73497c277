"""Normalize pydantic validation errors into flat ``ValidationIssue`` records."""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence
from datetime import date
from datetime import datetime
from datetime import time
from typing import Any

from pydantic_core import ErrorDetails

from veto.core.messages import ErrorMessageFn
from veto.core.messages import is_type_error_code
from veto.introspection.serializer import SchemaKind
from veto.introspection.serializer import SerializedSchema
from veto.introspection.serializer import branch_nodes
from veto.introspection.serializer import catch_all_schema
from veto.introspection.serializer import classify_node
from veto.introspection.serializer import resolve_node
from veto.introspection.serializer import schema_definitions
from veto.schemas.issue import IssueCode
from veto.schemas.issue import ValidationIssue
from veto.schemas.issue import build_issue

INVALID_UNION_MESSAGE = "Invalid input"

_MISSING = object()


def received_type(value: Any) -> str:
    """Return a JSON-flavoured type name for an offending value."""
    if value is _MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, (datetime, date, time)):
        return "date"
    if isinstance(value, set):
        return "set"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def value_at(data: Any, path: Sequence[str | int]) -> Any:
    """Return the value found at ``path`` inside ``data``, or ``None`` when absent."""
    current = data
    for segment in path:
        if isinstance(current, Mapping):
            current = current.get(segment, current.get(str(segment)))
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(segment)]
            except (IndexError, ValueError):
                return None
        else:
            return None
    return current


class _LocationMapper:
    """Map pydantic error locations onto field paths of the serialized schema."""

    def __init__(self, serialized: SerializedSchema | None) -> None:
        self._root = serialized
        self._definitions = schema_definitions(serialized) if serialized is not None else {}

    def map(self, loc: Sequence[Any]) -> tuple[list[str | int], bool]:
        """Return ``(path, collapsed)``; ``collapsed`` marks a regular-union failure."""
        segments = [segment for segment in loc if isinstance(segment, (str, int))]
        if self._root is None:
            return segments, False

        path: list[str | int] = []
        node: SerializedSchema | None = self._root
        index = 0
        while index < len(segments):
            if node is None:
                path.extend(segments[index:])
                break

            node = resolve_node(node, self._definitions)
            kind = classify_node(node)
            segment = segments[index]

            if kind is SchemaKind.UNION:
                target = self._union_target(node, segment)
                if target is None:
                    return path, True
                branch, consumes_tag = target
                node = branch
                if consumes_tag:
                    index += 1
                continue

            if kind is SchemaKind.INTERSECTION:
                node = self._intersection_member(node, segment)
                continue

            path.append(segment)
            index += 1
            if kind is SchemaKind.ARRAY:
                node = node["items"]
            elif kind is SchemaKind.OBJECT:
                node = node["properties"].get(str(segment), catch_all_schema(node))
            elif kind is SchemaKind.RECORD:
                node = node["additionalProperties"]
            else:
                node = None
        return path, False

    def _union_target(
        self,
        node: SerializedSchema,
        segment: str | int,
    ) -> tuple[SerializedSchema, bool] | None:
        branches = branch_nodes(node)
        non_null = [
            branch
            for branch in branches
            if resolve_node(branch, self._definitions).get("type") != "null"
        ]
        if len(non_null) == 1:
            return non_null[0], False

        discriminator = node.get("discriminator")
        if isinstance(discriminator, dict):
            mapping = discriminator.get("mapping", {})
            ref = mapping.get(str(segment))
            if ref is not None:
                return {"$ref": ref}, True
        return None

    def _intersection_member(self, node: SerializedSchema, segment: str | int) -> SerializedSchema | None:
        for member in branch_nodes(node):
            resolved = resolve_node(member, self._definitions)
            if str(segment) in resolved.get("properties", {}):
                return resolved
        return None


def _issue_params(error: ErrorDetails) -> dict[str, Any]:
    ctx = error.get("ctx") or {}
    return {key: value for key, value in ctx.items() if not isinstance(value, BaseException)}


def _message(code: str, value: Any, default: str, messages: ErrorMessageFn) -> str:
    override = messages(code, value)
    return default if override is None else override


def _unrecognized_keys_message(keys: list[str]) -> str:
    quoted = ", ".join(f'"{key}"' for key in keys)
    if len(keys) == 1:
        return f"Unrecognized key: {quoted}"
    return f"Unrecognized keys: {quoted}"


def normalize_errors(
    errors: Sequence[ErrorDetails],
    *,
    serialized: SerializedSchema | None,
    data: Any,
    messages: ErrorMessageFn,
) -> list[ValidationIssue]:
    """Convert pydantic error details into flat issues addressed by field path.

    ``serialized`` is the schema tree used to strip union tags from locations;
    pass ``None`` when serialization failed and locations are used verbatim.
    """
    mapper = _LocationMapper(serialized)
    issues: list[ValidationIssue] = []
    union_paths: set[tuple[str | int, ...]] = set()
    unknown_keys: dict[tuple[str | int, ...], list[str]] = {}
    unknown_key_slots: dict[tuple[str | int, ...], int] = {}

    for error in errors:
        path, collapsed = mapper.map(error["loc"])
        code = error["type"]

        if collapsed:
            key = tuple(path)
            if key in union_paths:
                continue
            union_paths.add(key)
            value = value_at(data, path)
            issues.append(
                build_issue(
                    path=path,
                    code=IssueCode.INVALID_UNION.value,
                    message=_message(IssueCode.INVALID_UNION.value, value, INVALID_UNION_MESSAGE, messages),
                )
            )
            continue

        if code == IssueCode.EXTRA_FORBIDDEN.value and path:
            parent = tuple(path[:-1])
            if parent not in unknown_keys:
                unknown_keys[parent] = []
                # slot keeps the grouped issue in first-seen order
                unknown_key_slots[parent] = len(issues)
                issues.append(build_issue(path=list(parent), code=IssueCode.UNRECOGNIZED_KEYS.value, message=""))
            unknown_keys[parent].append(str(path[-1]))
            continue

        value = None if code == IssueCode.MISSING.value else error.get("input")
        params = _issue_params(error)
        if code == IssueCode.MISSING.value:
            params["received"] = received_type(_MISSING)
        elif is_type_error_code(code):
            params["received"] = received_type(error.get("input"))

        issues.append(
            build_issue(
                path=path,
                code=code,
                message=_message(code, value, error["msg"], messages),
                params=params,
            )
        )

    for parent, slot in unknown_key_slots.items():
        keys = unknown_keys[parent]
        issues[slot] = build_issue(
            path=list(parent),
            code=IssueCode.UNRECOGNIZED_KEYS.value,
            message=_unrecognized_keys_message(keys),
            params={"keys": keys},
        )
    return issues
