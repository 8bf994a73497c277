"""Format flat validation issues into the nested error tree consumed by forms.

The tree mirrors the schema's field layout. Any node may carry an ``_errors``
list; leaf fields with no nested errors collapse to the bare list, object-like
fields (objects and arrays) keep the ``{"_errors": [...]}`` wrapper.
"""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Sequence
from typing import Any
import logging

from veto.codec.nullish_fields import FLAT_ARRAY_KEY
from veto.core.errors import SchemaSerializationError
from veto.introspection.serializer import SchemaKind
from veto.introspection.serializer import SerializedSchema
from veto.introspection.traversal import PathSegment
from veto.introspection.traversal import SchemaPathNode
from veto.introspection.traversal import check_serialized_schema_path
from veto.introspection.traversal import normalize_path
from veto.schemas.issue import ValidationIssue

logger = logging.getLogger(__name__)

ERRORS_KEY = "_errors"

ErrorTree = dict[str, Any]
ObjectLikePredicate = Callable[[list[str]], bool]

_OBJECT_LIKE_TYPES = frozenset({"object", "array"})


def _declares_object_like(schema: SerializedSchema) -> bool:
    declared = schema.get("type")
    if isinstance(declared, list):
        return any(name in _OBJECT_LIKE_TYPES for name in declared)
    return declared in _OBJECT_LIKE_TYPES


def is_object_like_node(node: SchemaPathNode) -> bool:
    """Return whether a reached node is an object or array, directly or via a branch."""
    if node.kind in (SchemaKind.OBJECT, SchemaKind.ARRAY, SchemaKind.RECORD):
        return True
    if _declares_object_like(node.schema):
        return True
    return any(_declares_object_like(branch) for branch in node.branches)


def build_raw_error_tree(issues: Sequence[ValidationIssue]) -> ErrorTree:
    """Nest issues by path; every node gets an ``_errors`` list (possibly empty)."""
    root: ErrorTree = {ERRORS_KEY: []}
    for issue in issues:
        node = root
        for segment in issue.path:
            node = node.setdefault(str(segment), {ERRORS_KEY: []})
        node[ERRORS_KEY].append(issue.formatted())
    return root


def _transform_node(
    node: ErrorTree,
    path: list[str],
    is_object_like: ObjectLikePredicate,
) -> ErrorTree | list[dict[str, Any]] | None:
    children: ErrorTree = {}
    for key, child in node.items():
        if key == ERRORS_KEY:
            continue
        transformed = _transform_node(child, [*path, key], is_object_like)
        if transformed is not None:
            children[key] = transformed

    errors = node.get(ERRORS_KEY) or []
    if not errors:
        return children or None
    if children or is_object_like(path):
        return {**children, ERRORS_KEY: list(errors)}
    return list(errors)


def transform_error_tree(raw: ErrorTree, is_object_like: ObjectLikePredicate) -> ErrorTree:
    """Drop empty nodes bottom-up and unwrap leaf fields to their bare error list.

    The root always stays a mapping; whole-schema issues live in its ``_errors``.
    """
    tree: ErrorTree = {}
    for key, child in raw.items():
        if key == ERRORS_KEY:
            continue
        transformed = _transform_node(child, [key], is_object_like)
        if transformed is not None:
            tree[key] = transformed

    root_errors = raw.get(ERRORS_KEY) or []
    if root_errors:
        tree[ERRORS_KEY] = list(root_errors)
    return tree


class _SchemaObjectLikeCheck:
    """Object-like predicate over a lazily serialized schema.

    Serialization failures are logged once and every path is then treated as
    object-like, which keeps all reported errors in the tree.
    """

    def __init__(self, serialized_schema_fn: Callable[[], SerializedSchema]) -> None:
        self._serialized_schema_fn = serialized_schema_fn
        self._serialized: SerializedSchema | None = None
        self._failed = False

    def __call__(self, path: list[str]) -> bool:
        if self._failed:
            return True
        try:
            if self._serialized is None:
                self._serialized = self._serialized_schema_fn()
            return check_serialized_schema_path(self._serialized, is_object_like_node, path)
        except SchemaSerializationError:
            logger.warning(
                "Schema introspection failed while formatting errors at path=%s; treating paths as object-like",
                ".".join(path),
                exc_info=True,
            )
            self._failed = True
            return True


def format_error_tree(
    issues: Sequence[ValidationIssue],
    serialized_schema_fn: Callable[[], SerializedSchema],
) -> ErrorTree:
    """Build the error tree for ``issues`` using the schema to decide wrapper omission."""
    raw = build_raw_error_tree(issues)
    return transform_error_tree(raw, _SchemaObjectLikeCheck(serialized_schema_fn))


def get_errors_by_name(
    errors: ErrorTree | None,
    name: str | Sequence[PathSegment],
) -> ErrorTree | list[dict[str, Any]] | None:
    """Return the error node stored for a dotted field name, or ``None``."""
    node: Any = errors
    for segment in normalize_path(name):
        key = str(segment)
        if key == FLAT_ARRAY_KEY:
            continue
        if not isinstance(node, dict):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node
