"""Schema validator: strict parsing, refinements, and error tree results."""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any
import inspect
import logging

from pydantic import BaseModel
from pydantic import PydanticUserError
from pydantic import TypeAdapter
from pydantic import ValidationError

from veto.core.config import ValidatorOptions
from veto.core.config import get_validation_settings
from veto.core.errors import SchemaDefinitionError
from veto.core.errors import SchemaSerializationError
from veto.core.errors import ValidatorUsageError
from veto.introspection.serializer import SerializedSchema
from veto.introspection.serializer import serialize_schema
from veto.introspection.traversal import PathSegment
from veto.introspection.traversal import SchemaPathCheck
from veto.introspection.traversal import check_serialized_schema_path
from veto.schemas.constructors import object_shape
from veto.schemas.issue import ValidationIssue
from veto.schemas.issue import ValidationResult
from veto.validation.error_tree import format_error_tree
from veto.validation.issues import normalize_errors
from veto.validation.refinements import RefinementContext

logger = logging.getLogger(__name__)


def _open_object_nodes(node: Any, location: str) -> list[str]:
    """Return locations of object nodes that accept undeclared keys."""
    found: list[str] = []
    if isinstance(node, dict):
        declares_properties = node.get("type") == "object" and isinstance(node.get("properties"), dict)
        additional = node.get("additionalProperties", True)
        if declares_properties and not (additional is False or isinstance(additional, dict)):
            found.append(node.get("title") or location)
        for key, value in node.items():
            if key == "properties" and isinstance(value, dict):
                for name, child in value.items():
                    found.extend(_open_object_nodes(child, f"{location}.{name}"))
            else:
                found.extend(_open_object_nodes(value, f"{location}/{key}"))
    elif isinstance(node, list):
        for index, value in enumerate(node):
            found.extend(_open_object_nodes(value, f"{location}/{index}"))
    return found


def _open_model_classes(core_schema: Any, seen: set[type]) -> list[str]:
    """Return names of model classes in a core schema that do not forbid extra keys."""
    found: list[str] = []
    if isinstance(core_schema, dict):
        cls = core_schema.get("cls")
        if (
            core_schema.get("type") == "model"
            and isinstance(cls, type)
            and issubclass(cls, BaseModel)
            and cls not in seen
        ):
            seen.add(cls)
            if cls.model_config.get("extra") != "forbid":
                found.append(cls.__name__)
        for value in core_schema.values():
            found.extend(_open_model_classes(value, seen))
    elif isinstance(core_schema, (list, tuple)):
        for value in core_schema:
            found.extend(_open_model_classes(value, seen))
    return found


def _close_pending(outcome: Any) -> None:
    close = getattr(outcome, "close", None)
    if callable(close):
        close()
        return
    cancel = getattr(outcome, "cancel", None)
    if callable(cancel):
        cancel()


class SchemaValidator:
    """Validate mappings against a schema and introspect the schema's field paths.

    ``schema`` is a pydantic model (or any type pydantic can adapt) or a raw
    field mapping, which is turned into a strict object shape. Every object in
    the schema must reject undeclared keys.
    """

    def __init__(self, schema: Any, options: ValidatorOptions | None = None) -> None:
        if isinstance(schema, Mapping):
            schema = object_shape(schema)
        self.schema = schema
        self.options = options or ValidatorOptions()

        try:
            self._adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
        except (PydanticUserError, TypeError) as exc:
            raise SchemaDefinitionError(f"Unsupported schema {schema!r}: {exc}") from exc

        self._serialized: SerializedSchema | None = None
        self._assert_strict_objects()
        logger.debug(
            "Built validator for schema=%s settings=%s refinements=%d",
            getattr(schema, "__name__", repr(schema)),
            get_validation_settings().safe_for_logging(),
            len(self.options.refinements),
        )

    def _assert_strict_objects(self) -> None:
        try:
            serialized = self.serialized_schema()
        except SchemaSerializationError:
            # model configs still tell whether unknown keys are rejected
            logger.warning("Schema could not be serialized; checking model configs for strictness", exc_info=True)
            open_objects = _open_model_classes(self._adapter.core_schema, set())
        else:
            open_objects = _open_object_nodes(serialized, "#")
        if open_objects:
            raise SchemaDefinitionError(
                "Object schemas must forbid unknown keys (extra='forbid'): " + ", ".join(open_objects)
            )

    def serialized_schema(self) -> SerializedSchema:
        """Return the declarative JSON Schema tree of the validator's schema."""
        if self._serialized is not None:
            return self._serialized
        serialized = serialize_schema(self._adapter)
        if get_validation_settings().cache_serialized_schemas:
            self._serialized = serialized
        return serialized

    def _serialized_or_none(self) -> SerializedSchema | None:
        try:
            return self.serialized_schema()
        except SchemaSerializationError:
            logger.warning("Schema serialization failed; using raw error locations", exc_info=True)
            return None

    def check_schema_path(
        self,
        check_fn: SchemaPathCheck,
        path: Sequence[PathSegment] | str | None = None,
    ) -> bool:
        """Return True only if every schema node reached by ``path`` satisfies ``check_fn``."""
        return check_serialized_schema_path(self.serialized_schema(), check_fn, path)

    def _prepare(self, data: Any) -> dict[str, Any]:
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValidatorUsageError(f"validate expects a mapping, got {type(data).__name__}")
        return {**self.options.defaults, **data}

    def _parse(self, payload: dict[str, Any]) -> tuple[Any, list[ValidationIssue]]:
        try:
            parsed = self._adapter.validate_python(payload)
        except ValidationError as exc:
            issues = normalize_errors(
                exc.errors(include_url=False),
                serialized=self._serialized_or_none(),
                data=payload,
                messages=self.options.error_messages,
            )
            return None, issues
        return self._adapter.dump_python(parsed), []

    def _result(self, data: Any, issues: list[ValidationIssue]) -> ValidationResult:
        if not issues:
            return ValidationResult(success=True, data=data, errors=None)
        logger.debug("Validation failed with %d issue(s)", len(issues))
        return ValidationResult(
            success=False,
            data=None,
            errors=format_error_tree(issues, self.serialized_schema),
        )

    def validate(self, data: Mapping[str, Any] | None = None) -> ValidationResult:
        """Validate ``data`` merged over the configured defaults.

        Schema violations are reported in the result, never raised.
        """
        output, issues = self._parse(self._prepare(data))
        if issues:
            return self._result(None, issues)

        ctx = RefinementContext()
        for refinement in self.options.refinements:
            outcome = refinement(output, ctx)
            if inspect.isawaitable(outcome):
                _close_pending(outcome)
                raise ValidatorUsageError(
                    f"Refinement {getattr(refinement, '__name__', refinement)!r} is asynchronous; "
                    "use validate_async"
                )
        return self._result(output, ctx.issues)

    async def validate_async(self, data: Mapping[str, Any] | None = None) -> ValidationResult:
        """Same as :meth:`validate`, awaiting asynchronous refinements in order."""
        output, issues = self._parse(self._prepare(data))
        if issues:
            return self._result(None, issues)

        ctx = RefinementContext()
        for refinement in self.options.refinements:
            outcome = refinement(output, ctx)
            if inspect.isawaitable(outcome):
                await outcome
        return self._result(output, ctx.issues)


def build(schema: Any, options: ValidatorOptions | None = None) -> SchemaValidator:
    """Create a validator for ``schema``."""
    return SchemaValidator(schema, options)
