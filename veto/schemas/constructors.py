"""Strict schema constructors built on pydantic models."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from typing import ClassVar
import types

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import PydanticUserError
from pydantic import create_model

from veto.core.errors import SchemaDefinitionError

STRICT_CONFIG = ConfigDict(extra="forbid")


class StrictModel(BaseModel):
    """Base model for object schemas: unknown keys always fail validation."""

    model_config = STRICT_CONFIG


class _IntersectionModel(StrictModel):
    veto_intersection_members: ClassVar[tuple[type[BaseModel], ...]] = ()

    @classmethod
    def __get_pydantic_json_schema__(cls, core_schema, handler):
        members = cls.veto_intersection_members
        if not members:
            return super().__get_pydantic_json_schema__(core_schema, handler)
        return {"allOf": [handler(member.__pydantic_core_schema__) for member in members]}


def object_shape(fields: Mapping[str, Any], *, name: str = "VetoObject") -> type[StrictModel]:
    """Create a strict model from a raw field mapping.

    Values are either a type (required field) or a ``(type, default)`` tuple.
    """
    definitions: dict[str, Any] = {}
    for key, definition in fields.items():
        if isinstance(definition, tuple):
            if len(definition) != 2:
                raise SchemaDefinitionError(
                    f"Field `{key}` must be a type or a (type, default) tuple",
                )
            definitions[key] = definition
        else:
            definitions[key] = (definition, ...)

    try:
        return create_model(name, __base__=StrictModel, **definitions)
    except (PydanticUserError, NameError, TypeError) as exc:
        raise SchemaDefinitionError(f"Invalid object shape `{name}`: {exc}") from exc


def intersection(*models: type[BaseModel], name: str | None = None) -> type[StrictModel]:
    """Create a strict model that must satisfy every member model.

    Validation accepts the combined fields of all members; the serialized schema
    is an ``allOf`` of the members so introspection sees every branch.
    """
    if len(models) < 2:
        raise SchemaDefinitionError("intersection requires at least two models")
    for model in models:
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise SchemaDefinitionError(f"intersection members must be models, got {model!r}")

    model_name = name or "And".join(model.__name__ for model in models)
    namespace = {
        "__module__": __name__,
        "model_config": ConfigDict(extra="forbid"),
        "veto_intersection_members": tuple(models),
    }
    try:
        return types.new_class(
            model_name,
            (_IntersectionModel, *models),
            exec_body=lambda ns: ns.update(namespace),
        )
    except (PydanticUserError, TypeError) as exc:
        raise SchemaDefinitionError(f"Invalid intersection `{model_name}`: {exc}") from exc
