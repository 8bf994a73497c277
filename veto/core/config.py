"""Validator options and process-wide settings."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from functools import lru_cache
from types import MappingProxyType
from typing import Any
import os

from veto.core.messages import ErrorMessageFn
from veto.core.messages import default_error_message

DEFAULT_CACHE_SERIALIZED_SCHEMAS = True

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})

# (data, ctx) -> None | Awaitable[None]
Refinement = Callable[[Any, Any], Any]


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


@dataclass(frozen=True)
class ValidatorOptions:
    """Immutable per-validator configuration supplied at construction time."""

    defaults: Mapping[str, Any] = field(default_factory=dict)
    error_messages: ErrorMessageFn = default_error_message
    refinements: tuple[Refinement, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.defaults, Mapping):
            raise TypeError("defaults must be a mapping")
        # frozen dataclass: bypass __setattr__ to store read-only views
        object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))
        object.__setattr__(self, "refinements", tuple(self.refinements))


@dataclass(frozen=True)
class ValidationSettings:
    """Process-wide runtime settings for schema introspection."""

    cache_serialized_schemas: bool

    def safe_for_logging(self) -> dict[str, bool]:
        """Return settings in a shape suitable for structured logs."""
        return {"cache_serialized_schemas": self.cache_serialized_schemas}


@lru_cache(maxsize=1)
def get_validation_settings() -> ValidationSettings:
    """Load validation settings from the environment."""
    return ValidationSettings(
        cache_serialized_schemas=_get_bool_env(
            "VETO_CACHE_SERIALIZED_SCHEMAS",
            DEFAULT_CACHE_SERIALIZED_SCHEMAS,
        ),
    )
