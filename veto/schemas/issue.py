"""Pydantic models for validation issues and validation results."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict


class IssueCode(str, Enum):
    CUSTOM = "custom"
    INVALID_UNION = "invalid_union"
    UNRECOGNIZED_KEYS = "unrecognized_keys"
    MISSING = "missing"
    EXTRA_FORBIDDEN = "extra_forbidden"


class ValidationIssue(BaseModel):
    """Single flat issue addressed by its field path.

    Extra parameters (``minimum``, ``keys``, ``received``, custom params...) are
    stored as top-level extra fields.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    path: list[str | int]
    code: str
    message: str

    def formatted(self) -> dict[str, Any]:
        """Return the issue as it appears in an error tree (without its path)."""
        return self.model_dump(exclude={"path"})


class ValidationResult(BaseModel):
    """Outcome of one validation call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    data: Any = None
    errors: dict[str, Any] | None = None


def build_issue(
    *,
    path: list[str | int],
    code: str,
    message: str,
    params: dict[str, Any] | None = None,
) -> ValidationIssue:
    """Build an issue, flattening custom params onto the issue itself.

    Params of ``custom`` issues override ``code`` and ``message``; for every
    other code the parser's ``code`` and ``message`` win.
    """
    extras = {key: value for key, value in (params or {}).items() if key != "path"}
    if code == IssueCode.CUSTOM.value:
        fields = {"code": code, "message": message, **extras}
    else:
        fields = {**extras, "code": code, "message": message}
    return ValidationIssue(path=list(path), **fields)
