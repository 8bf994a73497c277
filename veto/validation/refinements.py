"""Post-parse refinements: cross-field checks that report issues through a context."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Sequence
from typing import Any
import json

from veto.introspection.traversal import PathSegment
from veto.introspection.traversal import normalize_path
from veto.schemas.issue import IssueCode
from veto.schemas.issue import ValidationIssue
from veto.schemas.issue import build_issue
from veto.validation.issues import value_at

NOT_UNIQUE_CODE = "not_unique"
DEFAULT_ELEMENT_MESSAGE = "Element already exists"
DEFAULT_NOT_UNIQUE_MESSAGE = "Array elements are not unique"


class RefinementContext:
    """Collects issues reported by refinements.

    Issue paths are relative to ``base_path``; :meth:`scoped` returns a context
    that shares the same issue list under a deeper base path.
    """

    def __init__(
        self,
        issues: list[ValidationIssue] | None = None,
        base_path: Sequence[PathSegment] = (),
    ) -> None:
        self.issues = issues if issues is not None else []
        self.base_path = tuple(base_path)

    def add_issue(
        self,
        message: str,
        *,
        code: str = IssueCode.CUSTOM.value,
        path: Sequence[PathSegment] = (),
        params: dict[str, Any] | None = None,
    ) -> None:
        self.issues.append(
            build_issue(
                path=[*self.base_path, *normalize_path(path)],
                code=code,
                message=message,
                params=params,
            )
        )

    def scoped(self, path: Sequence[PathSegment] | str) -> RefinementContext:
        return RefinementContext(self.issues, [*self.base_path, *normalize_path(path)])


def field_refinement(
    path: Sequence[PathSegment] | str,
    check: Callable[[Any, RefinementContext], Any],
) -> Callable[[Any, RefinementContext], Any]:
    """Bind ``check`` to the value at ``path``; its issues are reported under that path.

    Missing values (``None``) are skipped. Awaitables returned by ``check`` are
    passed through so the validator can await them.
    """
    segments = normalize_path(path)

    def refinement(data: Any, ctx: RefinementContext) -> Any:
        value = value_at(data, segments)
        if value is None:
            return None
        return check(value, ctx.scoped(segments))

    refinement.__name__ = getattr(check, "__name__", "field_refinement")
    return refinement


def _comparison_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def unique_elements(
    path: Sequence[PathSegment] | str,
    *,
    element_message: str = DEFAULT_ELEMENT_MESSAGE,
    element_error_path: Sequence[PathSegment] = (),
    map_fn: Callable[[Any], Any] | None = None,
    message: str = DEFAULT_NOT_UNIQUE_MESSAGE,
) -> Callable[[Any, RefinementContext], Any]:
    """Refinement requiring the array at ``path`` to hold no duplicate elements.

    Each later duplicate gets an element issue (optionally on a sub field via
    ``element_error_path``) and the array itself gets one summary issue. Both
    carry ``code == "not_unique"``. Elements are compared after ``map_fn``.
    """

    def check(elements: Any, ctx: RefinementContext) -> None:
        if not isinstance(elements, (list, tuple)):
            return
        mapped = [map_fn(element) if map_fn is not None else element for element in elements]
        seen: set[str] = set()
        duplicate_indexes: list[int] = []
        for index, element in enumerate(mapped):
            key = _comparison_key(element)
            if key in seen:
                duplicate_indexes.append(index)
            seen.add(key)

        for index in duplicate_indexes:
            ctx.add_issue(
                element_message,
                path=[index, *element_error_path],
                params={"code": NOT_UNIQUE_CODE},
            )
        if duplicate_indexes:
            ctx.add_issue(message, params={"type": "array", "code": NOT_UNIQUE_CODE})

    check.__name__ = "unique_elements"
    return field_refinement(path, check)

