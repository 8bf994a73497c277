"""Default issue messages.

Messages are resolved by a pure function from issue code and offending value
to an optional replacement message. ``None`` keeps the parser's own message.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

REQUIRED_MESSAGE = "Field is required"

ErrorMessageFn = Callable[[str, Any], "str | None"]

_UNION_CODES = frozenset(
    {
        "invalid_union",
        "union_tag_not_found",
        "union_tag_invalid",
    }
)
_CHOICE_CODES = frozenset({"literal_error", "enum"})


def is_type_error_code(code: str) -> bool:
    """Return whether an issue code reports a value of the wrong type."""
    return code.endswith("_type") or code.endswith("_parsing")


def default_error_message(code: str, value: Any) -> str | None:
    """Return the replacement message for an issue, or ``None`` to keep the default."""
    if code == "missing":
        return REQUIRED_MESSAGE
    if is_type_error_code(code) or code in _UNION_CODES:
        if value is None:
            return REQUIRED_MESSAGE
        return None
    if code in _CHOICE_CODES and (value is None or value == ""):
        return REQUIRED_MESSAGE
    return None
