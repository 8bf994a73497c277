"""Convert field values between storage format and form (transport) format.

The host form library cannot hold primitive array elements directly, so
primitive arrays travel as lists of flat wrappers ``{"__FLAT__": value}``.
Empty values (``None`` and ``""``) are dropped from objects on the way in and
on the way back; meaningful falsy values (``False``, ``0``) always survive.

Older form states stored ``None``/``False``/``0`` as marker strings. Those
markers are still accepted when decoding.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
import re
import unicodedata

FLAT_ARRAY_KEY = "__FLAT__"

NULL_MARKER = "__NULL__"
FALSE_MARKER = "__FALSE__"
ZERO_MARKER = "__ZERO__"

_MARKER_VALUES: dict[str, Any] = {
    NULL_MARKER: None,
    FALSE_MARKER: False,
    ZERO_MARKER: 0,
}

TEST_ID_SEPARATOR = "_"

_DROP = object()


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _is_flat_wrapper(value: Any) -> bool:
    return isinstance(value, dict) and FLAT_ARRAY_KEY in value


def _is_zero(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0


def to_nullish_string(value: Any) -> Any:
    """Convert empty and falsy values to marker strings; wrap primitive arrays."""
    if isinstance(value, (list, tuple)):
        if all(_is_primitive(entry) for entry in value):
            return [{FLAT_ARRAY_KEY: entry} for entry in value]
        return value
    if _is_blank(value):
        return NULL_MARKER
    if value is False:
        return FALSE_MARKER
    if _is_zero(value):
        return ZERO_MARKER
    return value


def _unwrap_entry(entry: Any) -> Any:
    if _is_flat_wrapper(entry):
        inner = entry[FLAT_ARRAY_KEY]
        # an empty placeholder input inside an array means null
        if isinstance(inner, str) and inner == "":
            return None
        return from_nullish_string(inner)
    return from_nullish_string(entry)


def from_nullish_string(value: Any) -> Any:
    """Convert marker strings back to their values; unwrap flat wrappers in arrays."""
    if isinstance(value, (list, tuple)):
        return [_unwrap_entry(entry) for entry in value]
    if isinstance(value, str):
        return _MARKER_VALUES.get(value, value)
    return value


def _to_form(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        if all(_is_primitive(entry) for entry in value):
            # raw primitives go into the wrapper, no marker substitution
            return [{FLAT_ARRAY_KEY: entry} for entry in value]
        # mixed arrays keep their shape; only object entries are cleaned
        return [_to_form(entry) for entry in value]
    if isinstance(value, dict):
        if FLAT_ARRAY_KEY in value:
            return {key: _to_form(entry) for key, entry in value.items()}
        return {key: _to_form(entry) for key, entry in value.items() if not _is_blank(entry)}
    return value


def to_form_format(fields: Any) -> Any:
    """Convert a storage-format value into form (transport) format.

    Example::

        >>> to_form_format({"name": "John", "scores": [0, 75], "fax": None})
        {'name': 'John', 'scores': [{'__FLAT__': 0}, {'__FLAT__': 75}]}
    """
    return _to_form(fields)


def _resolve_field_value(value: Any) -> Any:
    if _is_flat_wrapper(value):
        inner = from_nullish_string(value[FLAT_ARRAY_KEY])
        return _DROP if _is_blank(inner) else inner
    if isinstance(value, (list, tuple)) and not value:
        return _DROP
    converted = from_nullish_string(value)
    return _DROP if _is_blank(converted) else converted


def _to_validation(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_to_validation(entry) for entry in from_nullish_string(value)]
    if isinstance(value, dict):
        result: dict[str, Any] = {}
        for key, entry in value.items():
            resolved = _resolve_field_value(entry)
            if resolved is _DROP:
                continue
            result[key] = _to_validation(resolved)
        return result
    return value


def to_validation_format(form_state: Any) -> Any:
    """Convert a form-format value back into storage format.

    Flat wrappers are unwrapped, legacy marker strings are resolved, and keys
    whose value resolves to ``""``, ``None`` or ``[]`` are removed. ``None``
    input is returned unchanged.

    Example::

        >>> to_validation_format({"scores": [{"__FLAT__": 0}], "fax": "__NULL__"})
        {'scores': [0]}
    """
    if form_state is None:
        return None
    return _to_validation(form_state)


encode = to_form_format
decode = to_validation_format


def is_value_empty(value: Any) -> bool:
    """Return whether a form value counts as empty (for error display purposes)."""
    converted = from_nullish_string(value)
    if _is_blank(converted):
        return True
    if isinstance(converted, list):
        return not converted
    if isinstance(converted, dict):
        if FLAT_ARRAY_KEY in converted:
            return is_value_empty(converted[FLAT_ARRAY_KEY])
        return all(is_value_empty(entry) for entry in converted.values())
    return False


def _is_empty_dict(value: Any) -> bool:
    return isinstance(value, dict) and not value


def _remove_empty_objects(value: Any) -> Any:
    if isinstance(value, list):
        return [_remove_empty_objects(entry) for entry in value if not _is_empty_dict(entry)]
    if isinstance(value, dict):
        cleaned: dict[str, Any] = {}
        for key, entry in value.items():
            processed = _remove_empty_objects(entry)
            if _is_empty_dict(processed):
                continue
            if isinstance(processed, list) and not processed:
                continue
            cleaned[key] = processed
        return cleaned
    return value


def to_submit_format(form_state: Any) -> Any:
    """Convert form state to submission data.

    Same as :func:`to_validation_format`, then empty objects are removed
    recursively (and lists left empty by that removal). Empty objects are kept
    for validation so object-level refinements still run on them.
    """
    validated = to_validation_format(form_state)
    if not validated:
        return validated
    return _remove_empty_objects(validated)


def _slugify(text: str) -> str:
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    compact = re.sub(r"[^a-z0-9]+", TEST_ID_SEPARATOR, ascii_text.lower())
    return compact.strip(TEST_ID_SEPARATOR)


def name_to_test_id(name: str | Sequence[str | int]) -> str:
    """Derive a stable test identifier from a field name.

    Flat-wrapper segments are removed before slugifying, so
    ``tags.0.__FLAT__`` and ``["tags", "0", "__FLAT__"]`` both become ``tags_0``.
    """
    segments = name.split(".") if isinstance(name, str) else [str(segment) for segment in name]
    clean_name = ".".join(segment for segment in segments if segment != FLAT_ARRAY_KEY)
    return _slugify(clean_name)
