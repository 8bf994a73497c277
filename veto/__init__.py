"""Public API for schema validation, schema introspection and the form value codec."""

from veto.codec.nullish_fields import FLAT_ARRAY_KEY
from veto.codec.nullish_fields import from_nullish_string
from veto.codec.nullish_fields import is_value_empty
from veto.codec.nullish_fields import name_to_test_id
from veto.codec.nullish_fields import to_form_format
from veto.codec.nullish_fields import to_nullish_string
from veto.codec.nullish_fields import to_submit_format
from veto.codec.nullish_fields import to_validation_format
from veto.core.config import ValidatorOptions
from veto.core.config import get_validation_settings
from veto.core.errors import SchemaDefinitionError
from veto.core.errors import SchemaPathError
from veto.core.errors import SchemaSerializationError
from veto.core.errors import ValidatorUsageError
from veto.core.errors import VetoError
from veto.core.messages import default_error_message
from veto.introspection.serializer import serialize_schema
from veto.introspection.traversal import SchemaPathNode
from veto.introspection.traversal import check_field_is_required
from veto.introspection.traversal import traverse_schema_path
from veto.schemas.constructors import StrictModel
from veto.schemas.constructors import intersection
from veto.schemas.constructors import object_shape
from veto.schemas.issue import ValidationIssue
from veto.schemas.issue import ValidationResult
from veto.validation.error_tree import get_errors_by_name
from veto.validation.refinements import RefinementContext
from veto.validation.refinements import field_refinement
from veto.validation.refinements import unique_elements
from veto.validation.validator import SchemaValidator
from veto.validation.validator import build

__all__ = [
    "FLAT_ARRAY_KEY",
    "RefinementContext",
    "SchemaDefinitionError",
    "SchemaPathError",
    "SchemaPathNode",
    "SchemaSerializationError",
    "SchemaValidator",
    "StrictModel",
    "ValidationIssue",
    "ValidationResult",
    "ValidatorOptions",
    "ValidatorUsageError",
    "VetoError",
    "build",
    "check_field_is_required",
    "default_error_message",
    "field_refinement",
    "from_nullish_string",
    "get_errors_by_name",
    "get_validation_settings",
    "intersection",
    "is_value_empty",
    "name_to_test_id",
    "object_shape",
    "serialize_schema",
    "to_form_format",
    "to_nullish_string",
    "to_submit_format",
    "to_validation_format",
    "traverse_schema_path",
    "unique_elements",
]
