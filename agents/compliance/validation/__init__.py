"""Struktureller Validator und Formaterkennung."""

from .result import SchemaValidationResult, Severity, ValidationError
from .validator import (
    BatchDocument,
    SchemaValidator,
    detect_format,
    parse_document,
    validate,
    validate_batch,
)

__all__ = [
    "BatchDocument",
    "SchemaValidationResult",
    "SchemaValidator",
    "Severity",
    "ValidationError",
    "detect_format",
    "parse_document",
    "validate",
    "validate_batch",
]
