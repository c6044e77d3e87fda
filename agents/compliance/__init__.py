"""E-Invoice Compliance-Kern: Format-Registry, Validator, XAdES-Signatur."""

from .canonical import canonicalize, digest_base64
from .compiler import compile_document
from .errors import CertificateLoadError, ComplianceError, SigningError
from .formats import (
    EInvoiceFormat,
    RequiredElement,
    SchemaDefinition,
    get_required_elements,
    get_required_namespaces,
    get_schema_definition,
    get_supported_formats,
    is_format_supported,
    requires_signature,
)
from .pipeline import ComplianceOutcome, ComplianceService
from .signing import (
    SignatureConfig,
    SignatureResult,
    VerificationResult,
    XadesSigner,
    sign_xml,
    verify_signature,
    verify_signature_detailed,
)
from .validation import (
    SchemaValidationResult,
    SchemaValidator,
    Severity,
    ValidationError,
    detect_format,
    validate,
    validate_batch,
)

__all__ = [
    "CertificateLoadError",
    "ComplianceError",
    "ComplianceOutcome",
    "ComplianceService",
    "EInvoiceFormat",
    "RequiredElement",
    "SchemaDefinition",
    "SchemaValidationResult",
    "SchemaValidator",
    "Severity",
    "SignatureConfig",
    "SignatureResult",
    "SigningError",
    "ValidationError",
    "VerificationResult",
    "XadesSigner",
    "canonicalize",
    "compile_document",
    "detect_format",
    "digest_base64",
    "get_required_elements",
    "get_required_namespaces",
    "get_schema_definition",
    "get_supported_formats",
    "is_format_supported",
    "requires_signature",
    "sign_xml",
    "validate",
    "validate_batch",
    "verify_signature",
    "verify_signature_detailed",
]
