"""XAdES-BES Signatur und Verifikation."""

from .certificates import CertificateInfo, SignatureConfig, extract_certificate_base64, load_certificate
from .xades import (
    SignatureResult,
    VerificationResult,
    XadesSigner,
    insert_signature,
    sign_xml,
    verify_signature,
    verify_signature_detailed,
)

__all__ = [
    "CertificateInfo",
    "SignatureConfig",
    "SignatureResult",
    "VerificationResult",
    "XadesSigner",
    "extract_certificate_base64",
    "insert_signature",
    "load_certificate",
    "sign_xml",
    "verify_signature",
    "verify_signature_detailed",
]
