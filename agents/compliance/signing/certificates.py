"""Laden von X.509-Zertifikat und privatem Schlüssel für die XAdES-Signatur.

Zertifikat und Schlüssel werden bei jedem Signaturvorgang frisch von der
Platte gelesen (kein Cache, kein Pool). Der Schlüssel lebt nur so lange wie
der Signaturaufruf und taucht weder in ``repr`` noch in Logs auf.
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from backend.core.config import settings

from ..errors import CertificateLoadError

PathLike = Union[str, Path]

_PEM_CERTIFICATE = re.compile(
    r"-----BEGIN CERTIFICATE-----(?P<body>[\s\S]*?)-----END CERTIFICATE-----"
)


@dataclass(frozen=True, slots=True)
class SignatureConfig:
    certificate_path: PathLike
    private_key_path: PathLike
    password: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_settings(cls) -> Optional["SignatureConfig"]:
        """Default-Pfade aus der Konfiguration, sofern beide gesetzt sind."""

        cert_path = settings.COMPLIANCE_SIGNATURE_CERT_PATH
        key_path = settings.COMPLIANCE_SIGNATURE_KEY_PATH
        if not cert_path or not key_path:
            return None
        return cls(cert_path, key_path, settings.COMPLIANCE_SIGNATURE_KEY_PASSWORD)


@dataclass(frozen=True, slots=True)
class CertificateInfo:
    certificate_base64: str
    private_key: rsa.RSAPrivateKey = field(repr=False)
    issuer_dn: str
    serial_number: str

    @property
    def certificate_der(self) -> bytes:
        return base64.b64decode(self.certificate_base64)


def extract_certificate_base64(certificate_pem: str) -> str:
    """DER-Body des ersten Zertifikats ohne PEM-Rahmen und Whitespace."""

    match = _PEM_CERTIFICATE.search(certificate_pem)
    if match is None:
        raise CertificateLoadError("No PEM certificate block found")
    return re.sub(r"\s", "", match.group("body"))


def _resolve_existing(path: PathLike, label: str) -> Path:
    resolved = Path(path).expanduser().resolve()
    if not resolved.is_file():
        raise CertificateLoadError(f"{label} file not found: {resolved}")
    return resolved


def load_certificate(config: SignatureConfig) -> CertificateInfo:
    cert_path = _resolve_existing(config.certificate_path, "Certificate")
    key_path = _resolve_existing(config.private_key_path, "Private key")

    certificate_pem = cert_path.read_text(encoding="ascii", errors="replace")
    key_pem = key_path.read_bytes()

    certificate_base64 = extract_certificate_base64(certificate_pem)
    try:
        certificate = x509.load_der_x509_certificate(base64.b64decode(certificate_base64))
    except ValueError as exc:
        raise CertificateLoadError(f"Unreadable certificate {cert_path.name}: {exc}") from exc

    password = config.password.encode("utf-8") if config.password else None
    try:
        private_key = serialization.load_pem_private_key(key_pem, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        # Meldung von cryptography enthält kein Schlüsselmaterial
        raise CertificateLoadError(f"Unreadable private key {key_path.name}: {exc}") from exc

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CertificateLoadError("Unsupported private key type: RSA-SHA256 requires an RSA key")

    cert_public_key = certificate.public_key()
    if (
        not isinstance(cert_public_key, rsa.RSAPublicKey)
        or cert_public_key.public_numbers() != private_key.public_key().public_numbers()
    ):
        raise CertificateLoadError("Private key does not match certificate")

    return CertificateInfo(
        certificate_base64=certificate_base64,
        private_key=private_key,
        issuer_dn=certificate.issuer.rfc4514_string(),
        serial_number=str(certificate.serial_number),
    )
