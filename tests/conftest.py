import inspect
import json
import socket
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from agents.compliance.signing import SignatureConfig
from backend.core.observability import metrics


VIOLATIONS = []
ARTIFACTS_DIR = Path("artifacts")
ARTIFACTS_DIR.mkdir(parents=True, exist_ok=True)
REPORT = ARTIFACTS_DIR / "egress-violations.json"

KEY_PASSWORD = "test-passphrase"


def _is_allowed_callstack(allowed_paths: list[str]) -> bool:
    for frame in inspect.stack():
        filename = (frame.filename or "").replace("\\", "/")
        for ap in allowed_paths:
            if ap in filename:
                return True
    return False


@pytest.fixture(autouse=True, scope="session")
def egress_guard():
    # Der Compliance-Kern arbeitet rein lokal; nur Test-Code darf Sockets öffnen.
    allowed_client_paths = ["/tests/"]

    real_getaddrinfo = socket.getaddrinfo
    real_create_connection = socket.create_connection

    def guard_getaddrinfo(host, *args, **kwargs):
        if _is_allowed_callstack(allowed_client_paths):
            return real_getaddrinfo(host, *args, **kwargs)
        VIOLATIONS.append({"fn": "getaddrinfo", "host": str(host)})
        raise RuntimeError("Egress blocked: getaddrinfo disallowed")

    def guard_create_connection(address, *args, **kwargs):
        if _is_allowed_callstack(allowed_client_paths):
            return real_create_connection(address, *args, **kwargs)
        VIOLATIONS.append({"fn": "create_connection", "address": str(address)})
        raise RuntimeError("Egress blocked: create_connection disallowed")

    socket.getaddrinfo = guard_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = guard_create_connection  # type: ignore[assignment]

    yield

    socket.getaddrinfo = real_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = real_create_connection  # type: ignore[assignment]

    REPORT.write_text(json.dumps(VIOLATIONS, indent=2))


@pytest.fixture(autouse=True)
def clean_metrics():
    metrics.reset_metrics()
    yield
    metrics.reset_metrics()


@dataclass(frozen=True)
class SigningMaterial:
    certificate_path: Path
    private_key_path: Path
    encrypted_key_path: Path
    other_key_path: Path
    password: str
    serial_number: int


def _self_signed_certificate(key: rsa.RSAPrivateKey) -> x509.Certificate:
    subject = issuer = x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "IT"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Rossi Forniture S.r.l."),
            x509.NameAttribute(NameOID.COMMON_NAME, "E-Invoice Test Signer"),
        ]
    )
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(0x1A2B3C4D)
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def signing_material(tmp_path_factory) -> SigningMaterial:
    base = tmp_path_factory.mktemp("signing")
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    certificate = _self_signed_certificate(key)

    cert_path = base / "cert.pem"
    cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))

    key_path = base / "key.pem"
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )

    encrypted_key_path = base / "key-encrypted.pem"
    encrypted_key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(KEY_PASSWORD.encode("utf-8")),
        )
    )

    other_key_path = base / "other-key.pem"
    other_key_path.write_bytes(
        other_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )

    return SigningMaterial(
        certificate_path=cert_path,
        private_key_path=key_path,
        encrypted_key_path=encrypted_key_path,
        other_key_path=other_key_path,
        password=KEY_PASSWORD,
        serial_number=certificate.serial_number,
    )


@pytest.fixture
def signature_config(signing_material: SigningMaterial) -> SignatureConfig:
    return SignatureConfig(signing_material.certificate_path, signing_material.private_key_path)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 15, 9, 30, 0, 123000, tzinfo=timezone.utc)
