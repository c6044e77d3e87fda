"""XAdES-BES Signatur (enveloped) für FatturaPA/Facturae und Verifikation.

Der Signaturblock wird als Text erzeugt und vor dem letzten schließenden Tag
eingefügt. Die Kanonisierung ist vereinfacht (siehe ``canonical``).

Ablauf ``sign_xml``:
1. Zertifikat + Schlüssel laden (pro Aufruf, siehe ``certificates``).
2. Dokument kanonisieren und SHA-256-Digest bilden.
3. ``SignedProperties`` (Signaturzeit, Zertifikats-Digest, Issuer/Serial)
   erzeugen und digesten.
4. ``KeyInfo`` erzeugen und digesten (abschaltbar, dann leerer DigestValue).
5. ``SignedInfo`` mit drei Referenzen bauen, kanonisieren, RSA-SHA256 signieren.
6. ``Signature``-Block zusammensetzen und einfügen.
"""

from __future__ import annotations

import base64
import re
import textwrap
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape
from typing import Callable, Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from backend.core.config import settings
from backend.core.observability import metrics
from backend.core.observability.logging import get_logger

from ..canonical import canonicalize, digest_base64
from ..errors import SigningError
from .certificates import CertificateInfo, SignatureConfig, load_certificate

logger = get_logger(__name__)

DS_NS = "http://www.w3.org/2000/09/xmldsig#"
XADES_NS = "http://uri.etsi.org/01903/v1.3.2#"
SHA256_URI = "http://www.w3.org/2001/04/xmlenc#sha256"
RSA_SHA256_URI = "http://www.w3.org/2001/04/xmldsig-more#rsa-sha256"
EXC_C14N_URI = "http://www.w3.org/2001/10/xml-exc-c14n#"
ENVELOPED_SIGNATURE_URI = "http://www.w3.org/2000/09/xmldsig#enveloped-signature"
SIGNED_PROPERTIES_TYPE = "http://uri.etsi.org/01903#SignedProperties"
DOCUMENT_REFERENCE_ID = "Reference-document"

_ROOT_CLOSE = re.compile(r"</[^>]+>\s*$")
_SIGNATURE_BLOCK = re.compile(r"<ds:Signature(?:\s[^>]*)?>[\s\S]*?</ds:Signature>")
_X509_CERTIFICATE = re.compile(r"<ds:X509Certificate>([^<]+)</ds:X509Certificate>")
_SIGNATURE_VALUE = re.compile(r"<ds:SignatureValue(?:\s[^>]*)?>([^<]+)</ds:SignatureValue>")
_SIGNED_INFO = re.compile(r"<ds:SignedInfo(?:\s[^>]*)?>[\s\S]*?</ds:SignedInfo>")
_REFERENCE = re.compile(r"<ds:Reference(?P<attrs>\s[^>]*)?>(?P<body>[\s\S]*?)</ds:Reference>")
_URI_ATTR = re.compile(r'\sURI="(?P<uri>[^"]*)"')
_DIGEST_VALUE = re.compile(r"<ds:DigestValue>(?P<value>[^<]*)</ds:DigestValue>")


@dataclass(frozen=True, slots=True)
class SignatureResult:
    success: bool
    signed_xml: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, signed_xml: str) -> "SignatureResult":
        return cls(success=True, signed_xml=signed_xml)

    @classmethod
    def failed(cls, message: str) -> "SignatureResult":
        return cls(success=False, error=message)


@dataclass(frozen=True, slots=True)
class VerificationResult:
    valid: bool
    reason: str

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True, slots=True)
class _SignatureIds:
    signature: str
    signed_properties: str
    key_info: str
    reference: str

    @classmethod
    def generate(cls, id_factory: Callable[[], str]) -> "_SignatureIds":
        return cls(
            signature=f"Signature-{id_factory()}",
            signed_properties=f"SignedProperties-{id_factory()}",
            key_info=f"KeyInfo-{id_factory()}",
            reference=f"Reference-{id_factory()}",
        )


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


def _format_signing_time(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def insert_signature(xml: str, signature_block: str) -> str:
    """Fügt den Block vor dem letzten schließenden Tag ein (sonst: anhängen)."""

    match = _ROOT_CLOSE.search(xml)
    if match is None:
        logger.warning("No closing tag found, appending signature at document end")
        return xml + signature_block
    position = match.start()
    return xml[:position] + signature_block + xml[position:]


class XadesSigner:
    """Erzeugt und prüft XAdES-BES Signaturen (RSA-SHA256)."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        keyinfo_digest: Optional[bool] = None,
    ) -> None:
        self._clock = clock or _default_clock
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._keyinfo_digest = (
            settings.COMPLIANCE_SIGN_KEYINFO_DIGEST if keyinfo_digest is None else keyinfo_digest
        )

    # ------------------------------------------------------------------ sign

    def sign_xml(self, xml: str, config: SignatureConfig) -> SignatureResult:
        started = time.perf_counter()
        try:
            if not isinstance(xml, str) or not xml.strip():
                raise SigningError("XML document is empty")
            cert_info = load_certificate(config)
            result = SignatureResult.ok(self._create_signature(xml, cert_info))
        except Exception as exc:  # noqa: BLE001 - Signaturfehler sind Ergebnisse
            logger.error("Failed to sign XML: %s", exc)
            result = SignatureResult.failed(str(exc) or "Unknown signing error")
        metrics.increment_signatures(result.success)
        metrics.record_signing_duration(started)
        return result

    def _create_signature(self, xml: str, cert_info: CertificateInfo) -> str:
        ids = _SignatureIds.generate(self._id_factory)
        signing_time = _format_signing_time(self._clock())

        document_digest = digest_base64(canonicalize(xml))

        signed_properties = self._signed_properties(ids.signed_properties, signing_time, cert_info)
        signed_properties_digest = digest_base64(canonicalize(signed_properties))

        key_info = self._key_info(ids.key_info, cert_info)
        key_info_digest = digest_base64(canonicalize(key_info)) if self._keyinfo_digest else ""

        signed_info = self._signed_info(ids, document_digest, signed_properties_digest, key_info_digest)
        signature_value = self._sign(canonicalize(signed_info), cert_info.private_key)

        block = self._signature_block(ids, signed_info, signature_value, key_info, signed_properties)
        logger.info("Created XAdES-BES signature %s", ids.signature)
        return insert_signature(xml, block)

    @staticmethod
    def _sign(content: str, private_key: rsa.RSAPrivateKey) -> str:
        signature = private_key.sign(content.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
        return base64.b64encode(signature).decode("ascii")

    @staticmethod
    def _signed_properties(signed_properties_id: str, signing_time: str, cert_info: CertificateInfo) -> str:
        cert_digest = digest_base64(cert_info.certificate_der)
        return textwrap.dedent(
            f"""
            <xades:SignedProperties Id="{signed_properties_id}">
              <xades:SignedSignatureProperties>
                <xades:SigningTime>{signing_time}</xades:SigningTime>
                <xades:SigningCertificate>
                  <xades:Cert>
                    <xades:CertDigest>
                      <ds:DigestMethod Algorithm="{SHA256_URI}"/>
                      <ds:DigestValue>{cert_digest}</ds:DigestValue>
                    </xades:CertDigest>
                    <xades:IssuerSerial>
                      <ds:X509IssuerName>{escape(cert_info.issuer_dn)}</ds:X509IssuerName>
                      <ds:X509SerialNumber>{cert_info.serial_number}</ds:X509SerialNumber>
                    </xades:IssuerSerial>
                  </xades:Cert>
                </xades:SigningCertificate>
              </xades:SignedSignatureProperties>
              <xades:SignedDataObjectProperties>
                <xades:DataObjectFormat ObjectReference="#{DOCUMENT_REFERENCE_ID}">
                  <xades:MimeType>text/xml</xades:MimeType>
                </xades:DataObjectFormat>
              </xades:SignedDataObjectProperties>
            </xades:SignedProperties>
            """
        ).strip()

    @staticmethod
    def _key_info(key_info_id: str, cert_info: CertificateInfo) -> str:
        return textwrap.dedent(
            f"""
            <ds:KeyInfo Id="{key_info_id}">
              <ds:X509Data>
                <ds:X509Certificate>{cert_info.certificate_base64}</ds:X509Certificate>
              </ds:X509Data>
            </ds:KeyInfo>
            """
        ).strip()

    @staticmethod
    def _signed_info(
        ids: _SignatureIds,
        document_digest: str,
        signed_properties_digest: str,
        key_info_digest: str,
    ) -> str:
        return textwrap.dedent(
            f"""
            <ds:SignedInfo>
              <ds:CanonicalizationMethod Algorithm="{EXC_C14N_URI}"/>
              <ds:SignatureMethod Algorithm="{RSA_SHA256_URI}"/>
              <ds:Reference Id="{DOCUMENT_REFERENCE_ID}" URI="">
                <ds:Transforms>
                  <ds:Transform Algorithm="{ENVELOPED_SIGNATURE_URI}"/>
                  <ds:Transform Algorithm="{EXC_C14N_URI}"/>
                </ds:Transforms>
                <ds:DigestMethod Algorithm="{SHA256_URI}"/>
                <ds:DigestValue>{document_digest}</ds:DigestValue>
              </ds:Reference>
              <ds:Reference Id="{ids.reference}" URI="#{ids.signed_properties}" Type="{SIGNED_PROPERTIES_TYPE}">
                <ds:DigestMethod Algorithm="{SHA256_URI}"/>
                <ds:DigestValue>{signed_properties_digest}</ds:DigestValue>
              </ds:Reference>
              <ds:Reference URI="#{ids.key_info}">
                <ds:DigestMethod Algorithm="{SHA256_URI}"/>
                <ds:DigestValue>{key_info_digest}</ds:DigestValue>
              </ds:Reference>
            </ds:SignedInfo>
            """
        ).strip()

    @staticmethod
    def _signature_block(
        ids: _SignatureIds,
        signed_info: str,
        signature_value: str,
        key_info: str,
        signed_properties: str,
    ) -> str:
        return (
            f'<ds:Signature xmlns:ds="{DS_NS}" xmlns:xades="{XADES_NS}" Id="{ids.signature}">\n'
            f"{signed_info}\n"
            f"<ds:SignatureValue>{signature_value}</ds:SignatureValue>\n"
            f"{key_info}\n"
            f"<ds:Object>\n"
            f'<xades:QualifyingProperties Target="#{ids.signature}">\n'
            f"{signed_properties}\n"
            f"</xades:QualifyingProperties>\n"
            f"</ds:Object>\n"
            f"</ds:Signature>"
        )

    # ---------------------------------------------------------------- verify

    def verify_signature(self, signed_xml: str) -> bool:
        return self.verify_signature_detailed(signed_xml).valid

    def verify_signature_detailed(self, signed_xml: str) -> VerificationResult:
        try:
            result = self._verify(signed_xml)
        except Exception:  # noqa: BLE001 - Verifikation liefert False statt Exception
            logger.exception("Signature verification failed")
            result = VerificationResult(False, "error")
        if not result.valid:
            logger.warning("Signature verification failed: %s", result.reason)
        metrics.increment_verifications(result.reason)
        return result

    def _verify(self, signed_xml: str) -> VerificationResult:
        # zuletzt eingefügte Signatur; ältere liegen in deren Dokument-Digest
        blocks = list(_SIGNATURE_BLOCK.finditer(signed_xml))
        if not blocks:
            return VerificationResult(False, "missing_signature")
        block_match = blocks[-1]
        block = block_match.group(0)

        cert_match = _X509_CERTIFICATE.search(block)
        if cert_match is None:
            return VerificationResult(False, "missing_certificate")
        value_match = _SIGNATURE_VALUE.search(block)
        if value_match is None:
            return VerificationResult(False, "missing_signature_value")
        signed_info_match = _SIGNED_INFO.search(block)
        if signed_info_match is None:
            return VerificationResult(False, "missing_signed_info")
        signed_info = signed_info_match.group(0)

        certificate = x509.load_der_x509_certificate(base64.b64decode(re.sub(r"\s", "", cert_match.group(1))))
        public_key = certificate.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            return VerificationResult(False, "bad_signature")
        try:
            public_key.verify(
                base64.b64decode(re.sub(r"\s", "", value_match.group(1))),
                canonicalize(signed_info).encode("utf-8"),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except InvalidSignature:
            return VerificationResult(False, "bad_signature")

        unsigned_document = signed_xml[: block_match.start()] + signed_xml[block_match.end():]
        for reference in _REFERENCE.finditer(signed_info):
            uri_match = _URI_ATTR.search(reference.group("attrs") or "")
            digest_match = _DIGEST_VALUE.search(reference.group("body"))
            if uri_match is None or digest_match is None:
                continue
            reason = self._check_reference(uri_match.group("uri"), digest_match.group("value"), block, unsigned_document)
            if reason is not None:
                return VerificationResult(False, reason)

        return VerificationResult(True, "ok")

    @staticmethod
    def _check_reference(uri: str, expected: str, block: str, unsigned_document: str) -> Optional[str]:
        if uri == "":
            if digest_base64(canonicalize(unsigned_document)) != expected:
                return "document_digest_mismatch"
            return None

        target_id = re.escape(uri.lstrip("#"))
        if uri.startswith("#SignedProperties"):
            pattern = rf'<xades:SignedProperties\s[^>]*Id="{target_id}"[^>]*>[\s\S]*?</xades:SignedProperties>'
            reason = "signed_properties_digest_mismatch"
        elif uri.startswith("#KeyInfo"):
            # leerer DigestValue: KeyInfo wurde ohne Digest signiert
            if not expected:
                return None
            pattern = rf'<ds:KeyInfo\s[^>]*Id="{target_id}"[^>]*>[\s\S]*?</ds:KeyInfo>'
            reason = "key_info_digest_mismatch"
        else:
            return None

        fragment = re.search(pattern, block)
        if fragment is None or digest_base64(canonicalize(fragment.group(0))) != expected:
            return reason
        return None


_default_signer: Optional[XadesSigner] = None


def _signer() -> XadesSigner:
    global _default_signer
    if _default_signer is None:
        _default_signer = XadesSigner()
    return _default_signer


def sign_xml(xml: str, config: SignatureConfig) -> SignatureResult:
    return _signer().sign_xml(xml, config)


def verify_signature(signed_xml: str) -> bool:
    return _signer().verify_signature(signed_xml)


def verify_signature_detailed(signed_xml: str) -> VerificationResult:
    return _signer().verify_signature_detailed(signed_xml)
