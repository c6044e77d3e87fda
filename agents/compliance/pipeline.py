"""Compliance-Pipeline: kompilieren -> validieren -> (optional) signieren."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from backend.core.observability import logging_module
from backend.core.observability.logging import get_logger

from .compiler import compile_document
from .dto import Invoice
from .formats import EInvoiceFormat, coerce_format, requires_signature
from .signing import SignatureConfig, SignatureResult, XadesSigner
from .validation import SchemaValidationResult, SchemaValidator
from .validation.result import error

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ComplianceOutcome:
    format: EInvoiceFormat | str
    xml: Optional[str]
    validation: SchemaValidationResult
    signature: Optional[SignatureResult] = None

    @property
    def ok(self) -> bool:
        if not self.validation.valid:
            return False
        return self.signature is None or self.signature.success

    @property
    def document(self) -> Optional[str]:
        """Signiertes XML, falls signiert wurde, sonst das kompilierte."""

        if self.signature is not None and self.signature.success:
            return self.signature.signed_xml
        return self.xml

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "format": getattr(self.format, "value", self.format),
            "ok": self.ok,
            "validation": self.validation.to_dict(),
        }
        if self.signature is not None:
            payload["signature"] = {"success": self.signature.success, "error": self.signature.error}
        return payload


class ComplianceService:
    def __init__(
        self,
        *,
        validator: Optional[SchemaValidator] = None,
        signer: Optional[XadesSigner] = None,
    ) -> None:
        self._validator = validator or SchemaValidator()
        self._signer = signer or XadesSigner()

    def process(
        self,
        invoice: Invoice,
        fmt: EInvoiceFormat | str,
        *,
        signature_config: Optional[SignatureConfig] = None,
        now: Optional[datetime] = None,
    ) -> ComplianceOutcome:
        logging_module.set_tenant_id(invoice.tenant_id)
        resolved = coerce_format(fmt)
        if resolved is None:
            result = self._validator.validate("", fmt)
            return ComplianceOutcome(format=str(fmt), xml=None, validation=result)

        try:
            xml = compile_document(invoice, resolved)
        except (ValueError, TypeError, AttributeError) as exc:
            logger.error("Failed to compile %s for invoice %s: %s", resolved.value, invoice.invoice_no, exc)
            result = SchemaValidationResult(
                format=resolved, errors=[error(f"Failed to compile document: {exc}")], warnings=[]
            )
            return ComplianceOutcome(format=resolved, xml=None, validation=result)

        validation = self._validator.validate(xml, resolved)
        if not validation.valid:
            logger.warning(
                "Invoice %s is not valid %s, skipping signature", invoice.invoice_no, resolved.value
            )
            return ComplianceOutcome(format=resolved, xml=xml, validation=validation)

        if not requires_signature(resolved):
            return ComplianceOutcome(format=resolved, xml=xml, validation=validation)

        config = signature_config or SignatureConfig.from_settings()
        if config is None:
            logger.error("No signature configuration for %s", resolved.value)
            signature = SignatureResult.failed("No signature configuration available")
        else:
            signature = self._signer_for(now).sign_xml(xml, config)

        logger.info(
            "Processed invoice %s as %s",
            invoice.invoice_no,
            resolved.value,
            extra={"signed": signature.success},
        )
        return ComplianceOutcome(format=resolved, xml=xml, validation=validation, signature=signature)

    def inspect(self, xml: str | bytes) -> SchemaValidationResult:
        """Erkennt das Format und validiert dagegen."""

        detected = self._validator.detect_format(xml)
        if detected is None:
            return SchemaValidationResult(
                format="UNKNOWN", errors=[error("Could not detect e-invoice format")], warnings=[]
            )
        return self._validator.validate(xml, detected)

    def _signer_for(self, now: Optional[datetime]) -> XadesSigner:
        if now is None:
            return self._signer
        return XadesSigner(clock=lambda: now)
