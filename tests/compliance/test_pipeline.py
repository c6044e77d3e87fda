import json
import logging
from datetime import datetime, timezone

from agents.compliance import ComplianceService, EInvoiceFormat, SignatureConfig, verify_signature
from agents.compliance.samples import build_sample_invoice
from backend.core.config import settings
from backend.core.observability import bind_context, logging_module
from backend.core.observability.logging import JSONFormatter


def test_formats_without_signature_requirement_are_not_signed():
    outcome = ComplianceService().process(build_sample_invoice(EInvoiceFormat.PEPPOL), "peppol")
    assert outcome.ok
    assert outcome.format is EInvoiceFormat.PEPPOL
    assert outcome.signature is None
    assert outcome.document == outcome.xml


def test_fatturapa_is_signed_with_given_config(signature_config):
    now = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)
    outcome = ComplianceService().process(
        build_sample_invoice(EInvoiceFormat.FATTURAPA),
        EInvoiceFormat.FATTURAPA,
        signature_config=signature_config,
        now=now,
    )
    assert outcome.ok, outcome.to_dict()
    assert outcome.signature.success
    assert "<xades:SigningTime>2025-01-15T10:00:00.000Z</xades:SigningTime>" in outcome.document
    assert verify_signature(outcome.document)


def test_facturae_uses_configured_default_paths(monkeypatch, signing_material):
    monkeypatch.setattr(settings, "COMPLIANCE_SIGNATURE_CERT_PATH", str(signing_material.certificate_path))
    monkeypatch.setattr(settings, "COMPLIANCE_SIGNATURE_KEY_PATH", str(signing_material.private_key_path))
    monkeypatch.setattr(settings, "COMPLIANCE_SIGNATURE_KEY_PASSWORD", None)
    outcome = ComplianceService().process(build_sample_invoice(EInvoiceFormat.FACTURAE), "FACTURAE")
    assert outcome.ok
    assert verify_signature(outcome.document)


def test_missing_signature_config_is_reported(monkeypatch):
    monkeypatch.setattr(settings, "COMPLIANCE_SIGNATURE_CERT_PATH", None)
    monkeypatch.setattr(settings, "COMPLIANCE_SIGNATURE_KEY_PATH", None)
    outcome = ComplianceService().process(build_sample_invoice(EInvoiceFormat.FATTURAPA), "FATTURAPA")
    assert outcome.validation.valid
    assert not outcome.ok
    assert outcome.signature.error == "No signature configuration available"
    assert outcome.document == outcome.xml


def test_signing_failure_is_reported(tmp_path):
    config = SignatureConfig(tmp_path / "cert.pem", tmp_path / "key.pem")
    outcome = ComplianceService().process(
        build_sample_invoice(EInvoiceFormat.FACTURAE), "FACTURAE", signature_config=config
    )
    assert not outcome.ok
    assert "Certificate file not found" in outcome.to_dict()["signature"]["error"]


def test_unknown_format_and_compile_errors_do_not_raise():
    service = ComplianceService()
    unknown = service.process(build_sample_invoice(EInvoiceFormat.UBL), "EDIFACT")
    assert not unknown.ok
    assert unknown.xml is None
    assert unknown.validation.errors[0].message == "Unknown format: EDIFACT"

    invoice = build_sample_invoice(EInvoiceFormat.UBL)
    invoice.line_items = []
    broken = service.process(invoice, "UBL")
    assert not broken.ok
    assert broken.validation.errors[0].message.startswith("Failed to compile document")


def test_inspect_detects_and_validates():
    service = ComplianceService()
    xml = service.process(build_sample_invoice(EInvoiceFormat.ZUGFERD), "ZUGFERD").xml
    result = service.inspect(xml)
    assert result.format is EInvoiceFormat.ZUGFERD
    assert result.valid

    unknown = service.inspect("<Order/>")
    assert unknown.format == "UNKNOWN"
    assert not unknown.valid


def test_malformed_invoice_data_does_not_raise():
    invoice = build_sample_invoice(EInvoiceFormat.FATTURAPA)
    invoice.issue_date = None
    outcome = ComplianceService().process(invoice, EInvoiceFormat.FATTURAPA)
    assert not outcome.ok
    assert outcome.xml is None
    assert outcome.signature is None
    assert outcome.validation.errors[0].message.startswith("Failed to compile document")


def test_process_keeps_caller_trace_id():
    trace_id = bind_context(trace_id="trace-from-request")
    try:
        ComplianceService().process(build_sample_invoice(EInvoiceFormat.UBL, tenant_id="tenant-7"), "UBL")
        record = logging.LogRecord("agents.compliance.pipeline", logging.INFO, "", 0, "after process", (), None)
        log_data = json.loads(JSONFormatter().format(record))
        assert log_data["trace_id"] == trace_id
        assert log_data["tenant_id"] == "tenant-7"
    finally:
        logging_module.set_trace_id(None)
        logging_module.set_tenant_id(None)
