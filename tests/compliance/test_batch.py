import threading

from agents.compliance.formats import EInvoiceFormat
from agents.compliance.validation import BatchDocument, SchemaValidator, validate, validate_batch


def _snapshot(result):
    payload = result.to_dict()
    payload.pop("validated_at")
    return payload


def test_batch_preserves_input_order(ubl_xml, fatturapa_xml, facturae_xml):
    documents = [
        BatchDocument(ubl_xml(), EInvoiceFormat.UBL),
        BatchDocument(fatturapa_xml("XXXX"), EInvoiceFormat.FATTURAPA),
        BatchDocument(facturae_xml(), "facturae"),
        BatchDocument("<broken", EInvoiceFormat.CII),
    ]
    results = validate_batch(documents)
    assert [r.format for r in results] == [
        EInvoiceFormat.UBL,
        EInvoiceFormat.FATTURAPA,
        EInvoiceFormat.FACTURAE,
        EInvoiceFormat.CII,
    ]
    assert [r.valid for r in results] == [True, False, True, False]


def test_batch_results_equal_individual_validation(ubl_xml, cii_xml, fatturapa_xml):
    documents = [
        (ubl_xml(omit=["LegalMonetaryTotal"]), "UBL"),
        (cii_xml(guideline=None), "CII"),
        (fatturapa_xml(None), "FATTURAPA"),
        ("", "UBL"),
        (ubl_xml(), "EDIFACT"),
    ] * 5
    batch = SchemaValidator(max_workers=4).validate_batch(documents)
    individual = [validate(xml, fmt) for xml, fmt in documents]
    assert [_snapshot(r) for r in batch] == [_snapshot(r) for r in individual]


def test_batch_accepts_mappings_and_reports_bad_entries(ubl_xml):
    results = validate_batch([{"xml": ubl_xml(), "format": "UBL"}, {"xml": ubl_xml()}, "oops"])
    assert results[0].valid
    assert not results[1].valid
    assert results[1].errors[0].message.startswith("Invalid batch entry")
    assert not results[2].valid


def test_empty_batch():
    assert validate_batch([]) == []


def test_batch_runs_on_worker_threads(monkeypatch, ubl_xml):
    validator = SchemaValidator(max_workers=2)
    seen = set()
    original = validator.validate

    def _record(xml, fmt):
        seen.add(threading.current_thread().name)
        return original(xml, fmt)

    monkeypatch.setattr(validator, "validate", _record)
    validator.validate_batch([(ubl_xml(), "UBL")] * 4)
    assert seen
    assert all(name.startswith("einvoice-validate") for name in seen)
