import pytest

from agents.compliance.formats import EInvoiceFormat
from agents.compliance.validation import SchemaValidator, detect_format
from backend.core.observability import metrics


@pytest.mark.parametrize(
    "customization, expected",
    [
        ("urn:cen.eu:en16931:2017", EInvoiceFormat.UBL),
        ("urn:cen.eu:en16931:2017#compliant#urn:xeinkauf.de:kosit:xrechnung_3.0", EInvoiceFormat.XRECHNUNG),
        ("urn:cen.eu:en16931:2017#compliant#urn:fdc:peppol.eu:2017:poacc:billing:3.0", EInvoiceFormat.PEPPOL),
        ("URN:CEN.EU:EN16931:2017#COMPLIANT#URN:XEINKAUF.DE:KOSIT:XRECHNUNG_3.0", EInvoiceFormat.XRECHNUNG),
    ],
)
def test_detects_ubl_family(ubl_xml, customization, expected):
    assert detect_format(ubl_xml(customization=customization)) is expected


def test_ubl_without_customization_is_plain_ubl(ubl_xml):
    assert detect_format(ubl_xml(omit=["CustomizationID"])) is EInvoiceFormat.UBL


@pytest.mark.parametrize(
    "guideline, expected",
    [
        ("urn:cen.eu:en16931:2017", EInvoiceFormat.CII),
        ("urn:cen.eu:en16931:2017#compliant#urn:factur-x.eu:1p0:basic", EInvoiceFormat.FACTURX),
        ("urn:cen.eu:en16931:2017#conformant#urn:zugferd.de:2p0:extended", EInvoiceFormat.ZUGFERD),
        (None, EInvoiceFormat.CII),
    ],
)
def test_detects_cii_family(cii_xml, guideline, expected):
    assert detect_format(cii_xml(guideline=guideline)) is expected


def test_detects_fatturapa_and_facturae(fatturapa_xml, facturae_xml):
    assert detect_format(fatturapa_xml()) is EInvoiceFormat.FATTURAPA
    assert detect_format(facturae_xml().encode("utf-8")) is EInvoiceFormat.FACTURAE


@pytest.mark.parametrize(
    "xml",
    [
        "",
        "not xml at all",
        "<Invoice><ID>1</Invoice>",
        "<Invoice/>",
        '<Invoice xmlns="urn:example:invoice"/>',
        '<Order xmlns="urn:oasis:names:specification:ubl:schema:xsd:Order-2"/>',
    ],
)
def test_returns_none_for_unrecognised_input(xml):
    assert detect_format(xml) is None


def test_detection_is_counted(ubl_xml):
    detect_format(ubl_xml())
    detect_format("garbage")
    snapshot = metrics.get_metrics()
    assert snapshot["compliance_detections_total{format=UBL}"]["count"] == 1
    assert snapshot["compliance_detections_total{format=unknown}"]["count"] == 1


def test_detection_failure_returns_none(monkeypatch, ubl_xml):
    def explode(self, xml):
        raise RuntimeError("detector exploded")

    monkeypatch.setattr(SchemaValidator, "_detect", explode)
    assert SchemaValidator().detect_format(ubl_xml()) is None
    assert metrics.get_metrics()["compliance_detections_total{format=unknown}"]["count"] == 1
