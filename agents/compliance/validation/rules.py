"""Formatspezifische Prüfregeln (genau ein Zweig pro Format-Familie)."""

from __future__ import annotations

from typing import Callable, Dict

from lxml import etree

from ..formats import CII_FAMILY, UBL_CAC_NS, UBL_CBC_NS, UBL_FAMILY, EInvoiceFormat
from .lookup import (
    CII_ROOT_STRATEGIES,
    element_text,
    extract_guideline_id,
    has_element,
)
from .result import Findings, error, warning

FATTURAPA_VERSIONS = ("FPR12", "FPA12")
FACTURAE_SUPPORTED_VERSION_PREFIX = "3.2"

Rule = Callable[[etree._Element], Findings]


def validate_ubl(root: etree._Element) -> Findings:
    findings = Findings()

    if not element_text(root, "CustomizationID", UBL_CBC_NS):
        findings.add(error("Missing CustomizationID element", "/Invoice/CustomizationID"))

    if not element_text(root, "ProfileID", UBL_CBC_NS):
        findings.add(warning("Missing ProfileID element", "/Invoice/ProfileID"))

    for name in ("AccountingSupplierParty", "AccountingCustomerParty", "LegalMonetaryTotal"):
        if not has_element(root, name, UBL_CAC_NS):
            findings.add(error(f"Missing {name}", f"/Invoice/{name}"))

    return findings


def validate_cii(root: etree._Element) -> Findings:
    findings = Findings()

    for name in ("ExchangedDocumentContext", "SupplyChainTradeTransaction"):
        if not has_element(root, name, strategies=CII_ROOT_STRATEGIES):
            findings.add(error(f"Missing {name}", f"/CrossIndustryInvoice/{name}"))

    if not extract_guideline_id(root):
        findings.add(
            warning(
                "Missing GuidelineSpecifiedDocumentContextParameter",
                "/CrossIndustryInvoice/ExchangedDocumentContext/GuidelineSpecifiedDocumentContextParameter",
            )
        )

    return findings


def validate_fatturapa(root: etree._Element) -> Findings:
    findings = Findings()

    versione = root.get("versione")
    if not versione:
        findings.add(error("Missing versione attribute on root element", "/FatturaElettronica/@versione"))
    elif versione not in FATTURAPA_VERSIONS:
        findings.add(
            error(
                f"Invalid versione: {versione}. Expected FPR12 or FPA12",
                "/FatturaElettronica/@versione",
            )
        )

    checks = (
        ("FatturaElettronicaHeader", "Missing FatturaElettronicaHeader", "/FatturaElettronica/FatturaElettronicaHeader"),
        ("FatturaElettronicaBody", "Missing FatturaElettronicaBody", "/FatturaElettronica/FatturaElettronicaBody"),
        (
            "CedentePrestatore",
            "Missing CedentePrestatore (seller)",
            "/FatturaElettronica/FatturaElettronicaHeader/CedentePrestatore",
        ),
        (
            "CessionarioCommittente",
            "Missing CessionarioCommittente (buyer)",
            "/FatturaElettronica/FatturaElettronicaHeader/CessionarioCommittente",
        ),
    )
    for name, message, path in checks:
        if not has_element(root, name):
            findings.add(error(message, path))

    return findings


def validate_facturae(root: etree._Element) -> Findings:
    findings = Findings()

    for name in ("FileHeader", "Parties", "Invoices"):
        if not has_element(root, name):
            findings.add(error(f"Missing {name}", f"/Facturae/{name}"))

    schema_version = element_text(root, "SchemaVersion")
    if schema_version and not schema_version.startswith(FACTURAE_SUPPORTED_VERSION_PREFIX):
        findings.add(
            warning(
                f"Schema version {schema_version} may not be fully supported",
                "/Facturae/FileHeader/SchemaVersion",
            )
        )

    return findings


FORMAT_RULES: Dict[EInvoiceFormat, Rule] = {
    **{fmt: validate_ubl for fmt in UBL_FAMILY},
    **{fmt: validate_cii for fmt in CII_FAMILY},
    EInvoiceFormat.FATTURAPA: validate_fatturapa,
    EInvoiceFormat.FACTURAE: validate_facturae,
}


def validate_format_specific(root: etree._Element, fmt: EInvoiceFormat) -> Findings:
    rule = FORMAT_RULES.get(fmt)
    if rule is None:
        return Findings()
    return rule(root)
