"""Format-Registry für die unterstützten E-Invoice-Formate.

Die Tabellen werden beim Import einmalig aufgebaut und danach nur gelesen
(``MappingProxyType``). Mehrere Formate teilen sich bewusst Namespace und
Root-Element (CII/FACTURX/ZUGFERD bzw. UBL/XRECHNUNG/PEPPOL); die
Unterscheidung erfolgt über Guideline- bzw. CustomizationID.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class EInvoiceFormat(str, Enum):
    UBL = "UBL"
    CII = "CII"
    FACTURX = "FACTURX"
    ZUGFERD = "ZUGFERD"
    FATTURAPA = "FATTURAPA"
    FACTURAE = "FACTURAE"
    XRECHNUNG = "XRECHNUNG"
    PEPPOL = "PEPPOL"


UBL_INVOICE_NS = "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2"
UBL_CBC_NS = "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"
UBL_CAC_NS = "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"
CII_RSM_NS = "urn:un:unece:uncefact:data:standard:CrossIndustryInvoice:100"
CII_RAM_NS = "urn:un:unece:uncefact:data:standard:ReusableAggregateBusinessInformationEntity:100"
CII_UDT_NS = "urn:un:unece:uncefact:data:standard:UnqualifiedDataType:100"
FATTURAPA_NS = "http://ivaservizi.agenziaentrate.gov.it/docs/xsd/fatture/v1.2"
FACTURAE_NS = "http://www.facturae.gob.es/formato/Versiones/Facturaev3_2_2.xml"

UBL_FAMILY = frozenset({EInvoiceFormat.UBL, EInvoiceFormat.XRECHNUNG, EInvoiceFormat.PEPPOL})
CII_FAMILY = frozenset({EInvoiceFormat.CII, EInvoiceFormat.FACTURX, EInvoiceFormat.ZUGFERD})


@dataclass(frozen=True, slots=True)
class SchemaDefinition:
    format: EInvoiceFormat
    namespace: str
    root_element: str
    version: str


@dataclass(frozen=True, slots=True)
class RequiredElement:
    name: str
    path: str
    required: bool = True
    namespace: Optional[str] = None


# Reihenfolge ist Teil des Vertrags (get_supported_formats, detect_format)
_DEFINITIONS: Tuple[SchemaDefinition, ...] = (
    SchemaDefinition(EInvoiceFormat.UBL, UBL_INVOICE_NS, "Invoice", "2.1"),
    SchemaDefinition(EInvoiceFormat.CII, CII_RSM_NS, "CrossIndustryInvoice", "D16B"),
    SchemaDefinition(EInvoiceFormat.FACTURX, CII_RSM_NS, "CrossIndustryInvoice", "1.0"),
    SchemaDefinition(EInvoiceFormat.ZUGFERD, CII_RSM_NS, "CrossIndustryInvoice", "2.2"),
    SchemaDefinition(EInvoiceFormat.FATTURAPA, FATTURAPA_NS, "FatturaElettronica", "1.2.2"),
    SchemaDefinition(EInvoiceFormat.FACTURAE, FACTURAE_NS, "Facturae", "3.2.2"),
    SchemaDefinition(EInvoiceFormat.XRECHNUNG, UBL_INVOICE_NS, "Invoice", "3.0"),
    SchemaDefinition(EInvoiceFormat.PEPPOL, UBL_INVOICE_NS, "Invoice", "3.0"),
)

SCHEMA_DEFINITIONS: Mapping[EInvoiceFormat, SchemaDefinition] = MappingProxyType(
    {definition.format: definition for definition in _DEFINITIONS}
)

_CII_NAMESPACES = (CII_RSM_NS, CII_RAM_NS)

REQUIRED_NAMESPACES: Mapping[EInvoiceFormat, Tuple[str, ...]] = MappingProxyType(
    {
        EInvoiceFormat.UBL: (UBL_INVOICE_NS, UBL_CBC_NS, UBL_CAC_NS),
        EInvoiceFormat.CII: _CII_NAMESPACES,
        EInvoiceFormat.FACTURX: _CII_NAMESPACES,
        EInvoiceFormat.ZUGFERD: _CII_NAMESPACES,
        EInvoiceFormat.FATTURAPA: (FATTURAPA_NS,),
        EInvoiceFormat.FACTURAE: (FACTURAE_NS,),
        EInvoiceFormat.XRECHNUNG: (UBL_INVOICE_NS, UBL_CBC_NS),
        EInvoiceFormat.PEPPOL: (UBL_INVOICE_NS, UBL_CBC_NS),
    }
)

_UBL_ELEMENTS = (
    RequiredElement("ID", "/*/ID", namespace=UBL_CBC_NS),
    RequiredElement("IssueDate", "/Invoice/IssueDate", namespace=UBL_CBC_NS),
    RequiredElement("InvoiceTypeCode", "/Invoice/InvoiceTypeCode", namespace=UBL_CBC_NS),
    RequiredElement("DocumentCurrencyCode", "/Invoice/DocumentCurrencyCode", namespace=UBL_CBC_NS),
)
_CII_ELEMENTS = (
    RequiredElement("ExchangedDocument", "/CrossIndustryInvoice/ExchangedDocument", namespace=CII_RSM_NS),
)

REQUIRED_ELEMENTS: Mapping[EInvoiceFormat, Tuple[RequiredElement, ...]] = MappingProxyType(
    {
        EInvoiceFormat.UBL: _UBL_ELEMENTS,
        EInvoiceFormat.XRECHNUNG: _UBL_ELEMENTS,
        EInvoiceFormat.PEPPOL: _UBL_ELEMENTS,
        EInvoiceFormat.CII: _CII_ELEMENTS,
        EInvoiceFormat.FACTURX: _CII_ELEMENTS,
        EInvoiceFormat.ZUGFERD: _CII_ELEMENTS,
        EInvoiceFormat.FATTURAPA: (
            RequiredElement(
                "DatiTrasmissione",
                "/FatturaElettronica/FatturaElettronicaHeader/DatiTrasmissione",
            ),
        ),
        EInvoiceFormat.FACTURAE: (RequiredElement("FileHeader", "/Facturae/FileHeader"),),
    }
)

# Italien (SDI) und Spanien (FACe) verlangen eine XAdES-Signatur
SIGNATURE_REQUIRED_FORMATS = frozenset({EInvoiceFormat.FATTURAPA, EInvoiceFormat.FACTURAE})


def coerce_format(tag: EInvoiceFormat | str) -> Optional[EInvoiceFormat]:
    """Normalisiert ein Format-Tag (Enum oder String, case-insensitive)."""

    if isinstance(tag, EInvoiceFormat):
        return tag
    if not isinstance(tag, str):
        return None
    try:
        return EInvoiceFormat(tag.strip().upper())
    except ValueError:
        return None


def is_format_supported(tag: EInvoiceFormat | str) -> bool:
    return coerce_format(tag) in SCHEMA_DEFINITIONS


def get_supported_formats() -> list[EInvoiceFormat]:
    return [definition.format for definition in _DEFINITIONS]


def iter_schema_definitions() -> Tuple[SchemaDefinition, ...]:
    return _DEFINITIONS


def get_schema_definition(fmt: EInvoiceFormat) -> SchemaDefinition:
    return SCHEMA_DEFINITIONS[fmt]


def get_required_namespaces(fmt: EInvoiceFormat) -> Tuple[str, ...]:
    return REQUIRED_NAMESPACES.get(fmt, ())


def get_required_elements(fmt: EInvoiceFormat) -> Tuple[RequiredElement, ...]:
    return REQUIRED_ELEMENTS.get(fmt, ())


def requires_signature(fmt: EInvoiceFormat | str) -> bool:
    return coerce_format(fmt) in SIGNATURE_REQUIRED_FORMATS
