"""Dokument-Compiler: Rechnungs-DTO -> XML im Zielformat."""

from __future__ import annotations

from typing import Callable, Dict

from ..dto import Invoice
from ..formats import EInvoiceFormat, coerce_format
from .cii import build_cii_xml
from .facturae import build_facturae_xml
from .fatturapa import build_fatturapa_xml
from .ubl import build_ubl_xml

GENERATOR_VERSION = "1.0.0"

Compiler = Callable[[Invoice], str]

_COMPILERS: Dict[EInvoiceFormat, Compiler] = {
    EInvoiceFormat.UBL: lambda invoice: build_ubl_xml(invoice, EInvoiceFormat.UBL),
    EInvoiceFormat.XRECHNUNG: lambda invoice: build_ubl_xml(invoice, EInvoiceFormat.XRECHNUNG),
    EInvoiceFormat.PEPPOL: lambda invoice: build_ubl_xml(invoice, EInvoiceFormat.PEPPOL),
    EInvoiceFormat.CII: lambda invoice: build_cii_xml(invoice, EInvoiceFormat.CII),
    EInvoiceFormat.FACTURX: lambda invoice: build_cii_xml(invoice, EInvoiceFormat.FACTURX),
    EInvoiceFormat.ZUGFERD: lambda invoice: build_cii_xml(invoice, EInvoiceFormat.ZUGFERD),
    EInvoiceFormat.FATTURAPA: build_fatturapa_xml,
    EInvoiceFormat.FACTURAE: build_facturae_xml,
}


def compile_document(invoice: Invoice, fmt: EInvoiceFormat | str) -> str:
    """Rendert ``invoice`` deterministisch im Zielformat.

    Gleiche Eingaben ergeben byteidentisches XML. Unbekannte Formate führen
    zu ``ValueError``.
    """

    resolved = coerce_format(fmt) if isinstance(fmt, str) else fmt
    compiler = _COMPILERS.get(resolved) if resolved is not None else None
    if compiler is None:
        raise ValueError(f"Unsupported format: {fmt}")
    invoice.validate()
    return compiler(invoice)


def version() -> str:
    return GENERATOR_VERSION


__all__ = [
    "GENERATOR_VERSION",
    "build_cii_xml",
    "build_facturae_xml",
    "build_fatturapa_xml",
    "build_ubl_xml",
    "compile_document",
    "version",
]
