"""FatturaPA 1.2.2 Generator (SDI, Italien)."""

from __future__ import annotations

import re
import textwrap
from decimal import Decimal
from typing import Optional

from ..dto import Address, Invoice, LineItem, Party, TaxBreakdown
from ..formats import FATTURAPA_NS
from ..signing.xades import DS_NS
from ._common import XML_DECLARATION, amount, iso_date, optional_element, text

PRIVATE_TRANSMISSION = "FPR12"
PUBLIC_ADMINISTRATION_TRANSMISSION = "FPA12"
# Codice Destinatario für Empfänger ohne SDI-Kanal (Zustellung per PEC)
DEFAULT_RECIPIENT_CODE = "0000000"

DOCUMENT_TYPES = {"380": "TD01", "381": "TD04", "383": "TD05"}
# Natura für steuerfreie Umsätze je EN16931-Steuerkategorie
NATURA_BY_CATEGORY = {"E": "N4", "Z": "N3.1", "AE": "N6.9", "K": "N3.2", "G": "N3.1", "O": "N2.2"}

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def transmission_format(buyer: Party) -> str:
    """Öffentliche Verwaltung hat einen sechsstelligen Codice Ufficio."""

    if buyer.routing_code and len(buyer.routing_code) == 6:
        return PUBLIC_ADMINISTRATION_TRANSMISSION
    return PRIVATE_TRANSMISSION


def progressive_number(invoice_no: str) -> str:
    cleaned = _NON_ALNUM.sub("", invoice_no)
    return cleaned[-5:] or "1"


def _natura(rate: Decimal, category_code: str) -> Optional[str]:
    if rate != 0:
        return None
    return NATURA_BY_CATEGORY.get(category_code, "N2.2")


def _render_sede(address: Address) -> str:
    return "\n".join(
        line
        for line in (
            "<Sede>",
            f"  <Indirizzo>{text(address.street)}</Indirizzo>",
            f"  <CAP>{text(address.postal_code)}</CAP>",
            f"  <Comune>{text(address.city)}</Comune>",
            "  " + optional_element("Provincia", address.province) if address.province else "",
            f"  <Nazione>{text(address.country_code)}</Nazione>",
            "</Sede>",
        )
        if line
    )


def _render_fiscal_ids(party: Party) -> str:
    parts = []
    if party.vat_id:
        country = party.vat_id[:2].upper() if party.vat_id[:2].isalpha() else party.address.country_code
        parts.append(
            textwrap.dedent(
                f"""
                <IdFiscaleIVA>
                  <IdPaese>{text(country)}</IdPaese>
                  <IdCodice>{text(party.vat_number)}</IdCodice>
                </IdFiscaleIVA>
                """
            ).strip()
        )
    if party.tax_id:
        parts.append(f"<CodiceFiscale>{text(party.tax_id)}</CodiceFiscale>")
    return "\n".join(parts)


def _render_party(tag: str, party: Party, *, seller: bool) -> str:
    regime = "\n  <RegimeFiscale>RF01</RegimeFiscale>" if seller else ""
    anagrafici = (
        "<DatiAnagrafici>\n"
        + textwrap.indent(_render_fiscal_ids(party), "  ")
        + "\n  <Anagrafica>\n"
        + f"    <Denominazione>{text(party.name)}</Denominazione>\n"
        + "  </Anagrafica>"
        + regime
        + "\n</DatiAnagrafici>"
    )
    return "\n".join(
        [
            f"<{tag}>",
            textwrap.indent(anagrafici, "  "),
            textwrap.indent(_render_sede(party.address), "  "),
            f"</{tag}>",
        ]
    )


def _render_transmission(invoice: Invoice) -> str:
    seller = invoice.seller
    sender_code = seller.tax_id or seller.vat_number
    country = seller.address.country_code
    recipient = invoice.buyer.routing_code or DEFAULT_RECIPIENT_CODE
    pec = ""
    if recipient == DEFAULT_RECIPIENT_CODE and invoice.buyer.email:
        pec = f"\n  <PECDestinatario>{text(invoice.buyer.email)}</PECDestinatario>"
    return (
        textwrap.dedent(
            f"""
            <DatiTrasmissione>
              <IdTrasmittente>
                <IdPaese>{text(country)}</IdPaese>
                <IdCodice>{text(sender_code)}</IdCodice>
              </IdTrasmittente>
              <ProgressivoInvio>{text(progressive_number(invoice.invoice_no))}</ProgressivoInvio>
              <FormatoTrasmissione>{transmission_format(invoice.buyer)}</FormatoTrasmissione>
              <CodiceDestinatario>{text(recipient)}</CodiceDestinatario>
            """
        ).strip()
        + pec
        + "\n</DatiTrasmissione>"
    )


def _render_line(index: int, item: LineItem) -> str:
    natura = _natura(item.tax.rate, item.tax.category_code)
    natura_xml = f"\n  <Natura>{natura}</Natura>" if natura else ""
    return (
        textwrap.dedent(
            f"""
            <DettaglioLinee>
              <NumeroLinea>{index}</NumeroLinea>
              <Descrizione>{text(item.description)}</Descrizione>
              <Quantita>{amount(item.quantity)}</Quantita>
              <PrezzoUnitario>{amount(item.unit_price)}</PrezzoUnitario>
              <PrezzoTotale>{amount(item.net_amount())}</PrezzoTotale>
              <AliquotaIVA>{amount(item.tax.rate)}</AliquotaIVA>
            """
        ).strip()
        + natura_xml
        + "\n</DettaglioLinee>"
    )


def _render_summary(entry: TaxBreakdown, exemption_reason: Optional[str]) -> str:
    natura = _natura(entry.rate, entry.category_code)
    lines = [
        "<DatiRiepilogo>",
        f"  <AliquotaIVA>{amount(entry.rate)}</AliquotaIVA>",
    ]
    if natura:
        lines.append(f"  <Natura>{natura}</Natura>")
    lines += [
        f"  <ImponibileImporto>{amount(entry.taxable_amount)}</ImponibileImporto>",
        f"  <Imposta>{amount(entry.tax_amount)}</Imposta>",
    ]
    if natura:
        if exemption_reason:
            lines.append(f"  <RiferimentoNormativo>{text(exemption_reason)}</RiferimentoNormativo>")
    else:
        lines.append("  <EsigibilitaIVA>I</EsigibilitaIVA>")
    lines.append("</DatiRiepilogo>")
    return "\n".join(lines)


def _exemption_reason(invoice: Invoice, entry: TaxBreakdown) -> Optional[str]:
    for item in invoice.line_items:
        if item.tax.rate == entry.rate and item.tax.category_code == entry.category_code:
            if item.tax.exemption_reason:
                return item.tax.exemption_reason
    return None


def build_fatturapa_xml(invoice: Invoice) -> str:
    totals = invoice.compute_totals()
    document_type = DOCUMENT_TYPES.get(invoice.document_type, "TD01")

    header = "\n".join(
        [
            "<FatturaElettronicaHeader>",
            textwrap.indent(_render_transmission(invoice), "  "),
            textwrap.indent(_render_party("CedentePrestatore", invoice.seller, seller=True), "  "),
            textwrap.indent(_render_party("CessionarioCommittente", invoice.buyer, seller=False), "  "),
            "</FatturaElettronicaHeader>",
        ]
    )

    causale = optional_element("Causale", invoice.note)
    general = "\n".join(
        line
        for line in (
            "<DatiGenerali>",
            "  <DatiGeneraliDocumento>",
            f"    <TipoDocumento>{document_type}</TipoDocumento>",
            f"    <Divisa>{text(invoice.currency)}</Divisa>",
            f"    <Data>{iso_date(invoice.issue_date)}</Data>",
            f"    <Numero>{text(invoice.invoice_no)}</Numero>",
            f"    <ImportoTotaleDocumento>{amount(totals.total_gross)}</ImportoTotaleDocumento>",
            f"    {causale}" if causale else "",
            "  </DatiGeneraliDocumento>",
            "</DatiGenerali>",
        )
        if line
    )

    goods = "\n".join(
        ["<DatiBeniServizi>"]
        + [textwrap.indent(_render_line(idx, item), "  ") for idx, item in enumerate(invoice.line_items, start=1)]
        + [
            textwrap.indent(_render_summary(entry, _exemption_reason(invoice, entry)), "  ")
            for entry in totals.breakdown
        ]
        + ["</DatiBeniServizi>"]
    )

    payment = textwrap.dedent(
        f"""
        <DatiPagamento>
          <CondizioniPagamento>TP02</CondizioniPagamento>
          <DettaglioPagamento>
            <ModalitaPagamento>MP05</ModalitaPagamento>
            <DataScadenzaPagamento>{iso_date(invoice.due_date)}</DataScadenzaPagamento>
            <ImportoPagamento>{amount(totals.total_gross)}</ImportoPagamento>
          </DettaglioPagamento>
        </DatiPagamento>
        """
    ).strip()

    body = "\n".join(
        [
            "<FatturaElettronicaBody>",
            textwrap.indent(general, "  "),
            textwrap.indent(goods, "  "),
            textwrap.indent(payment, "  "),
            "</FatturaElettronicaBody>",
        ]
    )

    return (
        f"{XML_DECLARATION}\n"
        f'<p:FatturaElettronica xmlns:p="{FATTURAPA_NS}"\n'
        f'                      xmlns:ds="{DS_NS}"\n'
        f'                      versione="{transmission_format(invoice.buyer)}">\n'
        f"{textwrap.indent(header, '  ')}\n"
        f"{textwrap.indent(body, '  ')}\n"
        f"</p:FatturaElettronica>\n"
    )
