"""UN/CEFACT CII D16B Generator (CII, Factur-X, ZUGFeRD)."""

from __future__ import annotations

import textwrap

from ..dto import Invoice, LineItem, Party, TaxBreakdown
from ..formats import CII_RAM_NS, CII_RSM_NS, CII_UDT_NS, EInvoiceFormat
from ._common import XML_DECLARATION, amount, compact_date, optional_element, quantity, text

CII_QDT_NS = "urn:un:unece:uncefact:data:standard:QualifiedDataType:100"

EN16931_GUIDELINE = "urn:cen.eu:en16931:2017"
FACTURX_GUIDELINE = "urn:cen.eu:en16931:2017#compliant#urn:factur-x.eu:1p0:basic"
ZUGFERD_GUIDELINE = "urn:cen.eu:en16931:2017#conformant#urn:zugferd.de:2p0:extended"

GUIDELINES = {
    EInvoiceFormat.CII: EN16931_GUIDELINE,
    EInvoiceFormat.FACTURX: FACTURX_GUIDELINE,
    EInvoiceFormat.ZUGFERD: ZUGFERD_GUIDELINE,
}


def _render_trade_party(tag: str, party: Party) -> str:
    tax_registration = ""
    if party.vat_id:
        tax_registration = (
            "\n  <ram:SpecifiedTaxRegistration>"
            f'<ram:ID schemeID="VA">{text(party.vat_id)}</ram:ID>'
            "</ram:SpecifiedTaxRegistration>"
        )
    return (
        textwrap.dedent(
            f"""
            <ram:{tag}>
              <ram:Name>{text(party.name)}</ram:Name>
              <ram:PostalTradeAddress>
                <ram:PostcodeCode>{text(party.address.postal_code)}</ram:PostcodeCode>
                <ram:LineOne>{text(party.address.street)}</ram:LineOne>
                <ram:CityName>{text(party.address.city)}</ram:CityName>
                <ram:CountryID>{text(party.address.country_code)}</ram:CountryID>
              </ram:PostalTradeAddress>
            """
        ).strip()
        + tax_registration
        + f"\n</ram:{tag}>"
    )


def _render_line(index: int, item: LineItem) -> str:
    return textwrap.dedent(
        f"""
        <ram:IncludedSupplyChainTradeLineItem>
          <ram:AssociatedDocumentLineDocument>
            <ram:LineID>{index}</ram:LineID>
          </ram:AssociatedDocumentLineDocument>
          <ram:SpecifiedTradeProduct>
            <ram:Name>{text(item.description)}</ram:Name>
          </ram:SpecifiedTradeProduct>
          <ram:SpecifiedLineTradeAgreement>
            <ram:NetPriceProductTradePrice>
              <ram:ChargeAmount>{amount(item.unit_price)}</ram:ChargeAmount>
            </ram:NetPriceProductTradePrice>
          </ram:SpecifiedLineTradeAgreement>
          <ram:SpecifiedLineTradeDelivery>
            <ram:BilledQuantity unitCode="{text(item.unit_code)}">{quantity(item.quantity)}</ram:BilledQuantity>
          </ram:SpecifiedLineTradeDelivery>
          <ram:SpecifiedLineTradeSettlement>
            <ram:ApplicableTradeTax>
              <ram:TypeCode>VAT</ram:TypeCode>
              <ram:CategoryCode>{text(item.tax.category_code)}</ram:CategoryCode>
              <ram:RateApplicablePercent>{amount(item.tax.rate)}</ram:RateApplicablePercent>
            </ram:ApplicableTradeTax>
            <ram:SpecifiedTradeSettlementLineMonetarySummation>
              <ram:LineTotalAmount>{amount(item.net_amount())}</ram:LineTotalAmount>
            </ram:SpecifiedTradeSettlementLineMonetarySummation>
          </ram:SpecifiedLineTradeSettlement>
        </ram:IncludedSupplyChainTradeLineItem>
        """
    ).strip()


def _render_trade_tax(entry: TaxBreakdown) -> str:
    return textwrap.dedent(
        f"""
        <ram:ApplicableTradeTax>
          <ram:CalculatedAmount>{amount(entry.tax_amount)}</ram:CalculatedAmount>
          <ram:TypeCode>VAT</ram:TypeCode>
          <ram:BasisAmount>{amount(entry.taxable_amount)}</ram:BasisAmount>
          <ram:CategoryCode>{text(entry.category_code)}</ram:CategoryCode>
          <ram:RateApplicablePercent>{amount(entry.rate)}</ram:RateApplicablePercent>
        </ram:ApplicableTradeTax>
        """
    ).strip()


def build_cii_xml(invoice: Invoice, fmt: EInvoiceFormat = EInvoiceFormat.CII) -> str:
    if fmt not in GUIDELINES:
        raise ValueError(f"Not a CII flavour: {fmt}")

    totals = invoice.compute_totals()
    currency = text(invoice.currency)

    note_xml = ""
    if invoice.note:
        note_xml = f"\n    <ram:IncludedNote><ram:Content>{text(invoice.note)}</ram:Content></ram:IncludedNote>"

    lines_xml = "\n".join(_render_line(idx, item) for idx, item in enumerate(invoice.line_items, start=1))
    taxes_xml = "\n".join(_render_trade_tax(entry) for entry in totals.breakdown)
    order_xml = ""
    if invoice.purchase_order_reference:
        order_xml = (
            "\n<ram:BuyerOrderReferencedDocument>"
            f"<ram:IssuerAssignedID>{text(invoice.purchase_order_reference)}</ram:IssuerAssignedID>"
            "</ram:BuyerOrderReferencedDocument>"
        )
    buyer_reference = optional_element("ram:BuyerReference", invoice.buyer.routing_code)

    agreement = "\n".join(
        line
        for line in (
            "<ram:ApplicableHeaderTradeAgreement>",
            textwrap.indent(buyer_reference, "  ") if buyer_reference else "",
            textwrap.indent(_render_trade_party("SellerTradeParty", invoice.seller), "  "),
            textwrap.indent(_render_trade_party("BuyerTradeParty", invoice.buyer), "  ") + order_xml,
            "</ram:ApplicableHeaderTradeAgreement>",
        )
        if line
    )

    settlement = textwrap.dedent(
        f"""
        <ram:ApplicableHeaderTradeSettlement>
          <ram:InvoiceCurrencyCode>{currency}</ram:InvoiceCurrencyCode>
        {{taxes}}
          <ram:SpecifiedTradePaymentTerms>
            <ram:Description>{text(invoice.payment_terms)}</ram:Description>
            <ram:DueDateDateTime>
              <udt:DateTimeString format="102">{compact_date(invoice.due_date)}</udt:DateTimeString>
            </ram:DueDateDateTime>
          </ram:SpecifiedTradePaymentTerms>
          <ram:SpecifiedTradeSettlementHeaderMonetarySummation>
            <ram:LineTotalAmount>{amount(totals.total_net)}</ram:LineTotalAmount>
            <ram:TaxBasisTotalAmount>{amount(totals.total_net)}</ram:TaxBasisTotalAmount>
            <ram:TaxTotalAmount currencyID="{currency}">{amount(totals.total_tax)}</ram:TaxTotalAmount>
            <ram:GrandTotalAmount>{amount(totals.total_gross)}</ram:GrandTotalAmount>
            <ram:DuePayableAmount>{amount(totals.total_gross)}</ram:DuePayableAmount>
          </ram:SpecifiedTradeSettlementHeaderMonetarySummation>
        </ram:ApplicableHeaderTradeSettlement>
        """
    ).strip().replace("{taxes}", textwrap.indent(taxes_xml, "  "))

    transaction = "\n".join(
        [
            "<rsm:SupplyChainTradeTransaction>",
            textwrap.indent(lines_xml, "  "),
            textwrap.indent(agreement, "  "),
            "  <ram:ApplicableHeaderTradeDelivery/>",
            textwrap.indent(settlement, "  "),
            "</rsm:SupplyChainTradeTransaction>",
        ]
    )

    header = textwrap.dedent(
        f"""
        <rsm:ExchangedDocumentContext>
          <ram:GuidelineSpecifiedDocumentContextParameter>
            <ram:ID>{GUIDELINES[fmt]}</ram:ID>
          </ram:GuidelineSpecifiedDocumentContextParameter>
        </rsm:ExchangedDocumentContext>
        <rsm:ExchangedDocument>
          <ram:ID>{text(invoice.invoice_no)}</ram:ID>
          <ram:TypeCode>{text(invoice.document_type)}</ram:TypeCode>
          <ram:IssueDateTime>
            <udt:DateTimeString format="102">{compact_date(invoice.issue_date)}</udt:DateTimeString>
          </ram:IssueDateTime>{{note}}
        </rsm:ExchangedDocument>
        """
    ).strip().replace("{note}", note_xml)

    return (
        f"{XML_DECLARATION}\n"
        f'<rsm:CrossIndustryInvoice xmlns:rsm="{CII_RSM_NS}"\n'
        f'                          xmlns:ram="{CII_RAM_NS}"\n'
        f'                          xmlns:qdt="{CII_QDT_NS}"\n'
        f'                          xmlns:udt="{CII_UDT_NS}">\n'
        f"{textwrap.indent(header, '  ')}\n"
        f"{textwrap.indent(transaction, '  ')}\n"
        f"</rsm:CrossIndustryInvoice>\n"
    )
