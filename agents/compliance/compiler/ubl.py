"""UBL 2.1 Generator für UBL, XRechnung und PEPPOL BIS Billing 3.0."""

from __future__ import annotations

import textwrap

from ..dto import Invoice, LineItem, Party, TaxBreakdown
from ..formats import UBL_CAC_NS, UBL_CBC_NS, UBL_INVOICE_NS, EInvoiceFormat
from ._common import XML_DECLARATION, amount, iso_date, optional_element, quantity, text

EN16931_CUSTOMIZATION_ID = "urn:cen.eu:en16931:2017"
XRECHNUNG_CUSTOMIZATION_ID = "urn:cen.eu:en16931:2017#compliant#urn:xeinkauf.de:kosit:xrechnung_3.0"
PEPPOL_CUSTOMIZATION_ID = "urn:cen.eu:en16931:2017#compliant#urn:fdc:peppol.eu:2017:poacc:billing:3.0"
PEPPOL_PROFILE_ID = "urn:fdc:peppol.eu:2017:poacc:billing:01:1.0"

CUSTOMIZATION_IDS = {
    EInvoiceFormat.UBL: EN16931_CUSTOMIZATION_ID,
    EInvoiceFormat.XRECHNUNG: XRECHNUNG_CUSTOMIZATION_ID,
    EInvoiceFormat.PEPPOL: PEPPOL_CUSTOMIZATION_ID,
}


def _render_party(party: Party, *, with_endpoint: bool) -> str:
    endpoint = ""
    if with_endpoint and party.routing_code:
        endpoint = f'<cbc:EndpointID schemeID="0088">{text(party.routing_code)}</cbc:EndpointID>\n'
    tax_scheme = ""
    if party.vat_id:
        tax_scheme = textwrap.dedent(
            f"""
            <cac:PartyTaxScheme>
              <cbc:CompanyID>{text(party.vat_id)}</cbc:CompanyID>
              <cac:TaxScheme>
                <cbc:ID>VAT</cbc:ID>
              </cac:TaxScheme>
            </cac:PartyTaxScheme>
            """
        ).strip() + "\n"
    return (
        "<cac:Party>\n"
        + endpoint
        + textwrap.dedent(
            f"""
            <cac:PartyName>
              <cbc:Name>{text(party.name)}</cbc:Name>
            </cac:PartyName>
            <cac:PostalAddress>
              <cbc:StreetName>{text(party.address.street)}</cbc:StreetName>
              <cbc:CityName>{text(party.address.city)}</cbc:CityName>
              <cbc:PostalZone>{text(party.address.postal_code)}</cbc:PostalZone>
              <cac:Country>
                <cbc:IdentificationCode>{text(party.address.country_code)}</cbc:IdentificationCode>
              </cac:Country>
            </cac:PostalAddress>
            """
        ).strip()
        + "\n"
        + tax_scheme
        + textwrap.dedent(
            f"""
            <cac:PartyLegalEntity>
              <cbc:RegistrationName>{text(party.name)}</cbc:RegistrationName>
            </cac:PartyLegalEntity>
            """
        ).strip()
        + "\n</cac:Party>"
    )


def _render_tax_subtotal(entry: TaxBreakdown, currency: str) -> str:
    return textwrap.dedent(
        f"""
        <cac:TaxSubtotal>
          <cbc:TaxableAmount currencyID="{currency}">{amount(entry.taxable_amount)}</cbc:TaxableAmount>
          <cbc:TaxAmount currencyID="{currency}">{amount(entry.tax_amount)}</cbc:TaxAmount>
          <cac:TaxCategory>
            <cbc:ID>{text(entry.category_code)}</cbc:ID>
            <cbc:Percent>{amount(entry.rate)}</cbc:Percent>
            <cac:TaxScheme>
              <cbc:ID>VAT</cbc:ID>
            </cac:TaxScheme>
          </cac:TaxCategory>
        </cac:TaxSubtotal>
        """
    ).strip()


def _render_invoice_line(index: int, item: LineItem, currency: str) -> str:
    return textwrap.dedent(
        f"""
        <cac:InvoiceLine>
          <cbc:ID>{index}</cbc:ID>
          <cbc:InvoicedQuantity unitCode="{text(item.unit_code)}">{quantity(item.quantity)}</cbc:InvoicedQuantity>
          <cbc:LineExtensionAmount currencyID="{currency}">{amount(item.net_amount())}</cbc:LineExtensionAmount>
          <cac:Item>
            <cbc:Name>{text(item.description)}</cbc:Name>
            <cac:ClassifiedTaxCategory>
              <cbc:ID>{text(item.tax.category_code)}</cbc:ID>
              <cbc:Percent>{amount(item.tax.rate)}</cbc:Percent>
              <cac:TaxScheme>
                <cbc:ID>VAT</cbc:ID>
              </cac:TaxScheme>
            </cac:ClassifiedTaxCategory>
          </cac:Item>
          <cac:Price>
            <cbc:PriceAmount currencyID="{currency}">{amount(item.unit_price)}</cbc:PriceAmount>
          </cac:Price>
        </cac:InvoiceLine>
        """
    ).strip()


def build_ubl_xml(invoice: Invoice, fmt: EInvoiceFormat = EInvoiceFormat.UBL) -> str:
    if fmt not in CUSTOMIZATION_IDS:
        raise ValueError(f"Not a UBL flavour: {fmt}")

    totals = invoice.compute_totals()
    currency = text(invoice.currency)
    with_endpoint = fmt is EInvoiceFormat.PEPPOL

    header_lines = [
        f"<cbc:CustomizationID>{CUSTOMIZATION_IDS[fmt]}</cbc:CustomizationID>",
        f"<cbc:ProfileID>{PEPPOL_PROFILE_ID}</cbc:ProfileID>",
        f"<cbc:ID>{text(invoice.invoice_no)}</cbc:ID>",
        f"<cbc:IssueDate>{iso_date(invoice.issue_date)}</cbc:IssueDate>",
        f"<cbc:DueDate>{iso_date(invoice.due_date)}</cbc:DueDate>",
        f"<cbc:InvoiceTypeCode>{text(invoice.document_type)}</cbc:InvoiceTypeCode>",
        optional_element("cbc:Note", invoice.note),
        f"<cbc:DocumentCurrencyCode>{currency}</cbc:DocumentCurrencyCode>",
        optional_element("cbc:BuyerReference", invoice.buyer.routing_code),
    ]
    if invoice.purchase_order_reference:
        header_lines.append(
            f"<cac:OrderReference><cbc:ID>{text(invoice.purchase_order_reference)}</cbc:ID></cac:OrderReference>"
        )
    header_xml = "\n".join(line for line in header_lines if line)

    subtotals_xml = "\n".join(_render_tax_subtotal(entry, currency) for entry in totals.breakdown)
    lines_xml = "\n".join(
        _render_invoice_line(idx, item, currency) for idx, item in enumerate(invoice.line_items, start=1)
    )

    body = "\n".join(
        [
            header_xml,
            "<cac:AccountingSupplierParty>",
            textwrap.indent(_render_party(invoice.seller, with_endpoint=with_endpoint), "  "),
            "</cac:AccountingSupplierParty>",
            "<cac:AccountingCustomerParty>",
            textwrap.indent(_render_party(invoice.buyer, with_endpoint=with_endpoint), "  "),
            "</cac:AccountingCustomerParty>",
            "<cac:PaymentTerms>",
            f"  <cbc:Note>{text(invoice.payment_terms)}</cbc:Note>",
            "</cac:PaymentTerms>",
            "<cac:TaxTotal>",
            f'  <cbc:TaxAmount currencyID="{currency}">{amount(totals.total_tax)}</cbc:TaxAmount>',
            textwrap.indent(subtotals_xml, "  "),
            "</cac:TaxTotal>",
            "<cac:LegalMonetaryTotal>",
            f'  <cbc:LineExtensionAmount currencyID="{currency}">{amount(totals.total_net)}</cbc:LineExtensionAmount>',
            f'  <cbc:TaxExclusiveAmount currencyID="{currency}">{amount(totals.total_net)}</cbc:TaxExclusiveAmount>',
            f'  <cbc:TaxInclusiveAmount currencyID="{currency}">{amount(totals.total_gross)}</cbc:TaxInclusiveAmount>',
            f'  <cbc:PayableAmount currencyID="{currency}">{amount(totals.total_gross)}</cbc:PayableAmount>',
            "</cac:LegalMonetaryTotal>",
            lines_xml,
        ]
    )

    return (
        f"{XML_DECLARATION}\n"
        f'<Invoice xmlns="{UBL_INVOICE_NS}"\n'
        f'         xmlns:cac="{UBL_CAC_NS}"\n'
        f'         xmlns:cbc="{UBL_CBC_NS}">\n'
        f"{textwrap.indent(body, '  ')}\n"
        f"</Invoice>\n"
    )
