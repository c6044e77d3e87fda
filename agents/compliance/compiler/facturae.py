"""Facturae 3.2.2 Generator (FACe, Spanien)."""

from __future__ import annotations

import textwrap

from ..dto import Address, Invoice, LineItem, Party, TaxBreakdown
from ..formats import FACTURAE_NS
from ..signing.xades import DS_NS
from ._common import XML_DECLARATION, amount, country_alpha3, iso_date, text

SCHEMA_VERSION = "3.2.2"
# 01 = IVA
VAT_TAX_TYPE = "01"
DOCUMENT_TYPES = {"380": ("FC", "OO"), "381": ("FC", "OR")}
# Facturae Einheiten: 01 Stück, 02 Stunden, 03 kg
UNITS_OF_MEASURE = {"C62": "01", "H87": "01", "HUR": "02", "KGM": "03"}


def _render_address(address: Address) -> str:
    if address.country_code.upper() == "ES":
        return textwrap.dedent(
            f"""
            <AddressInSpain>
              <Address>{text(address.street)}</Address>
              <PostCode>{text(address.postal_code)}</PostCode>
              <Town>{text(address.city)}</Town>
              <Province>{text(address.province or address.city)}</Province>
              <CountryCode>ESP</CountryCode>
            </AddressInSpain>
            """
        ).strip()
    return textwrap.dedent(
        f"""
        <OverseasAddress>
          <Address>{text(address.street)}</Address>
          <PostCodeAndTown>{text(address.postal_code)} {text(address.city)}</PostCodeAndTown>
          <Province>{text(address.province or address.city)}</Province>
          <CountryCode>{country_alpha3(address.country_code)}</CountryCode>
        </OverseasAddress>
        """
    ).strip()


def _tax_identification(party: Party) -> str:
    residence = "R" if party.address.country_code.upper() == "ES" else "U"
    number = party.vat_id or party.tax_id or ""
    return textwrap.dedent(
        f"""
        <TaxIdentification>
          <PersonTypeCode>J</PersonTypeCode>
          <ResidenceTypeCode>{residence}</ResidenceTypeCode>
          <TaxIdentificationNumber>{text(number)}</TaxIdentificationNumber>
        </TaxIdentification>
        """
    ).strip()


def _render_party(tag: str, party: Party) -> str:
    return "\n".join(
        [
            f"<{tag}>",
            textwrap.indent(_tax_identification(party), "  "),
            "  <LegalEntity>",
            f"    <CorporateName>{text(party.name)}</CorporateName>",
            textwrap.indent(_render_address(party.address), "    "),
            "  </LegalEntity>",
            f"</{tag}>",
        ]
    )


def _render_tax(rate, taxable, tax_amount) -> str:
    return textwrap.dedent(
        f"""
        <Tax>
          <TaxTypeCode>{VAT_TAX_TYPE}</TaxTypeCode>
          <TaxRate>{amount(rate)}</TaxRate>
          <TaxableBase>
            <TotalAmount>{amount(taxable)}</TotalAmount>
          </TaxableBase>
          <TaxAmount>
            <TotalAmount>{amount(tax_amount)}</TotalAmount>
          </TaxAmount>
        </Tax>
        """
    ).strip()


def _render_taxes(breakdown: list[TaxBreakdown]) -> str:
    taxes = "\n".join(_render_tax(b.rate, b.taxable_amount, b.tax_amount) for b in breakdown)
    return "<TaxesOutputs>\n" + textwrap.indent(taxes, "  ") + "\n</TaxesOutputs>"


def _render_line(item: LineItem) -> str:
    net = item.net_amount()
    tax = _render_tax(item.tax.rate, net, item.tax_amount())
    return "\n".join(
        [
            "<InvoiceLine>",
            f"  <ItemDescription>{text(item.description)}</ItemDescription>",
            f"  <Quantity>{amount(item.quantity)}</Quantity>",
            f"  <UnitOfMeasure>{UNITS_OF_MEASURE.get(item.unit_code, '01')}</UnitOfMeasure>",
            f"  <UnitPriceWithoutTax>{amount(item.unit_price)}</UnitPriceWithoutTax>",
            f"  <TotalCost>{amount(net)}</TotalCost>",
            f"  <GrossAmount>{amount(net)}</GrossAmount>",
            "  <TaxesOutputs>",
            textwrap.indent(tax, "    "),
            "  </TaxesOutputs>",
            "</InvoiceLine>",
        ]
    )


def build_facturae_xml(invoice: Invoice) -> str:
    totals = invoice.compute_totals()
    currency = text(invoice.currency)
    gross = amount(totals.total_gross)
    document_type, invoice_class = DOCUMENT_TYPES.get(invoice.document_type, ("FC", "OO"))

    file_header = textwrap.dedent(
        f"""
        <FileHeader>
          <SchemaVersion>{SCHEMA_VERSION}</SchemaVersion>
          <Modality>I</Modality>
          <InvoiceIssuerType>EM</InvoiceIssuerType>
          <Batch>
            <BatchIdentifier>{text(invoice.seller.vat_id or '')}{text(invoice.invoice_no)}</BatchIdentifier>
            <InvoicesCount>1</InvoicesCount>
            <TotalInvoicesAmount>
              <TotalAmount>{gross}</TotalAmount>
            </TotalInvoicesAmount>
            <TotalOutstandingAmount>
              <TotalAmount>{gross}</TotalAmount>
            </TotalOutstandingAmount>
            <TotalExecutableAmount>
              <TotalAmount>{gross}</TotalAmount>
            </TotalExecutableAmount>
            <InvoiceCurrencyCode>{currency}</InvoiceCurrencyCode>
          </Batch>
        </FileHeader>
        """
    ).strip()

    parties = "\n".join(
        [
            "<Parties>",
            textwrap.indent(_render_party("SellerParty", invoice.seller), "  "),
            textwrap.indent(_render_party("BuyerParty", invoice.buyer), "  "),
            "</Parties>",
        ]
    )

    invoice_head = textwrap.dedent(
        f"""
        <InvoiceHeader>
          <InvoiceNumber>{text(invoice.invoice_no)}</InvoiceNumber>
          <InvoiceDocumentType>{document_type}</InvoiceDocumentType>
          <InvoiceClass>{invoice_class}</InvoiceClass>
        </InvoiceHeader>
        <InvoiceIssueData>
          <IssueDate>{iso_date(invoice.issue_date)}</IssueDate>
          <InvoiceCurrencyCode>{currency}</InvoiceCurrencyCode>
          <TaxCurrencyCode>{currency}</TaxCurrencyCode>
          <LanguageName>es</LanguageName>
        </InvoiceIssueData>
        """
    ).strip()

    invoice_totals = textwrap.dedent(
        f"""
        <InvoiceTotals>
          <TotalGrossAmount>{amount(totals.total_net)}</TotalGrossAmount>
          <TotalGrossAmountBeforeTaxes>{amount(totals.total_net)}</TotalGrossAmountBeforeTaxes>
          <TotalTaxOutputs>{amount(totals.total_tax)}</TotalTaxOutputs>
          <TotalTaxesWithheld>0.00</TotalTaxesWithheld>
          <InvoiceTotal>{gross}</InvoiceTotal>
          <TotalOutstandingAmount>{gross}</TotalOutstandingAmount>
          <TotalExecutableAmount>{gross}</TotalExecutableAmount>
        </InvoiceTotals>
        """
    ).strip()

    items = "\n".join(
        ["<Items>"] + [textwrap.indent(_render_line(item), "  ") for item in invoice.line_items] + ["</Items>"]
    )

    payment = textwrap.dedent(
        f"""
        <PaymentDetails>
          <Installment>
            <InstallmentDueDate>{iso_date(invoice.due_date)}</InstallmentDueDate>
            <InstallmentAmount>{gross}</InstallmentAmount>
            <PaymentMeans>04</PaymentMeans>
          </Installment>
        </PaymentDetails>
        """
    ).strip()

    invoice_xml = "\n".join(
        [
            "<Invoice>",
            textwrap.indent(invoice_head, "  "),
            textwrap.indent(_render_taxes(totals.breakdown), "  "),
            textwrap.indent(invoice_totals, "  "),
            textwrap.indent(items, "  "),
            textwrap.indent(payment, "  "),
            "</Invoice>",
        ]
    )

    return (
        f"{XML_DECLARATION}\n"
        f'<fe:Facturae xmlns:fe="{FACTURAE_NS}"\n'
        f'             xmlns:ds="{DS_NS}">\n'
        f"{textwrap.indent(file_header, '  ')}\n"
        f"{textwrap.indent(parties, '  ')}\n"
        "  <Invoices>\n"
        f"{textwrap.indent(invoice_xml, '    ')}\n"
        "  </Invoices>\n"
        f"</fe:Facturae>\n"
    )
