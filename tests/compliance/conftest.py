from typing import Iterable

import pytest

from agents.compliance.formats import (
    CII_RAM_NS,
    CII_RSM_NS,
    FACTURAE_NS,
    FATTURAPA_NS,
    UBL_CAC_NS,
    UBL_CBC_NS,
    UBL_INVOICE_NS,
)

_UBL_PARTS = {
    "CustomizationID": "<cbc:CustomizationID>{customization}</cbc:CustomizationID>",
    "ProfileID": "<cbc:ProfileID>urn:fdc:peppol.eu:2017:poacc:billing:01:1.0</cbc:ProfileID>",
    "ID": "<cbc:ID>INV-2025-001</cbc:ID>",
    "IssueDate": "<cbc:IssueDate>2025-01-15</cbc:IssueDate>",
    "InvoiceTypeCode": "<cbc:InvoiceTypeCode>380</cbc:InvoiceTypeCode>",
    "DocumentCurrencyCode": "<cbc:DocumentCurrencyCode>EUR</cbc:DocumentCurrencyCode>",
    "AccountingSupplierParty": (
        "<cac:AccountingSupplierParty><cac:Party><cac:PartyName>"
        "<cbc:Name>Muster GmbH</cbc:Name></cac:PartyName></cac:Party></cac:AccountingSupplierParty>"
    ),
    "AccountingCustomerParty": (
        "<cac:AccountingCustomerParty><cac:Party><cac:PartyName>"
        "<cbc:Name>Kunde AG</cbc:Name></cac:PartyName></cac:Party></cac:AccountingCustomerParty>"
    ),
    "LegalMonetaryTotal": (
        "<cac:LegalMonetaryTotal>"
        '<cbc:PayableAmount currencyID="EUR">119.00</cbc:PayableAmount>'
        "</cac:LegalMonetaryTotal>"
    ),
}


def build_ubl(customization: str = "urn:cen.eu:en16931:2017", omit: Iterable[str] = ()) -> str:
    skipped = set(omit)
    body = "\n  ".join(
        part.format(customization=customization) for name, part in _UBL_PARTS.items() if name not in skipped
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<Invoice xmlns="{UBL_INVOICE_NS}" xmlns:cac="{UBL_CAC_NS}" xmlns:cbc="{UBL_CBC_NS}">\n'
        f"  {body}\n"
        "</Invoice>\n"
    )


def build_cii(guideline: str | None = "urn:cen.eu:en16931:2017", omit: Iterable[str] = ()) -> str:
    skipped = set(omit)
    context = ""
    if "ExchangedDocumentContext" not in skipped:
        parameter = ""
        if guideline is not None:
            parameter = (
                "<ram:GuidelineSpecifiedDocumentContextParameter>"
                f"<ram:ID>{guideline}</ram:ID>"
                "</ram:GuidelineSpecifiedDocumentContextParameter>"
            )
        context = f"<rsm:ExchangedDocumentContext>{parameter}</rsm:ExchangedDocumentContext>"
    document = ""
    if "ExchangedDocument" not in skipped:
        document = "<rsm:ExchangedDocument><ram:ID>INV-1</ram:ID><ram:TypeCode>380</ram:TypeCode></rsm:ExchangedDocument>"
    transaction = ""
    if "SupplyChainTradeTransaction" not in skipped:
        transaction = "<rsm:SupplyChainTradeTransaction/>"
    return (
        f'<rsm:CrossIndustryInvoice xmlns:rsm="{CII_RSM_NS}" xmlns:ram="{CII_RAM_NS}">'
        f"{context}{document}{transaction}"
        "</rsm:CrossIndustryInvoice>"
    )


def build_fatturapa(versione: str | None = "FPR12") -> str:
    attribute = f' versione="{versione}"' if versione is not None else ""
    return (
        f'<p:FatturaElettronica xmlns:p="{FATTURAPA_NS}"{attribute}>\n'
        "  <FatturaElettronicaHeader>\n"
        "    <DatiTrasmissione><ProgressivoInvio>00001</ProgressivoInvio></DatiTrasmissione>\n"
        "    <CedentePrestatore><DatiAnagrafici/></CedentePrestatore>\n"
        "    <CessionarioCommittente><DatiAnagrafici/></CessionarioCommittente>\n"
        "  </FatturaElettronicaHeader>\n"
        "  <FatturaElettronicaBody><DatiGenerali/></FatturaElettronicaBody>\n"
        "</p:FatturaElettronica>\n"
    )


def build_facturae(schema_version: str = "3.2.2") -> str:
    return (
        f'<fe:Facturae xmlns:fe="{FACTURAE_NS}">\n'
        f"  <FileHeader><SchemaVersion>{schema_version}</SchemaVersion></FileHeader>\n"
        "  <Parties/>\n"
        "  <Invoices><Invoice/></Invoices>\n"
        "</fe:Facturae>\n"
    )


@pytest.fixture
def ubl_xml():
    return build_ubl


@pytest.fixture
def cii_xml():
    return build_cii


@pytest.fixture
def fatturapa_xml():
    return build_fatturapa


@pytest.fixture
def facturae_xml():
    return build_facturae
