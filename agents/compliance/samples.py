"""Deterministische Beispielrechnungen je Format für Tests & CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

from .dto import Address, Invoice, LineItem, Party, Tax, build_invoice
from .formats import EInvoiceFormat


@dataclass(frozen=True)
class SampleScenario:
    code: str
    description: str
    line_specs: tuple[tuple[str, str, str, str], ...]


GERMAN_SELLER = Party(
    name="Muster Software GmbH",
    address=Address(street="Invalidenstraße 1", postal_code="10115", city="Berlin", country_code="DE"),
    vat_id="DE123456789",
    routing_code="9930000000001",
    email="rechnung@muster-software.example",
)

GERMAN_BUYER = Party(
    name="Kunde & Partner GmbH",
    address=Address(street="Mönckebergstraße 5", postal_code="20095", city="Hamburg", country_code="DE"),
    vat_id="DE987654321",
    routing_code="04011000-12345-67",
)

ITALIAN_SELLER = Party(
    name="Rossi Forniture S.r.l.",
    address=Address(
        street="Via Roma 10", postal_code="20121", city="Milano", country_code="IT", province="MI"
    ),
    vat_id="IT01234567890",
    tax_id="01234567890",
)

ITALIAN_BUYER = Party(
    name="Bianchi Servizi S.p.A.",
    address=Address(
        street="Corso Vittorio Emanuele 7", postal_code="00186", city="Roma", country_code="IT", province="RM"
    ),
    vat_id="IT09876543210",
    routing_code="ABC1234",
)

SPANISH_SELLER = Party(
    name="Suministros Ibéricos S.L.",
    address=Address(
        street="Calle Mayor 3", postal_code="28013", city="Madrid", country_code="ES", province="Madrid"
    ),
    vat_id="ESB12345678",
)

SPANISH_BUYER = Party(
    name="Comercial Levante S.A.",
    address=Address(
        street="Avenida del Puerto 22", postal_code="46021", city="Valencia", country_code="ES", province="Valencia"
    ),
    vat_id="ESA87654321",
)

_PARTIES_BY_FORMAT: Dict[EInvoiceFormat, tuple[Party, Party]] = {
    EInvoiceFormat.FATTURAPA: (ITALIAN_SELLER, ITALIAN_BUYER),
    EInvoiceFormat.FACTURAE: (SPANISH_SELLER, SPANISH_BUYER),
}

_DEFAULT_RATES: Dict[EInvoiceFormat, str] = {
    EInvoiceFormat.FATTURAPA: "22",
    EInvoiceFormat.FACTURAE: "21",
}


SCENARIOS: List[SampleScenario] = [
    SampleScenario("01", "single_standard", (("Consulting", "1", "100.00", "standard"),)),
    SampleScenario(
        "02",
        "mixed_standard_reduced",
        (
            ("Consulting", "1", "100.00", "standard"),
            ("Books", "2", "30.00", "7"),
        ),
    ),
    SampleScenario("03", "zero_rate", (("Export", "5", "10.00", "0"),)),
    SampleScenario(
        "04",
        "rounding_edge",
        (
            ("Edge A", "3", "33.333", "standard"),
            ("Edge B", "4", "14.375", "7"),
        ),
    ),
    SampleScenario(
        "05",
        "escaping",
        (("Wartung <Server> & Netz", "0.5", "199.99", "standard"),),
    ),
]


def iter_sample_scenarios() -> Iterable[SampleScenario]:
    return list(SCENARIOS)


def get_scenario(code: str) -> SampleScenario:
    for scenario in SCENARIOS:
        if scenario.code == code:
            return scenario
    raise KeyError(f"Unknown sample scenario: {code}")


def _make_line(spec: tuple[str, str, str, str], standard_rate: str) -> LineItem:
    description, quantity, unit_price, rate = spec
    if rate == "standard":
        rate = standard_rate
    category = "Z" if Decimal(rate) == 0 else "S"
    return LineItem(
        description=description,
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        tax=Tax(rate=Decimal(rate), category_code=category),
    )


def build_sample_invoice(
    fmt: EInvoiceFormat,
    scenario: SampleScenario | None = None,
    *,
    invoice_no: str = "RE-2025-0001",
    tenant_id: str = "00000000-0000-0000-0000-000000000001",
    issue_date: date = date(2025, 1, 15),
    due_date: date = date(2025, 2, 14),
    payment_terms: str = "30 Tage netto",
) -> Invoice:
    scenario = scenario or SCENARIOS[0]
    seller, buyer = _PARTIES_BY_FORMAT.get(fmt, (GERMAN_SELLER, GERMAN_BUYER))
    standard_rate = _DEFAULT_RATES.get(fmt, "19")
    return build_invoice(
        invoice_no=invoice_no,
        tenant_id=tenant_id,
        seller=seller,
        buyer=buyer,
        line_items=[_make_line(spec, standard_rate) for spec in scenario.line_specs],
        issue_date=issue_date,
        due_date=due_date,
        payment_terms=payment_terms,
    )
