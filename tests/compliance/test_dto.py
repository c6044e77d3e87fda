from datetime import date
from decimal import Decimal

import pytest

from agents.compliance.dto import Address, LineItem, Party, Tax, build_invoice, quantize_money, to_decimal

SELLER = Party(
    name="Muster GmbH",
    address=Address(street="Weg 1", postal_code="10115", city="Berlin", country_code="DE"),
    vat_id="DE 123 456 789",
)
BUYER = Party(
    name="Kunde AG",
    address=Address(street="Gasse 2", postal_code="20095", city="Hamburg", country_code="DE"),
)


def _invoice(**overrides):
    values = dict(
        invoice_no="RE-1",
        seller=SELLER,
        buyer=BUYER,
        line_items=[
            LineItem("A", Decimal("3"), Decimal("0.335"), Tax(Decimal("19"))),
            LineItem("B", Decimal("1"), Decimal("10.00"), Tax(Decimal("7"))),
            LineItem("C", Decimal("2"), Decimal("5.00"), Tax(Decimal("19"))),
        ],
        issue_date=date(2025, 1, 1),
        due_date=date(2025, 1, 31),
    )
    values.update(overrides)
    return build_invoice(**values)


def test_decimal_helpers():
    assert to_decimal(0.1) == Decimal("0.1")
    assert quantize_money("2.675") == Decimal("2.68")
    with pytest.raises(TypeError):
        to_decimal(None)


def test_totals_grouped_by_rate():
    totals = _invoice().compute_totals()
    assert [(b.rate, b.taxable_amount, b.tax_amount) for b in totals.breakdown] == [
        (Decimal("7.00"), Decimal("10.00"), Decimal("0.70")),
        (Decimal("19.00"), Decimal("11.01"), Decimal("2.09")),
    ]
    assert totals.total_net == Decimal("21.01")
    assert totals.total_tax == Decimal("2.79")
    assert totals.total_gross == Decimal("23.80")


def test_vat_number_strips_country_prefix():
    assert SELLER.vat_number == "123456789"
    assert BUYER.vat_number == ""


@pytest.mark.parametrize(
    "overrides",
    [
        {"invoice_no": ""},
        {"currency": "EURO"},
        {"due_date": date(2024, 12, 31)},
        {"line_items": []},
    ],
)
def test_invalid_invoices_are_rejected(overrides):
    with pytest.raises(ValueError):
        _invoice(**overrides)
