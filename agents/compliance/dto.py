"""Rechnungs-DTOs als Eingabe des Dokument-Compilers.

Die Objekte kommen vollständig aufgelöst aus den Fach-Services (Beträge,
Parteien, Positionen, Nummer). Beträge werden mit ``Decimal`` und
``ROUND_HALF_UP`` auf zwei Nachkommastellen quantisiert, damit identische
Eingaben identische XML-Dokumente ergeben.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional


DecimalLike = Decimal | str | int | float

ZERO = Decimal("0.00")


def to_decimal(value: DecimalLike) -> Decimal:
    """Floats laufen über ``str``, um binäre Rundungsfehler zu vermeiden."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str, float)):
        return Decimal(str(value))
    raise TypeError(f"Unsupported decimal input: {type(value)!r}")


def quantize_money(amount: DecimalLike) -> Decimal:
    return to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class Address:
    street: str
    postal_code: str
    city: str
    country_code: str
    province: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Party:
    name: str
    address: Address
    vat_id: Optional[str] = None
    # Steuernummer / Codice Fiscale / NIF
    tax_id: Optional[str] = None
    # Leitweg-ID, Codice Destinatario oder Peppol-Endpoint
    routing_code: Optional[str] = None
    email: Optional[str] = None

    @property
    def vat_number(self) -> str:
        """USt-IdNr. ohne Länderpräfix (FatturaPA/Facturae)."""

        vat = (self.vat_id or "").replace(" ", "")
        if len(vat) > 2 and vat[:2].isalpha():
            return vat[2:]
        return vat


@dataclass(frozen=True, slots=True)
class Tax:
    rate: Decimal
    category_code: str = "S"
    exemption_reason: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", quantize_money(self.rate))


@dataclass(frozen=True, slots=True)
class LineItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax: Tax
    unit_code: str = "C62"

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))

    def net_amount(self) -> Decimal:
        return quantize_money(self.quantity * self.unit_price)

    def tax_amount(self) -> Decimal:
        return quantize_money(self.net_amount() * self.tax.rate / Decimal("100"))


@dataclass(frozen=True, slots=True)
class TaxBreakdown:
    rate: Decimal
    category_code: str
    taxable_amount: Decimal
    tax_amount: Decimal


@dataclass(frozen=True, slots=True)
class Totals:
    breakdown: List[TaxBreakdown]
    total_net: Decimal
    total_tax: Decimal
    total_gross: Decimal


@dataclass(slots=True)
class Invoice:
    invoice_no: str
    currency: str
    seller: Party
    buyer: Party
    line_items: List[LineItem]
    issue_date: date
    due_date: date
    payment_terms: str = ""
    tenant_id: str = "unknown"
    # UNTDID 1001: 380 Rechnung, 381 Gutschrift
    document_type: str = "380"
    note: Optional[str] = None
    purchase_order_reference: Optional[str] = None

    def compute_totals(self) -> Totals:
        if not self.line_items:
            raise ValueError("Invoice requires at least one line item")

        buckets: Dict[tuple[Decimal, str], List[Decimal]] = {}
        for item in self.line_items:
            bucket = buckets.setdefault((item.tax.rate, item.tax.category_code), [ZERO, ZERO])
            bucket[0] += item.net_amount()
            bucket[1] += item.tax_amount()

        breakdown = [
            TaxBreakdown(rate, category, quantize_money(net), quantize_money(tax))
            for (rate, category), (net, tax) in sorted(buckets.items())
        ]
        total_net = quantize_money(sum((b.taxable_amount for b in breakdown), ZERO))
        total_tax = quantize_money(sum((b.tax_amount for b in breakdown), ZERO))
        return Totals(
            breakdown=breakdown,
            total_net=total_net,
            total_tax=total_tax,
            total_gross=quantize_money(total_net + total_tax),
        )

    def validate(self) -> None:
        if not self.invoice_no:
            raise ValueError("Invoice number must be set")
        if not self.currency or len(self.currency) != 3:
            raise ValueError("Currency must be a 3-letter ISO code")
        if self.issue_date > self.due_date:
            raise ValueError("Due date must not be before issue date")
        self.compute_totals()


def build_invoice(
    *,
    invoice_no: str,
    seller: Party,
    buyer: Party,
    line_items: Iterable[LineItem],
    issue_date: date,
    due_date: date,
    payment_terms: str = "",
    currency: str = "EUR",
    tenant_id: str = "unknown",
    **extra: object,
) -> Invoice:
    invoice = Invoice(
        invoice_no=invoice_no,
        currency=currency,
        seller=seller,
        buyer=buyer,
        line_items=list(line_items),
        issue_date=issue_date,
        due_date=due_date,
        payment_terms=payment_terms,
        tenant_id=tenant_id,
        **extra,
    )
    invoice.validate()
    return invoice
