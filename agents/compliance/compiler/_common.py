"""Formatierungs-Helfer für die Template-Generatoren."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from html import escape
from typing import Optional

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# ISO 3166-1 alpha-2 -> alpha-3 (Facturae)
_ALPHA3 = {
    "AT": "AUT",
    "BE": "BEL",
    "CH": "CHE",
    "DE": "DEU",
    "ES": "ESP",
    "FR": "FRA",
    "GB": "GBR",
    "IT": "ITA",
    "NL": "NLD",
    "PL": "POL",
    "PT": "PRT",
}


def text(value: Optional[object]) -> str:
    """XML-escaped Textinhalt; ``None`` wird zu einem leeren String."""

    if value is None:
        return ""
    return escape(str(value))


def amount(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01')):.2f}"


def quantity(value: Decimal) -> str:
    return format(value.normalize(), "f")


def iso_date(value: date) -> str:
    return value.isoformat()


def compact_date(value: date) -> str:
    # UN/CEFACT Format 102 (CCYYMMDD)
    return value.strftime("%Y%m%d")


def country_alpha3(country_code: str) -> str:
    code = (country_code or "").upper()
    return _ALPHA3.get(code, code)


def optional_element(tag: str, value: Optional[object], attrs: str = "") -> str:
    if value in (None, ""):
        return ""
    return f"<{tag}{attrs}>{text(value)}</{tag}>"
