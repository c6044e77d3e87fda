"""Präfix-tolerante Element-Suche.

Reale E-Rechnungen variieren die Präfix-Konventionen (``cbc:ID``, ``ID``,
``ram:ID``). Die Suche probiert eine feste, geordnete Liste von Strategien
und liefert den ersten Treffer.
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional, Sequence

from lxml import etree

from ..formats import CII_RAM_NS

CONVENTIONAL_PREFIXES = ("cbc", "cac", "ram", "rsm", "udt", "p")

Strategy = Callable[[etree._Element, str, Optional[str]], Optional[etree._Element]]


def local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _iter_elements(scope: etree._Element) -> Iterator[etree._Element]:
    # Kommentare und Processing Instructions überspringen
    return scope.iter(etree.Element)


def _unprefixed(scope: etree._Element, name: str, namespace: Optional[str]) -> Optional[etree._Element]:
    for element in _iter_elements(scope):
        if element.prefix is None and local_name(element) == name:
            return element
    return None


def _namespaced(scope: etree._Element, name: str, namespace: Optional[str]) -> Optional[etree._Element]:
    if not namespace:
        return None
    return next(scope.iter(f"{{{namespace}}}{name}"), None)


def prefixed(prefix: str) -> Strategy:
    def _strategy(scope: etree._Element, name: str, namespace: Optional[str]) -> Optional[etree._Element]:
        for element in _iter_elements(scope):
            if element.prefix == prefix and local_name(element) == name:
                return element
        return None

    _strategy.__name__ = f"prefixed_{prefix}"
    return _strategy


LOOKUP_STRATEGIES: tuple[Strategy, ...] = (
    _unprefixed,
    _namespaced,
    *(prefixed(prefix) for prefix in CONVENTIONAL_PREFIXES),
)
CII_ROOT_STRATEGIES: tuple[Strategy, ...] = (_unprefixed, prefixed("rsm"))
CII_RAM_STRATEGIES: tuple[Strategy, ...] = (_unprefixed, prefixed("ram"), _namespaced)


def find_element(
    scope: etree._Element,
    name: str,
    namespace: Optional[str] = None,
    strategies: Sequence[Strategy] = LOOKUP_STRATEGIES,
) -> Optional[etree._Element]:
    for strategy in strategies:
        found = strategy(scope, name, namespace)
        if found is not None:
            return found
    return None


def has_element(
    scope: etree._Element,
    name: str,
    namespace: Optional[str] = None,
    strategies: Sequence[Strategy] = LOOKUP_STRATEGIES,
) -> bool:
    return find_element(scope, name, namespace, strategies) is not None


def element_text(
    scope: etree._Element,
    name: str,
    namespace: Optional[str] = None,
    strategies: Sequence[Strategy] = LOOKUP_STRATEGIES,
) -> Optional[str]:
    """Text des ersten Treffers mit nicht-leerem Inhalt."""

    for strategy in strategies:
        found = strategy(scope, name, namespace)
        if found is None:
            continue
        text = "".join(found.itertext()).strip()
        if text:
            return text
    return None


def extract_guideline_id(root: etree._Element) -> Optional[str]:
    parameter = find_element(
        root,
        "GuidelineSpecifiedDocumentContextParameter",
        CII_RAM_NS,
        CII_RAM_STRATEGIES,
    )
    if parameter is None:
        return None
    return element_text(parameter, "ID", CII_RAM_NS, CII_RAM_STRATEGIES)


def extract_customization_id(root: etree._Element) -> Optional[str]:
    return element_text(root, "CustomizationID")
