"""Struktureller Schema-Validator für E-Invoice-XML.

Prüft Wohlgeformtheit, Root-Element, Pflicht-/Empfehlungselemente,
Namespaces und formatspezifische Regeln. Keine vollständige XSD-Validierung.
Öffentliche Einstiegspunkte werfen nie: jeder Fehler landet als
``ValidationError`` im ``SchemaValidationResult``.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from lxml import etree

from backend.core.config import settings
from backend.core.observability import metrics
from backend.core.observability.logging import get_logger

from ..formats import (
    EInvoiceFormat,
    coerce_format,
    get_required_elements,
    get_required_namespaces,
    get_schema_definition,
    iter_schema_definitions,
)
from .lookup import extract_customization_id, extract_guideline_id, has_element, local_name
from .result import Findings, SchemaValidationResult, Severity, ValidationError, error, warning
from .rules import validate_format_specific

logger = get_logger(__name__)

XmlInput = Union[str, bytes]
FormatInput = Union[EInvoiceFormat, str]


class BatchDocument(NamedTuple):
    xml: XmlInput
    format: FormatInput


def _new_parser(encoding: Optional[str] = None) -> etree.XMLParser:
    return etree.XMLParser(no_network=True, resolve_entities=False, recover=False, encoding=encoding)


def _log_entry_to_finding(entry) -> ValidationError:
    message = entry.message.strip() if entry.message else "XML parse error"
    if entry.level == etree.ErrorLevels.WARNING:
        return ValidationError(message, Severity.WARNING, line=entry.line, column=entry.column)
    if entry.level == etree.ErrorLevels.FATAL:
        message = f"Fatal: {message}"
    return ValidationError(message, Severity.ERROR, line=entry.line, column=entry.column)


def parse_document(xml: XmlInput) -> Tuple[Optional[etree._Element], Findings]:
    """Parst das Dokument und sammelt Parser-Diagnosen nach Schweregrad."""

    findings = Findings()
    data = xml.encode("utf-8") if isinstance(xml, str) else bytes(xml)
    if not data.strip():
        findings.add(error("Failed to parse XML document or document is empty"))
        return None, findings

    # str ist bereits dekodiert: die Encoding-Deklaration gilt nicht mehr
    parser = _new_parser("utf-8" if isinstance(xml, str) else None)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        for entry in parser.error_log:
            findings.add(_log_entry_to_finding(entry))
        if not findings.errors:
            findings.add(error(f"Fatal: {exc}"))
        return None, findings

    for entry in parser.error_log:
        findings.add(_log_entry_to_finding(entry))
    if root is None:
        findings.add(error("Failed to parse XML document or document is empty"))
    return root, findings


def _trailing_segment(namespace: str, separator: str) -> str:
    return namespace.rsplit(separator, 1)[-1]


class SchemaValidator:
    """Validiert E-Invoice-XML gegen die Struktur-Fingerprints der Registry."""

    def __init__(self, *, max_workers: Optional[int] = None) -> None:
        self._max_workers = max(1, max_workers or settings.COMPLIANCE_BATCH_MAX_WORKERS)

    def validate(self, xml: XmlInput, format: FormatInput) -> SchemaValidationResult:
        started = time.perf_counter()
        fmt = coerce_format(format)
        label = fmt.value if fmt else str(format)
        try:
            result = self._validate(xml, fmt, label)
        except Exception as exc:  # noqa: BLE001 - Ergebnis statt Exception
            logger.exception("Validation failed for format %s", label)
            result = SchemaValidationResult(
                format=fmt or label,
                errors=[error(f"Fatal: {exc}" if str(exc) else "Unknown validation error")],
                warnings=[],
            )
        metrics.increment_validations(label, result.valid)
        metrics.record_validation_duration(started, label)
        logger.info(
            "Validated %s document: valid=%s errors=%d warnings=%d",
            label,
            result.valid,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def _validate(self, xml: XmlInput, fmt: Optional[EInvoiceFormat], label: str) -> SchemaValidationResult:
        if fmt is None:
            return SchemaValidationResult(format=label, errors=[error(f"Unknown format: {label}")], warnings=[])

        root, parse_findings = parse_document(xml)
        if root is None:
            return SchemaValidationResult(
                format=fmt,
                errors=list(parse_findings.errors),
                warnings=list(parse_findings.warnings),
            )

        findings = Findings()
        findings.extend(parse_findings)
        findings.extend(self._validate_structure(root, fmt))
        findings.extend(self._validate_namespaces(root, fmt))
        findings.extend(validate_format_specific(root, fmt))

        return SchemaValidationResult(
            format=fmt,
            errors=findings.errors,
            warnings=findings.warnings,
            schema_version=get_schema_definition(fmt).version,
        )

    def _validate_structure(self, root: etree._Element, fmt: EInvoiceFormat) -> Findings:
        findings = Findings()
        expected_root = get_schema_definition(fmt).root_element
        root_name = local_name(root)
        if root_name != expected_root:
            findings.add(
                error(f"Invalid root element: expected '{expected_root}', found '{root_name}'", "/")
            )

        for element in get_required_elements(fmt):
            if has_element(root, element.name, element.namespace):
                continue
            if element.required:
                findings.add(error(f"Missing required element: {element.name}", element.path))
            else:
                findings.add(warning(f"Missing recommended element: {element.name}", element.path))
        return findings

    def _validate_namespaces(self, root: etree._Element, fmt: EInvoiceFormat) -> Findings:
        findings = Findings()
        declared = {uri for uri in root.nsmap.values() if uri}
        root_namespace = etree.QName(root).namespace
        if root_namespace:
            declared.add(root_namespace)

        for namespace in get_required_namespaces(fmt):
            segment = _trailing_segment(namespace, "/")
            if not any(segment in candidate for candidate in declared):
                findings.add(warning(f"Missing or non-standard namespace: {namespace}"))
        return findings

    def detect_format(self, xml: XmlInput) -> Optional[EInvoiceFormat]:
        try:
            detected = self._detect(xml)
        except Exception:  # noqa: BLE001 - Erkennung liefert None statt Exception
            logger.warning("Format detection failed", exc_info=True)
            detected = None
        metrics.increment_detections(detected.value if detected else None)
        return detected

    def _detect(self, xml: XmlInput) -> Optional[EInvoiceFormat]:
        root, _ = parse_document(xml)
        if root is None:
            return None

        root_name = local_name(root)
        namespace = etree.QName(root).namespace or ""

        for definition in iter_schema_definitions():
            if definition.root_element != root_name:
                continue
            if _trailing_segment(definition.namespace, ":") not in namespace:
                continue
            if definition.format is EInvoiceFormat.CII:
                guideline = (extract_guideline_id(root) or "").lower()
                if "factur-x" in guideline:
                    return EInvoiceFormat.FACTURX
                if "zugferd" in guideline:
                    return EInvoiceFormat.ZUGFERD
                return EInvoiceFormat.CII
            if definition.format is EInvoiceFormat.UBL:
                customization = (extract_customization_id(root) or "").lower()
                if "xrechnung" in customization:
                    return EInvoiceFormat.XRECHNUNG
                if "peppol" in customization:
                    return EInvoiceFormat.PEPPOL
                return EInvoiceFormat.UBL
            return definition.format
        return None

    def _validate_entry(self, entry: Union[BatchDocument, Tuple[XmlInput, FormatInput], Mapping[str, object]]) -> SchemaValidationResult:
        try:
            if isinstance(entry, Mapping):
                xml, fmt = entry["xml"], entry["format"]
            else:
                xml, fmt = entry
        except (KeyError, TypeError, ValueError) as exc:
            return SchemaValidationResult(format="UNKNOWN", errors=[error(f"Invalid batch entry: {exc}")], warnings=[])
        return self.validate(xml, fmt)

    def validate_batch(
        self,
        documents: Iterable[Union[BatchDocument, Tuple[XmlInput, FormatInput], Mapping[str, object]]],
    ) -> List[SchemaValidationResult]:
        """Validiert Dokumente unabhängig voneinander; Reihenfolge = Eingabe."""

        entries = list(documents)
        if not entries:
            return []
        workers = min(self._max_workers, len(entries))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="einvoice-validate") as pool:
            return list(pool.map(self._validate_entry, entries))


_default_validator: Optional[SchemaValidator] = None


def _validator() -> SchemaValidator:
    global _default_validator
    if _default_validator is None:
        _default_validator = SchemaValidator()
    return _default_validator


def validate(xml: XmlInput, format: FormatInput) -> SchemaValidationResult:
    return _validator().validate(xml, format)


def detect_format(xml: XmlInput) -> Optional[EInvoiceFormat]:
    return _validator().detect_format(xml)


def validate_batch(documents: Iterable[Union[BatchDocument, Tuple[XmlInput, FormatInput], Mapping[str, object]]]) -> List[SchemaValidationResult]:
    return _validator().validate_batch(documents)
