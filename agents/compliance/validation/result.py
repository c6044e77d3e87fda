"""Ergebnis-Typen der strukturellen Validierung."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class ValidationError:
    """Einzelner Befund; ``path`` ist ein ungefährer XPath-Locator."""

    message: str
    severity: Severity = Severity.ERROR
    line: Optional[int] = None
    column: Optional[int] = None
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"message": self.message, "severity": self.severity.value}
        for key in ("line", "column", "path"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


def error(message: str, path: Optional[str] = None, *, line: Optional[int] = None, column: Optional[int] = None) -> ValidationError:
    return ValidationError(message, Severity.ERROR, line=line, column=column, path=path)


def warning(message: str, path: Optional[str] = None, *, line: Optional[int] = None, column: Optional[int] = None) -> ValidationError:
    return ValidationError(message, Severity.WARNING, line=line, column=column, path=path)


@dataclass(slots=True)
class Findings:
    """Sammelt Fehler und Warnungen eines Prüfschritts."""

    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)

    def add(self, finding: ValidationError) -> None:
        if finding.severity is Severity.ERROR:
            self.errors.append(finding)
        else:
            self.warnings.append(finding)

    def extend(self, other: "Findings") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


@dataclass(frozen=True, slots=True)
class SchemaValidationResult:
    format: str
    errors: List[ValidationError]
    warnings: List[ValidationError]
    schema_version: Optional[str] = None
    validated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, object]:
        return {
            "valid": self.valid,
            "format": getattr(self.format, "value", self.format),
            "errors": [item.to_dict() for item in self.errors],
            "warnings": [item.to_dict() for item in self.warnings],
            "schema_version": self.schema_version,
            "validated_at": self.validated_at.isoformat().replace("+00:00", "Z"),
        }
