"""Interne Fehlerklassen; verlassen die öffentlichen Einstiegspunkte nie."""

from __future__ import annotations


class ComplianceError(RuntimeError):
    pass


class SigningError(ComplianceError):
    pass


class CertificateLoadError(SigningError):
    pass
