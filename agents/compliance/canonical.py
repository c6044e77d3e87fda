"""Vereinfachte Kanonisierung und Digests für die XAdES-Signatur.

Es handelt sich um keine vollständige Exclusive XML Canonicalization (W3C
exc-c14n): Attribut-Sortierung und Namespace-Vererbung werden nicht
umgesetzt. Normalisiert werden nur Zeilenenden und Whitespace zwischen Tags.
Whitespace-Änderungen innerhalb von Tags sind daher nicht zuverlässig
signaturrelevant.
"""

from __future__ import annotations

import base64
import re
from hashlib import sha256

_INTER_TAG_WHITESPACE = re.compile(r">\s+<")


def canonicalize(xml: str) -> str:
    normalized = xml.replace("\r\n", "\n").replace("\r", "\n")
    return _INTER_TAG_WHITESPACE.sub("><", normalized).strip()


def digest_base64(content: str | bytes) -> str:
    """SHA-256 über UTF-8-Bytes (bzw. Rohbytes), Base64-kodiert."""

    data = content.encode("utf-8") if isinstance(content, str) else content
    return base64.b64encode(sha256(data).digest()).decode("ascii")
