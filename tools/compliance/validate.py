"""CLI zum Prüfen von E-Invoice XML-Dateien (Formaterkennung + Validierung)."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List, Optional

from agents.compliance.formats import get_supported_formats
from agents.compliance.validation import BatchDocument, SchemaValidator
from backend.core.observability import bind_context, init_observability


def validate_files(
    paths: List[Path],
    *,
    format_name: Optional[str] = None,
    max_workers: Optional[int] = None,
) -> List[dict]:
    validator = SchemaValidator(max_workers=max_workers)
    documents: List[BatchDocument] = []
    for path in paths:
        xml = path.read_bytes()
        fmt = format_name or validator.detect_format(xml)
        documents.append(BatchDocument(xml, fmt or "UNKNOWN"))

    report: List[dict] = []
    for path, result in zip(paths, validator.validate_batch(documents)):
        entry = result.to_dict()
        entry["file"] = str(path)
        report.append(entry)
    return report


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate e-invoice XML files")
    parser.add_argument("files", nargs="+", type=Path, help="XML files to validate")
    parser.add_argument(
        "--format",
        type=str.upper,
        choices=[fmt.value for fmt in get_supported_formats()],
        help="Validate against this format instead of auto-detecting",
    )
    parser.add_argument("--workers", type=int, help="Thread pool size for batch validation")
    parser.add_argument("--output", type=Path, help="Write the JSON report to this file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    bind_context()
    report = validate_files(args.files, format_name=args.format, max_workers=args.workers)
    payload = json.dumps(report, indent=2, sort_keys=True)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(payload, encoding="utf-8")
        print(f"Validation report written to {args.output}")
    else:
        print(payload)
    return 0 if all(entry["valid"] for entry in report) else 1


if __name__ == "__main__":  # pragma: no cover
    init_observability()
    raise SystemExit(main())
