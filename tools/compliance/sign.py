"""CLI zum Signieren (XAdES-BES) und Verifizieren von E-Invoice XML."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from agents.compliance.errors import SigningError
from agents.compliance.signing import SignatureConfig, sign_xml, verify_signature_detailed
from backend.core.observability import bind_context, init_observability

PASSWORD_ENV = "COMPLIANCE_SIGNATURE_KEY_PASSWORD"


def sign_file(
    *,
    input_path: Path,
    output_path: Path,
    certificate_path: Path,
    private_key_path: Path,
    password: str | None = None,
) -> Path:
    config = SignatureConfig(certificate_path, private_key_path, password)
    result = sign_xml(input_path.read_text(encoding="utf-8"), config)
    if not result.success:
        raise SigningError(f"Signing failed: {result.error}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.signed_xml, encoding="utf-8")
    return output_path


def verify_file(input_path: Path) -> tuple[bool, str]:
    result = verify_signature_detailed(input_path.read_text(encoding="utf-8"))
    return result.valid, result.reason


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sign or verify e-invoice XML (XAdES-BES)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sign_parser = subparsers.add_parser("sign", help="Sign an XML document")
    sign_parser.add_argument("input", type=Path, help="Unsigned XML file")
    sign_parser.add_argument("--output", required=True, type=Path, help="Target file for the signed XML")
    sign_parser.add_argument("--cert", required=True, type=Path, help="PEM certificate")
    sign_parser.add_argument("--key", required=True, type=Path, help="PEM private key")
    sign_parser.add_argument(
        "--password",
        default=os.environ.get(PASSWORD_ENV),
        help=f"Private key password (default: ${PASSWORD_ENV})",
    )

    verify_parser = subparsers.add_parser("verify", help="Verify a signed XML document")
    verify_parser.add_argument("input", type=Path, help="Signed XML file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    bind_context()
    if args.command == "sign":
        try:
            path = sign_file(
                input_path=args.input,
                output_path=args.output,
                certificate_path=args.cert,
                private_key_path=args.key,
                password=args.password,
            )
        except SigningError as err:
            print(f"{args.input}: {err}", file=sys.stderr)
            return 1
        print(f"Signed document written to {path}")
        return 0

    valid, reason = verify_file(args.input)
    print(f"{args.input}: {'valid' if valid else 'INVALID'} ({reason})")
    return 0 if valid else 1


if __name__ == "__main__":  # pragma: no cover
    init_observability()
    raise SystemExit(main())
