import json

from agents.compliance.compiler import compile_document
from agents.compliance.formats import EInvoiceFormat
from agents.compliance.samples import build_sample_invoice
from tools.compliance import sign as sign_cli
from tools.compliance import validate as validate_cli


def _write_sample(tmp_path, fmt, name):
    path = tmp_path / name
    path.write_text(compile_document(build_sample_invoice(fmt), fmt), encoding="utf-8")
    return path


def test_validate_cli_detects_formats_and_writes_report(tmp_path):
    ubl = _write_sample(tmp_path, EInvoiceFormat.XRECHNUNG, "xrechnung.xml")
    cii = _write_sample(tmp_path, EInvoiceFormat.FACTURX, "facturx.xml")
    report_path = tmp_path / "out" / "report.json"

    exit_code = validate_cli.main([str(ubl), str(cii), "--output", str(report_path)])

    assert exit_code == 0
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert [entry["format"] for entry in report] == ["XRECHNUNG", "FACTURX"]
    assert [entry["file"] for entry in report] == [str(ubl), str(cii)]


def test_validate_cli_fails_for_invalid_documents(tmp_path, capsys):
    broken = tmp_path / "broken.xml"
    broken.write_text("<Invoice>", encoding="utf-8")
    exit_code = validate_cli.main([str(broken), "--format", "ubl"])
    assert exit_code == 1
    report = json.loads(capsys.readouterr().out)
    assert report[0]["valid"] is False
    assert report[0]["format"] == "UBL"


def test_validate_cli_unknown_document(tmp_path, capsys):
    unknown = tmp_path / "order.xml"
    unknown.write_text("<Order/>", encoding="utf-8")
    assert validate_cli.main([str(unknown)]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report[0]["errors"][0]["message"] == "Unknown format: UNKNOWN"


def test_sign_and_verify_cli(tmp_path, signing_material, capsys):
    source = _write_sample(tmp_path, EInvoiceFormat.FATTURAPA, "fattura.xml")
    target = tmp_path / "signed" / "fattura.xml"

    assert (
        sign_cli.main(
            [
                "sign",
                str(source),
                "--output",
                str(target),
                "--cert",
                str(signing_material.certificate_path),
                "--key",
                str(signing_material.encrypted_key_path),
                "--password",
                signing_material.password,
            ]
        )
        == 0
    )
    assert target.exists()
    assert sign_cli.main(["verify", str(target)]) == 0
    assert "valid (ok)" in capsys.readouterr().out

    assert sign_cli.main(["verify", str(source)]) == 1
    assert "INVALID (missing_signature)" in capsys.readouterr().out


def test_sign_cli_reports_failure_without_traceback(tmp_path, signing_material, capsys):
    source = _write_sample(tmp_path, EInvoiceFormat.FACTURAE, "facturae.xml")
    target = tmp_path / "signed" / "facturae.xml"
    exit_code = sign_cli.main(
        [
            "sign",
            str(source),
            "--output",
            str(target),
            "--cert",
            str(signing_material.certificate_path),
            "--key",
            str(tmp_path / "missing-key.pem"),
        ]
    )
    assert exit_code == 1
    assert not target.exists()
    assert "Signing failed" in capsys.readouterr().err
