import json

import pytest
from typer.testing import CliRunner

import layoutcrop.cli as cli
from layoutcrop.cli import app
from layoutcrop.regions.labels import LayoutLabel
from tests.helpers.pdf_factory import make_multi_page_pdf, make_encrypted_pdf
from tests.helpers.stub_detector import StubDetector

runner = CliRunner()


@pytest.fixture
def stub_model(monkeypatch):
    detector = StubDetector([
        (300, 300, 200, 200, LayoutLabel.PICTURE, 0.9),
        (750, 750, 200, 200, LayoutLabel.TABLE, 0.8),
    ])
    monkeypatch.setattr(cli, "load_detector", lambda *args, **kwargs: detector)
    return detector


def test_help_lists_arguments():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "PDF_PATH" in result.stdout
    assert "--model" in result.stdout


def test_successful_extraction(tmp_path, stub_model):
    pdf_path = make_multi_page_pdf(tmp_path, 2, width=512, height=512)
    out = tmp_path / "out"

    result = runner.invoke(app, [
        str(pdf_path), "--out", str(out), "--workers", "2",
        "--detection-dpi", "72", "--extraction-dpi", "144",
    ])

    assert result.exit_code == 0, result.stdout
    assert "Extraction complete" in result.stdout
    assert "Regions extracted: 4" in result.stdout

    pngs = sorted(p.name for p in (out / "extracted_images").glob("*.png"))
    assert pngs == ["p0_Picture_100.png", "p0_Table_325.png", "p1_Picture_100.png", "p1_Table_325.png"]

    manifest = json.loads((out / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["total_items"] == 4
    assert manifest["page_count"] == 2
    assert stub_model.calls == 2


def test_no_manifest_flag(tmp_path, stub_model):
    pdf_path = make_multi_page_pdf(tmp_path, 1, width=512, height=512)
    out = tmp_path / "out"

    result = runner.invoke(app, [str(pdf_path), "--out", str(out), "--detection-dpi", "72", "--no-write-manifest"])

    assert result.exit_code == 0, result.stdout
    assert not (out / "manifest.json").exists()


def test_missing_model_exits_with_error(tmp_path):
    pdf_path = make_multi_page_pdf(tmp_path, 1)

    result = runner.invoke(app, [str(pdf_path), "--model", str(tmp_path / "missing.onnx"), "--out", str(tmp_path)])

    assert result.exit_code == 1


def test_encrypted_pdf_exit_code(tmp_path, stub_model):
    result = runner.invoke(app, [str(make_encrypted_pdf(tmp_path)), "--out", str(tmp_path / "out")])

    assert result.exit_code == 2


def test_corrupted_pdf_exit_code(tmp_path, stub_model):
    bad = tmp_path / "bad.pdf"
    bad.write_bytes(b"not a pdf")

    result = runner.invoke(app, [str(bad), "--out", str(tmp_path / "out")])

    assert result.exit_code == 1


def test_nonexistent_pdf_is_usage_error(tmp_path):
    result = runner.invoke(app, [str(tmp_path / "nope.pdf")])

    assert result.exit_code == 2
