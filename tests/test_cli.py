"""Tests for the command line interface."""

from unittest.mock import patch

import fitz
import pytest
from typer.testing import CliRunner

from flarefix.cli import app

from .helpers import CLEAN_TEXT, GARBLED_TEXT

runner = CliRunner()


@pytest.fixture
def fake_tesseract():
    with patch(
        "flarefix.pipeline.stage_ocr.TesseractOCR.recognize_regions",
        return_value=["Recovered by OCR", "Order #A1234"],
    ) as mock_regions:
        yield mock_regions


class TestCheck:
    """Tests for the check command."""

    def test_lists_verdicts(self, make_pdf):
        result = runner.invoke(app, ["check", str(make_pdf([CLEAN_TEXT, GARBLED_TEXT, None]))])

        assert result.exit_code == 0
        assert "clean" in result.output
        assert "garbled" in result.output
        assert "no text" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "missing.pdf")])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestRepair:
    """Tests for the repair command."""

    def test_default_output_path(self, make_pdf, fake_tesseract):
        pdf_path = make_pdf([CLEAN_TEXT, GARBLED_TEXT])

        result = runner.invoke(app, ["repair", str(pdf_path)])

        assert result.exit_code == 0
        fixed = pdf_path.with_name("input_fixed.pdf")
        with fitz.open(str(fixed)) as out:
            assert out.page_count == 2
            assert "Recovered by OCR" in out[1].get_text()

    def test_split_pages(self, make_pdf, output_dir, fake_tesseract):
        pdf_path = make_pdf([CLEAN_TEXT, None, GARBLED_TEXT])

        result = runner.invoke(
            app,
            [
                "repair",
                str(pdf_path),
                "-o",
                str(output_dir / "fixed.pdf"),
                "--strategy",
                "overlay_original",
                "--split-pages",
            ],
        )

        assert result.exit_code == 0
        assert (output_dir / "fixed.pdf").exists()
        for number in (2, 3):
            page_path = pdf_path.with_name(f"input_page_{number:04d}.pdf")
            with fitz.open(str(page_path)) as single:
                assert single.page_count == 1
                assert "Recovered by OCR" in single[0].get_text()

    def test_reports_unrecovered_pages(self, make_pdf, output_dir):
        with patch(
            "flarefix.pipeline.stage_ocr.TesseractOCR.recognize_regions", return_value=[]
        ):
            result = runner.invoke(
                app, ["repair", str(make_pdf([None])), "-o", str(output_dir / "o.pdf")]
            )

        assert result.exit_code == 0
        assert "No text recovered on page(s): 1" in result.output

    def test_write_error(self, make_pdf, tmp_path):
        result = runner.invoke(
            app, ["repair", str(make_pdf([CLEAN_TEXT])), "-o", str(tmp_path / "no" / "x.pdf")]
        )

        assert result.exit_code == 1


class TestExtractAndText:
    """Tests for the extract and text commands."""

    def test_extract(self, make_pdf, fake_tesseract):
        result = runner.invoke(app, ["extract", str(make_pdf([None]))])

        assert result.exit_code == 0
        assert "A1234" in result.output

    def test_text_to_stdout(self, make_pdf):
        result = runner.invoke(app, ["text", str(make_pdf([CLEAN_TEXT]))])

        assert result.exit_code == 0
        assert "--- Page 1 ---" in result.output
        assert CLEAN_TEXT in result.output

    def test_text_to_file(self, make_pdf, output_dir):
        destination = output_dir / "out.txt"

        result = runner.invoke(app, ["text", str(make_pdf([CLEAN_TEXT])), "-o", str(destination)])

        assert result.exit_code == 0
        assert CLEAN_TEXT in destination.read_text(encoding="utf-8")
