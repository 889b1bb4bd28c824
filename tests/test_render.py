"""Tests for PDF loading, rendering and writing."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import fitz
import numpy as np
import pytest

from flarefix.errors import DocumentLoadError, OCRFailure, PageAccessError, WriteError
from flarefix.models import Page
from flarefix.pipeline.stage_render import PDFRenderer, atomic_write_bytes

from .helpers import CLEAN_TEXT


class TestPDFRendererOpen:
    """Tests for opening documents."""

    @pytest.fixture
    def renderer(self):
        return PDFRenderer(scale=1.0)

    def test_open_path(self, renderer, make_pdf):
        pdf_path = make_pdf([CLEAN_TEXT, None])

        with renderer.open(pdf_path) as opened:
            assert opened.page_count == 2
            assert opened.document.source_name == "input.pdf"
            assert opened.document.source_path == str(pdf_path.resolve())
            assert opened.document.metadata.file_size_bytes == pdf_path.stat().st_size

    def test_open_bytes(self, renderer, make_pdf):
        data = make_pdf([CLEAN_TEXT]).read_bytes()

        with renderer.open(data) as opened:
            assert opened.page_count == 1
            assert opened.document.source_path is None
            assert opened.document.source_name == "<bytes>"

    def test_source_released_on_exit(self, renderer, make_pdf):
        with renderer.open(make_pdf([CLEAN_TEXT])) as opened:
            pass

        assert opened.pdf.is_closed

    def test_file_not_found(self, renderer, tmp_path):
        with pytest.raises(DocumentLoadError):
            renderer.open(tmp_path / "nonexistent.pdf")

    def test_not_a_pdf(self, renderer, tmp_path):
        bogus = tmp_path / "notes.pdf"
        bogus.write_text("this is not a pdf")

        with pytest.raises(DocumentLoadError):
            renderer.open(bogus)

    def test_empty_bytes(self, renderer):
        with pytest.raises(DocumentLoadError):
            renderer.open(b"")

    @patch("flarefix.pipeline.stage_render.fitz")
    def test_zero_pages(self, mock_fitz, renderer):
        mock_pdf_doc = MagicMock()
        mock_pdf_doc.needs_pass = False
        mock_pdf_doc.page_count = 0
        mock_fitz.open.return_value = mock_pdf_doc

        with pytest.raises(DocumentLoadError, match="no pages"):
            renderer.open(b"%PDF-1.4")
        mock_pdf_doc.close.assert_called_once()

    def test_default_scale_from_settings(self):
        assert PDFRenderer().scale == 1.0


class TestOpenedPDF:
    """Tests for page access and rendering."""

    def test_page_text_and_bounds(self, make_pdf):
        with PDFRenderer().open(make_pdf([CLEAN_TEXT, None])) as opened:
            first = opened.page(0)
            second = opened.page(1)

        assert first.index == 0
        assert first.width == 612
        assert first.height == 792
        assert CLEAN_TEXT in first.text
        assert second.text is None
        assert not second.has_text

    def test_page_out_of_range(self, make_pdf):
        with PDFRenderer().open(make_pdf([CLEAN_TEXT])) as opened:
            with pytest.raises(PageAccessError) as exc_info:
                opened.page(5)

        assert exc_info.value.page_index == 5

    def test_render_native_size(self, make_pdf):
        with PDFRenderer(scale=1.0).open(make_pdf([CLEAN_TEXT])) as opened:
            image = opened.render_to_image(opened.page(0))

        assert isinstance(image, np.ndarray)
        assert image.shape == (792, 612, 3)
        assert image.dtype == np.uint8
        # Text pixels are darker than the white background
        assert image.min() < 128
        assert image.max() == 255

    def test_render_scaled(self, make_pdf):
        with PDFRenderer(scale=2.0).open(make_pdf([None], width=200, height=100)) as opened:
            image = opened.render_to_image(opened.page(0))

        assert image.shape == (200, 400, 3)

    def test_render_failure_raises_ocr_failure(self, make_pdf):
        with PDFRenderer().open(make_pdf([CLEAN_TEXT])) as opened:
            ghost = Page(index=3, width=612, height=792)
            with pytest.raises(OCRFailure):
                opened.render_to_image(ghost)

    def test_rotated_page_rendered_upright(self, tmp_path):
        doc = fitz.open()
        page = doc.new_page(width=612, height=792)
        page.insert_text((72, 72), CLEAN_TEXT, fontsize=11, fontname="helv")
        page.set_rotation(90)
        path = tmp_path / "rotated.pdf"
        doc.save(str(path))
        doc.close()

        with PDFRenderer(scale=1.0).open(path) as opened:
            rotated = opened.page(0)
            image = opened.render_to_image(rotated)

        assert rotated.width == 792
        assert rotated.height == 612
        assert image.shape == (612, 792, 3)
        assert image.min() < 128

    def test_offset_media_box_rendered_in_full(self, tmp_path):
        doc = fitz.open()
        page = doc.new_page(width=812, height=992)
        page.set_mediabox(fitz.Rect(100, 100, 712, 892))
        page.insert_text((72, 72), CLEAN_TEXT, fontsize=11, fontname="helv")
        path = tmp_path / "offset.pdf"
        doc.save(str(path))
        doc.close()

        with PDFRenderer(scale=1.0).open(path) as opened:
            offset = opened.page(0)
            image = opened.render_to_image(offset)

        assert offset.width == 612
        assert offset.height == 792
        assert image.shape == (792, 612, 3)
        assert image.min() < 128


class TestWriting:
    """Tests for the write capabilities."""

    def test_atomic_write(self, output_dir):
        destination = output_dir / "out.bin"

        atomic_write_bytes(destination, b"payload")

        assert destination.read_bytes() == b"payload"
        assert os.listdir(output_dir) == ["out.bin"]

    def test_atomic_write_replaces_existing(self, output_dir):
        destination = output_dir / "out.bin"
        destination.write_bytes(b"old")

        atomic_write_bytes(destination, b"new")

        assert destination.read_bytes() == b"new"

    def test_missing_directory_raises_write_error(self, tmp_path):
        with pytest.raises(WriteError):
            atomic_write_bytes(tmp_path / "missing" / "out.pdf", b"data")

    def test_failed_rename_leaves_no_file(self, output_dir):
        destination = output_dir / "out.pdf"

        with patch("flarefix.pipeline.stage_render.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(WriteError, match="disk full"):
                atomic_write_bytes(destination, b"data")

        assert os.listdir(output_dir) == []

    def test_write_document(self, make_pdf, output_dir):
        data = make_pdf([CLEAN_TEXT, None]).read_bytes()
        destination = output_dir / "copy.pdf"

        PDFRenderer().write_document(data, destination)

        with fitz.open(str(destination)) as written:
            assert written.page_count == 2

    def test_write_page(self, make_pdf, output_dir):
        data = make_pdf([None, CLEAN_TEXT, None]).read_bytes()
        destination = output_dir / "page.pdf"

        PDFRenderer().write_page(data, 1, destination)

        with fitz.open(str(destination)) as written:
            assert written.page_count == 1
            assert CLEAN_TEXT in written[0].get_text()

    def test_write_text(self, output_dir):
        destination = output_dir / "out.txt"

        PDFRenderer().write_text("Ünïcode text", destination)

        assert destination.read_text(encoding="utf-8") == "Ünïcode text"
