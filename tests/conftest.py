"""Pytest configuration and fixtures."""

import pytest

from .helpers import CLEAN_TEXT, GARBLED_TEXT, build_pdf


@pytest.fixture
def make_pdf(tmp_path):
    """Factory building PDFs under tmp_path."""

    def _make(pages, name="input.pdf", **kwargs):
        return build_pdf(tmp_path / name, pages, **kwargs)

    return _make


@pytest.fixture
def three_page_pdf(make_pdf):
    """Page 1 clean, page 2 without text, page 3 garbled."""
    return make_pdf([CLEAN_TEXT, None, GARBLED_TEXT])


@pytest.fixture
def output_dir(tmp_path):
    """Create a temporary output directory."""
    out_dir = tmp_path / "output"
    out_dir.mkdir()
    return out_dir
