"""Shared test helpers: PDF builder and fake OCR."""

from pathlib import Path
from typing import Optional

import fitz

from flarefix.pipeline import OCRService

CLEAN_TEXT = "The quick brown fox jumps over the lazy dog."
GARBLED_TEXT = "a%b% c%d% e%f% g%h% i%j% k%l%"


def build_pdf(path: Path, pages: list[Optional[str]], width: float = 612, height: float = 792) -> Path:
    """Write a PDF with one page per entry; None gives a page without text."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page(width=width, height=height)
        if text:
            page.insert_text((72, 72), text, fontsize=11, fontname="helv")
    doc.save(str(path))
    doc.close()
    return path


class FakeEngine:
    """Recognition engine returning scripted regions, one list per call."""

    def __init__(self, responses: list[list[str]]):
        self.responses = list(responses)
        self.calls = 0

    def recognize_regions(self, image) -> list[str]:
        self.calls += 1
        return self.responses.pop(0) if self.responses else []


class PageTextOCR(OCRService):
    """OCR service answering from a page-index lookup, without Tesseract."""

    def __init__(self, texts: dict[int, Optional[str]]):
        super().__init__(engine=FakeEngine([]), preprocess=False)
        self.texts = texts
        self.pages_seen: list[int] = []

    def recognize_image(self, page, image) -> Optional[str]:
        self.pages_seen.append(page.index)
        return self.texts.get(page.index)
