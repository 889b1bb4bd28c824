"""Pipeline stages for Flare Fixer.

Stages:
1. stage_render - open PDF, read page text, render rasters, write output
2. stage_classify - garbled-text heuristic
3. stage_ocr - Tesseract OCR fallback
4. stage_normalize - text cleanup
5. stage_extract - order field extraction
6. stage_rebuild - output PDF reconstruction
7. stage_repair - per-page orchestration

Each stage can be used on its own or through PageRepairPipeline.
"""

from .events import EventBus
from .stage_classify import TextQualityClassifier
from .stage_extract import FieldExtractor
from .stage_normalize import TextNormalizer, clean_text
from .stage_ocr import OCRService, TesseractOCR
from .stage_rebuild import PageReconstructor
from .stage_render import OpenedPDF, PDFRenderer
from .stage_repair import CancelToken, PageRepairPipeline

__all__ = [
    # Render
    "OpenedPDF",
    "PDFRenderer",
    # Classification
    "TextQualityClassifier",
    # OCR
    "OCRService",
    "TesseractOCR",
    # Normalization
    "TextNormalizer",
    "clean_text",
    # Extraction
    "FieldExtractor",
    # Reconstruction
    "PageReconstructor",
    # Orchestration
    "CancelToken",
    "EventBus",
    "PageRepairPipeline",
]
