"""Base models and common types for Flare Fixer."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class Verdict(str, Enum):
    """Text quality verdict for a page's text layer."""

    CLEAN = "clean"
    GARBLED = "garbled"


class PageOutcome(str, Enum):
    """Terminal state of a page after the repair state machine."""

    ACCEPTED = "accepted"  # original text kept
    RECOVERED = "recovered"  # text replaced by OCR
    UNRECOVERED = "unrecovered"  # OCR produced nothing
    SKIPPED = "skipped"  # page could not be read


class TextSource(str, Enum):
    """Where a combined-text entry came from."""

    ORIGINAL = "original"
    OCR = "ocr"
    PLACEHOLDER = "placeholder"


class RepairMode(str, Enum):
    """Downstream use of a repair run."""

    REBUILD_PDF = "rebuild_pdf"
    EXTRACT_FIELDS = "extract_fields"
    TEXT_ONLY = "text_only"


class ReconstructionStrategy(str, Enum):
    """How a recovered page is turned into output PDF content."""

    OVERLAY_ORIGINAL = "overlay_original"
    FRESH_PAGE_WITH_ANNOTATION = "fresh_page_with_annotation"
    FRESH_PAGE_WITH_LAID_OUT_TEXT = "fresh_page_with_laid_out_text"


class BaseIRModel(BaseModel):
    """Base class for all IR models with common fields."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True
