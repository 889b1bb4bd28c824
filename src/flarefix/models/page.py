"""Page-level IR models."""

from typing import Optional

from pydantic import BaseModel, Field

from .base import BaseIRModel, PageOutcome, Verdict


class Page(BaseIRModel):
    """
    Single page from a loaded document.

    The raster image is not stored here; it is rendered on demand by the
    renderer and discarded after OCR.
    """

    index: int = Field(..., ge=0, description="0-indexed page position")
    width: float = Field(..., gt=0, description="Media box width in points")
    height: float = Field(..., gt=0, description="Media box height in points")
    rotation: int = Field(default=0, description="Page rotation in PDF (0, 90, 180, 270)")
    text: Optional[str] = Field(None, description="Embedded text layer, if any")

    @property
    def page_number(self) -> int:
        """1-indexed page number for display."""
        return self.index + 1

    @property
    def has_text(self) -> bool:
        """Check if the page carries a non-empty text layer."""
        return bool(self.text)


class ClassificationResult(BaseModel):
    """Verdict of the garbled-text heuristic plus the metrics behind it."""

    verdict: Verdict
    readability_ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    symbol_ratio: float = Field(default=1.0, ge=0.0, le=1.0)
    word_count: int = Field(default=0, ge=0)
    char_count: int = Field(default=0, ge=0)

    class Config:
        frozen = True

    @property
    def is_garbled(self) -> bool:
        return self.verdict == Verdict.GARBLED


class PageResult(BaseIRModel):
    """Outcome of running one page through the repair state machine."""

    index: int = Field(..., ge=0)
    outcome: PageOutcome
    classification: Optional[ClassificationResult] = Field(
        None, description="None when the page had no text layer"
    )
    text: Optional[str] = Field(None, description="Normalized kept or recovered text")
    ocr_attempted: bool = False
    error_message: Optional[str] = None

    @property
    def page_number(self) -> int:
        return self.index + 1
