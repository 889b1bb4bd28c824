"""Reconstruction Stage - Build the output PDF from recovered page text.

Three strategies share the same input (a recovered page and its text) and
differ only in how the text is put on paper:

- overlay_original: the source page with the text drawn over it
- fresh_page_with_annotation: a blank page carrying the text as a FreeText
  annotation next to a yellow marker
- fresh_page_with_laid_out_text: a blank page with the text laid out in a
  frame inset from the page edges

Pages that were not recovered are copied unchanged unless only repaired
pages are requested.
"""

import logging
from typing import Iterable, Optional, Union

import fitz  # PyMuPDF

from flarefix.config import settings
from flarefix.models import (
    CombinedText,
    OutputArtifact,
    PageOutcome,
    PageResult,
    ReconstructionStrategy,
)

logger = logging.getLogger(__name__)

MIN_FONT_SIZE = 6.0
MARKER_RECT = fitz.Rect(50, 50, 250, 100)
MARKER_COLOR = (1, 1, 0)
TEXT_COLOR = (0, 0, 0)


class PageReconstructor:
    """Assembles an output PDF for a repair run."""

    def __init__(
        self,
        strategy: Optional[Union[ReconstructionStrategy, str]] = None,
        font_name: Optional[str] = None,
        font_size: Optional[float] = None,
        margin: Optional[float] = None,
        cover_original: bool = False,
    ):
        """Initialize reconstructor.

        Args:
            strategy: Default reconstruction strategy (default from settings).
            font_name: PDF base-14 font short name, e.g. 'helv'.
            font_size: Starting font size; shrunk until the text fits.
            margin: Inset of the text frame from each page edge, in points.
            cover_original: With overlay_original, paint the frame white first.
        """
        self.strategy = ReconstructionStrategy(strategy or settings.reconstruction_strategy)
        self.font_name = font_name or settings.font_name
        self.font_size = font_size or settings.font_size
        self.margin = settings.text_margin if margin is None else margin
        self.cover_original = cover_original

    def build(
        self,
        source_pdf: fitz.Document,
        page_results: Iterable[PageResult],
        strategy: Optional[Union[ReconstructionStrategy, str]] = None,
        only_repaired: bool = False,
    ) -> OutputArtifact:
        """Build the output PDF.

        Args:
            source_pdf: The open source document.
            page_results: Per-page outcomes in page order.
            strategy: Override the default strategy for this build.
            only_repaired: Emit only reconstructed pages.

        Returns:
            OutputArtifact of kind 'pdf'.
        """
        strategy = ReconstructionStrategy(strategy or self.strategy)
        out = fitz.open()
        repaired: list[int] = []
        positions: list[int] = []

        for result in sorted(page_results, key=lambda r: r.index):
            if result.outcome == PageOutcome.RECOVERED and result.text:
                self.reconstruct_page(out, source_pdf, result.index, result.text, strategy)
                repaired.append(result.index)
                positions.append(out.page_count - 1)
            elif not only_repaired:
                self._copy_page(out, source_pdf, result.index)

        page_count = out.page_count
        pdf_bytes = out.tobytes(garbage=3, deflate=True) if page_count else None
        out.close()

        return OutputArtifact(
            kind="pdf",
            strategy=strategy,
            pdf_bytes=pdf_bytes,
            page_count=page_count,
            repaired_indices=repaired,
            repaired_positions=positions,
        )

    def reconstruct_page(
        self,
        out: fitz.Document,
        source_pdf: fitz.Document,
        index: int,
        text: str,
        strategy: ReconstructionStrategy,
    ) -> fitz.Page:
        """Append the reconstructed version of source page `index` to `out`."""
        source_rect = source_pdf.load_page(index).rect

        if strategy == ReconstructionStrategy.OVERLAY_ORIGINAL:
            out.insert_pdf(source_pdf, from_page=index, to_page=index)
            page = out[out.page_count - 1]
            frame = self.text_frame(page.rect)
            if self.cover_original:
                page.draw_rect(frame, color=None, fill=(1, 1, 1))
            self.draw_text(page, frame, text)
        elif strategy == ReconstructionStrategy.FRESH_PAGE_WITH_ANNOTATION:
            page = out.new_page(width=source_rect.width, height=source_rect.height)
            page.draw_rect(MARKER_RECT, color=None, fill=MARKER_COLOR)
            annot = page.add_freetext_annot(
                self.text_frame(page.rect),
                text,
                fontsize=self.font_size,
                fontname="Helv",
                text_color=TEXT_COLOR,
            )
            annot.update()
        else:
            page = out.new_page(width=source_rect.width, height=source_rect.height)
            self.draw_text(page, self.text_frame(page.rect), text)

        return page

    def text_frame(self, page_rect: fitz.Rect) -> fitz.Rect:
        """Frame for recovered text, inset by the margin on every side."""
        margin = min(self.margin, page_rect.width / 4, page_rect.height / 4)
        return fitz.Rect(
            page_rect.x0 + margin,
            page_rect.y0 + margin,
            page_rect.x1 - margin,
            page_rect.y1 - margin,
        )

    def draw_text(self, page: fitz.Page, frame: fitz.Rect, text: str) -> float:
        """Lay out text in the frame, shrinking the font until it fits.

        Returns:
            Font size used.
        """
        font_size = self.font_size
        while True:
            # Negative return value: text did not fit and nothing was written
            remaining = page.insert_textbox(
                frame,
                text,
                fontsize=font_size,
                fontname=self.font_name,
                color=TEXT_COLOR,
            )
            if remaining >= 0:
                return font_size
            if font_size - 1 < MIN_FONT_SIZE:
                break
            font_size -= 1

        logger.warning(
            "Page %d: recovered text does not fit at %.0fpt, truncating",
            page.number + 1,
            MIN_FONT_SIZE,
        )
        self._draw_truncated(page, frame, text, MIN_FONT_SIZE)
        return MIN_FONT_SIZE

    def _draw_truncated(self, page: fitz.Page, frame: fitz.Rect, text: str, font_size: float) -> None:
        """Draw the longest prefix of text that fits: whole lines, then words of the next line."""
        scratch = fitz.open()
        try:
            measure = scratch.new_page(width=page.rect.width, height=page.rect.height)

            def fits(candidate: str) -> bool:
                return measure.insert_textbox(
                    frame, candidate, fontsize=font_size, fontname=self.font_name
                ) >= 0

            lines = text.split("\n")
            kept = _longest_prefix(len(lines), lambda n: fits("\n".join(lines[:n])))
            if kept < len(lines):
                words = lines[kept].split(" ")
                head = lines[:kept]
                count = _longest_prefix(
                    len(words), lambda n: fits("\n".join(head + [" ".join(words[:n])]))
                )
                if count:
                    lines = head + [" ".join(words[:count])]
                else:
                    lines = head
        finally:
            scratch.close()

        truncated = "\n".join(lines).strip()
        if not truncated:
            logger.warning("Page %d: text frame too small for any recovered text", page.number + 1)
            return
        page.insert_textbox(
            frame,
            truncated,
            fontsize=font_size,
            fontname=self.font_name,
            color=TEXT_COLOR,
        )

    def _copy_page(self, out: fitz.Document, source_pdf: fitz.Document, index: int) -> None:
        try:
            out.insert_pdf(source_pdf, from_page=index, to_page=index)
        except (RuntimeError, ValueError, IndexError) as exc:
            logger.warning("Page %d could not be copied: %s", index + 1, exc)


def _longest_prefix(total: int, fits) -> int:
    """Largest n in [0, total] with fits(n), assuming fits is monotone and fits(0)."""
    low, high = 0, total
    while low < high:
        mid = (low + high + 1) // 2
        if fits(mid):
            low = mid
        else:
            high = mid - 1
    return low


def text_artifact(combined_text: CombinedText) -> OutputArtifact:
    """Wrap the rendered combined text as a plain-text artifact."""
    return OutputArtifact(
        kind="text",
        text=combined_text.render(),
        page_count=combined_text.page_count,
    )
