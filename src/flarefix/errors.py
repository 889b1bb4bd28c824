"""Error kinds raised by the repair pipeline.

Only DocumentLoadError and WriteError are fatal to a run. Page-level errors
are caught by the pipeline and turned into placeholder entries.
"""

from typing import Optional


class FlareFixError(Exception):
    """Base class for all Flare Fixer errors."""


class DocumentLoadError(FlareFixError):
    """The source PDF cannot be opened or parsed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot open PDF {source}: {reason}")


class PageAccessError(FlareFixError):
    """A single page cannot be materialized."""

    def __init__(self, page_index: int, reason: str):
        self.page_index = page_index
        self.reason = reason
        super().__init__(f"Cannot read page {page_index + 1}: {reason}")


class OCRFailure(FlareFixError):
    """Rendering or text recognition failed for a page."""

    def __init__(self, page_index: int, reason: str):
        self.page_index = page_index
        self.reason = reason
        super().__init__(f"OCR failed on page {page_index + 1}: {reason}")


class WriteError(FlareFixError):
    """The destination could not be written.

    `result` carries the in-memory repair result when one was computed.
    """

    def __init__(self, destination: str, reason: str):
        self.destination = destination
        self.reason = reason
        self.result = None
        super().__init__(f"Cannot write {destination}: {reason}")


class RunCancelled(FlareFixError):
    """A multi-page run was cancelled between pages."""

    def __init__(self, pages_done: int, combined_text: Optional[object] = None):
        self.pages_done = pages_done
        self.combined_text = combined_text
        super().__init__(f"Run cancelled after {pages_done} page(s)")
