"""Document-level IR models."""

from typing import Optional

from pydantic import BaseModel, Field

from .base import BaseIRModel, PageOutcome, ReconstructionStrategy, TextSource
from .fields import ExtractedFields
from .page import PageResult


class DocumentMetadata(BaseModel):
    """Metadata read from the PDF info dictionary."""

    title: Optional[str] = None
    author: Optional[str] = None
    creator: Optional[str] = None  # Software that created the PDF
    producer: Optional[str] = None  # PDF producer
    file_size_bytes: int = Field(default=0, ge=0)


class Document(BaseIRModel):
    """
    A loaded source PDF.

    Immutable once loaded; repairs only ever produce a new output artifact.
    """

    source_path: Optional[str] = Field(None, description="None when loaded from bytes")
    source_name: str = Field(..., description="File name or '<bytes>'")
    page_count: int = Field(..., ge=1)
    metadata: Optional[DocumentMetadata] = None

    class Config:
        frozen = True


class CombinedTextEntry(BaseModel):
    """Text contributed by one page."""

    index: int = Field(..., ge=0)
    source: TextSource
    text: str

    class Config:
        frozen = True

    @property
    def page_number(self) -> int:
        return self.index + 1

    @property
    def header(self) -> str:
        if self.source == TextSource.OCR:
            return f"--- Page {self.page_number} (OCR) ---"
        return f"--- Page {self.page_number} ---"

    def render(self) -> str:
        return f"{self.header}\n{self.text}"


class CombinedText(BaseModel):
    """
    Per-page text record of a whole document, in page order.

    Entries are stored by page index rather than arrival order, so pages
    processed out of order still render in order. Each index is written once.
    """

    page_count: int = Field(..., ge=0)
    entries: dict[int, CombinedTextEntry] = Field(default_factory=dict)

    def add(self, entry: CombinedTextEntry) -> None:
        """Record the entry for a page.

        Raises:
            IndexError: If the page index is outside the document.
            ValueError: If the page already has an entry.
        """
        if entry.index >= self.page_count:
            raise IndexError(
                f"Page index {entry.index} out of range for {self.page_count} pages"
            )
        if entry.index in self.entries:
            raise ValueError(f"Page {entry.page_number} already has an entry")
        self.entries[entry.index] = entry

    def ordered(self) -> list[CombinedTextEntry]:
        """Return entries sorted by page index."""
        return [self.entries[i] for i in sorted(self.entries)]

    @property
    def is_complete(self) -> bool:
        """Check that every page has contributed an entry."""
        return len(self.entries) == self.page_count

    def render(self) -> str:
        """Concatenate all entries, separated by a blank line."""
        return "\n\n".join(entry.render() for entry in self.ordered())

    def __len__(self) -> int:
        return len(self.entries)


class OutputArtifact(BaseIRModel):
    """
    Result handed to a write capability exactly once.

    Either a PDF (as bytes) or a plain-text export.
    """

    kind: str = Field(..., description="'pdf' or 'text'")
    strategy: Optional[ReconstructionStrategy] = None
    pdf_bytes: Optional[bytes] = None
    text: Optional[str] = None
    page_count: int = Field(default=0, ge=0)
    repaired_indices: list[int] = Field(
        default_factory=list, description="Source page indices that were reconstructed"
    )
    repaired_positions: list[int] = Field(
        default_factory=list, description="Output page index of each reconstructed page"
    )

    class Config:
        frozen = True

    @property
    def is_empty(self) -> bool:
        """Check if there is nothing worth writing."""
        if self.kind == "text":
            return not self.text
        return self.page_count == 0


class RepairResult(BaseModel):
    """Everything a run produced. Stays valid if a later write fails."""

    document: Document
    page_results: list[PageResult] = Field(default_factory=list)
    combined_text: CombinedText
    artifact: Optional[OutputArtifact] = None
    fields: Optional[ExtractedFields] = None

    @property
    def repaired_pages(self) -> list[int]:
        """Indices of pages whose text came from OCR."""
        return [r.index for r in self.page_results if r.outcome == PageOutcome.RECOVERED]

    @property
    def unrecovered_pages(self) -> list[int]:
        """Indices of pages left without usable text."""
        return [
            r.index
            for r in self.page_results
            if r.outcome in (PageOutcome.UNRECOVERED, PageOutcome.SKIPPED)
        ]
