"""Tests for IR models."""

import pytest

from flarefix.models import (
    CombinedText,
    CombinedTextEntry,
    Document,
    OutputArtifact,
    PageOutcome,
    PageResult,
    RepairResult,
    TextSource,
)


def entry(index, text="text", source=TextSource.ORIGINAL):
    return CombinedTextEntry(index=index, source=source, text=text)


class TestCombinedText:
    """Tests for CombinedText."""

    def test_entries_ordered_by_index(self):
        combined = CombinedText(page_count=3)
        combined.add(entry(2, "third"))
        combined.add(entry(0, "first"))
        combined.add(entry(1, "second", TextSource.OCR))

        assert [e.index for e in combined.ordered()] == [0, 1, 2]
        assert combined.is_complete
        assert len(combined) == 3

    def test_render(self):
        combined = CombinedText(page_count=2)
        combined.add(entry(1, "recovered", TextSource.OCR))
        combined.add(entry(0, "original"))

        assert combined.render() == (
            "--- Page 1 ---\noriginal\n\n--- Page 2 (OCR) ---\nrecovered"
        )

    def test_duplicate_entry_rejected(self):
        combined = CombinedText(page_count=2)
        combined.add(entry(0))

        with pytest.raises(ValueError):
            combined.add(entry(0))

    def test_out_of_range_rejected(self):
        with pytest.raises(IndexError):
            CombinedText(page_count=1).add(entry(1))

    def test_incomplete(self):
        combined = CombinedText(page_count=2)
        combined.add(entry(0))

        assert not combined.is_complete


class TestRepairResult:
    """Tests for RepairResult helpers."""

    def test_page_lists(self):
        result = RepairResult(
            document=Document(source_name="x.pdf", page_count=4),
            page_results=[
                PageResult(index=0, outcome=PageOutcome.ACCEPTED),
                PageResult(index=1, outcome=PageOutcome.RECOVERED, text="t"),
                PageResult(index=2, outcome=PageOutcome.UNRECOVERED),
                PageResult(index=3, outcome=PageOutcome.SKIPPED),
            ],
            combined_text=CombinedText(page_count=4),
        )

        assert result.repaired_pages == [1]
        assert result.unrecovered_pages == [2, 3]


class TestOutputArtifact:
    """Tests for OutputArtifact."""

    def test_empty_pdf(self):
        assert OutputArtifact(kind="pdf", page_count=0).is_empty

    def test_text(self):
        assert not OutputArtifact(kind="text", text="hello").is_empty
        assert OutputArtifact(kind="text", text="").is_empty

    def test_frozen(self):
        artifact = OutputArtifact(kind="pdf", page_count=1, pdf_bytes=b"%PDF")

        with pytest.raises(Exception):
            artifact.page_count = 2
