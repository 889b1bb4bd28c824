"""Page Repair Stage - Run every page of a document through repair.

Per page: read the text layer, classify it, fall back to OCR when it is
missing or garbled, normalize, and record the result in the combined text.
A page that cannot be read or recovered gets a placeholder entry; only
loading the document and writing output can fail a run.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

from flarefix.config import settings
from flarefix.errors import (
    DocumentLoadError,
    OCRFailure,
    PageAccessError,
    RunCancelled,
    WriteError,
)
from flarefix.models import (
    ClassificationResult,
    CombinedText,
    CombinedTextEntry,
    Document,
    EventKind,
    Page,
    PageOutcome,
    PageResult,
    PipelineEvent,
    ReconstructionStrategy,
    RepairMode,
    RepairResult,
    TextSource,
)
from flarefix.pipeline.events import EventBus
from flarefix.pipeline.stage_classify import TextQualityClassifier
from flarefix.pipeline.stage_extract import FieldExtractor
from flarefix.pipeline.stage_normalize import TextNormalizer
from flarefix.pipeline.stage_ocr import OCRService
from flarefix.pipeline.stage_rebuild import PageReconstructor, text_artifact
from flarefix.pipeline.stage_render import OpenedPDF, PDFRenderer, Source

logger = logging.getLogger(__name__)


def unrecovered_placeholder(page_number: int) -> str:
    return f"No text found on page {page_number}, even after OCR."


def unreadable_placeholder(page_number: int) -> str:
    return f"Page {page_number} could not be read."


class CancelToken:
    """Thread-safe flag checked between pages."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class PageRepairPipeline:
    """Orchestrates classification, OCR, normalization and output for a document.

    Pages are handled in index order. With more than one OCR worker, pages
    are still read and rendered in order on the calling thread while
    recognition runs in a thread pool; results are stored by page index.
    """

    def __init__(
        self,
        renderer: Optional[PDFRenderer] = None,
        classifier: Optional[TextQualityClassifier] = None,
        ocr: Optional[OCRService] = None,
        normalizer: Optional[TextNormalizer] = None,
        extractor: Optional[FieldExtractor] = None,
        reconstructor: Optional[PageReconstructor] = None,
        events: Optional[EventBus] = None,
        ocr_workers: Optional[int] = None,
    ):
        """Initialize pipeline.

        Args:
            renderer: Opens PDFs and writes output.
            classifier: Garbled-text heuristic.
            ocr: OCR fallback service.
            normalizer: Text cleanup.
            extractor: Structured field parser.
            reconstructor: Output PDF builder.
            events: Event bus for progress events.
            ocr_workers: Parallel OCR threads (default from settings, 1).
        """
        self.renderer = renderer or PDFRenderer()
        self.classifier = classifier or TextQualityClassifier()
        self.ocr = ocr or OCRService()
        self.normalizer = normalizer or TextNormalizer()
        self.extractor = extractor or FieldExtractor()
        self.reconstructor = reconstructor or PageReconstructor()
        self.events = events or EventBus()
        self.ocr_workers = max(1, ocr_workers or settings.ocr_workers)

    def run(
        self,
        source: Source,
        mode: RepairMode = RepairMode.REBUILD_PDF,
        cancel: Optional[CancelToken] = None,
        strategy: Optional[Union[ReconstructionStrategy, str]] = None,
        only_repaired: bool = False,
    ) -> RepairResult:
        """Repair a document.

        Args:
            source: PDF path or bytes.
            mode: What to produce besides the combined text.
            cancel: Token checked between pages.
            strategy: Reconstruction strategy for REBUILD_PDF.
            only_repaired: With REBUILD_PDF, emit only reconstructed pages.

        Returns:
            RepairResult with per-page results and combined text, plus an
            artifact (REBUILD_PDF, TEXT_ONLY) or extracted fields
            (EXTRACT_FIELDS).

        Raises:
            DocumentLoadError: If the source cannot be opened.
            RunCancelled: If the run was cancelled.
        """
        try:
            opened = self.renderer.open(source)
        except DocumentLoadError as exc:
            logger.error("%s", exc)
            raise

        with opened:
            document = opened.document
            logger.info("Processing %s (%d pages)", document.source_name, document.page_count)
            self._emit(EventKind.DOCUMENT_STARTED, document)

            page_results, combined = self._process_pages(opened, cancel)

            result = RepairResult(
                document=document,
                page_results=page_results,
                combined_text=combined,
            )

            if mode == RepairMode.REBUILD_PDF:
                result.artifact = self.reconstructor.build(
                    opened.pdf, page_results, strategy=strategy, only_repaired=only_repaired
                )
            elif mode == RepairMode.TEXT_ONLY:
                result.artifact = text_artifact(combined)

        if mode == RepairMode.EXTRACT_FIELDS:
            result.fields = self.extractor.extract(combined.render())
            logger.info(
                "Extracted fields: %s",
                ", ".join(
                    name for name, value in result.fields.model_dump().items() if value
                ) or "none",
            )
            self._emit(
                EventKind.FIELDS_EXTRACTED,
                document,
                data=result.fields.model_dump(),
            )

        logger.info(
            "Finished %s: %d repaired, %d without text",
            document.source_name,
            len(result.repaired_pages),
            len(result.unrecovered_pages),
        )
        self._emit(
            EventKind.DOCUMENT_COMPLETED,
            document,
            data={
                "repaired_pages": result.repaired_pages,
                "unrecovered_pages": result.unrecovered_pages,
            },
        )
        return result

    def repair_to_file(
        self,
        source: Source,
        destination: Union[str, Path],
        strategy: Optional[Union[ReconstructionStrategy, str]] = None,
        only_repaired: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> RepairResult:
        """Repair a document and write the output PDF.

        Nothing is written when no page ended up in the output.

        Raises:
            DocumentLoadError: If the source cannot be opened.
            WriteError: If the destination cannot be written.
        """
        result = self.run(
            source,
            mode=RepairMode.REBUILD_PDF,
            cancel=cancel,
            strategy=strategy,
            only_repaired=only_repaired,
        )
        if result.artifact.is_empty:
            logger.warning("No pages to write, skipping %s", destination)
            return result
        try:
            self.renderer.write_document(result.artifact.pdf_bytes, destination)
        except WriteError as exc:
            logger.error("%s", exc)
            exc.result = result
            raise
        return result

    def extract_fields(self, source: Source, cancel: Optional[CancelToken] = None) -> RepairResult:
        """Repair a document's text and parse structured fields from it."""
        return self.run(source, mode=RepairMode.EXTRACT_FIELDS, cancel=cancel)

    def _process_pages(
        self,
        opened: OpenedPDF,
        cancel: Optional[CancelToken],
    ) -> tuple[list[PageResult], CombinedText]:
        document = opened.document
        combined = CombinedText(page_count=document.page_count)
        results: dict[int, PageResult] = {}
        pending: dict[int, tuple[Page, Optional[ClassificationResult], Future]] = {}

        executor = ThreadPoolExecutor(max_workers=self.ocr_workers) if self.ocr_workers > 1 else None
        try:
            for index in range(document.page_count):
                if cancel is not None and cancel.cancelled:
                    for _, _, future in pending.values():
                        future.cancel()
                    logger.warning("Run cancelled after %d page(s)", len(results))
                    raise RunCancelled(len(results), combined)

                self._emit(EventKind.PAGE_STARTED, document, index)
                logger.info("Page %d: started", index + 1)

                try:
                    page = opened.page(index)
                except PageAccessError as exc:
                    logger.warning("%s", exc)
                    results[index] = self._finish(
                        document,
                        combined,
                        PageResult(index=index, outcome=PageOutcome.SKIPPED, error_message=exc.reason),
                        TextSource.PLACEHOLDER,
                        unreadable_placeholder(index + 1),
                    )
                    continue

                classification = self._classify(document, page)
                if classification is not None and not classification.is_garbled:
                    results[index] = self._finish(
                        document,
                        combined,
                        PageResult(
                            index=index,
                            outcome=PageOutcome.ACCEPTED,
                            classification=classification,
                            text=self.normalizer.clean(page.text),
                        ),
                        TextSource.ORIGINAL,
                    )
                    continue

                if executor is None:
                    recovered = self.ocr.recognize(page, opened)
                    results[index] = self._finish_ocr(document, combined, page, classification, recovered)
                    continue

                try:
                    image = opened.render_to_image(page)
                except OCRFailure as exc:
                    logger.warning("%s", exc)
                    results[index] = self._finish_ocr(document, combined, page, classification, None)
                    continue
                pending[index] = (
                    page,
                    classification,
                    executor.submit(self.ocr.recognize_image, page, image),
                )

            for index in sorted(pending):
                page, classification, future = pending[index]
                results[index] = self._finish_ocr(
                    document, combined, page, classification, future.result()
                )
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        return [results[i] for i in sorted(results)], combined

    def _classify(self, document: Document, page: Page) -> Optional[ClassificationResult]:
        if not page.has_text:
            logger.info("Page %d: no text layer, performing OCR", page.page_number)
            return None

        classification = self.classifier.classify(page.text)
        logger.info(
            "Page %d: text is %s (readability %.2f, %d words)",
            page.page_number,
            classification.verdict.value,
            classification.readability_ratio,
            classification.word_count,
        )
        self._emit(
            EventKind.PAGE_CLASSIFIED,
            document,
            page.index,
            data=classification.model_dump(),
        )
        return classification

    def _finish_ocr(
        self,
        document: Document,
        combined: CombinedText,
        page: Page,
        classification: Optional[ClassificationResult],
        recovered: Optional[str],
    ) -> PageResult:
        text = self.normalizer.clean(recovered) if recovered else ""
        success = bool(text)
        if success:
            logger.info("Page %d: OCR recovered %d characters", page.page_number, len(text))
        else:
            logger.warning("Page %d: no text found, even after OCR", page.page_number)
        self._emit(
            EventKind.OCR_COMPLETED,
            document,
            page.index,
            data={"recovered": success, "char_count": len(text)},
        )

        if success:
            return self._finish(
                document,
                combined,
                PageResult(
                    index=page.index,
                    outcome=PageOutcome.RECOVERED,
                    classification=classification,
                    text=text,
                    ocr_attempted=True,
                ),
                TextSource.OCR,
            )
        return self._finish(
            document,
            combined,
            PageResult(
                index=page.index,
                outcome=PageOutcome.UNRECOVERED,
                classification=classification,
                ocr_attempted=True,
            ),
            TextSource.PLACEHOLDER,
            unrecovered_placeholder(page.page_number),
        )

    def _finish(
        self,
        document: Document,
        combined: CombinedText,
        result: PageResult,
        source: TextSource,
        entry_text: Optional[str] = None,
    ) -> PageResult:
        combined.add(
            CombinedTextEntry(
                index=result.index,
                source=source,
                text=entry_text if entry_text is not None else (result.text or ""),
            )
        )
        self._emit(
            EventKind.PAGE_COMPLETED,
            document,
            result.index,
            data={"outcome": result.outcome.value},
        )
        return result

    def _emit(
        self,
        kind: EventKind,
        document: Document,
        page_index: Optional[int] = None,
        data: Optional[dict] = None,
    ) -> None:
        self.events.emit(
            PipelineEvent(
                kind=kind,
                document_id=document.id,
                page_index=page_index,
                page_count=document.page_count,
                data=data or {},
            )
        )
