"""PDF Rendering Stage - Open PDFs, read pages, render rasters, write output.

Uses PyMuPDF (fitz) for parsing, rendering and writing. This module is the
only place that touches the PDF library for input; everything else works on
Page models and numpy rasters.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF
import numpy as np

from flarefix.config import settings
from flarefix.errors import DocumentLoadError, OCRFailure, PageAccessError, WriteError
from flarefix.models import Document, DocumentMetadata, Page

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes]

# fitz raises RuntimeError subclasses (FileDataError, ...) plus ValueError/IndexError
_FITZ_ERRORS = (RuntimeError, ValueError, IndexError)


def extract_pdf_metadata(pdf_doc: fitz.Document, file_size: int) -> DocumentMetadata:
    """Extract metadata from PDF document."""
    metadata = pdf_doc.metadata or {}

    return DocumentMetadata(
        title=metadata.get("title") or None,
        author=metadata.get("author") or None,
        creator=metadata.get("creator") or None,
        producer=metadata.get("producer") or None,
        file_size_bytes=file_size,
    )


class OpenedPDF:
    """A PDF held open for the duration of a run.

    Use as a context manager; the underlying file is released on exit.
    """

    def __init__(self, pdf_doc: fitz.Document, document: Document, scale: float = 1.0):
        self.pdf = pdf_doc
        self.document = document
        self.scale = scale

    def __enter__(self) -> "OpenedPDF":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return self.document.page_count

    def close(self) -> None:
        if not self.pdf.is_closed:
            self.pdf.close()

    def page(self, index: int) -> Page:
        """Materialize a page with its text layer.

        Args:
            index: 0-indexed page number.

        Returns:
            Page model.

        Raises:
            PageAccessError: If the page cannot be loaded.
        """
        try:
            pdf_page = self.pdf.load_page(index)
            text = pdf_page.get_text("text")
            # Page space: rotation applied, origin at the top-left of the visible box
            bounds = pdf_page.rect
            return Page(
                index=index,
                width=bounds.width,
                height=bounds.height,
                rotation=pdf_page.rotation,
                text=text or None,
            )
        except _FITZ_ERRORS as exc:
            raise PageAccessError(index, str(exc)) from exc

    def render_to_image(self, page: Page) -> np.ndarray:
        """Render a whole page to an RGB raster.

        The raster covers the page in page space, so rotated pages come out
        in their displayed orientation and a media box that does not start
        at the origin is rendered in full. At scale 1.0 the raster is the
        page size in points (one pixel per point).

        Args:
            page: Page to render.

        Returns:
            Image as numpy array (height, width, 3), RGB.

        Raises:
            OCRFailure: If rendering fails.
        """
        try:
            pdf_page = self.pdf.load_page(page.index)
            matrix = fitz.Matrix(self.scale, self.scale)
            pixmap = pdf_page.get_pixmap(
                matrix=matrix,
                alpha=False,
                colorspace=fitz.csRGB,
            )
        except _FITZ_ERRORS as exc:
            raise OCRFailure(page.index, f"render failed: {exc}") from exc

        if pixmap.width == 0 or pixmap.height == 0:
            raise OCRFailure(page.index, "render produced an empty image")

        image = np.frombuffer(pixmap.samples, dtype=np.uint8)
        return image.reshape(pixmap.height, pixmap.width, pixmap.n).copy()


def atomic_write_bytes(destination: Union[str, Path], data: bytes) -> Path:
    """Write `data` to `destination` without leaving a partial file.

    Writes to a temporary file in the same directory and renames it into
    place on success.

    Raises:
        WriteError: If the destination cannot be written.
    """
    destination = Path(destination)
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(data)
        os.replace(tmp_path, destination)
    except OSError as exc:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise WriteError(str(destination), str(exc)) from exc
    return destination


class PDFRenderer:
    """Opens source PDFs and writes output PDFs and text.

    Uses PyMuPDF. Rendering scale defaults to native media-box size.
    """

    def __init__(self, scale: Optional[float] = None):
        """Initialize renderer.

        Args:
            scale: Zoom applied to the media box when rendering for OCR
                (default from settings, 1.0).
        """
        self.scale = scale or settings.render_scale

    def open(self, source: Source) -> OpenedPDF:
        """Open a PDF from a path or byte buffer.

        Args:
            source: File path or raw PDF bytes.

        Returns:
            OpenedPDF, to be used as a context manager.

        Raises:
            DocumentLoadError: If the source cannot be opened or has no pages.
        """
        if isinstance(source, (bytes, bytearray)):
            name = "<bytes>"
            source_path = None
            file_size = len(source)
            if not source:
                raise DocumentLoadError(name, "empty PDF bytes")
            try:
                pdf_doc = fitz.open(stream=bytes(source), filetype="pdf")
            except _FITZ_ERRORS as exc:
                raise DocumentLoadError(name, str(exc)) from exc
        else:
            path = Path(source).resolve()
            name = path.name
            source_path = str(path)
            if not path.is_file():
                raise DocumentLoadError(str(path), "file not found")
            file_size = path.stat().st_size
            try:
                pdf_doc = fitz.open(str(path), filetype="pdf")
            except _FITZ_ERRORS as exc:
                raise DocumentLoadError(str(path), str(exc)) from exc

        if pdf_doc.needs_pass:
            pdf_doc.close()
            raise DocumentLoadError(source_path or name, "document is encrypted")
        if pdf_doc.page_count == 0:
            pdf_doc.close()
            raise DocumentLoadError(source_path or name, "document has no pages")

        document = Document(
            source_path=source_path,
            source_name=name,
            page_count=pdf_doc.page_count,
            metadata=extract_pdf_metadata(pdf_doc, file_size),
        )
        logger.debug("Opened %s (%d pages)", name, document.page_count)
        return OpenedPDF(pdf_doc, document, scale=self.scale)

    def write_document(self, pdf_bytes: bytes, destination: Union[str, Path]) -> Path:
        """Write a whole PDF to `destination` atomically.

        Raises:
            WriteError: If the destination cannot be written.
        """
        path = atomic_write_bytes(destination, pdf_bytes)
        logger.info("Wrote %s", path)
        return path

    def write_page(
        self,
        pdf_bytes: bytes,
        page_index: int,
        destination: Union[str, Path],
    ) -> Path:
        """Write one page of a PDF as a single-page PDF.

        Args:
            pdf_bytes: PDF containing the page.
            page_index: 0-indexed page within `pdf_bytes`.
            destination: Output path.

        Raises:
            WriteError: If the page cannot be extracted or written.
        """
        try:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as source_pdf:
                single = fitz.open()
                single.insert_pdf(source_pdf, from_page=page_index, to_page=page_index)
                data = single.tobytes(garbage=3, deflate=True)
                single.close()
        except _FITZ_ERRORS as exc:
            raise WriteError(str(destination), str(exc)) from exc
        path = atomic_write_bytes(destination, data)
        logger.info("Wrote page %d to %s", page_index + 1, path)
        return path

    def write_text(self, text: str, destination: Union[str, Path]) -> Path:
        """Write a plain-text export atomically (UTF-8)."""
        path = atomic_write_bytes(destination, text.encode("utf-8"))
        logger.info("Wrote %s", path)
        return path
