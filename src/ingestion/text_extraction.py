"""Text extraction for evidence: PDF text layer, plain text, Tesseract OCR."""

import io
import logging
from typing import Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from src.config_loader import Settings, get_settings

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"


class ExtractionError(Exception):
    """Content could not be parsed (corrupt or truncated file)."""


class TextExtractor:
    """Extracts machine-readable text and falls back to OCR for scans.

    A document whose extracted text is shorter than ``ocr.min_text_chars``
    (after stripping whitespace) is treated as a likely scanned image.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize extractor.

        Args:
            settings: Settings instance. If None, loads from config.
        """
        self.settings = settings or get_settings()

    def extract_text(self, content: bytes, mime_type: str) -> str:
        """Text layer of the content, or "" for formats without one.

        Raises:
            ExtractionError: If a PDF cannot be opened or read
        """
        if mime_type == PDF_MIME:
            return self._pdf_text(content)
        if mime_type.startswith("text/"):
            return content.decode("utf-8", errors="replace")
        return ""

    def needs_ocr(self, text: str) -> bool:
        """True if the text is too short to be a real text layer."""
        return len(text.strip()) < self.settings.ocr.min_text_chars

    def can_ocr(self, mime_type: str) -> bool:
        return mime_type == PDF_MIME or mime_type.startswith("image/")

    def run_ocr(self, content: bytes, mime_type: str) -> str:
        """OCR a PDF (every page rendered) or an image.

        Raises:
            ValueError: If the type cannot be OCR'd
            ExtractionError: If PDF pages cannot be rendered
            pytesseract.TesseractError: If Tesseract fails
        """
        if mime_type == PDF_MIME:
            images = self._render_pdf_pages(content)
        elif mime_type.startswith("image/"):
            images = [Image.open(io.BytesIO(content))]
        else:
            raise ValueError(f"Cannot OCR content of type {mime_type}")

        lang = self.settings.ocr.language
        pages = [pytesseract.image_to_string(img, lang=lang) for img in images]
        text = "\n\n".join(p.strip() for p in pages if p.strip())
        logger.info(f"OCR extracted {len(text)} chars from {len(images)} page(s)")
        return text

    # ------------------------------------------------------------------#
    # PyMuPDF helpers
    # ------------------------------------------------------------------#
    @staticmethod
    def _pdf_text(content: bytes) -> str:
        try:
            with fitz.open(stream=content, filetype="pdf") as doc:
                return " ".join(page.get_text() for page in doc)
        except RuntimeError as e:
            # fitz.FileDataError and other MuPDF failures derive from RuntimeError
            raise ExtractionError(f"Failed to parse PDF: {e}") from e

    def _render_pdf_pages(self, content: bytes) -> list[Image.Image]:
        zoom = self.settings.ocr.zoom
        images = []
        try:
            with fitz.open(stream=content, filetype="pdf") as doc:
                for page in doc:
                    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
                    images.append(Image.frombytes("RGB", [pix.width, pix.height], pix.samples))
        except RuntimeError as e:
            raise ExtractionError(f"Failed to render PDF: {e}") from e
        return images
