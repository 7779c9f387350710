"""
Plain-text extraction for uploaded PDF and DOCX files.

PDF pages are read with PyMuPDF; a page with no text layer is rendered and run
through Tesseract OCR.  DOCX paragraphs and table cells are read with
python-docx.  Unsupported formats yield an empty string.
"""
from __future__ import annotations

import asyncio
import io
import logging
from typing import List

import fitz  # PyMuPDF
import pytesseract
from docx import Document as DocxDocument
from PIL import Image

from app.config import settings

logger = logging.getLogger(__name__)

# Pages with fewer characters than this are treated as image-only
_MIN_PAGE_CHARS = 20


class TextExtractor:
    """Extracts plain text from stored files."""

    def __init__(self, ocr_enabled: bool = True) -> None:
        self.ocr_enabled = ocr_enabled
        if settings.TESSERACT_CMD:
            pytesseract.pytesseract.tesseract_cmd = settings.TESSERACT_CMD

    async def extract(self, file_path: str, file_type: str) -> str:
        """
        Extract text from *file_path*.

        Args:
            file_path: Path to the file on disk.
            file_type: Extension with or without dot, e.g. ".pdf" or "docx".

        Returns:
            Extracted text, or ``""`` for unsupported formats.

        Raises:
            RuntimeError: Password-protected or unreadable file.
        """
        ft = file_type.lower().lstrip(".")
        if ft == "pdf":
            return await asyncio.to_thread(self._extract_pdf, file_path)
        if ft == "docx":
            return await asyncio.to_thread(self._extract_docx, file_path)
        logger.info("No text extractor for file type %r", file_type)
        return ""

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    def _extract_pdf(self, file_path: str) -> str:
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            raise RuntimeError(f"Cannot open PDF file: {exc}") from exc

        try:
            if doc.needs_pass:
                raise RuntimeError(
                    "PDF is password-protected. Please provide an unlocked copy."
                )

            pages: List[str] = []
            for page in doc:
                text = page.get_text("text").strip()
                if len(text) < _MIN_PAGE_CHARS and self.ocr_enabled:
                    text = self._ocr_page(page) or text
                if text:
                    pages.append(text)
        finally:
            doc.close()

        return "\n\n".join(pages)

    @staticmethod
    def _ocr_page(page: "fitz.Page") -> str:
        try:
            pix = page.get_pixmap(dpi=200)
            image = Image.open(io.BytesIO(pix.tobytes("png")))
            return pytesseract.image_to_string(image).strip()
        except Exception as exc:
            logger.warning("OCR failed on page %d: %s", page.number + 1, exc)
            return ""

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_docx(file_path: str) -> str:
        try:
            doc = DocxDocument(file_path)
        except Exception as exc:
            raise RuntimeError(f"Cannot open DOCX file: {exc}") from exc

        parts: List[str] = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [c.text.strip() for c in row.cells if c.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))
        return "\n".join(parts)
