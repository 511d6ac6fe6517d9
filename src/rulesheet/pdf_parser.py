# pdf text extraction using pymupdf
import fitz  # PyMuPDF
from pathlib import Path
from typing import List
from dataclasses import dataclass, field
import logging

from .errors import InsufficientTextError

logger = logging.getLogger(__name__)


# extracted text of one pdf, page by page
@dataclass
class ExtractedText:
    filename: str
    pages: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(self.pages)

    @property
    def total_pages(self) -> int:
        return len(self.pages)


# class for pulling the embedded text layer out of rulebook pdfs
class PDFParser:
    # extract plain text from an in-memory pdf document
    def extract_text(self, content: bytes, filename: str = "document.pdf") -> ExtractedText:
        """Extract the text layer of every page. A file PyMuPDF cannot open raises InsufficientTextError."""
        logger.info(f"[PDF] Starting text extraction for: {filename} ({len(content) / 1024:.1f} KB)")
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            # fitz.FileDataError and EmptyFileError are RuntimeErrors
            logger.error(f"Error opening PDF {filename}: {str(e)}")
            raise InsufficientTextError(filename) from e

        extracted = ExtractedText(filename=filename)
        try:
            logger.info(f"[PDF] Document loaded, pages: {doc.page_count}")

            # collapse each page to a single line of words, the model does not need layout
            for page_num in range(doc.page_count):
                page_text = " ".join(doc[page_num].get_text().split())
                logger.debug(f"[PDF] Page {page_num + 1}/{doc.page_count}: {len(page_text)} chars")
                extracted.pages.append(page_text)
        finally:
            doc.close()

        logger.info(f"[PDF] Extraction complete. Total length: {len(extracted.text)} chars")
        return extracted

    # extract text from a pdf on disk
    def extract_text_from_path(self, pdf_path: str) -> ExtractedText:
        """Extract text from a PDF file path"""
        with open(pdf_path, "rb") as f:
            content = f.read()
        return self.extract_text(content, filename=Path(pdf_path).name)
