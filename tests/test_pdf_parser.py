"""
Unit tests for PDF text extraction.
"""

import fitz
import pytest

from src.rulesheet.errors import InsufficientTextError
from src.rulesheet.pdf_parser import PDFParser


def make_pdf(*pages) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    content = doc.tobytes()
    doc.close()
    return content


class TestPDFParser:
    def test_extracts_each_page(self):
        content = make_pdf("Setup: give each player 5 cards", "Turn: roll two dice")

        extracted = PDFParser().extract_text(content, filename="rules.pdf")

        assert extracted.filename == "rules.pdf"
        assert extracted.total_pages == 2
        assert extracted.pages[0] == "Setup: give each player 5 cards"
        assert extracted.text == "Setup: give each player 5 cards\n\nTurn: roll two dice"

    def test_whitespace_is_collapsed(self):
        content = make_pdf("Roll    two    dice")

        extracted = PDFParser().extract_text(content)

        assert extracted.pages == ["Roll two dice"]

    def test_image_only_pages_yield_no_text(self):
        extracted = PDFParser().extract_text(make_pdf("", ""))

        assert extracted.total_pages == 2
        assert extracted.text.strip() == ""

    def test_extract_from_path(self, tmp_path):
        path = tmp_path / "Catan.pdf"
        path.write_bytes(make_pdf("Build roads"))

        extracted = PDFParser().extract_text_from_path(str(path))

        assert extracted.filename == "Catan.pdf"
        assert extracted.text == "Build roads"

    def test_corrupt_file_raises_insufficient_text(self):
        with pytest.raises(InsufficientTextError) as exc:
            PDFParser().extract_text(b"not a pdf at all", filename="Catan.pdf")

        assert "Could not extract enough text from Catan.pdf" in str(exc.value)
