"""
Pytest configuration and fixtures.
"""

import os
import tempfile
from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest

# Set test environment before the app reads its settings
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="rulesheet-test-")
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["FIREBASE_API_KEY"] = "test-firebase-key"
os.environ["UPLOAD_PASSWORD_HASH"] = ""

from src.rulesheet.config import Settings
from src.rulesheet.llm_service import ChatCompletionService
from src.rulesheet.models import CreatedBy, Identity, SummaryRecord
from src.rulesheet.pdf_parser import ExtractedText
from src.rulesheet.processing_service import SummaryService
from src.rulesheet.storage import SummaryStore

CATAN_MARKDOWN = """## Catan (1995)
Trade and build settlements on a shifting island.

### END OF GAME
* Trigger: A player reaches **10 Victory Points** on their turn.

### GAMEPLAY
1. Roll the dice.
2. Trade with other players.
3. Build roads, settlements and cities.
"""


class FakePDFParser:
    """Returns canned text per filename instead of reading PDFs"""

    def __init__(self, texts: Optional[Dict[str, str]] = None, default: str = "Rules " * 20):
        self.texts = texts or {}
        self.default = default
        self.calls = []

    def extract_text(self, content: bytes, filename: str = "document.pdf") -> ExtractedText:
        self.calls.append(filename)
        return ExtractedText(filename=filename, pages=[self.texts.get(filename, self.default)])


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "summaries"),
        openai_api_key="test-key",
        session_secret="test-secret",
        upload_password_hash=None,
        _env_file=None,
    )


@pytest.fixture
def store(settings) -> SummaryStore:
    return SummaryStore(settings.data_dir, save_timeout=settings.save_timeout)


@pytest.fixture
def pdf_parser() -> FakePDFParser:
    return FakePDFParser()


@pytest.fixture
def llm():
    service = MagicMock(spec=ChatCompletionService)
    service.generate_summary.return_value = CATAN_MARKDOWN
    return service


@pytest.fixture
def service(store, pdf_parser, llm, settings) -> SummaryService:
    return SummaryService(store=store, pdf_parser=pdf_parser, llm_service=llm, settings=settings)


@pytest.fixture
def identity() -> Identity:
    return Identity(uid="user-1", email="ana@example.com", display_name="Ana", email_verified=True)


@pytest.fixture
def make_record(store):
    """Save a summary record directly to the store"""

    def _make(summary_id: str, title: str = "Catan", filename: str = "Catan.pdf",
              markdown: str = CATAN_MARKDOWN, bgg_link: Optional[str] = None,
              owner: Optional[str] = None) -> SummaryRecord:
        record = SummaryRecord(
            id=summary_id,
            game_title=title,
            original_filename=filename,
            markdown=markdown,
            bgg_link=bgg_link,
            created_by=CreatedBy(uid=owner, name=owner) if owner else None,
        )
        return store.save(record)

    return _make


@pytest.fixture
def catan_markdown() -> str:
    return CATAN_MARKDOWN


@pytest.fixture
def make_service(store, llm, settings):
    """Summary service whose parser returns the given text per filename"""

    def _make(texts: Optional[Dict[str, str]] = None, default: str = "Rules " * 20):
        parser = FakePDFParser(texts=texts, default=default)
        return SummaryService(store=store, pdf_parser=parser, llm_service=llm, settings=settings), parser

    return _make
