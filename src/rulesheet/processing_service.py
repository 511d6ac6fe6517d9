import re
import time
import logging
from typing import List, Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

from .config import Settings, get_settings
from .errors import (
    EmptyUploadError, FileTooLargeError, GenerationError, InputValidationError, InsufficientTextError,
    InvalidFileTypeError, InvalidLinkError, PermissionDeniedError, SummaryNotFoundError,
)
from .llm_service import ChatCompletionService, get_llm_service
from .models import Identity, SummaryRecord, SummaryUpdate, UploadedPDF
from .pdf_parser import PDFParser
from .prompt import DOCUMENT_SEPARATOR
from .storage import SummaryStore
from .utils import generate_id

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

# first "## Title (Year)" line; the title stops at "(" or end of line
TITLE_PATTERN = re.compile(r"^##\s+(.+?)(?:\s*\(|$)", re.MULTILINE)


def derive_title(markdown: str, fallback_filename: str) -> str:
    """Game title from the first level-2 heading, else the cleaned filename"""
    match = TITLE_PATTERN.search(markdown)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return re.sub(r"\.pdf$", "", fallback_filename, flags=re.IGNORECASE)


_HTTP_URL = TypeAdapter(HttpUrl)


def clean_bgg_link(link: Optional[str]) -> Optional[str]:
    """Trimmed link, None when blank. Only http and https URLs are accepted."""
    trimmed = (link or "").strip()
    if not trimmed:
        return None
    try:
        _HTTP_URL.validate_python(trimmed)
    except ValidationError as e:
        raise InvalidLinkError() from e
    # stored as typed, not the normalized url
    return trimmed


def is_pdf(upload) -> bool:
    """Works on anything with filename and content_type, so uploads can be checked before reading"""
    if upload.content_type:
        return upload.content_type == PDF_CONTENT_TYPE
    return upload.filename.lower().endswith(".pdf")


def can_edit(record: SummaryRecord, identity: Optional[Identity]) -> bool:
    """Creators may edit their summaries; unowned summaries are open to any signed-in user"""
    if identity is None:
        return False
    if record.created_by is None:
        return True
    return record.created_by.uid == identity.uid


# summary service orchestrates validation, extraction, generation and persistence
class SummaryService:
    def __init__(
        self,
        store: Optional[SummaryStore] = None,
        pdf_parser: Optional[PDFParser] = None,
        llm_service: Optional[ChatCompletionService] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or SummaryStore(self.settings.data_dir, save_timeout=self.settings.save_timeout)
        self.pdf_parser = pdf_parser or PDFParser()
        self._llm_service = llm_service

    @property
    def llm_service(self) -> ChatCompletionService:
        # created lazily so read-only pages work without generation settings
        if self._llm_service is None:
            self._llm_service = get_llm_service()
        return self._llm_service

    def check_file(self, upload):
        """Type and size check for one file; ``size`` may be None when the client did not send it"""
        if not is_pdf(upload):
            raise InvalidFileTypeError()
        if upload.size is not None and upload.size > self.settings.max_upload_bytes:
            raise FileTooLargeError(self.settings.max_upload_mb)

    def validate_files(self, files: List[UploadedPDF]):
        """Reject an empty upload, non-PDF files and oversized files"""
        if not files:
            raise EmptyUploadError()
        for upload in files:
            self.check_file(upload)

    def extract_texts(self, files: List[UploadedPDF]) -> List[str]:
        """Extract text file by file; the next file starts only after the previous one"""
        texts = []
        for upload in files:
            extracted = self.pdf_parser.extract_text(upload.content, filename=upload.filename)
            if len(extracted.text.strip()) < self.settings.min_text_length:
                raise InsufficientTextError(upload.filename)
            texts.append(extracted.text)
        return texts

    def create_summary(
        self,
        files: List[UploadedPDF],
        bgg_link: Optional[str] = None,
        identity: Optional[Identity] = None,
    ) -> str:
        """Main pipeline: returns the id of the new summary"""
        start_time = time.time()

        logger.info(f"Starting summary for: {', '.join(f.filename for f in files) or '(no files)'}")
        logger.info("=" * 60)

        # validate input before any work
        self.validate_files(files)
        link = clean_bgg_link(bgg_link)

        # extract text
        logger.info("Step 1: Extracting text...")
        texts = self.extract_texts(files)
        combined_text = DOCUMENT_SEPARATOR.join(texts)
        logger.info(f"  ✓ {len(texts)} document(s), {len(combined_text)} chars")

        # generate summary
        logger.info("Step 2: Generating summary...")
        markdown = self.llm_service.generate_summary(combined_text)
        if not markdown.strip():
            raise GenerationError("The model returned an empty summary")

        game_title = derive_title(markdown, files[0].filename)
        logger.info(f"  ✓ Game title: {game_title}")

        # persist
        logger.info("Step 3: Saving summary...")
        record = SummaryRecord(
            id=generate_id(),
            game_title=game_title,
            original_filename=", ".join(f.filename for f in files),
            markdown=markdown,
            bgg_link=link,
            created_by=identity.snapshot() if identity else None,
        )
        stored = self.store.save(record)

        logger.info("=" * 60)
        logger.info(f"✓ SUCCESS! Summary {stored.id} created in {time.time() - start_time:.2f} seconds")
        return stored.id

    def get_summary(self, summary_id: str) -> SummaryRecord:
        record = self.store.get(summary_id)
        if record is None:
            raise SummaryNotFoundError(summary_id)
        return record

    def list_summaries(self, search: Optional[str] = None) -> List[SummaryRecord]:
        """All summaries newest first, optionally filtered by title"""
        records = self.store.list_all()
        needle = (search or "").strip().lower()
        if needle:
            records = [r for r in records if needle in r.game_title.lower()]
        return records

    def update_summary(self, summary_id: str, identity: Optional[Identity], changes: SummaryUpdate) -> SummaryRecord:
        record = self.get_summary(summary_id)
        if not can_edit(record, identity):
            raise PermissionDeniedError("You can only edit summaries you created.")

        update = {}
        if changes.markdown is not None:
            if not changes.markdown.strip():
                raise InputValidationError("Summary text cannot be empty.")
            update["markdown"] = changes.markdown
        if changes.game_title is not None and changes.game_title.strip():
            update["game_title"] = changes.game_title.strip()
        if changes.bgg_link is not None:
            update["bgg_link"] = clean_bgg_link(changes.bgg_link)

        return self.store.update(record.model_copy(update=update))

    def delete_summary(self, summary_id: str, identity: Optional[Identity]) -> None:
        record = self.get_summary(summary_id)
        if not can_edit(record, identity):
            raise PermissionDeniedError("You can only delete summaries you created.")
        self.store.delete(record.id)

    @staticmethod
    def download_filename(record: SummaryRecord) -> str:
        return f"{record.game_title} - Rules Summary.md"
