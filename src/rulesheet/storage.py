"""
Storage for rules summaries.

Each summary is one JSON document named ``<id>.json`` inside the data
directory. Writes go through a single worker thread and are bounded by a
timeout: when the timeout expires the save is reported as failed even though
the write may still complete in the background.
"""

import json
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from .errors import PersistenceError
from .models import SummaryRecord

logger = logging.getLogger(__name__)

DEFAULT_SAVE_TIMEOUT = 15.0


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SummaryStore:
    """
    Document store for summary records.

    Supported queries:
    - get by id
    - list all, newest first
    - filter by filename
    - filter by external (BGG) link
    """

    def __init__(self, data_dir: str, save_timeout: float = DEFAULT_SAVE_TIMEOUT):
        """
        Initialize the summary store.

        Args:
            data_dir: Directory holding the JSON documents. Created if missing.
            save_timeout: Seconds to wait for a write before giving up.
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.save_timeout = save_timeout
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="summary-store")

    def _path_for(self, summary_id: str) -> Path:
        # ids are url segments, never paths
        if not summary_id or "/" in summary_id or "\\" in summary_id or summary_id.startswith("."):
            raise ValueError(f"Invalid summary id: {summary_id!r}")
        return self.data_dir / f"{summary_id}.json"

    def _write(self, record: SummaryRecord):
        path = self._path_for(record.id)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(record.to_document(), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)

    def _run_with_timeout(self, func: Callable, *args):
        future = self._executor.submit(func, *args)
        try:
            return future.result(timeout=self.save_timeout)
        except FutureTimeoutError as e:
            raise PersistenceError(f"Save timed out after {self.save_timeout:g}s") from e
        except OSError as e:
            raise PersistenceError(f"Save failed: {e}") from e

    def _read(self, path: Path) -> Optional[SummaryRecord]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return SummaryRecord.model_validate(json.load(f))
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Skipping unreadable summary document {path.name}: {e}")
            return None

    def save(self, record: SummaryRecord) -> SummaryRecord:
        """
        Create a summary. ``createdAt`` is assigned here.

        Raises:
            PersistenceError: if the write fails or does not finish in time.
        """
        if self._path_for(record.id).exists():
            raise PersistenceError(f"Summary {record.id} already exists")
        stored = record.model_copy(update={"created_at": utc_now_iso()})
        self._run_with_timeout(self._write, stored)
        logger.info(f"Saved summary {stored.id} ({stored.game_title})")
        return stored

    def update(self, record: SummaryRecord) -> SummaryRecord:
        """Overwrite an existing summary in place. No versions are kept."""
        if not self._path_for(record.id).exists():
            raise PersistenceError(f"Summary {record.id} does not exist")
        stored = record.model_copy(update={"updated_at": utc_now_iso()})
        self._run_with_timeout(self._write, stored)
        logger.info(f"Updated summary {stored.id}")
        return stored

    def get(self, summary_id: str) -> Optional[SummaryRecord]:
        """Get a summary by id, None when it does not exist."""
        try:
            path = self._path_for(summary_id)
        except ValueError:
            return None
        return self._read(path)

    def delete(self, summary_id: str) -> bool:
        """Delete a summary. Returns False if it did not exist."""
        path = self._path_for(summary_id)
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
        logger.info(f"Deleted summary {summary_id}")
        return True

    def list_all(self) -> List[SummaryRecord]:
        """All summaries ordered by creation time, newest first."""
        records = [r for r in (self._read(p) for p in self.data_dir.glob("*.json")) if r]
        records.sort(key=lambda r: r.created_at or "", reverse=True)
        return records

    def find_by_filename(self, filename: str) -> List[SummaryRecord]:
        """Summaries generated from a file with this name (case-insensitive)."""
        wanted = filename.strip().lower()
        if not wanted:
            return []
        return [r for r in self.list_all() if wanted in (name.lower() for name in r.filenames)]

    def find_by_bgg_link(self, link: str) -> List[SummaryRecord]:
        """Summaries whose BGG link equals ``link`` exactly."""
        return [r for r in self.list_all() if r.bgg_link == link]
