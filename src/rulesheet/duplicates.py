"""
Duplicate detection for new uploads.

Both checks are advisory: they warn that a summary may already exist but
never stop the upload. Filenames are compared case-insensitively.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .models import DuplicateWarning, SummaryRecord
from .storage import SummaryStore

logger = logging.getLogger(__name__)


class DuplicateDetector:
    """Read-only lookups against stored summaries."""

    def __init__(self, store: SummaryStore):
        self.store = store

    def find_by_filename(self, filename: str) -> List[SummaryRecord]:
        matches = self.store.find_by_filename(filename)
        if matches:
            logger.info(f"Found {len(matches)} existing summaries for file {filename}")
        return matches

    def find_by_external_link(self, link: Optional[str]) -> List[SummaryRecord]:
        trimmed = (link or "").strip()
        if not trimmed:
            return []
        matches = self.store.find_by_bgg_link(trimmed)
        if matches:
            logger.info(f"Found {len(matches)} existing summaries for link {trimmed}")
        return matches


class PendingUploads:
    """
    Files selected for the next summary, with their duplicate warnings.

    The filename check runs once when a file is added. Warnings are keyed by
    lower-cased filename, so removing a file removes its warning.
    """

    def __init__(self, detector: DuplicateDetector):
        self.detector = detector
        self.filenames: List[str] = []
        self._warnings: Dict[str, DuplicateWarning] = {}

    def add(self, filename: str) -> Optional[DuplicateWarning]:
        self.filenames.append(filename)
        key = filename.lower()
        if key in self._warnings:
            return self._warnings[key]
        matches = self.detector.find_by_filename(filename)
        if not matches:
            return None
        warning = DuplicateWarning(filename=filename, summaries=matches)
        self._warnings[key] = warning
        return warning

    def remove(self, filename: str) -> bool:
        if filename not in self.filenames:
            return False
        self.filenames.remove(filename)
        remaining = {name.lower() for name in self.filenames}
        self._warnings = {k: w for k, w in self._warnings.items() if k in remaining}
        return True

    def warnings(self) -> List[DuplicateWarning]:
        return list(self._warnings.values())


@dataclass(frozen=True)
class LinkTicket:
    serial: int
    value: str


class LinkCheck:
    """
    Tracks the external-link duplicate check for one input field.

    Lookups may finish after the user has typed further; a result is only
    applied while the field still holds the value it was requested for.
    """

    def __init__(self, detector: DuplicateDetector):
        self.detector = detector
        self.current_value = ""
        self.results: List[SummaryRecord] = []
        self._serials = itertools.count(1)
        self._latest = 0

    def begin(self, value: str) -> Optional[LinkTicket]:
        """Field lost focus with ``value``. Returns None when there is nothing to look up."""
        self.current_value = value.strip()
        self._latest = next(self._serials)
        if not self.current_value:
            self.results = []
            return None
        return LinkTicket(serial=self._latest, value=self.current_value)

    def resolve(self, ticket: LinkTicket, results: List[SummaryRecord]) -> bool:
        """Apply ``results`` unless the field changed since ``ticket`` was issued."""
        if ticket.serial != self._latest or ticket.value != self.current_value:
            logger.debug(f"Discarding stale link check for {ticket.value}")
            return False
        self.results = results
        return True

    def check(self, value: str) -> List[SummaryRecord]:
        """Begin and resolve in one step."""
        ticket = self.begin(value)
        if ticket is not None:
            self.resolve(ticket, self.detector.find_by_external_link(ticket.value))
        return self.results
