"""
In-page search over rendered summary HTML.

``highlight`` wraps every occurrence of a search term in a numbered
``<mark>`` marker. ``SearchNavigator`` tracks which marker is active and
moves through them with wraparound. ``SearchSession`` ties the two together
for one rendered page.

Only text between a ``>`` and the next ``<`` is searched, so a term split
across inline markup (``<strong>Vic</strong>tory``) is not found.
"""

import html as html_lib
import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

MARKER_CLASS = "search-match"
ACTIVE_CLASS = "active"
ACTIVE_ANCHOR = "active-match"

# a text run sits strictly between the end of one tag and the start of the next
_TEXT_RUN = re.compile(r"(?<=>)[^<]+(?=<)")


@dataclass
class HighlightResult:
    html: str
    match_count: int


def highlight(html: str, term: str) -> HighlightResult:
    """
    Wrap each case-insensitive occurrence of ``term`` in ``html``.

    The term is matched literally. Matches never overlap and markers are
    numbered from 0 in document order through ``data-match-index``.
    """
    if not term or not term.strip():
        return HighlightResult(html=html, match_count=0)

    pattern = re.compile(re.escape(term), re.IGNORECASE)
    count = 0

    def mark_run(run: re.Match) -> str:
        nonlocal count
        text = html_lib.unescape(run.group(0))
        if not pattern.search(text):
            return run.group(0)

        parts = []
        last = 0
        for found in pattern.finditer(text):
            parts.append(html_lib.escape(text[last:found.start()], quote=False))
            parts.append(
                f'<mark class="{MARKER_CLASS}" data-match-index="{count}">'
                f"{html_lib.escape(found.group(0), quote=False)}</mark>"
            )
            count += 1
            last = found.end()
        parts.append(html_lib.escape(text[last:], quote=False))
        return "".join(parts)

    marked = _TEXT_RUN.sub(mark_run, html)
    if count == 0:
        return HighlightResult(html=html, match_count=0)
    return HighlightResult(html=marked, match_count=count)


def emphasize_marker(html: str, index: int) -> str:
    """Flag marker ``index`` as the active one so it is styled and scrolled to."""
    target = f'<mark class="{MARKER_CLASS}" data-match-index="{index}">'
    replacement = (
        f'<mark class="{MARKER_CLASS} {ACTIVE_CLASS}" id="{ACTIVE_ANCHOR}" '
        f'data-match-index="{index}">'
    )
    return html.replace(target, replacement, 1)


class MarkerView(Protocol):
    """Presentation side of the navigator"""

    def emphasize(self, index: int) -> None: ...

    def clear(self, index: int) -> None: ...

    def scroll_to(self, index: int) -> None: ...

    def focus_input(self) -> None: ...


class SearchNavigator:
    """Current-match state for one search box."""

    def __init__(self, view: Optional[MarkerView] = None):
        self.view = view
        self.term = ""
        self.match_count = 0
        self.current_index = 0
        self.is_open = False
        self.active_index: Optional[int] = None

    def open(self):
        self.is_open = True
        if self.view:
            self.view.focus_input()

    def close(self):
        self.is_open = False
        self.set_term("")
        self.set_match_count(0)

    def set_term(self, term: str):
        """A new term always starts again from the first match."""
        self.term = term
        self.current_index = 0

    def set_match_count(self, match_count: int):
        if match_count == self.match_count:
            return
        self.match_count = match_count
        if self.current_index >= match_count:
            self.current_index = 0
        self._sync()

    def next_index(self) -> int:
        if self.match_count == 0:
            return 0
        return (self.current_index + 1) % self.match_count

    def previous_index(self) -> int:
        if self.match_count == 0:
            return 0
        return (self.current_index - 1 + self.match_count) % self.match_count

    def go_to_next(self):
        if self.match_count == 0:
            return
        self.current_index = self.next_index()
        self._sync()

    def go_to_previous(self):
        if self.match_count == 0:
            return
        self.current_index = self.previous_index()
        self._sync()

    def go_to_index(self, index: int):
        """Jump to marker ``index``, wrapping out-of-range values."""
        if self.match_count == 0:
            return
        self.current_index = index % self.match_count
        self._sync()

    def refresh(self):
        self._sync()

    def handle_key(self, key: str, shift: bool = False):
        """Enter moves forward, Shift+Enter moves back, Escape closes."""
        if key == "Escape":
            self.close()
        elif key == "Enter" and self.match_count > 0:
            if shift:
                self.go_to_previous()
            else:
                self.go_to_next()

    def position_label(self) -> str:
        if self.match_count == 0:
            return "0/0"
        return f"{self.current_index + 1}/{self.match_count}"

    def _sync(self):
        # move emphasis from the old marker to the current one
        if self.active_index is not None and self.view:
            self.view.clear(self.active_index)
        if self.match_count == 0:
            self.active_index = None
            return
        self.active_index = self.current_index
        if self.view:
            self.view.emphasize(self.current_index)
            self.view.scroll_to(self.current_index)


class SearchSession:
    """Highlight plus navigation for one rendered document."""

    def __init__(self, base_html: str, navigator: Optional[SearchNavigator] = None):
        self.base_html = base_html
        self.navigator = navigator or SearchNavigator()
        self.html = base_html

    def update(self, term: str) -> HighlightResult:
        """Recompute markers for ``term`` (called on every keystroke)."""
        term_changed = term != self.navigator.term
        if term_changed:
            self.navigator.set_term(term)
        result = highlight(self.base_html, term)
        previous_count = self.navigator.match_count
        self.navigator.set_match_count(result.match_count)
        if term_changed and previous_count == result.match_count:
            # same count for a new term still moves emphasis back to the first marker
            self.navigator.refresh()
        logger.debug(f"Search {term!r}: {result.match_count} matches")
        self.html = result.html
        return result

    def open(self):
        self.navigator.open()

    def select(self, index: int):
        self.navigator.go_to_index(index)

    def handle_key(self, key: str, shift: bool = False):
        """Apply a key press from the search box. Escape also drops the markers."""
        self.navigator.handle_key(key, shift)
        if not self.navigator.term:
            self.html = self.base_html

    def rendered(self) -> str:
        """Current HTML with the active marker emphasized."""
        if self.navigator.active_index is None:
            return self.html
        return emphasize_marker(self.html, self.navigator.active_index)
