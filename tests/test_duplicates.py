"""
Unit tests for duplicate detection on upload.
"""

import pytest

from src.rulesheet.duplicates import DuplicateDetector, LinkCheck, PendingUploads

CATAN_LINK = "https://boardgamegeek.com/boardgame/13/catan"


@pytest.fixture
def detector(store, make_record):
    make_record("catan1", title="Catan", filename="Catan.pdf", bgg_link=CATAN_LINK)
    make_record("azul1", title="Azul", filename="Azul.pdf, Azul Summer Pavilion.pdf")
    return DuplicateDetector(store)


class TestDuplicateDetector:
    def test_filename_match(self, detector):
        assert [r.id for r in detector.find_by_filename("CATAN.pdf")] == ["catan1"]

    def test_unknown_filename(self, detector):
        assert detector.find_by_filename("Wingspan.pdf") == []

    def test_link_is_trimmed(self, detector):
        assert [r.id for r in detector.find_by_external_link(f"  {CATAN_LINK} ")] == ["catan1"]

    @pytest.mark.parametrize("link", [None, "", "   "])
    def test_blank_link_does_not_query(self, store, link, monkeypatch):
        detector = DuplicateDetector(store)

        def fail(link):
            raise AssertionError("store should not be queried")

        monkeypatch.setattr(store, "find_by_bgg_link", fail)

        assert detector.find_by_external_link(link) == []


class TestPendingUploads:
    """Test per-file warnings for the file picker."""

    def test_duplicate_file_gets_warning(self, detector):
        pending = PendingUploads(detector)

        warning = pending.add("Catan.pdf")

        assert warning.filename == "Catan.pdf"
        assert [s.id for s in warning.summaries] == ["catan1"]
        assert pending.add("Wingspan.pdf") is None
        assert [w.filename for w in pending.warnings()] == ["Catan.pdf"]

    def test_removing_file_removes_warning(self, detector):
        pending = PendingUploads(detector)
        pending.add("Catan.pdf")
        pending.add("Azul.pdf")

        assert pending.remove("Catan.pdf") is True

        assert pending.filenames == ["Azul.pdf"]
        assert [w.filename for w in pending.warnings()] == ["Azul.pdf"]

    def test_remove_unknown_file(self, detector):
        pending = PendingUploads(detector)

        assert pending.remove("never-added.pdf") is False

    def test_file_is_checked_once(self, detector, monkeypatch):
        pending = PendingUploads(detector)
        pending.add("Catan.pdf")
        calls = []
        monkeypatch.setattr(detector, "find_by_filename", lambda name: calls.append(name) or [])

        pending.add("catan.pdf")

        assert calls == []
        assert len(pending.warnings()) == 1


class TestLinkCheck:
    """Test the link field check and its stale results."""

    def test_check_finds_existing_summary(self, detector):
        check = LinkCheck(detector)

        assert [r.id for r in check.check(CATAN_LINK)] == ["catan1"]

    def test_blank_value_clears_results(self, detector):
        check = LinkCheck(detector)
        check.check(CATAN_LINK)

        assert check.check("  ") == []
        assert check.results == []

    def test_stale_result_is_discarded(self, detector):
        check = LinkCheck(detector)
        old_ticket = check.begin(CATAN_LINK)
        new_ticket = check.begin("https://boardgamegeek.com/boardgame/230802/azul")

        applied_new = check.resolve(new_ticket, [])
        applied_old = check.resolve(old_ticket, detector.find_by_external_link(old_ticket.value))

        assert applied_new is True
        assert applied_old is False
        assert check.results == []

    def test_result_after_clearing_field_is_discarded(self, detector):
        check = LinkCheck(detector)
        ticket = check.begin(CATAN_LINK)

        assert check.begin("") is None
        assert check.resolve(ticket, detector.find_by_external_link(ticket.value)) is False
        assert check.results == []
