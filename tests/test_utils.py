"""
Unit tests for id, time and date helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.rulesheet.utils import ID_ALPHABET, format_date, generate_id, parse_timestamp, time_ago

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def ago(**kwargs) -> str:
    return (NOW - timedelta(**kwargs)).isoformat()


def test_generate_id():
    summary_id = generate_id()

    assert len(summary_id) == 10
    assert set(summary_id) <= set(ID_ALPHABET)
    assert generate_id() != summary_id


def test_parse_timestamp_accepts_z_suffix_and_naive_values():
    assert parse_timestamp("2025-01-05T10:00:00Z") == datetime(2025, 1, 5, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2025-01-05T10:00:00").tzinfo == timezone.utc


@pytest.mark.parametrize("delta,expected", [
    ({"seconds": 30}, "just now"),
    ({"minutes": 1}, "1 minute ago"),
    ({"minutes": 45}, "45 minutes ago"),
    ({"hours": 3}, "3 hours ago"),
    ({"days": 1}, "1 day ago"),
    ({"days": 8}, "1 week ago"),
    ({"days": 40}, "1 month ago"),
    ({"days": 800}, "2 years ago"),
])
def test_time_ago(delta, expected):
    assert time_ago(ago(**delta), now=NOW) == expected


def test_format_date():
    assert format_date("2025-01-05T10:00:00+00:00") == "January 5, 2025"
    assert format_date("2025-01-05T10:00:00+00:00", short=True) == "Jan 5, 2025"
    assert format_date(None) == ""
