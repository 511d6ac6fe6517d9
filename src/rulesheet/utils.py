# small helpers shared by templates, the api and the cli
import secrets
from datetime import datetime, timezone
from typing import Optional, Union

ID_ALPHABET = "useandom-26T198340PX75pxJACKVERYMINDBUSHWOLF_GQZbfghjklqvwyzrict"
ID_LENGTH = 10

MINUTE = 60
HOUR = 3600
DAY = 86400
WEEK = 604800
MONTH = 2592000
YEAR = 31536000

# (upper bound, unit size, unit name) in ascending order
_UNITS = [
    (HOUR, MINUTE, "minute"),
    (DAY, HOUR, "hour"),
    (WEEK, DAY, "day"),
    (MONTH, WEEK, "week"),
    (YEAR, MONTH, "month"),
]


def generate_id(length: int = ID_LENGTH) -> str:
    """Random url-safe id for a new summary"""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def time_ago(value: Union[str, datetime], now: Optional[datetime] = None) -> str:
    """Relative age such as '3 hours ago'"""
    now = now or datetime.now(timezone.utc)
    seconds = int((now - parse_timestamp(value)).total_seconds())

    if seconds < MINUTE:
        return "just now"
    for bound, size, name in _UNITS:
        if seconds < bound:
            n = seconds // size
            return f"{n} {name}{'s' if n > 1 else ''} ago"
    n = seconds // YEAR
    return f"{n} year{'s' if n > 1 else ''} ago"


def format_date(value: Optional[Union[str, datetime]], short: bool = False) -> str:
    """Date as 'January 5, 2025' (or 'Jan 5, 2025' when short)"""
    if not value:
        return ""
    dt = parse_timestamp(value)
    month = dt.strftime("%b" if short else "%B")
    return f"{month} {dt.day}, {dt.year}"
