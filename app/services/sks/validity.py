import re
from datetime import datetime, timedelta

_DATE_PATTERN = re.compile(r"^\d{8}$")
_DATE_FORMAT = "%Y%m%d"


def parse_date(raw: str) -> datetime:
    """
    Parses a basic ISO date (YYYYMMDD) to midnight of that day. Raises ValueError
    when the value is not exactly eight digits or not a calendar date.
    """
    if not _DATE_PATTERN.match(raw):
        raise ValueError(f"Invalid date {raw!r}, expected YYYYMMDD")
    return datetime.strptime(raw, _DATE_FORMAT)


def to_exclusive_end(inclusive_end: datetime) -> datetime:
    # Calendar day arithmetic on a naive date, not a fixed 24h offset on an aware instant.
    return datetime.combine(inclusive_end.date() + timedelta(days=1), inclusive_end.time())
