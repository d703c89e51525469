"""Date-time helpers for attendance and code stamps."""

import re
from datetime import datetime, timezone

_LEGACY_DATE = re.compile(r"(\d{2})[-/](\d{2})[-/](\d{4})")


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, matching stored columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_legacy_stamp(value) -> datetime | None:
    """Extract the ``DD/MM/YYYY`` date from a legacy attendance string.

    Legacy rows hold strings such as ``"04/10/2025 in Online"``; anything that
    does not carry such a date yields ``None``.
    """

    if not value or not isinstance(value, str):
        return None
    match = _LEGACY_DATE.search(value)
    if match is None:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        return None
