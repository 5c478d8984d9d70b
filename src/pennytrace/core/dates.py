"""Datetime helpers shared by the pipeline stages.

Providers disagree on datetime formats: the local archive and Alpha Vantage
use "YYYY-MM-DD HH:MM:SS", Finnhub and Massive return epoch timestamps,
Twelve Data daily values are date-only. Every client stamps daily bars at the
16:00:00 close so one trading day from several sources lands on one key.
The parser accepts all of them, plus ISO-8601 values with an offset.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime

from pennytrace.core.constants import MARKET_CLOSE_TIME

_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_US_FORMATS = ("%m/%d/%Y %H:%M:%S", "%m/%d/%Y %H:%M", "%m/%d/%Y")


def utc_now_iso() -> str:
    """Current UTC time as an ISO string with millisecond precision and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_iso() -> str:
    return date.today().isoformat()


def market_close_stamp(day: str) -> str:
    """Datetime string of a daily bar: its trading date at the market close."""
    return f"{day[:10]} {MARKET_CLOSE_TIME}"


def parse_datetime(value: str) -> datetime | None:
    """Parse a provider datetime string into a naive datetime.

    Timezone-aware values are converted to UTC before the tzinfo is dropped.
    Returns None when the string matches no known format.
    """
    text = value.strip()
    if not text:
        return None

    parsed: datetime | None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
        for fmt in _US_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def date_key(value: str) -> str | None:
    """Calendar date (YYYY-MM-DD) of a provider datetime string, ignoring the time.

    The date is taken as written, so "2020-01-02T23:30:00-05:00" stays on
    2020-01-02.
    """
    text = value.strip()
    if _ISO_DATE_PREFIX.match(text):
        return text[:10]
    parsed = parse_datetime(text)
    return parsed.date().isoformat() if parsed else None


def year_of(value: str) -> int:
    """Year of a YYYY-MM-DD date string."""
    return int(value[:4])
