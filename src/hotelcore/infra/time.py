"""Time utilities for consistent timestamp handling."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return the current calendar date in UTC."""
    return utc_now().date()


def start_of_day_utc(day: date) -> datetime:
    """Midnight UTC of the given date."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield each night of a stay: [check_in, check_out), ascending."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)
