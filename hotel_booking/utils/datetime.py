"""UTC datetime and stay-window utilities."""

from datetime import date, datetime, timedelta, timezone
from typing import Iterator


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    Use this instead of datetime.now() or datetime.utcnow() so that every
    created_at / updated_at column is written in UTC.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def stay_nights(check_in: date, check_out: date) -> Iterator[date]:
    """
    Yield every night consumed by the half-open stay window [check_in, check_out).

    The checkout day is never yielded: a guest leaving on the 12th does not
    occupy the room on the night of the 12th.

    Example:
        >>> list(stay_nights(date(2026, 4, 10), date(2026, 4, 12)))
        [datetime.date(2026, 4, 10), datetime.date(2026, 4, 11)]
    """
    day = check_in
    while day < check_out:
        yield day
        day += timedelta(days=1)


def count_nights(check_in: date, check_out: date) -> int:
    """Number of nights in [check_in, check_out); zero or negative windows give 0."""
    return max((check_out - check_in).days, 0)
