"""Week-aligned export periods.

A period runs from a Monday at local midnight up to the following Sunday
at local midnight, both inclusive.
"""

from datetime import datetime, time, timedelta, timezone


class InvalidPeriodError(ValueError):
    """A period was requested that cannot be computed."""


def utc_offset(hours: int) -> timezone:
    """Fixed offset of `hours` with respect to UTC, e.g. +1 for CET."""
    return timezone(timedelta(hours=hours))


def last_monday(offset: timezone, now: datetime | None = None) -> datetime:
    """Most recent Monday at local midnight. On a Monday this is today."""
    now = (now or datetime.now(timezone.utc)).astimezone(offset)
    monday = now.date() - timedelta(days=now.weekday())
    return datetime.combine(monday, time.min, tzinfo=offset)


def period_start(offset: timezone, periods_ago: int, now: datetime | None = None) -> datetime:
    """Monday starting the period `periods_ago` weeks before the current one.

    A value of 1 is the most recently finished week.

    Raises:
        InvalidPeriodError: If `periods_ago` is less than 1. The current
            week has not finished yet.
    """
    if periods_ago < 1:
        raise InvalidPeriodError(
            "periods_ago must be at least 1. 0 would mean the week from the most "
            "recent Monday up to the next Sunday, which has not ended yet."
        )
    return last_monday(offset, now) - timedelta(weeks=periods_ago)


def export_period(monday: datetime, offset: timezone) -> tuple[datetime, datetime]:
    """Start and end of the period starting on `monday`.

    Both are at local midnight; the end is the Sunday following `monday`.

    Raises:
        InvalidPeriodError: If `monday` is not a Monday.
    """
    if monday.weekday() != 0:
        raise InvalidPeriodError(
            f"The 'Monday' provided is not actually a Monday, but a {monday:%A}"
        )
    start = datetime.combine(monday.date(), time.min, tzinfo=offset)
    end = datetime.combine(monday.date() + timedelta(days=6), time.min, tzinfo=offset)
    return start, end
