"""
Time-of-day arithmetic for bookings.

Bookings live on a single calendar date, so every range here is a pair of
``datetime.time`` values on that date. Ranges are half-open: a booking that
ends at 11:00 does not collide with one that starts at 11:00.
"""

from datetime import date, time

DEFAULT_DURATION_HOURS = 2
MINUTES_PER_DAY = 24 * 60


def to_minutes(t: time) -> int:
    """Minutes elapsed since midnight (seconds are ignored)."""
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    minutes %= MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def add_hours(t: time, hours: int) -> time:
    """
    Shift a time of day by whole hours, wrapping around midnight.

    >>> add_hours(time(22, 30), 2)
    datetime.time(0, 30)
    """
    return from_minutes(to_minutes(t) + hours * 60)


def default_end_time(start: time) -> time:
    """End time used when a booking only states when it starts."""
    return add_hours(start, DEFAULT_DURATION_HOURS)


def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """
    Return True when two half-open ranges share at least one instant.

    Parameters
    ----------
    a_start, a_end : time
        First range.
    b_start, b_end : time
        Second range.

    Returns
    -------
    bool
        ``a_start < b_end and b_start < a_end``.

    ``services._conflict_query`` applies the same test in SQL; keep them in step.
    """
    return a_start < b_end and b_start < a_end


def format_time(t: time) -> str:
    return t.strftime("%H:%M")


def format_time_range(start: time, end: time) -> str:
    return f"{format_time(start)} - {format_time(end)}"


def format_date(d: date) -> str:
    """Day-first date as shown in tables and exports (DD/MM/YYYY)."""
    return d.strftime("%d/%m/%Y")
