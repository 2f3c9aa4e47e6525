"""
Period filters, free-text search and sorting for booking tables.

These helpers work on plain ``Booking`` objects so the same rules apply to
the history listing, the active view and the Excel export.
"""

import calendar
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from . import models
from .schemas import PeriodFilter, PeriodType
from .timeslots import format_date, format_time_range

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Ags", "Sep", "Okt", "Nov", "Des",
)

SORTABLE_FIELDS = (
    "booking_date",
    "borrower_name",
    "room",
    "start_time",
    "end_time",
    "purpose",
    "created_at",
)


def quarter_of(d: date) -> int:
    return (d.month - 1) // 3 + 1


def period_range(period: PeriodFilter) -> Optional[Tuple[date, date]]:
    """
    Resolve a period filter to an inclusive ``(first_day, last_day)`` range.

    Parameters
    ----------
    period : PeriodFilter
        The requested period.

    Returns
    -------
    Optional[Tuple[date, date]]
        The date range, or None when the filter lacks the fields its type
        needs (e.g. a month filter without a year).
    """
    if period.type == PeriodType.MONTH:
        if period.month is None or period.year is None:
            return None
        last_day = calendar.monthrange(period.year, period.month)[1]
        return date(period.year, period.month, 1), date(period.year, period.month, last_day)

    if period.type == PeriodType.QUARTER:
        if period.quarter is None or period.year is None:
            return None
        first_month = (period.quarter - 1) * 3 + 1
        last_month = first_month + 2
        last_day = calendar.monthrange(period.year, last_month)[1]
        return date(period.year, first_month, 1), date(period.year, last_month, last_day)

    if period.type == PeriodType.YEAR:
        if period.year is None:
            return None
        return date(period.year, 1, 1), date(period.year, 12, 31)

    if period.start_date is None or period.end_date is None:
        return None
    return period.start_date, period.end_date


def period_name(period: Optional[PeriodFilter]) -> str:
    """
    Short label for a period, used in export file names.

    Incomplete filters get the bare type label ("Month", "Custom", ...).
    """
    if period is None:
        return "Semua"
    if period_range(period) is None:
        return period.type.value.capitalize()
    if period.type == PeriodType.MONTH:
        return f"{MONTH_ABBREVIATIONS[period.month - 1]}_{period.year}"
    if period.type == PeriodType.QUARTER:
        return f"Q{period.quarter}_{period.year}"
    if period.type == PeriodType.YEAR:
        return f"{period.year}"
    return f"{period.start_date.isoformat()}_to_{period.end_date.isoformat()}"


def _searchable_values(booking: models.Booking) -> Iterable[str]:
    yield str(booking.id)
    yield booking.booking_date.isoformat()
    yield format_date(booking.booking_date)
    yield booking.borrower_name
    yield booking.room
    yield format_time_range(booking.start_time, booking.end_time)
    yield booking.purpose or ""
    yield booking.created_by


def matches_search(booking: models.Booking, term: Optional[str]) -> bool:
    """Case-insensitive substring match against every displayed value."""
    if not term:
        return True
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in value.lower() for value in _searchable_values(booking))


def search(bookings: Iterable[models.Booking], term: Optional[str]) -> List[models.Booking]:
    return [b for b in bookings if matches_search(b, term)]


def sort_bookings(
    bookings: Iterable[models.Booking],
    field: str = "booking_date",
    direction: str = "desc",
) -> List[models.Booking]:
    """
    Sort bookings by one column.

    Parameters
    ----------
    bookings : Iterable[Booking]
        Bookings to sort.
    field : str
        One of SORTABLE_FIELDS.
    direction : str
        ``"asc"`` or ``"desc"``.

    Returns
    -------
    List[Booking]
        A new list; ties are broken by id in the same direction.

    Raises
    ------
    ValueError
        If field or direction is not recognised.
    """
    if field not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by {field!r}")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction {direction!r}")

    def key(b: models.Booking):
        value = getattr(b, field)
        if isinstance(value, str):
            value = value.lower()
        return value, b.id

    return sorted(bookings, key=key, reverse=(direction == "desc"))


def is_active(booking: models.Booking, now: datetime) -> bool:
    """A booking is active if it is for today and has not ended yet."""
    return booking.booking_date == now.date() and booking.end_time > now.time()
