"""Admission rules for new and edited bookings."""

import logging
from datetime import date, time
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from . import models
from .rooms import is_known_room
from .timeslots import format_time_range

logger = logging.getLogger(__name__)


def ensure_time_valid(start_time: time, end_time: time):
    """
    Validate that a booking time range is well-formed.

    Both ends fall on the booking date, so a range that would run past
    midnight is rejected as well.

    Parameters
    ----------
    start_time : time
        Start of the requested booking.
    end_time : time
        End of the requested booking.

    Raises
    ------
    HTTPException
        If end_time is not strictly after start_time.
    """
    if end_time <= start_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_time must be after start_time",
        )


def ensure_room_known(room: str):
    if not is_known_room(room):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown room: {room}",
        )


def _conflict_query(
    db: Session,
    booking_date: date,
    room: str,
    start_time: time,
    end_time: time,
    ignore_booking_id: Optional[int] = None,
):
    # SQL form of timeslots.overlaps
    q = (
        db.query(models.Booking)
        .filter(models.Booking.booking_date == booking_date)
        .filter(models.Booking.room == room)
        .filter(models.Booking.end_time > start_time)
        .filter(models.Booking.start_time < end_time)
    )
    if ignore_booking_id is not None:
        q = q.filter(models.Booking.id != ignore_booking_id)
    return q


def find_conflicts(
    db: Session,
    booking_date: date,
    room: str,
    start_time: time,
    end_time: time,
    ignore_booking_id: Optional[int] = None,
) -> List[models.Booking]:
    """
    Return bookings of the same room and date whose range overlaps the given one.

    Overlap is the half-open test ``existing.start < end and start < existing.end``.

    Parameters
    ----------
    db : Session
        Database session.
    booking_date : date
        Date of the proposed booking.
    room : str
        Room name.
    start_time : time
        Proposed start time.
    end_time : time
        Proposed end time.
    ignore_booking_id : Optional[int]
        If provided, ignore this booking (used when editing it).

    Returns
    -------
    List[Booking]
        Conflicting bookings ordered by start time.
    """
    q = _conflict_query(db, booking_date, room, start_time, end_time, ignore_booking_id)
    return q.order_by(models.Booking.start_time, models.Booking.id).all()


def has_conflict(
    db: Session,
    booking_date: date,
    room: str,
    start_time: time,
    end_time: time,
    ignore_booking_id: Optional[int] = None,
) -> bool:
    q = _conflict_query(db, booking_date, room, start_time, end_time, ignore_booking_id)
    return db.query(q.exists()).scalar()


def ensure_no_conflict(
    db: Session,
    booking_date: date,
    room: str,
    start_time: time,
    end_time: time,
    ignore_booking_id: Optional[int] = None,
):
    """
    Raise HTTP 400 if the proposed booking overlaps an existing one.
    """
    if has_conflict(db, booking_date, room, start_time, end_time, ignore_booking_id):
        logger.warning(
            "Rejected conflicting booking: %s on %s %s",
            room,
            booking_date.isoformat(),
            format_time_range(start_time, end_time),
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Room is already booked for this time range",
        )
