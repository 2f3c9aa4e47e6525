from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, String, Text, Time

from .database import Base


class Booking(Base):
    """
    SQLAlchemy model representing a room reservation.

    Attributes
    ----------
    id : int
        Primary key.
    booking_date : date
        Calendar date the room is reserved for.
    borrower_name : str
        Name of the person borrowing the room.
    room : str
        Name of the booked room, one of ``rooms.ROOMS``.
    start_time : time
        Start of the reserved time range.
    end_time : time
        End of the reserved time range (exclusive).
    purpose : str
        Free-text purpose of the reservation.
    created_by : str
        Username of the account that submitted the booking.
    created_at : datetime
        Timestamp when the booking was created.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_date = Column(Date, index=True, nullable=False)
    borrower_name = Column(String(100), nullable=False)
    room = Column(String(100), index=True, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    purpose = Column(Text, nullable=False, default="")
    created_by = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
