from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .timeslots import default_end_time


class BookingBase(BaseModel):
    """
    Base schema for booking date, room and time information.

    Shared fields used across booking create and read operations.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    booking_date: date = Field(...)
    borrower_name: str = Field(..., min_length=1, max_length=100)
    room: str = Field(..., min_length=1, max_length=100)
    start_time: time = Field(...)
    purpose: str = Field(default="", max_length=500)


class BookingCreate(BookingBase):
    """
    Schema for creating a new booking.

    ``end_time`` may be omitted, in which case the booking lasts the
    default duration (two hours) from ``start_time``.
    """
    end_time: Optional[time] = None

    @model_validator(mode="after")
    def fill_default_end_time(self) -> "BookingCreate":
        if self.end_time is None:
            self.end_time = default_end_time(self.start_time)
        return self


class BookingUpdate(BaseModel):
    """
    Schema for partially updating an existing booking.

    All fields are optional; only provided values will be applied.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    booking_date: Optional[date] = None
    borrower_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    room: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    purpose: Optional[str] = Field(default=None, max_length=500)


class BookingRead(BookingBase):
    """
    Schema returned when reading booking information.

    Extends BookingBase with identifiers, end time and audit fields.
    """
    id: int
    end_time: time
    created_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityRead(BaseModel):
    room: str
    booking_date: date
    start_time: time
    end_time: time
    available: bool
    conflicts: List[BookingRead] = []


class PeriodType(str, Enum):
    """
    Kinds of reporting period a history view can be narrowed to.

    Values
    ------
    month
        A calendar month of a given year.
    quarter
        Three-month quarter (Q1 = Jan-Mar) of a given year.
    year
        A whole calendar year.
    custom
        An inclusive date range.
    """
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"


class PeriodFilter(BaseModel):
    """Reporting period; unused fields for the chosen type are ignored."""
    type: PeriodType
    month: Optional[int] = Field(default=None, ge=1, le=12)
    quarter: Optional[int] = Field(default=None, ge=1, le=4)
    year: Optional[int] = Field(default=None, ge=1, le=9999)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class BulkDeleteResult(BaseModel):
    deleted: int
    period: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    role: str


class CurrentUser(BaseModel):
    username: str
    role: str
