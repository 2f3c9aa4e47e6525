import logging
from datetime import date, datetime, time
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from common.cache import delete_prefix, get_cached_json, set_cached_json
from common.logging_setup import setup_logging

from . import filters, models, schemas
from .auth import (
    admin_only,
    any_user,
    authenticate,
    create_access_token,
    get_current_user_claims,
)
from .config import BOOKING_TIMEZONE, CACHE_TTL_SECONDS, LOG_DIR, LOG_LEVEL, SERVICE_NAME
from .database import Base, engine, get_db, storage_backend
from .export import XLSX_MEDIA_TYPE, build_workbook, export_filename, workbook_bytes
from .rate_limiter import booking_rate_limiter
from .rooms import ROOMS
from .services import ensure_no_conflict, ensure_room_known, ensure_time_valid, find_conflicts
from .timeslots import default_end_time

setup_logging(LOG_LEVEL, LOG_DIR)
logger = logging.getLogger(__name__)

# Create tables
Base.metadata.create_all(bind=engine)
logger.info("Bookings service using %s storage backend", storage_backend())

app = FastAPI(title="Room Bookings Service", version="1.0.0")
router_v1 = APIRouter(prefix="/api/v1")

CACHE_PREFIX = "bookings:"


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "service": SERVICE_NAME,
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "service": SERVICE_NAME,
            "path": request.url.path,
            "method": request.method,
            "status_code": 500,
            "detail": "Internal server error",
        },
    )


@app.get("/")
def root():
    """
    Health-check endpoint for the Bookings service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": SERVICE_NAME, "status": "running"}


# ---------- Query parameter helpers ----------


def period_filter_params(
    period: Optional[schemas.PeriodType] = Query(default=None),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    quarter: Optional[int] = Query(default=None, ge=1, le=4),
    year: Optional[int] = Query(default=None, ge=1, le=9999),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
) -> Optional[schemas.PeriodFilter]:
    """
    Collect the reporting-period query parameters into a PeriodFilter.

    Returns None when no ``period`` type is given.
    """
    if period is None:
        return None
    if period == schemas.PeriodType.CUSTOM and start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )
    return schemas.PeriodFilter(
        type=period,
        month=month,
        quarter=quarter,
        year=year,
        start_date=start_date,
        end_date=end_date,
    )


def sort_params(
    sort: str = Query(default="booking_date"),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
) -> Dict[str, str]:
    if sort not in filters.SORTABLE_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot sort by {sort}; choose one of {', '.join(filters.SORTABLE_FIELDS)}",
        )
    return {"field": sort, "direction": order}


def get_booking_or_404(db: Session, booking_id: int) -> models.Booking:
    booking = db.query(models.Booking).filter(models.Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


def load_history(
    db: Session,
    period: Optional[schemas.PeriodFilter],
    term: Optional[str],
    sorting: Dict[str, str],
) -> List[models.Booking]:
    """
    Bookings in the period, narrowed by the search term and sorted.
    """
    q = db.query(models.Booking)
    bounds = filters.period_range(period) if period is not None else None
    if bounds is not None:
        first_day, last_day = bounds
        q = q.filter(models.Booking.booking_date >= first_day).filter(
            models.Booking.booking_date <= last_day
        )
    return filters.sort_bookings(filters.search(q.all(), term), **sorting)


def current_time(as_of: Optional[datetime] = None) -> datetime:
    """
    Wall-clock time in BOOKING_TIMEZONE.

    An aware ``as_of`` is converted into the booking zone; a naive one is
    taken as already being local wall-clock time.
    """
    if as_of is None:
        return datetime.now(ZoneInfo(BOOKING_TIMEZONE))
    if as_of.tzinfo is not None:
        return as_of.astimezone(ZoneInfo(BOOKING_TIMEZONE))
    return as_of


# ---------- Auth ----------


@router_v1.post("/auth/login", response_model=schemas.Token)
def login(form_data: OAuth2PasswordRequestForm = Depends()):
    """
    Log in with one of the built-in accounts and receive a bearer token.

    Parameters
    ----------
    form_data : OAuth2PasswordRequestForm
        Form fields ``username`` and ``password``.

    Returns
    -------
    Token
        Signed JWT plus the account's username and role.

    Raises
    ------
    HTTPException
        401 if the credentials do not match.
    """
    account = authenticate(form_data.username, form_data.password)
    if account is None:
        logger.warning("Failed login for %r", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token({"sub": account["username"], "role": account["role"]})
    logger.info("User %s logged in", account["username"])
    return schemas.Token(access_token=token, username=account["username"], role=account["role"])


@router_v1.get("/auth/me", response_model=schemas.CurrentUser)
def read_me(claims: Dict = Depends(get_current_user_claims)):
    return schemas.CurrentUser(**claims)


# ---------- Rooms ----------


@router_v1.get("/rooms", response_model=List[str])
def list_rooms(_: Dict = Depends(any_user)):
    """List the fixed catalogue of bookable rooms."""
    return list(ROOMS)


# ---------- Check room availability ----------


@router_v1.get("/bookings/availability", response_model=schemas.AvailabilityRead)
def check_availability(
    room: str,
    booking_date: date,
    start_time: time,
    end_time: Optional[time] = None,
    db: Session = Depends(get_db),
    _: Dict = Depends(any_user),
):
    """
    Check if a room is free for a time range on a given date.

    Parameters
    ----------
    room : str
        Room to check.
    booking_date : date
        Date of the desired booking.
    start_time : time
        Start of the desired range (HH:MM).
    end_time : Optional[time]
        End of the desired range; defaults to two hours after start_time.
    db : Session
        Database session.

    Returns
    -------
    AvailabilityRead
        Whether the room is free, plus any bookings that block it.

    Raises
    ------
    HTTPException
        If the room is unknown or the time range is invalid.
    """
    if end_time is None:
        end_time = default_end_time(start_time)
    ensure_room_known(room)
    ensure_time_valid(start_time, end_time)

    conflicts = find_conflicts(db, booking_date, room, start_time, end_time)
    return schemas.AvailabilityRead(
        room=room,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        available=not conflicts,
        conflicts=[schemas.BookingRead.model_validate(b) for b in conflicts],
    )


# ---------- Create booking ----------


@router_v1.post(
    "/bookings",
    response_model=schemas.BookingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_rate_limiter)],
)
def create_booking(
    booking_in: schemas.BookingCreate,
    db: Session = Depends(get_db),
    claims: Dict = Depends(any_user),
):
    """
    Create a new booking on behalf of the logged-in account.

    Behavior
    --------
    - Rejects rooms outside the catalogue.
    - Validates that the time range is correct.
    - Rejects bookings that overlap an existing booking of the same room
      on the same date.

    Raises
    ------
    HTTPException
        If the room is unknown, the time range is invalid,
        or the room is already booked.
    """
    ensure_room_known(booking_in.room)
    ensure_time_valid(booking_in.start_time, booking_in.end_time)
    ensure_no_conflict(
        db,
        booking_in.booking_date,
        booking_in.room,
        booking_in.start_time,
        booking_in.end_time,
    )

    booking = models.Booking(
        booking_date=booking_in.booking_date,
        borrower_name=booking_in.borrower_name,
        room=booking_in.room,
        start_time=booking_in.start_time,
        end_time=booking_in.end_time,
        purpose=booking_in.purpose,
        created_by=claims["username"],
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    delete_prefix(CACHE_PREFIX)
    logger.info(
        "Booking %s created by %s: %s on %s",
        booking.id,
        claims["username"],
        booking.room,
        booking.booking_date.isoformat(),
    )
    return booking


# ---------- History ----------


@router_v1.get("/bookings", response_model=List[schemas.BookingRead])
def list_bookings(
    q: Optional[str] = Query(default=None, max_length=100),
    period: Optional[schemas.PeriodFilter] = Depends(period_filter_params),
    sorting: Dict[str, str] = Depends(sort_params),
    db: Session = Depends(get_db),
    _: Dict = Depends(any_user),
):
    """
    Booking history with optional period filter, search and sorting.

    Parameters
    ----------
    q : Optional[str]
        Case-insensitive text matched against every displayed column.
    period : Optional[PeriodFilter]
        Built from ``period``, ``month``, ``quarter``, ``year``,
        ``start_date`` and ``end_date`` query parameters.
    sorting : Dict[str, str]
        From ``sort`` (column) and ``order`` (asc/desc); newest date first by default.

    Returns
    -------
    List[BookingRead]
        Matching bookings.
    """
    return load_history(db, period, q, sorting)


# ---------- Active bookings ----------


@router_v1.get("/bookings/active", response_model=List[schemas.BookingRead])
def list_active_bookings(
    q: Optional[str] = Query(default=None, max_length=100),
    as_of: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
    _: Dict = Depends(any_user),
):
    """
    Bookings for today that have not ended yet, earliest first.

    ``as_of`` replaces the service clock; a naive value is read as wall-clock
    time in BOOKING_TIMEZONE.
    """
    now = current_time(as_of)
    today = now.date()
    cache_key = f"{CACHE_PREFIX}active:{today.isoformat()}"

    cached = get_cached_json(cache_key)
    if cached is not None:
        day_bookings = [schemas.BookingRead.model_validate(item) for item in cached]
    else:
        rows = db.query(models.Booking).filter(models.Booking.booking_date == today).all()
        day_bookings = [schemas.BookingRead.model_validate(b) for b in rows]
        set_cached_json(
            cache_key,
            [b.model_dump(mode="json") for b in day_bookings],
            ttl_seconds=CACHE_TTL_SECONDS,
        )

    active = [b for b in day_bookings if filters.is_active(b, now)]
    return filters.sort_bookings(filters.search(active, q), "start_time", "asc")


# ---------- Export ----------


@router_v1.get("/bookings/export")
def export_bookings(
    q: Optional[str] = Query(default=None, max_length=100),
    period: Optional[schemas.PeriodFilter] = Depends(period_filter_params),
    sorting: Dict[str, str] = Depends(sort_params),
    db: Session = Depends(get_db),
    claims: Dict = Depends(admin_only),
):
    """
    Admin: download the (filtered) booking history as an Excel workbook.
    """
    bookings = load_history(db, period, q, sorting)
    filename = export_filename(period, current_time().date())
    content = workbook_bytes(build_workbook(bookings))
    logger.info("%s exported %d bookings to %s", claims["username"], len(bookings), filename)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------- Bulk delete ----------


@router_v1.delete(
    "/bookings",
    response_model=schemas.BulkDeleteResult,
    dependencies=[Depends(booking_rate_limiter)],
)
def bulk_delete_bookings(
    period: Optional[schemas.PeriodFilter] = Depends(period_filter_params),
    db: Session = Depends(get_db),
    claims: Dict = Depends(admin_only),
):
    """
    Admin: permanently delete every booking dated within a period.

    Raises
    ------
    HTTPException
        400 unless a complete period (type plus the fields it needs) is given.
    """
    bounds = filters.period_range(period) if period is not None else None
    if bounds is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A complete period filter is required for bulk delete",
        )

    first_day, last_day = bounds
    deleted = (
        db.query(models.Booking)
        .filter(models.Booking.booking_date >= first_day)
        .filter(models.Booking.booking_date <= last_day)
        .delete(synchronize_session=False)
    )
    db.commit()
    delete_prefix(CACHE_PREFIX)
    name = filters.period_name(period)
    logger.info("%s bulk-deleted %d bookings for period %s", claims["username"], deleted, name)
    return schemas.BulkDeleteResult(deleted=deleted, period=name)


# ---------- Single booking ----------


@router_v1.get("/bookings/{booking_id}", response_model=schemas.BookingRead)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _: Dict = Depends(any_user),
):
    return get_booking_or_404(db, booking_id)


@router_v1.put(
    "/bookings/{booking_id}",
    response_model=schemas.BookingRead,
    dependencies=[Depends(booking_rate_limiter)],
)
def update_booking(
    booking_id: int,
    update_data: schemas.BookingUpdate,
    db: Session = Depends(get_db),
    claims: Dict = Depends(admin_only),
):
    """
    Admin: edit an existing booking.

    Behavior
    --------
    - Applies only the fields provided in BookingUpdate.
    - Re-validates the final room and time range.
    - Ensures no conflicts with other bookings (the booking itself is ignored).

    Raises
    ------
    HTTPException
        If the booking is not found, the room is unknown,
        the time range is invalid, or there is a conflict.
    """
    booking = get_booking_or_404(db, booking_id)
    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)

    new_date = changes.get("booking_date", booking.booking_date)
    new_room = changes.get("room", booking.room)
    new_start_time = changes.get("start_time", booking.start_time)
    new_end_time = changes.get("end_time", booking.end_time)

    ensure_room_known(new_room)
    ensure_time_valid(new_start_time, new_end_time)
    ensure_no_conflict(
        db,
        new_date,
        new_room,
        new_start_time,
        new_end_time,
        ignore_booking_id=booking.id,
    )

    for field, value in changes.items():
        setattr(booking, field, value)

    db.add(booking)
    db.commit()
    db.refresh(booking)
    delete_prefix(CACHE_PREFIX)
    logger.info("Booking %s updated by %s (%s)", booking.id, claims["username"], ", ".join(changes))
    return booking


@router_v1.delete(
    "/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(booking_rate_limiter)],
)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    claims: Dict = Depends(admin_only),
):
    """
    Admin: permanently delete a booking.
    """
    booking = get_booking_or_404(db, booking_id)
    db.delete(booking)
    db.commit()
    delete_prefix(CACHE_PREFIX)
    logger.info("Booking %s deleted by %s", booking_id, claims["username"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


app.include_router(router_v1)
