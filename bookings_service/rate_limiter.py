# bookings_service/rate_limiter.py
import logging
import time
from typing import Any, Dict, List

from fastapi import Depends, HTTPException, status

from .auth import get_current_user_claims
from .config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW

logger = logging.getLogger(__name__)

_user_request_log: Dict[str, List[float]] = {}


def reset_rate_limits() -> None:
    _user_request_log.clear()


def booking_rate_limiter(claims: Dict[str, Any] = Depends(get_current_user_claims)):
    """
    Rate limit booking write operations per authenticated username.

    Sliding window of BOOKING_RATE_WINDOW seconds holding at most
    BOOKING_RATE_LIMIT operations.
    """
    username = claims["username"]
    now = time.time()
    window_start = now - BOOKING_RATE_WINDOW

    timestamps = [ts for ts in _user_request_log.get(username, []) if ts >= window_start]

    if len(timestamps) >= BOOKING_RATE_LIMIT:
        logger.warning("Rate limit hit for %s", username)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many booking operations in a short time",
        )

    timestamps.append(now)
    _user_request_log[username] = timestamps
