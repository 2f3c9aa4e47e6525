# bookings_service/config.py
"""Settings for the Bookings service, read once from environment variables."""

import os
from typing import Optional


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_optional(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip()


SERVICE_NAME = "bookings"

# Unset -> local sqlite file; a postgres URL -> remote datastore
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./room_bookings.db")
REDIS_URL = _env_optional("REDIS_URL")

SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-room-booking-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60)

BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE", "UTC")

CACHE_TTL_SECONDS = _env_int("CACHE_TTL_SECONDS", 30)
BOOKING_RATE_LIMIT = _env_int("BOOKING_RATE_LIMIT", 20)
BOOKING_RATE_WINDOW = _env_int("BOOKING_RATE_WINDOW", 60)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = _env_optional("LOG_DIR")
