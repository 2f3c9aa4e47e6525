import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Must be set before bookings_service is imported: the engine is built at import time
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(
    tempfile.gettempdir(), "room_bookings_test.db"
)
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from bookings_service.config import ALGORITHM, SECRET_KEY
from bookings_service.database import Base, engine
from bookings_service.main import app
from bookings_service.rate_limiter import reset_rate_limits
from common.cache import reset_redis_client


@pytest.fixture(autouse=True)
def reset_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_rate_limits()
    reset_redis_client()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


def make_token(username: str, role: str, minutes: int = 30) -> str:
    payload = {
        "sub": username,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token('admin', 'admin')}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {make_token('user', 'user')}"}
