import cProfile
from datetime import date, timedelta

from fastapi.testclient import TestClient

from bookings_service.main import app
from bookings_service.database import Base, engine
from bookings_service.rate_limiter import reset_rate_limits
from bookings_service.rooms import ROOMS

client = TestClient(app)


def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def login(username: str, password: str) -> dict:
    r = client.post("/api/v1/auth/login", data={"username": username, "password": password})
    r.raise_for_status()
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def scenario_bookings():
    """
    Fill a month of hourly bookings across all rooms, then hit the
    conflict check, history filters and the Excel export.
    """
    user = login("user", "user")
    admin = login("admin", "admin")
    first_day = date(2030, 1, 1)

    for day_offset in range(30):
        day = (first_day + timedelta(days=day_offset)).isoformat()
        for room in ROOMS:
            for hour in range(8, 16, 2):
                # stay under the per-user write limit
                reset_rate_limits()
                r = client.post(
                    "/api/v1/bookings",
                    json={
                        "booking_date": day,
                        "borrower_name": f"Peminjam {hour}",
                        "room": room,
                        "start_time": f"{hour:02d}:00",
                        "end_time": f"{hour + 1:02d}:30",
                        "purpose": "profiling",
                    },
                    headers=user,
                )
                if r.status_code != 201:
                    raise RuntimeError(f"Unexpected status on create: {r.status_code}")

                # overlapping request must be refused
                r = client.get(
                    "/api/v1/bookings/availability",
                    params={"room": room, "booking_date": day, "start_time": f"{hour:02d}:30"},
                    headers=user,
                )
                r.raise_for_status()

    client.get("/api/v1/bookings", params={"q": "peminjam 10", "sort": "room"}, headers=user).raise_for_status()
    client.get(
        "/api/v1/bookings/export",
        params={"period": "month", "month": 1, "year": 2030},
        headers=admin,
    ).raise_for_status()


def main():
    reset_db()
    scenario_bookings()


if __name__ == "__main__":
    # run cProfile and sort by cumulative time
    cProfile.run("main()", sort="cumtime")
