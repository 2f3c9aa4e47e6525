import fnmatch

import redis

from common import cache


class FakeRedis:
    """Dict-backed stand-in for the handful of redis calls the cache uses."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def scan_iter(self, pattern):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, pattern)]

    def delete(self, key):
        self.store.pop(key, None)


class BrokenRedis(FakeRedis):
    def get(self, key):
        raise redis.ConnectionError("down")


def test_cache_disabled_without_redis_url(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    assert cache.get_redis_client() is None
    assert cache.get_cached_json("anything") is None
    cache.set_cached_json("anything", [1])
    cache.delete_prefix("any")


def test_unreachable_redis_disables_cache(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://127.0.0.1:1/0")
    assert cache.get_redis_client() is None


def test_round_trip_and_prefix_delete(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)

    cache.set_cached_json("bookings:active:2030-05-12", [{"id": 1}], ttl_seconds=30)
    cache.set_cached_json("other:key", {"a": 1})
    assert cache.get_cached_json("bookings:active:2030-05-12") == [{"id": 1}]
    assert fake.ttls["bookings:active:2030-05-12"] == 30

    cache.delete_prefix("bookings:")
    assert cache.get_cached_json("bookings:active:2030-05-12") is None
    assert cache.get_cached_json("other:key") == {"a": 1}


def test_read_errors_fall_back_to_uncached(monkeypatch):
    monkeypatch.setattr(cache, "_redis_client", BrokenRedis())
    assert cache.get_cached_json("bookings:active:2030-05-12") is None


def test_active_view_is_served_from_cache_and_invalidated(monkeypatch, client, user_headers):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)
    params = {"as_of": "2030-05-12T08:00:00"}

    assert client.get("/api/v1/bookings/active", params=params, headers=user_headers).json() == []
    assert "bookings:active:2030-05-12" in fake.store

    res = client.post(
        "/api/v1/bookings",
        json={
            "booking_date": "2030-05-12",
            "borrower_name": "Budi",
            "room": "Lantai 2",
            "start_time": "09:00",
            "end_time": "10:00",
        },
        headers=user_headers,
    )
    assert res.status_code == 201
    assert "bookings:active:2030-05-12" not in fake.store

    active = client.get("/api/v1/bookings/active", params=params, headers=user_headers).json()
    assert [b["borrower_name"] for b in active] == ["Budi"]

    cached = client.get("/api/v1/bookings/active", params=params, headers=user_headers).json()
    assert cached == active


class CountingUnreachableRedis:
    pings = 0

    def ping(self):
        CountingUnreachableRedis.pings += 1
        raise redis.ConnectionError("connection refused")


def test_outage_is_checked_once_until_reset(monkeypatch, caplog):
    created = []

    def fake_from_url(url, **kwargs):
        created.append(kwargs)
        return CountingUnreachableRedis()

    CountingUnreachableRedis.pings = 0
    monkeypatch.setenv("REDIS_URL", "redis://cache.invalid:6379/0")
    monkeypatch.setattr(cache.redis, "from_url", fake_from_url)

    with caplog.at_level("WARNING", logger="common.cache"):
        for _ in range(5):
            assert cache.get_cached_json("bookings:active:2030-05-12") is None
            cache.set_cached_json("bookings:active:2030-05-12", [])
        cache.delete_prefix("bookings:")

    assert CountingUnreachableRedis.pings == 1
    assert created[0]["socket_connect_timeout"] == cache.CONNECT_TIMEOUT_SECONDS
    assert len([r for r in caplog.records if "unreachable" in r.getMessage()]) == 1

    cache.reset_redis_client()
    assert cache.get_redis_client() is None
    assert CountingUnreachableRedis.pings == 2
