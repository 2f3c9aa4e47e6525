# common/cache.py
import json
import logging
import os
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 1.0

_redis_client: Optional[redis.Redis] = None
# Set after a failed connect so an outage is checked and logged only once
_redis_unavailable = False


def get_redis_client() -> Optional[redis.Redis]:
    """
    Return a Redis client if REDIS_URL is configured, otherwise None.
    Fails gracefully (no caching) if Redis is not reachable; the failure
    is remembered until reset_redis_client() is called.
    """
    global _redis_client, _redis_unavailable

    if _redis_client is not None:
        return _redis_client
    if _redis_unavailable:
        return None

    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        return None

    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=CONNECT_TIMEOUT_SECONDS,
        )
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis at %s unreachable, running uncached: %s", redis_url, exc)
        _redis_unavailable = True
        return None

    logger.info("Redis cache enabled at %s", redis_url)
    _redis_client = client
    return _redis_client


def reset_redis_client() -> None:
    """Forget the cached client (or remembered outage) so the next call reconnects."""
    global _redis_client, _redis_unavailable
    _redis_client = None
    _redis_unavailable = False


def get_cached_json(key: str) -> Optional[Any]:
    client = get_redis_client()
    if client is None:
        return None

    try:
        raw = client.get(key)
    except redis.RedisError as exc:
        logger.warning("Cache read failed for %s: %s", key, exc)
        return None
    if raw is None:
        return None
    return json.loads(raw)


def set_cached_json(key: str, value: Any, ttl_seconds: int = 60) -> None:
    client = get_redis_client()
    if client is None:
        return

    try:
        client.setex(key, ttl_seconds, json.dumps(value, default=str))
    except redis.RedisError as exc:
        logger.warning("Cache write failed for %s: %s", key, exc)


def delete_prefix(prefix: str) -> None:
    """
    Delete all keys starting with prefix.
    Example: prefix='bookings:' or 'bookings:active:'.
    """
    client = get_redis_client()
    if client is None:
        return

    try:
        for k in client.scan_iter(prefix + "*"):
            client.delete(k)
    except redis.RedisError as exc:
        logger.warning("Cache invalidation failed for %s*: %s", prefix, exc)
