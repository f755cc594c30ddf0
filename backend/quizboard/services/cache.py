"""Redis-backed cache for leaderboard snapshots.

A snapshot is always a full recomputation; caching only spares repeated
aggregation between refreshes. Keys are content-addressable (SHA-256 of
the serialised params). Every Redis failure is logged and treated as a
miss, so the cache can never fail a request.
"""

import hashlib
import json
import logging
from typing import Any

import redis

from quizboard.config import settings

logger = logging.getLogger(__name__)

_pool: redis.ConnectionPool | None = None


def _get_redis() -> redis.Redis:
    """Return a Redis client backed by a shared connection pool."""
    global _pool
    if _pool is None:
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )
    return redis.Redis(connection_pool=_pool)


def _make_key(prefix: str, params: dict[str, Any]) -> str:
    """Create a deterministic cache key from prefix + sorted param hash."""
    serialised = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.sha256(serialised.encode()).hexdigest()[:16]
    return f"quizboard:{prefix}:{digest}"


def cache_get(prefix: str, params: dict[str, Any]) -> dict[str, Any] | None:
    """Retrieve a cached payload (or None on miss/disabled)."""
    if not settings.CACHE_ENABLED:
        return None
    try:
        r = _get_redis()
        key = _make_key(prefix, params)
        raw = r.get(key)
        if raw:
            logger.debug("Cache HIT: %s", key)
            return json.loads(raw)
        logger.debug("Cache MISS: %s", key)
        return None
    except Exception as e:
        logger.warning("Cache read failed (non-fatal): %s", e)
        return None


def cache_set(
    prefix: str,
    params: dict[str, Any],
    payload: dict[str, Any],
    ttl: int | None = None,
) -> None:
    """Store a payload in cache."""
    if not settings.CACHE_ENABLED:
        return
    ttl = ttl or settings.LEADERBOARD_CACHE_TTL_SECONDS
    try:
        r = _get_redis()
        key = _make_key(prefix, params)
        r.setex(key, ttl, json.dumps(payload, default=str))
        logger.debug("Cache SET: %s (ttl=%ds)", key, ttl)
    except Exception as e:
        logger.warning("Cache write failed (non-fatal): %s", e)


def cache_delete(prefix: str, params: dict[str, Any]) -> None:
    """Drop a cached payload so the next read recomputes it."""
    if not settings.CACHE_ENABLED:
        return
    try:
        _get_redis().delete(_make_key(prefix, params))
    except Exception as e:
        logger.warning("Cache delete failed (non-fatal): %s", e)
