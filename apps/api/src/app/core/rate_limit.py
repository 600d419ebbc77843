"""
Rate Limiting

Sliding-window limits backed by Redis sorted sets, falling back to an
in-process store when Redis is not connected. Used to throttle admin
review actions and login attempts per client IP.
"""

import logging
import time

from app.core import redis as redis_state
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

# key -> request timestamps inside the current window
_memory_store: dict[str, list[float]] = {}
# key -> window length, used to drop keys whose window has fully passed
_memory_windows: dict[str, int] = {}
_MEMORY_SWEEP_SIZE = 1000


async def _check_rate_limit_redis(client, key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, now - window_seconds)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)
    results = await pipe.execute()
    return results[1] < limit


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    """Single-process fallback; not shared across workers."""
    now = time.time()
    if len(_memory_store) > _MEMORY_SWEEP_SIZE:
        _sweep_memory_store(now)

    window_start = now - window_seconds
    entries = [ts for ts in _memory_store.get(key, []) if ts > window_start]
    _memory_windows[key] = window_seconds

    if len(entries) >= limit:
        _memory_store[key] = entries
        return False

    entries.append(now)
    _memory_store[key] = entries
    return True


def _sweep_memory_store(now: float) -> None:
    stale = [
        key
        for key, entries in _memory_store.items()
        if not entries or entries[-1] <= now - _memory_windows.get(key, 0)
    ]
    for key in stale:
        _memory_store.pop(key, None)
        _memory_windows.pop(key, None)


def reset_memory_store() -> None:
    _memory_store.clear()
    _memory_windows.clear()


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check whether one more request fits in the window.

    Args:
        key: Unique key (e.g. "admin:approve_request:<user id>")
        limit: Maximum requests allowed in the window
        window_seconds: Window length in seconds

    Returns:
        True if the request is allowed
    """
    client = redis_state.redis_client
    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


async def enforce_rate_limit(key: str, limit: int, window_seconds: int) -> None:
    """
    Raise if `key` exceeded its limit.

    Raises:
        RateLimitExceededError: When the window is full
    """
    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(f"Rate limit exceeded for {key}: {limit}/{window_seconds}s")
        raise RateLimitExceededError(
            f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
            details={"retry_after_seconds": window_seconds},
        )


__all__ = ["check_rate_limit", "enforce_rate_limit", "reset_memory_store"]
