"""Redis store for shared rate-limit counters.

Only used when RATE_LIMIT_BACKEND=redis, so several API processes share one
admission-control window per caller.

Key layout:
- ratelimit:{caller} -> hash {start: epoch ms, count: int}
  expires shortly after its window ends (stale-key hygiene)
"""

import logging

import redis.asyncio as redis
from redis.commands.core import AsyncScript

from profile_score.settings import get_settings

# Key prefixes
PREFIX_RATE_LIMIT = "ratelimit:"

# Grace period added to the key TTL past the end of its window (ms)
RATE_LIMIT_KEY_GRACE_MS = 1000

# Fixed-window hit, executed atomically on the server.
# Returns {count, window_start_ms}.
_FIXED_WINDOW_LUA = """
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local grace = tonumber(ARGV[3])
local start = tonumber(redis.call('HGET', KEYS[1], 'start'))
local count
if (not start) or (now - start > window) then
  start = now
  count = 1
  redis.call('HSET', KEYS[1], 'start', start, 'count', count)
  redis.call('PEXPIRE', KEYS[1], window + grace)
else
  count = redis.call('HINCRBY', KEYS[1], 'count', 1)
end
return {count, start}
"""

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


def fixed_window_script(client: redis.Redis) -> AsyncScript:
    """Register the fixed-window script on `client` (once per client)."""
    return client.register_script(_FIXED_WINDOW_LUA)


async def fixed_window_hit(
    script: AsyncScript,
    key: str,
    *,
    now_ms: int,
    window_ms: int,
) -> tuple[int, int]:
    """Count one request against the caller's current window.

    Args:
        script: Script returned by fixed_window_script().
        key: Caller identity (e.g. client IP).
        now_ms: Current time, epoch milliseconds.
        window_ms: Window length in milliseconds.

    Returns:
        (count within the window including this request, window start in epoch ms).
    """
    count, start = await script(
        keys=[f"{PREFIX_RATE_LIMIT}{key}"],
        args=[now_ms, window_ms, RATE_LIMIT_KEY_GRACE_MS],
    )
    return int(count), int(start)
