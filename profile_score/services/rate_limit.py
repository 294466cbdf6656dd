"""Fixed-window rate limiting for the analysis pipeline.

Each caller (client IP) gets `max_requests` per window. The window starts at
the caller's first request and resets on the first request after it ends:

- first request, or now - window_start > window_ms: count = 1, start = now
- otherwise: count += 1, allowed iff count <= max_requests

This is a coarse admission gate, not a token bucket: a burst at the end of
one window followed by a burst at the start of the next can admit up to
2 * max_requests in a short span.

Backends:
- InMemoryRateLimiter: process-wide dict, reset on restart (default)
- RedisRateLimiter: shared across processes, atomic Lua update
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
import logging
import threading
import time
from typing import Protocol

from redis.exceptions import RedisError

from profile_score.settings import get_settings
from profile_score.stores.redis import fixed_window_hit, fixed_window_script, get_redis

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    # Epoch ms at which the caller's current window ends.
    reset_at: int | None = None


class RateLimitExceeded(RuntimeError):
    """Raised by the orchestrator when a caller is over its window budget."""

    def __init__(self, result: RateLimitResult) -> None:
        super().__init__("Rate limit exceeded")
        self.result = result


class RateLimiter(Protocol):
    async def check(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult: ...


def now_ms() -> int:
    return int(time.time() * 1000)


def _decide(count: int, window_start: int, *, window_ms: int, max_requests: int) -> RateLimitResult:
    reset_at = window_start + window_ms
    if count <= max_requests:
        return RateLimitResult(allowed=True, remaining=max_requests - count, reset_at=reset_at)
    return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)


@dataclass
class _Window:
    count: int
    start: int
    window_ms: int


class InMemoryRateLimiter:
    """Per-process counters guarded by a lock.

    Expired windows are swept every `sweep_every` checks so idle callers do
    not accumulate forever.
    """

    def __init__(self, *, clock: Callable[[], int] = now_ms, sweep_every: int = 1000) -> None:
        self._clock = clock
        self._sweep_every = sweep_every
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._checks = 0

    def __len__(self) -> int:
        return len(self._windows)

    async def check(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        return self.hit(key, window_ms, max_requests)

    def hit(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        """Synchronous check; the whole read-modify-write runs under the lock."""
        with self._lock:
            now = self._clock()
            self._checks += 1
            if self._checks % self._sweep_every == 0:
                self._sweep(now)

            window = self._windows.get(key)
            if window is None or now - window.start > window_ms:
                window = _Window(count=1, start=now, window_ms=window_ms)
                self._windows[key] = window
            else:
                window.count += 1
                window.window_ms = window_ms

            return _decide(window.count, window.start, window_ms=window_ms, max_requests=max_requests)

    def _sweep(self, now: int) -> None:
        expired = [k for k, w in self._windows.items() if now - w.start > w.window_ms]
        for k in expired:
            del self._windows[k]
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired windows")

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._checks = 0


class RedisRateLimiter:
    """Counters shared through Redis (see stores/redis.py).

    The Lua script is registered once per client and reused; a new client
    (after a reconnect) gets it registered again.

    If Redis is unreachable the request is admitted: losing the gate for a
    while is preferable to failing every analysis.
    """

    def __init__(self, *, client_getter=get_redis, clock: Callable[[], int] = now_ms) -> None:
        self._client_getter = client_getter
        self._clock = clock
        self._client = None
        self._script = None

    def _script_for(self, client):
        if self._script is None or client is not self._client:
            self._script = fixed_window_script(client)
            self._client = client
        return self._script

    async def check(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        try:
            count, start = await fixed_window_hit(
                self._script_for(self._client_getter()),
                key,
                now_ms=self._clock(),
                window_ms=window_ms,
            )
        except (RedisError, RuntimeError, OSError) as e:
            logger.warning(f"Rate limiter unavailable, admitting request for {key}: {e}")
            return RateLimitResult(allowed=True, remaining=max_requests)
        return _decide(count, start, window_ms=window_ms, max_requests=max_requests)


@lru_cache
def get_rate_limiter() -> RateLimiter:
    """Get the process-wide rate limiter for the configured backend."""
    settings = get_settings()
    if settings.rate_limit_backend == "redis":
        return RedisRateLimiter()
    return InMemoryRateLimiter(sweep_every=settings.rate_limit_sweep_every)
