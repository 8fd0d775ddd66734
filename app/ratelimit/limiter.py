# FILE: app/ratelimit/limiter.py
"""
Sliding-window rate limiting per (assistant, client).

Each key keeps the timestamps of its accepted requests. On every check the
timestamps older than the window are evicted first; the request is accepted
only if fewer than max_count remain, and then its own timestamp is recorded.

Two implementations share that logic behind RateLimiter:
- InMemoryRateLimiter: process-local table, correct for a single process.
- RedisRateLimiter: one sorted set per key, evict/count/add run as a single
  Lua script so several server processes share consistent limits.
"""
from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

KEY_PREFIX = "beacon:ratelimit"


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0  # seconds until the oldest counted request leaves the window


def make_key(assistant_id: int, client_id: str) -> str:
    return f"{KEY_PREFIX}:{assistant_id}:{client_id}"


class RateLimiter(ABC):
    """Capability injected into the chat endpoints."""

    @abstractmethod
    def check(self, assistant_id: int, client_id: str, max_count: int, window_seconds: int) -> RateDecision:
        ...

    def allow(self, assistant_id: int, client_id: str, max_count: int, window_seconds: int) -> bool:
        return self.check(assistant_id, client_id, max_count, window_seconds).allowed


class InMemoryRateLimiter(RateLimiter):
    """
    Process-local table of request timestamps.

    A key's timestamps are evicted lazily on its own checks; keys whose last
    accepted request has left the window are swept from the table at most once
    per SWEEP_INTERVAL_SECONDS, so one-off clients do not accumulate.
    """

    SWEEP_INTERVAL_SECONDS = 60.0

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._expires_at: Dict[str, float] = {}
        self._last_sweep = float("-inf")
        self._lock = threading.Lock()

    def check(self, assistant_id: int, client_id: str, max_count: int, window_seconds: int) -> RateDecision:
        key = make_key(assistant_id, client_id)
        with self._lock:
            now = self._clock()
            self._sweep(now)

            window = self._windows.get(key) or deque()
            cutoff = now - window_seconds
            while window and window[0] < cutoff:
                window.popleft()

            if len(window) >= max_count:
                oldest = window[0] if window else now
                retry_after = max(1, math.ceil(oldest + window_seconds - now))
                return RateDecision(allowed=False, remaining=0, retry_after=retry_after)

            window.append(now)
            self._windows[key] = window
            self._expires_at[key] = now + window_seconds
            return RateDecision(allowed=True, remaining=max_count - len(window))

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        expired = [key for key, expires_at in self._expires_at.items() if expires_at < now]
        for key in expired:
            del self._windows[key]
            del self._expires_at[key]
        if expired:
            logger.debug(f"[ratelimit] swept {len(expired)} idle keys")

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._expires_at.clear()


# Returns {allowed, count, oldest_score}; scores travel as strings so the
# fractional part of the timestamps survives the Lua -> Redis conversion.
_SLIDING_WINDOW_LUA = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local member = ARGV[4]
redis.call('ZREMRANGEBYSCORE', key, '-inf', '(' .. tostring(now - window))
local count = redis.call('ZCARD', key)
if count >= limit then
  local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
  return {0, count, oldest[2] or tostring(now)}
end
redis.call('ZADD', key, now, member)
redis.call('EXPIRE', key, math.ceil(window))
return {1, count + 1, tostring(now)}
"""


class RedisRateLimiter(RateLimiter):
    def __init__(self, client, clock: Callable[[], float] = time.time):
        self._client = client
        self._clock = clock
        self._script = client.register_script(_SLIDING_WINDOW_LUA)

    @classmethod
    def from_url(cls, url: str) -> "RedisRateLimiter":
        import redis

        return cls(redis.Redis.from_url(url))

    def check(self, assistant_id: int, client_id: str, max_count: int, window_seconds: int) -> RateDecision:
        now = self._clock()
        member = f"{now:.6f}:{uuid.uuid4().hex[:8]}"
        result = self._script(
            keys=[make_key(assistant_id, client_id)],
            args=[repr(now), window_seconds, max_count, member],
        )
        allowed, count, oldest = _parse_script_result(result, now)
        if not allowed:
            retry_after = max(1, math.ceil(oldest + window_seconds - now))
            return RateDecision(allowed=False, remaining=0, retry_after=retry_after)
        return RateDecision(allowed=True, remaining=max(0, max_count - count))


def _parse_script_result(result, now: float) -> Tuple[bool, int, float]:
    allowed_raw, count_raw, oldest_raw = result
    if isinstance(oldest_raw, bytes):
        oldest_raw = oldest_raw.decode("utf-8")
    try:
        oldest = float(oldest_raw)
    except (TypeError, ValueError):
        oldest = now
    return int(allowed_raw) == 1, int(count_raw), oldest


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_limiter: Optional[RateLimiter] = None
_limiter_lock = threading.Lock()


def create_rate_limiter(backend: str, redis_url: Optional[str] = None) -> RateLimiter:
    if backend == "redis":
        if not redis_url:
            raise ValueError("BEACON_REDIS_URL is required for the redis rate limit backend")
        logger.info("[ratelimit] using redis backend")
        return RedisRateLimiter.from_url(redis_url)
    if backend != "memory":
        raise ValueError(f"Unknown rate limit backend '{backend}'")
    return InMemoryRateLimiter()


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency: the configured limiter, created on first use."""
    global _limiter
    if _limiter is None:
        with _limiter_lock:
            if _limiter is None:
                from app.routing import config

                _limiter = create_rate_limiter(config.RATE_LIMIT_BACKEND, config.REDIS_URL)
    return _limiter
