# FILE: app/ratelimit/__init__.py
"""Per-(assistant, client) sliding-window rate limiting."""

from .limiter import (
    RateDecision,
    RateLimiter,
    InMemoryRateLimiter,
    RedisRateLimiter,
    create_rate_limiter,
    get_rate_limiter,
)

__all__ = [
    "RateDecision",
    "RateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "create_rate_limiter",
    "get_rate_limiter",
]
