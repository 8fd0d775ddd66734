# FILE: tests/test_rate_limiter.py
"""
Tests for app/ratelimit/limiter.py
Sliding-window limits, in-process and Redis-backed.
"""

from unittest.mock import Mock

import pytest

from app.ratelimit import InMemoryRateLimiter, RedisRateLimiter, create_rate_limiter
from app.ratelimit.limiter import make_key, _SLIDING_WINDOW_LUA


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestInMemoryRateLimiter:
    """Process-local sliding window."""

    def test_third_request_in_window_rejected(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        assert limiter.allow(1, "10.0.0.1", 2, 60) is True
        assert limiter.allow(1, "10.0.0.1", 2, 60) is True
        assert limiter.allow(1, "10.0.0.1", 2, 60) is False

    def test_remaining_counts_down(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        assert limiter.check(1, "c", 3, 60).remaining == 2
        assert limiter.check(1, "c", 3, 60).remaining == 1
        assert limiter.check(1, "c", 3, 60).remaining == 0

    def test_window_slides(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(clock=clock)
        limiter.allow(1, "c", 2, 60)
        clock.advance(30)
        limiter.allow(1, "c", 2, 60)
        assert limiter.allow(1, "c", 2, 60) is False

        # first timestamp leaves the window, the second is still counted
        clock.advance(31)
        assert limiter.allow(1, "c", 2, 60) is True
        assert limiter.allow(1, "c", 2, 60) is False

    def test_retry_after_reports_when_oldest_expires(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(clock=clock)
        limiter.allow(1, "c", 1, 60)
        clock.advance(15)
        decision = limiter.check(1, "c", 1, 60)
        assert decision.allowed is False
        assert decision.retry_after == 45

    def test_rejected_requests_are_not_recorded(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(clock=clock)
        limiter.allow(1, "c", 1, 60)
        for _ in range(5):
            assert limiter.allow(1, "c", 1, 60) is False
        clock.advance(61)
        assert limiter.allow(1, "c", 1, 60) is True

    def test_keys_are_per_assistant_and_client(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        assert limiter.allow(1, "a", 1, 60) is True
        assert limiter.allow(1, "b", 1, 60) is True
        assert limiter.allow(2, "a", 1, 60) is True
        assert limiter.allow(1, "a", 1, 60) is False

    def test_reset(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        limiter.allow(1, "a", 1, 60)
        limiter.reset()
        assert limiter.allow(1, "a", 1, 60) is True
        assert limiter.tracked_keys() == 1

    def test_idle_clients_are_swept(self):
        clock = FakeClock(now=0.0)
        limiter = InMemoryRateLimiter(clock=clock)
        for i in range(1000):
            limiter.allow(1, f"10.0.{i // 256}.{i % 256}", 5, 60)
        assert limiter.tracked_keys() == 1000

        clock.advance(10000)
        assert limiter.allow(1, "10.9.9.9", 5, 60) is True
        assert limiter.tracked_keys() == 1

    def test_sweep_keeps_clients_still_in_window(self):
        clock = FakeClock(now=0.0)
        limiter = InMemoryRateLimiter(clock=clock)
        limiter.allow(1, "old", 5, 60)
        clock.advance(50)
        limiter.allow(1, "recent", 5, 60)
        clock.advance(20)
        limiter.allow(1, "new", 5, 60)

        assert limiter.tracked_keys() == 2
        assert limiter.check(1, "recent", 5, 60).remaining == 3

    def test_rejected_new_key_is_not_tracked(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        decision = limiter.check(1, "c", 0, 60)
        assert decision.allowed is False
        assert decision.retry_after == 60
        assert limiter.tracked_keys() == 0


class TestRedisRateLimiter:
    """Redis sorted-set window through one Lua script."""

    def _limiter(self, script_result, now=1000.5):
        client = Mock()
        script = Mock(return_value=script_result)
        client.register_script.return_value = script
        return RedisRateLimiter(client, clock=lambda: now), client, script

    def test_registers_sliding_window_script(self):
        _, client, _ = self._limiter([1, 1, b"1000.5"])
        client.register_script.assert_called_once_with(_SLIDING_WINDOW_LUA)

    def test_allowed(self):
        limiter, _, script = self._limiter([1, 1, b"1000.5"])
        decision = limiter.check(7, "10.0.0.1", 5, 60)

        assert decision.allowed is True
        assert decision.remaining == 4

        kwargs = script.call_args.kwargs
        assert kwargs["keys"] == [make_key(7, "10.0.0.1")]
        now_arg, window_arg, limit_arg, member = kwargs["args"]
        assert float(now_arg) == 1000.5
        assert window_arg == 60
        assert limit_arg == 5
        assert member.startswith("1000.500000:")

    def test_rejected_computes_retry_after_from_oldest(self):
        limiter, _, _ = self._limiter([0, 5, b"980.5"], now=1000.5)
        decision = limiter.check(7, "c", 5, 60)
        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.retry_after == 40

    def test_unparseable_oldest_falls_back_to_full_window(self):
        limiter, _, _ = self._limiter([0, 5, None], now=1000.0)
        assert limiter.check(7, "c", 5, 60).retry_after == 60

    def test_members_are_unique_per_call(self):
        limiter, _, script = self._limiter([1, 1, b"1000.5"])
        limiter.check(7, "c", 5, 60)
        limiter.check(7, "c", 5, 60)
        members = [c.kwargs["args"][3] for c in script.call_args_list]
        assert members[0] != members[1]


class TestCreateRateLimiter:
    """Backend selection."""

    def test_memory_default(self):
        assert isinstance(create_rate_limiter("memory"), InMemoryRateLimiter)

    def test_redis_requires_url(self):
        with pytest.raises(ValueError):
            create_rate_limiter("redis", None)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_rate_limiter("memcached")

    def test_key_format(self):
        assert make_key(3, "1.2.3.4") == "beacon:ratelimit:3:1.2.3.4"
