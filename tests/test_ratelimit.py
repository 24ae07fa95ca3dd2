# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""Tests for the fixed-window rate limiter."""
import threading

import pytest

from lexicite.ratelimit import (
    RATE_LIMITS,
    RateLimiter,
    RateLimitResult,
    rate_limit_headers,
    rate_limit_key,
)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock, sweep_interval=60.0)


class TestFixedWindow:
    def test_allows_up_to_max_then_rejects(self, limiter):
        results = [limiter.check("ip:1", 60_000, 5) for _ in range(6)]
        assert [r.allowed for r in results] == [True] * 5 + [False]
        assert [r.remaining for r in results[:5]] == [4, 3, 2, 1, 0]
        assert results[5].remaining == 0
        assert results[5].limit == 5

    def test_rejected_calls_do_not_extend_window(self, limiter, clock):
        for _ in range(5):
            limiter.check("ip:1", 60_000, 5)
        clock.advance(30)
        rejected = limiter.check("ip:1", 60_000, 5)
        assert not rejected.allowed
        assert rejected.reset_in_ms == 30_000

    def test_new_window_after_reset(self, limiter, clock):
        for _ in range(6):
            last = limiter.check("ip:1", 60_000, 5)
        assert not last.allowed
        clock.advance(last.reset_in_ms / 1000)
        fresh = limiter.check("ip:1", 60_000, 5)
        assert fresh.allowed
        assert fresh.remaining == 4
        assert fresh.reset_in_ms == 60_000

    def test_zero_limit_rejects_every_call(self, limiter):
        results = [limiter.check("ip:1", 60_000, 0) for _ in range(2)]
        assert [r.allowed for r in results] == [False, False]
        assert results[0].remaining == 0
        assert len(limiter) == 0

    def test_keys_are_independent(self, limiter):
        for _ in range(5):
            limiter.check("ip:1", 60_000, 5)
        assert limiter.check("ip:2", 60_000, 5).allowed

    def test_endpoint_classes_are_independent(self, limiter):
        limits = RATE_LIMITS["ingest"]["max_requests"]
        for _ in range(limits):
            assert limiter.check_endpoint("ip:1", "ingest").allowed
        assert not limiter.check_endpoint("ip:1", "ingest").allowed
        assert limiter.check_endpoint("ip:1", "search").allowed

    def test_unknown_endpoint(self, limiter):
        with pytest.raises(KeyError):
            limiter.check_endpoint("ip:1", "nonexistent")

    def test_concurrent_callers_never_exceed_limit(self):
        limiter = RateLimiter()
        allowed = []
        lock = threading.Lock()

        def hit():
            for _ in range(10):
                r = limiter.check("shared", 60_000, 25)
                if r.allowed:
                    with lock:
                        allowed.append(r)

        threads = [threading.Thread(target=hit) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert len(allowed) == 25


class TestSweep:
    def test_sweep_drops_elapsed_entries(self, limiter, clock):
        limiter.check("a", 1_000, 5)
        limiter.check("b", 120_000, 5)
        clock.advance(2)
        assert limiter.sweep() == 1
        assert len(limiter) == 1

    def test_check_sweeps_opportunistically(self, limiter, clock):
        limiter.check("a", 1_000, 5)
        clock.advance(61)
        limiter.check("b", 1_000, 5)
        assert len(limiter) == 1


class TestKeyAndHeaders:
    def test_user_id_wins(self):
        assert rate_limit_key("u1", "1.2.3.4", "5.6.7.8") == "user:u1"

    def test_first_forwarded_address(self):
        assert rate_limit_key(None, "1.2.3.4, 10.0.0.1", "5.6.7.8") == "ip:1.2.3.4"

    def test_real_ip_then_client_then_unknown(self):
        assert rate_limit_key(None, None, "5.6.7.8", "9.9.9.9") == "ip:5.6.7.8"
        assert rate_limit_key(None, None, None, "9.9.9.9") == "ip:9.9.9.9"
        assert rate_limit_key() == "ip:unknown"

    def test_headers(self):
        headers = rate_limit_headers(RateLimitResult(True, 3, 1500, 5))
        assert headers == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "3",
            "X-RateLimit-Reset": "2",
        }
