# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Fixed-window request limiter keyed by (identity, endpoint class).

A window opens on the first request of a key and lasts window_ms; calls past
max_requests inside the window are rejected without counting. Elapsed
entries are swept at most once per sweep_interval.
"""
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

RATE_LIMITS: dict[str, dict[str, int]] = {
    "chat": {"window_ms": 60_000, "max_requests": 20},
    "search": {"window_ms": 60_000, "max_requests": 60},
    "analyze": {"window_ms": 60_000, "max_requests": 10},
    "generate_policy": {"window_ms": 60_000, "max_requests": 5},
    "ingest": {"window_ms": 60_000, "max_requests": 5},
}


@dataclass
class RateLimitEntry:
    key: str
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in_ms: int
    limit: int


class RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._lock = threading.Lock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def check(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep_locked(now)

            if max_requests < 1:
                return RateLimitResult(False, 0, window_ms, max_requests)

            entry = self._entries.get(key)
            if entry is None or now >= entry.window_reset_at:
                entry = RateLimitEntry(key, 1, now + window_ms / 1000)
                self._entries[key] = entry
                return RateLimitResult(True, max(max_requests - 1, 0), window_ms, max_requests)

            reset_in_ms = max(0, math.ceil((entry.window_reset_at - now) * 1000))
            if entry.count >= max_requests:
                return RateLimitResult(False, 0, reset_in_ms, max_requests)

            entry.count += 1
            return RateLimitResult(True, max_requests - entry.count, reset_in_ms, max_requests)

    def check_endpoint(self, key: str, endpoint: str) -> RateLimitResult:
        limits = RATE_LIMITS[endpoint]
        return self.check(f"{endpoint}:{key}", limits["window_ms"], limits["max_requests"])

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if now >= e.window_reset_at]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        return len(expired)


def rate_limit_key(
    user_id: Optional[str] = None,
    forwarded_for: Optional[str] = None,
    real_ip: Optional[str] = None,
    client_host: Optional[str] = None,
) -> str:
    if user_id:
        return f"user:{user_id}"
    ip = ""
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    ip = ip or (real_ip or "").strip() or (client_host or "").strip() or "unknown"
    return f"ip:{ip}"


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_in_ms / 1000)),
    }
