"""Very lightweight in-memory rate limiter (per-process, best-effort)."""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Mapping, Optional


class TokenBucket:
    def __init__(self, rate: float, capacity: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.timestamp = time.monotonic()
        self._lock = asyncio.Lock()

    async def consume(self, amount: float = 1.0) -> bool:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.timestamp
            self.timestamp = now
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            if self.tokens >= amount:
                self.tokens -= amount
                return True
            return False


class PerKeyRateLimiter:
    """Per-key token buckets; ``per_tool`` overrides the rate for specific keys."""

    def __init__(
        self,
        rate_per_sec: float,
        burst: float | None = None,
        *,
        per_tool: Optional[Mapping[str, float]] = None,
    ) -> None:
        self.rate = rate_per_sec
        self.burst = burst if burst is not None else rate_per_sec
        self.per_tool: Dict[str, float] = dict(per_tool or {})
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = asyncio.Lock()

    def _new_bucket(self, key: str) -> TokenBucket:
        rate = self.per_tool.get(key)
        if rate is None:
            return TokenBucket(self.rate, self.burst)
        return TokenBucket(rate, max(rate, 1.0))

    async def allow(self, key: str) -> bool:
        async with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._new_bucket(key)
                self._buckets[key] = bucket
        return await bucket.consume()
