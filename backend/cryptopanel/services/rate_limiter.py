"""
Fixed-window rate limiting for the public API.

Every caller key gets `limit` requests per window. The first request for a
key (or the first one after its window has elapsed) opens a new window;
later requests increment the counter in place. Up to `limit` requests may
burst at the start of a window, and back-to-back windows can admit up to
twice that around a boundary.

Counters live behind a `CounterStore` so a single process can keep them in
memory while multi-instance deployments share them through Redis.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

import redis.asyncio as aioredis

from ..config.settings import Settings
from ..utils.logger import log

logger = log

WINDOW_SECONDS = 60.0


@dataclass(frozen=True)
class WindowCounter:
    hits: int
    window_end: float  # unix seconds


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int
    reset_at: float  # unix seconds

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(self.remaining, 0)),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }


class CounterStore(Protocol):
    async def increment(self, key: str, now: float, window: float) -> WindowCounter: ...

    async def get(self, key: str, now: float) -> Optional[WindowCounter]: ...

    async def close(self) -> None: ...


class RateLimiter(Protocol):
    async def consume(self, key: str) -> RateLimitResult: ...

    async def peek(self, key: str) -> RateLimitResult: ...


# -------------------------
# STORES
# -------------------------
class InMemoryCounterStore:
    """
    Process-local counters.

    Expired windows are swept at most once per `sweep_interval` seconds so
    keys from callers that went away do not pile up.
    """

    def __init__(self, sweep_interval: float = WINDOW_SECONDS):
        self.sweep_interval = sweep_interval
        self._counters: Dict[str, WindowCounter] = {}
        self._lock = threading.Lock()
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._counters)

    async def increment(self, key: str, now: float, window: float) -> WindowCounter:
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
                self._next_sweep = now + self.sweep_interval

            current = self._counters.get(key)
            if current is None or now >= current.window_end:
                current = WindowCounter(hits=1, window_end=now + window)
            else:
                current = WindowCounter(hits=current.hits + 1, window_end=current.window_end)
            self._counters[key] = current
            return current

    async def get(self, key: str, now: float) -> Optional[WindowCounter]:
        with self._lock:
            current = self._counters.get(key)
        if current is None or now >= current.window_end:
            return None
        return current

    def sweep(self, now: float) -> int:
        with self._lock:
            return self._sweep(now)

    def _sweep(self, now: float) -> int:
        expired = [k for k, c in self._counters.items() if now >= c.window_end]
        for k in expired:
            del self._counters[k]
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate-limit windows")
        return len(expired)

    async def close(self):
        with self._lock:
            self._counters.clear()


class RedisCounterStore:
    """Counters shared across instances; Redis key TTL closes each window."""

    def __init__(self, redis, prefix: str = "ratelimit:"):
        self.redis = redis
        self.prefix = prefix

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisCounterStore":
        return cls(aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True))

    async def increment(self, key: str, now: float, window: float) -> WindowCounter:
        redis_key = f"{self.prefix}{key}"
        window_ms = int(window * 1000)

        pipe = self.redis.pipeline(transaction=True)
        pipe.incr(redis_key)
        pipe.pexpire(redis_key, window_ms, nx=True)
        pipe.pttl(redis_key)
        hits, _, ttl_ms = await pipe.execute()

        if ttl_ms is None or ttl_ms < 0:
            ttl_ms = window_ms
        return WindowCounter(hits=int(hits), window_end=now + ttl_ms / 1000.0)

    async def get(self, key: str, now: float) -> Optional[WindowCounter]:
        redis_key = f"{self.prefix}{key}"

        pipe = self.redis.pipeline(transaction=True)
        pipe.get(redis_key)
        pipe.pttl(redis_key)
        hits, ttl_ms = await pipe.execute()

        if hits is None or ttl_ms is None or ttl_ms < 0:
            return None
        return WindowCounter(hits=int(hits), window_end=now + ttl_ms / 1000.0)

    async def close(self):
        await self.redis.aclose()


# -------------------------
# LIMITER
# -------------------------
class FixedWindowRateLimiter:
    def __init__(
        self,
        limit: int,
        store: Optional[CounterStore] = None,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.limit = limit
        self.store = store if store is not None else InMemoryCounterStore(sweep_interval=window_seconds)
        self.window_seconds = window_seconds
        self._clock = clock

    async def consume(self, key: str) -> RateLimitResult:
        now = self._clock()
        counter = await self.store.increment(key, now, self.window_seconds)

        allowed = counter.hits <= self.limit
        retry_after = 0
        if not allowed:
            retry_after = max(math.ceil(counter.window_end - now), 1)

        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(self.limit - counter.hits, 0),
            retry_after_seconds=retry_after,
            reset_at=counter.window_end,
        )

    async def peek(self, key: str) -> RateLimitResult:
        """Report the state `key` is in without spending any budget."""
        now = self._clock()
        counter = await self.store.get(key, now)
        if counter is None:
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=self.limit,
                retry_after_seconds=0,
                reset_at=now + self.window_seconds,
            )

        allowed = counter.hits < self.limit
        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(self.limit - counter.hits, 0),
            retry_after_seconds=0 if allowed else max(math.ceil(counter.window_end - now), 1),
            reset_at=counter.window_end,
        )

    async def close(self):
        await self.store.close()


def build_rate_limiter(settings: Settings) -> FixedWindowRateLimiter:
    if settings.RATE_LIMIT_BACKEND == "redis":
        store = RedisCounterStore.from_url(settings.REDIS_URL)
        logger.info("Rate limiter using Redis counters")
    else:
        store = InMemoryCounterStore()
        logger.info("Rate limiter using in-memory counters")
    return FixedWindowRateLimiter(settings.RATE_LIMIT_REQUESTS_PER_MINUTE, store=store)
