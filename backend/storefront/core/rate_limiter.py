"""Per-client-address rate limiting for the login endpoints.

The limiter counts requests per address inside a fixed window that opens
on the first request. Once an address holds ``max_requests`` hits, further
requests are refused with 429 until the window closes; a successful login
clears the address early.

Counters live behind the :class:`CounterStore` interface so a single
process can use :class:`MemoryCounterStore` while a multi-instance
deployment points ``RATE_LIMIT_REDIS_URL`` at a shared Redis.
"""

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as redis

from storefront.config.config import settings
from storefront.core.errors import TooManyRequests
from storefront.core.logging import logger


@dataclass
class CounterEntry:
    """Hits recorded for one key and the epoch second its window closes."""

    count: int
    reset_at: float


class CounterStore(Protocol):
    async def get(self, key: str) -> CounterEntry | None: ...

    async def increment(self, key: str, window_seconds: int) -> CounterEntry: ...

    async def expire(self, key: str) -> None: ...

    async def close(self) -> None: ...


class MemoryCounterStore:
    """In-process counters; not shared between server instances."""

    def __init__(self, clock=time.time):
        self._entries: dict[str, CounterEntry] = {}
        self._clock = clock

    def _live(self, key: str) -> CounterEntry | None:
        entry = self._entries.get(key)
        if entry is not None and entry.reset_at <= self._clock():
            # Window is over: drop it lazily on observation
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> CounterEntry | None:
        return self._live(key)

    async def increment(self, key: str, window_seconds: int) -> CounterEntry:
        entry = self._live(key)
        if entry is None:
            entry = CounterEntry(count=0, reset_at=self._clock() + window_seconds)
            self._entries[key] = entry
        entry.count += 1
        return entry

    async def expire(self, key: str) -> None:
        self._entries.pop(key, None)

    def sweep(self) -> int:
        """Drop every closed window; returns the number of entries removed."""
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.reset_at <= now]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

    async def close(self) -> None:
        self._entries.clear()


async def run_sweep_loop(store: MemoryCounterStore, interval_seconds: int):
    """Drop closed windows from ``store`` forever, every ``interval_seconds``."""
    while True:
        removed = store.sweep()
        if removed:
            logger.debug("Swept {} closed rate limit windows", removed)
        await asyncio.sleep(interval_seconds)


class RedisCounterStore:
    """Counters shared through Redis; the key TTL is the window."""

    def __init__(self, client: redis.Redis, prefix: str = "ratelimit:login:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisCounterStore":
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True))

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def _entry(self, name: str, count: int) -> CounterEntry:
        ttl_ms = await self.client.pttl(name)
        return CounterEntry(count=count, reset_at=time.time() + max(ttl_ms, 0) / 1000)

    async def get(self, key: str) -> CounterEntry | None:
        name = self._key(key)
        raw = await self.client.get(name)
        if raw is None:
            return None
        return await self._entry(name, int(raw))

    async def increment(self, key: str, window_seconds: int) -> CounterEntry:
        name = self._key(key)
        pipe = self.client.pipeline()
        pipe.incr(name)
        # NX: only the first hit of a window sets the expiry
        pipe.expire(name, window_seconds, nx=True)
        count, _ = await pipe.execute()
        return await self._entry(name, int(count))

    async def expire(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def close(self) -> None:
        await self.client.aclose()


class RateLimiter:
    """Fixed-window request limiter keyed by client address.

    Args:
        store: Backing counter store.
        max_requests: Requests allowed per window.
        window_seconds: Window length.
        clock: Epoch-seconds source, shared with the store in tests.
    """

    def __init__(
        self,
        store: CounterStore,
        max_requests: int,
        window_seconds: int,
        clock=time.time,
    ):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock

    async def hit(self, address: str) -> CounterEntry:
        """Count a request from ``address``.

        Raises:
            TooManyRequests: When the address has used up its window; the
                counter is not incremented further.
        """
        entry = await self.store.get(address)
        if entry is not None and entry.count >= self.max_requests:
            minutes = max(1, math.ceil((entry.reset_at - self._clock()) / 60))
            logger.warning(
                "Rate limit exceeded for address={} ({} hits)", address, entry.count
            )
            raise TooManyRequests(
                f"Too many login attempts. Please try again in {minutes} minutes"
            )
        return await self.store.increment(address, self.window_seconds)

    async def clear(self, address: str) -> None:
        await self.store.expire(address)
        logger.debug("Cleared rate limit for address={}", address)


def build_rate_limiter() -> RateLimiter:
    """Create the login limiter from settings."""
    if settings.RATE_LIMIT_REDIS_URL:
        store = RedisCounterStore.from_url(settings.RATE_LIMIT_REDIS_URL)
        logger.info("Login rate limiter uses Redis counters")
    else:
        store = MemoryCounterStore()
    return RateLimiter(
        store,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_MINUTES * 60,
    )
