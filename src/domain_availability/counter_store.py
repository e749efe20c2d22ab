"""
Shared counter store for the admission guards.

The guards keep their counters in a remote key/value store with per-key
expiry. Store failures never raise: every operation returns a typed outcome,
and UNREACHABLE is a first-class variant the guards must handle.

Two adapters are provided:
- InMemoryCounterStore: TTL-aware dict, for tests and single-process use
- RedisCounterStore: redis.asyncio, values written with SET ... EX ttl
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .enums import StoreOutcome

MONTHLY_TTL_SECONDS = 5_184_000  # 60 days
BURST_TTL_SECONDS = 120


@dataclass(frozen=True)
class CounterRead:
    """Outcome of a read; value is set only when outcome is OK."""

    outcome: StoreOutcome
    value: Optional[str] = None


class SharedCounterStore(Protocol):
    """Remote key/value storage with per-key expiry."""

    async def read(self, key: str) -> CounterRead:
        ...

    async def write(self, key: str, value: str, ttl_seconds: int) -> StoreOutcome:
        ...


class CounterKeys:
    """Key builders for the counter store records."""

    @classmethod
    def quota(cls, client_key: str, period_key: str) -> str:
        """Per-client monthly quota."""
        return f"ip:{client_key}:{period_key}"

    @classmethod
    def circuit(cls, period_key: str) -> str:
        """Global monthly request count."""
        return f"circuit:monthly:{period_key}"

    @classmethod
    def burst(cls, client_key: str, window_key: int) -> str:
        """Per-client per-minute burst count."""
        return f"ratelimit:{client_key}:{window_key}"


class InMemoryCounterStore:
    """
    Dict-backed counter store with expiry.

    Setting ``reachable`` to False makes every operation report UNREACHABLE,
    which is how tests exercise the guards' fail-open paths.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}
        self.reachable = True

    async def read(self, key: str) -> CounterRead:
        if not self.reachable:
            return CounterRead(outcome=StoreOutcome.UNREACHABLE)
        value = self.peek(key)
        if value is None:
            return CounterRead(outcome=StoreOutcome.MISSING)
        return CounterRead(outcome=StoreOutcome.OK, value=value)

    async def write(self, key: str, value: str, ttl_seconds: int) -> StoreOutcome:
        if not self.reachable:
            return StoreOutcome.UNREACHABLE
        self._data[key] = (value, self._clock() + ttl_seconds)
        return StoreOutcome.OK

    def peek(self, key: str) -> Optional[str]:
        """Return a live value without going through the outcome wrapper."""
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def __len__(self) -> int:
        return sum(1 for key in list(self._data) if self.peek(key) is not None)


class RedisCounterStore:
    """Counter store on redis.asyncio; Redis, socket and URL errors are UNREACHABLE."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[aioredis.Redis] = None,
    ) -> None:
        if redis_url is None and client is None:
            raise ValueError("RedisCounterStore needs a redis_url or a client")
        self._redis_url = redis_url
        self._pool: Optional[aioredis.ConnectionPool] = None
        self._redis = client

    async def connect(self) -> None:
        """Create the connection pool if no client was injected."""
        if self._redis is None:
            self._pool = aioredis.ConnectionPool.from_url(
                self._redis_url,
                max_connections=20,
                decode_responses=True,
            )
            self._redis = aioredis.Redis(connection_pool=self._pool)

    async def close(self) -> None:
        if self._pool is not None:
            if self._redis is not None:
                await self._redis.aclose()
            await self._pool.disconnect()
            self._redis = None
            self._pool = None

    async def read(self, key: str) -> CounterRead:
        try:
            await self.connect()
            value = await self._redis.get(key)
        except (RedisError, OSError, ValueError):
            return CounterRead(outcome=StoreOutcome.UNREACHABLE)
        if value is None:
            return CounterRead(outcome=StoreOutcome.MISSING)
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return CounterRead(outcome=StoreOutcome.OK, value=value)

    async def write(self, key: str, value: str, ttl_seconds: int) -> StoreOutcome:
        try:
            await self.connect()
            await self._redis.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError, ValueError):
            return StoreOutcome.UNREACHABLE
        return StoreOutcome.OK

    async def __aenter__(self) -> "RedisCounterStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
