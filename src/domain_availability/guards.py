"""
Admission guards in front of the metered upstream.

Three guards run in a fixed order: burst limiter, then circuit breaker, then
quota. Each reads its counter from the shared counter store and fails open:
when no store is configured, the store is unreachable, or a stored value is
unreadable, the guard lets the request through.

Counters are read-then-write, not atomic. Under concurrent load the breaker
and quota can overshoot their ceilings slightly, and the trip alert can fire
more than once or not at exactly the boundary.
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .config import GuardConfig
from .counter_store import (
    BURST_TTL_SECONDS,
    MONTHLY_TTL_SECONDS,
    CounterKeys,
    CounterRead,
    SharedCounterStore,
)
from .enums import LogLevel, StoreOutcome
from .exceptions import CircuitOpenError, QuotaExceededError, RateLimitedError
from .models import CircuitState, QuotaRecord, RateWindow
from .notifications import BreakerAlert, BreakerAlerter

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def month_key(now: datetime) -> str:
    """Calendar month in UTC as 'YYYY-MM'."""
    return now.astimezone(timezone.utc).strftime("%Y-%m")


def minute_window(now: datetime) -> int:
    """Index of the one-minute bucket since the epoch."""
    return int(now.timestamp() // 60)


def _json_count(read: CounterRead, field_name: str) -> Optional[int]:
    """
    Extract a counter from a JSON record.

    Returns 0 for a missing key and None when the store is unreachable or the
    value is unreadable, which callers treat as "fail open".
    """
    if read.outcome is StoreOutcome.MISSING:
        return 0
    if read.outcome is not StoreOutcome.OK:
        return None
    try:
        data = json.loads(read.value)
        return int(data.get(field_name) or 0)
    except (TypeError, ValueError, AttributeError):
        return None


class BurstLimiter:
    """Per-client requests per one-minute window."""

    def __init__(
        self,
        store: Optional[SharedCounterStore],
        limit: int = 10,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._limit = limit
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    async def is_limited(self, client_key: str, limit: Optional[int] = None) -> bool:
        """
        Count one request against the current window.

        The counter only increments when the request is allowed.

        Args:
            client_key: Client identity
            limit: Override of the configured ceiling for this call

        Returns:
            True if the client has reached the ceiling
        """
        if self._store is None:
            return False

        ceiling = self._limit if limit is None else limit
        window = RateWindow(client_key=client_key, window_key=minute_window(self._clock()))
        key = CounterKeys.burst(window.client_key, window.window_key)

        read = await self._store.read(key)
        if read.outcome is StoreOutcome.UNREACHABLE:
            return False
        try:
            count = int(read.value) if read.outcome is StoreOutcome.OK else 0
        except ValueError:
            return False

        if count >= ceiling:
            return True

        await self._store.write(key, str(count + 1), BURST_TTL_SECONDS)
        return False


class CircuitBreaker:
    """Global monthly request ceiling with a one-shot trip alert."""

    def __init__(
        self,
        store: Optional[SharedCounterStore],
        limit: int = 8000,
        alerter: Optional[BreakerAlerter] = None,
        clock: Clock = utc_now,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._store = store
        self._limit = limit
        self._alerter = alerter
        self._clock = clock
        self._logger = logger

    @property
    def limit(self) -> int:
        return self._limit

    async def state(self) -> Optional[CircuitState]:
        """Current month's record, or None when it cannot be read."""
        if self._store is None:
            return None
        period = month_key(self._clock())
        count = _json_count(
            await self._store.read(CounterKeys.circuit(period)), "requestCount"
        )
        if count is None:
            return None
        return CircuitState(period_key=period, request_count=count)

    async def is_open(self) -> bool:
        state = await self.state()
        return state is not None and state.request_count >= self._limit

    async def record_attempt(self) -> Optional[CircuitState]:
        """
        Count one metered upstream attempt.

        Fires the alert when this increment moves the count from below the
        ceiling to at or above it.

        Returns:
            The post-increment state, or None if nothing was written
        """
        previous = await self.state()
        if previous is None:
            return None

        current = CircuitState(
            period_key=previous.period_key,
            request_count=previous.request_count + 1,
        )
        outcome = await self._store.write(
            CounterKeys.circuit(current.period_key),
            json.dumps({"requestCount": current.request_count}),
            MONTHLY_TTL_SECONDS,
        )
        if outcome is not StoreOutcome.OK:
            return None

        if previous.request_count < self._limit <= current.request_count:
            self._log(
                LogLevel.WARN,
                "Circuit breaker tripped",
                {"period": current.period_key, "count": current.request_count, "limit": self._limit},
            )
            if self._alerter is not None:
                await self._alerter.send(
                    BreakerAlert(
                        period_key=current.period_key,
                        count=current.request_count,
                        limit=self._limit,
                    )
                )
        return current

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "CircuitBreaker", message, data)


class QuotaTracker:
    """Per-client monthly allotment of successful metered calls."""

    def __init__(
        self,
        store: Optional[SharedCounterStore],
        free_checks: int = 5,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._free_checks = free_checks
        self._clock = clock

    @property
    def free_checks(self) -> int:
        return self._free_checks

    async def check(self, client_key: str) -> QuotaRecord:
        """Read the client's record; unreadable records count as unused."""
        period = month_key(self._clock())
        record = QuotaRecord(client_key=client_key, period_key=period)
        if self._store is None:
            return record

        used = _json_count(
            await self._store.read(CounterKeys.quota(client_key, period)), "checksUsed"
        )
        if used is None:
            return record
        return QuotaRecord(client_key=client_key, period_key=period, checks_used=used)

    def allows(self, record: QuotaRecord) -> bool:
        return record.checks_used < self._free_checks

    def remaining_after_success(self, record: QuotaRecord) -> int:
        return max(0, self._free_checks - (record.checks_used + 1))

    async def record_success(self, record: QuotaRecord) -> StoreOutcome:
        """Write the incremented count read at admission time."""
        if self._store is None:
            return StoreOutcome.UNREACHABLE
        return await self._store.write(
            CounterKeys.quota(record.client_key, record.period_key),
            json.dumps({"checksUsed": record.checks_used + 1}),
            MONTHLY_TTL_SECONDS,
        )


@dataclass(frozen=True)
class Admission:
    """A request that passed every guard."""

    client_key: str
    quota: QuotaRecord


class AdmissionGuardChain:
    """
    Burst limiter -> circuit breaker -> quota.

    ``admit`` raises the first guard's rejection; ``record_outcome`` runs the
    post-call counter increments concurrently and waits for both.
    """

    def __init__(
        self,
        burst: BurstLimiter,
        breaker: CircuitBreaker,
        quota: QuotaTracker,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self.burst = burst
        self.breaker = breaker
        self.quota = quota
        self._logger = logger

    @classmethod
    def from_config(
        cls,
        config: GuardConfig,
        store: Optional[SharedCounterStore],
        alerter: Optional[BreakerAlerter] = None,
        clock: Clock = utc_now,
        logger: Optional[AuditLogger] = None,
    ) -> "AdmissionGuardChain":
        return cls(
            burst=BurstLimiter(store, config.burst_limit_per_minute, clock),
            breaker=CircuitBreaker(store, config.monthly_quota_limit, alerter, clock, logger),
            quota=QuotaTracker(store, config.free_checks_per_client, clock),
            logger=logger,
        )

    async def admit(self, client_key: str) -> Admission:
        """
        Run the guards in order.

        Raises:
            RateLimitedError: burst ceiling reached
            CircuitOpenError: monthly ceiling reached
            QuotaExceededError: client's free allotment used up
        """
        if await self.burst.is_limited(client_key):
            self._log("Rejected by burst limiter", "rate_limited")
            raise RateLimitedError()

        if await self.breaker.is_open():
            self._log("Rejected by circuit breaker", "service_unavailable")
            raise CircuitOpenError()

        record = await self.quota.check(client_key)
        if not self.quota.allows(record):
            self._log("Rejected by quota", "quota_exceeded")
            raise QuotaExceededError()

        return Admission(client_key=client_key, quota=record)

    async def record_outcome(self, admission: Admission, success: bool) -> None:
        """
        Account for one upstream attempt.

        The breaker counts every attempt; quota is consumed only on success.
        """
        if success:
            await asyncio.gather(
                self.quota.record_success(admission.quota),
                self.breaker.record_attempt(),
            )
        else:
            await self.breaker.record_attempt()

    def remaining_checks(self, admission: Admission) -> int:
        return self.quota.remaining_after_success(admission.quota)

    def _log(self, message: str, code: str) -> None:
        if self._logger:
            self._logger.log(LogLevel.INFO, "AdmissionGuardChain", message, {"code": code})
