"""
Retry Manager for the domain availability engine.

This module provides a small, parameterized fixed-delay retry policy. The
policy decides *whether* an outcome is transient; the manager runs an
operation under the policy and returns the last outcome together with the
number of attempts made.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy(Generic[T]):
    """
    Fixed-delay retry policy.

    Attributes:
        max_attempts: Total attempts including the first one
        delay_seconds: Fixed wait between attempts
        is_transient: Predicate on an outcome; True means "try again"
    """

    max_attempts: int
    delay_seconds: float
    is_transient: Callable[[T], bool]

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")


@dataclass
class RetryResult(Generic[T]):
    """Result of a retry operation."""

    outcome: T
    attempts: int


class RetryManager:
    """Runs async operations under a RetryPolicy."""

    def __init__(self, sleep: Optional[Sleep] = None) -> None:
        """
        Initialize the retry manager.

        Args:
            sleep: Awaitable used for the inter-attempt delay (asyncio.sleep
                   by default; tests pass a recorder)
        """
        self._sleep = sleep or asyncio.sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy[T],
    ) -> RetryResult[T]:
        """
        Execute an operation, retrying while its outcome is transient.

        The operation must report failures through its return value; exceptions
        propagate unchanged. The next attempt starts only after the previous
        outcome was classified and the fixed delay has elapsed.

        Args:
            operation: The async operation to execute
            policy: Attempt budget, delay and transient classifier

        Returns:
            RetryResult with the final outcome and number of attempts
        """
        attempts = 0
        while True:
            outcome = await operation()
            attempts += 1

            if attempts >= policy.max_attempts or not policy.is_transient(outcome):
                return RetryResult(outcome=outcome, attempts=attempts)

            await self._sleep(policy.delay_seconds)
