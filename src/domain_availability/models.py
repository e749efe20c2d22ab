"""
Data models for the domain availability engine.

This module defines the per-domain result, the aggregated batch result and the
logical counter records the admission guards read from the shared store.
"""

from dataclasses import dataclass, field
from typing import Optional

from .enums import AvailabilityStatus, UnknownReason

BATCH_RESPONSE_VERSION = "1"


@dataclass(frozen=True)
class AvailabilityResult:
    """Resolution outcome for a single domain."""

    status: AvailabilityStatus
    reason: Optional[str] = None  # Only set when status is UNKNOWN

    def __post_init__(self) -> None:
        if self.reason is not None and self.status is not AvailabilityStatus.UNKNOWN:
            raise ValueError("reason is only allowed on unknown results")

    @classmethod
    def unknown(cls, reason: "UnknownReason | str") -> "AvailabilityResult":
        """Build an UNKNOWN result with a machine-readable reason."""
        if isinstance(reason, UnknownReason):
            reason = reason.value
        return cls(status=AvailabilityStatus.UNKNOWN, reason=reason)

    @property
    def is_definitive(self) -> bool:
        return self.status is not AvailabilityStatus.UNKNOWN

    def to_dict(self) -> dict:
        data = {"status": self.status.value}
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass
class BatchResult:
    """Aggregated result of a batch resolution."""

    results: dict[str, AvailabilityResult] = field(default_factory=dict)
    checked: int = 0
    failed_tasks: int = 0  # Tasks that raised instead of returning a result
    duration_ms: int = 0

    @property
    def completed(self) -> int:
        """Count of entries whose status is not unknown."""
        return sum(1 for r in self.results.values() if r.is_definitive)

    @property
    def incomplete(self) -> int:
        """Count of unknown entries plus tasks that failed outright."""
        unknown = sum(1 for r in self.results.values() if not r.is_definitive)
        return unknown + self.failed_tasks

    def to_dict(self) -> dict:
        """Serialize to the batch response wire format."""
        return {
            "version": BATCH_RESPONSE_VERSION,
            "results": {domain: r.to_dict() for domain, r in self.results.items()},
            "meta": {
                "checked": self.checked,
                "completed": self.completed,
                "incomplete": self.incomplete,
                "duration_ms": self.duration_ms,
            },
        }


@dataclass(frozen=True)
class QuotaRecord:
    """Checks used by one client in one calendar month."""

    client_key: str
    period_key: str
    checks_used: int = 0


@dataclass(frozen=True)
class CircuitState:
    """Global metered request count for one calendar month."""

    period_key: str
    request_count: int = 0


@dataclass(frozen=True)
class RateWindow:
    """Request count for one client in one minute bucket."""

    client_key: str
    window_key: int
    count: int = 0
