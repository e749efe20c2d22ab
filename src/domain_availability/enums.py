"""
Enumeration types for the domain availability engine.

These enums provide type-safe constants for result statuses, failure reasons,
routing decisions and counter store outcomes throughout the system.
"""

from enum import Enum


class AvailabilityStatus(Enum):
    """Domain availability status after resolution."""

    AVAILABLE = "available"
    TAKEN = "taken"
    FOR_SALE = "for_sale"
    PREMIUM = "premium"
    PARKED = "parked"
    UNKNOWN = "unknown"
    SKIP = "skip"


class UnknownReason(Enum):
    """Machine-readable cause attached to an UNKNOWN result."""

    TIMEOUT = "timeout"
    TLD_NOT_SUPPORTED = "tld_not_supported"
    NO_WHOIS_SERVER = "no_whois_server"
    WHOIS_INCONCLUSIVE = "whois_inconclusive"
    WHOIS_ERROR = "whois_error"

    @staticmethod
    def http(status_code: int) -> str:
        """Reason string for a definitive-looking but unmapped HTTP status."""
        return f"http_{status_code}"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DomainValidationErrorCode(Enum):
    """Error codes for domain validation failures."""

    NOT_A_STRING = "not_a_string"
    EMPTY_INPUT = "empty_input"
    TOO_LONG = "too_long"
    TOO_FEW_LABELS = "too_few_labels"
    INVALID_LABEL = "invalid_label"
    NUMERIC_TLD = "numeric_tld"
    IDN_NOT_ENCODED = "idn_not_encoded"


class RouteKind(Enum):
    """Resolution protocol selected for a TLD."""

    RDAP = "rdap"
    WHOIS = "whois"
    SKIP = "skip"
    UNSUPPORTED = "unsupported"


class StoreOutcome(Enum):
    """Outcome of a shared counter store operation."""

    OK = "ok"
    MISSING = "missing"
    UNREACHABLE = "unreachable"


class ReadStop(Enum):
    """Why the WHOIS read loop stopped reading."""

    OVERFLOW = "overflow"
    DEADLINE = "deadline"
    STREAM_CLOSED = "stream_closed"
