"""
Exception classes for the domain availability engine.

All exceptions inherit from DomainAvailabilityError and provide structured
error information with codes, messages, optional details and the HTTP status
the request handlers answer with.
"""

from typing import Optional


class DomainAvailabilityError(Exception):
    """Base exception for all domain availability errors."""

    http_status: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainAvailabilityError):
    """Raised when a request or domain fails validation."""

    http_status = 400

    def __init__(
        self,
        message: str,
        code: str = "bad_request",
        details: Optional[dict] = None,
    ) -> None:
        super().__init__(code=code, message=message, details=details)


class PayloadTooLargeError(ValidationError):
    """Raised when a request body exceeds the endpoint's size ceiling."""

    http_status = 413

    def __init__(self, message: str = "Request body too large") -> None:
        super().__init__(message=message, code="payload_too_large")


class GuardRejection(DomainAvailabilityError):
    """Base class for admission guard rejections."""

    pass


class RateLimitedError(GuardRejection):
    """Raised when a client exceeds its per-minute burst allowance."""

    http_status = 429

    def __init__(self) -> None:
        super().__init__(
            code="rate_limited",
            message="Too many requests. Please wait a moment.",
        )


class CircuitOpenError(GuardRejection):
    """Raised when the global monthly circuit breaker is open."""

    http_status = 503

    def __init__(self) -> None:
        super().__init__(code="service_unavailable", message="")


class QuotaExceededError(GuardRejection):
    """Raised when a client has used its free monthly allotment."""

    http_status = 429

    def __init__(self) -> None:
        super().__init__(code="quota_exceeded", message="")


class UpstreamError(DomainAvailabilityError):
    """
    Raised when the metered upstream call fails or is unavailable.

    The cause goes into details["reason"] for logging only; the public
    message stays empty so nothing about the upstream is disclosed.
    """

    http_status = 503

    def __init__(
        self,
        reason: str,
        code: str = "service_unavailable",
        http_status: Optional[int] = None,
    ) -> None:
        super().__init__(code=code, message="", details={"reason": reason})
        if http_status is not None:
            self.http_status = http_status
