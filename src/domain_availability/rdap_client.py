"""
RDAP Resolver for domain availability checking.

This module performs a single RDAP lookup per domain and classifies the result
purely by HTTP status code: 200 means the domain object exists (taken), 404
means it does not (available). Timeouts, network failures, 429 and 5xx are
transient and retried once after a fixed delay; any other status is reported
as unknown with an ``http_<code>`` reason.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from .audit_logger import AuditLogger
from .config import ResolverConfig
from .enums import AvailabilityStatus, LogLevel, RouteKind, UnknownReason
from .models import AvailabilityResult
from .registry_router import DEFAULT_REGISTRY, RegistryTable
from .retry_manager import RetryManager, RetryPolicy

RDAP_ACCEPT = "application/rdap+json"


@dataclass(frozen=True)
class RdapAttempt:
    """Outcome of one RDAP request; http_status is None when no response arrived."""

    http_status: Optional[int]


def is_transient_attempt(attempt: RdapAttempt) -> bool:
    """
    Classify an attempt as worth retrying.

    Transient: no response (timeout or network error), 429, or any 5xx.
    Definitive: 200, 404, and every other 4xx.
    """
    status = attempt.http_status
    if status is None:
        return True
    return status == 429 or 500 <= status < 600


def classify_attempt(attempt: RdapAttempt) -> AvailabilityResult:
    """Map a final attempt to an AvailabilityResult."""
    if attempt.http_status is None:
        return AvailabilityResult.unknown(UnknownReason.TIMEOUT)
    if attempt.http_status == 200:
        return AvailabilityResult(status=AvailabilityStatus.TAKEN)
    if attempt.http_status == 404:
        return AvailabilityResult(status=AvailabilityStatus.AVAILABLE)
    return AvailabilityResult.unknown(UnknownReason.http(attempt.http_status))


class RdapResolver:
    """
    Async RDAP resolver with bounded retry.

    The HTTP client is created lazily or injected (tests pass a client built on
    httpx.MockTransport). The resolver never raises to its caller.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        registry: RegistryTable = DEFAULT_REGISTRY,
        client: Optional[httpx.AsyncClient] = None,
        retry_manager: Optional[RetryManager] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or ResolverConfig()
        self._registry = registry
        self._client = client
        self._owns_client = client is None
        self._retry_manager = retry_manager or RetryManager()
        self._logger = logger
        self._policy: RetryPolicy[RdapAttempt] = RetryPolicy(
            max_attempts=self._config.rdap_max_attempts,
            delay_seconds=self._config.rdap_retry_delay_seconds,
            is_transient=is_transient_attempt,
        )

    async def __aenter__(self) -> "RdapResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def policy(self) -> RetryPolicy[RdapAttempt]:
        return self._policy

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._config.rdap_timeout_seconds),
                follow_redirects=True,
            )
        return self._client

    async def fetch_status(self, url: str) -> RdapAttempt:
        """
        Issue one RDAP GET and return only its status code.

        Any transport failure, including the per-request timeout, yields an
        attempt without a status.
        """
        try:
            response = await self._get_client().get(
                url,
                headers={"Accept": RDAP_ACCEPT},
                timeout=self._config.rdap_timeout_seconds,
            )
        except httpx.TimeoutException:
            self._log(LogLevel.DEBUG, "RDAP request timed out", {})
            return RdapAttempt(http_status=None)
        except Exception as e:
            self._log(LogLevel.DEBUG, "RDAP request failed", {"error_type": type(e).__name__})
            return RdapAttempt(http_status=None)
        return RdapAttempt(http_status=response.status_code)

    async def resolve(self, domain: str, tld: str) -> AvailabilityResult:
        """
        Resolve availability for a domain on an RDAP-routed TLD.

        Args:
            domain: Validated lowercase domain
            tld: Its top-level label

        Returns:
            TAKEN, AVAILABLE, or UNKNOWN with reason 'timeout' or 'http_<code>'
        """
        route = self._registry.route(tld)
        if route.kind is not RouteKind.RDAP:
            return AvailabilityResult.unknown(UnknownReason.TLD_NOT_SUPPORTED)

        url = route.build_url(domain)
        outcome = await self._retry_manager.execute(
            lambda: self.fetch_status(url), self._policy
        )

        result = classify_attempt(outcome.outcome)
        self._log(
            LogLevel.DEBUG,
            "RDAP lookup finished",
            {
                "tld": route.tld,
                "attempts": outcome.attempts,
                "http_status": outcome.outcome.http_status,
                "status": result.status.value,
            },
        )
        return result

    async def close(self) -> None:
        """Close the HTTP client if this resolver created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "RdapResolver", message, data)
