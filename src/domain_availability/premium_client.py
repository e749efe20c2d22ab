"""
Premium upstream client.

The metered upstream is a domain research API answering
``GET /v2/status?domain=<domain>`` with ``{"status": [{domain, status,
summary?}, ...]}``. Each status is a space-separated token string such as
"undelegated inactive" or "active marketed"; tokens are mapped to the engine's
status vocabulary in priority order.
"""

from typing import Any, Optional

import httpx

from .audit_logger import AuditLogger
from .config import PremiumConfig
from .enums import AvailabilityStatus, LogLevel
from .exceptions import UpstreamError

STATUS_PATH = "/v2/status"


def map_status_tokens(status_string: Any) -> AvailabilityStatus:
    """
    Map an upstream status string to an AvailabilityStatus.

    Priority: marketed/forsale/"for sale" -> FOR_SALE, priced -> PREMIUM,
    parked -> PARKED, active -> TAKEN, inactive -> AVAILABLE, else UNKNOWN.
    """
    if not status_string or not isinstance(status_string, str):
        return AvailabilityStatus.UNKNOWN

    lowered = status_string.lower()
    tokens = lowered.split()

    if "marketed" in tokens or "forsale" in tokens or "for sale" in lowered:
        return AvailabilityStatus.FOR_SALE
    if "priced" in tokens:
        return AvailabilityStatus.PREMIUM
    if "parked" in tokens:
        return AvailabilityStatus.PARKED
    if "active" in tokens:
        return AvailabilityStatus.TAKEN
    if "inactive" in tokens:
        return AvailabilityStatus.AVAILABLE
    return AvailabilityStatus.UNKNOWN


def parse_premium_response(data: Any, requested_domain: str) -> AvailabilityStatus:
    """
    Pick the entry for the requested domain and map its status.

    The entry whose domain matches case-insensitively wins; otherwise the
    first entry is used. A missing or empty status list is UNKNOWN.
    """
    if not isinstance(data, dict):
        return AvailabilityStatus.UNKNOWN
    entries = data.get("status")
    if not isinstance(entries, list) or not entries:
        return AvailabilityStatus.UNKNOWN

    wanted = requested_domain.lower()
    entry = next(
        (
            e for e in entries
            if isinstance(e, dict)
            and isinstance(e.get("domain"), str)
            and e["domain"].lower() == wanted
        ),
        entries[0],
    )
    if not isinstance(entry, dict):
        return AvailabilityStatus.UNKNOWN

    return map_status_tokens(entry.get("status") or entry.get("summary") or "")


class PremiumClient:
    """Async client for the metered upstream."""

    def __init__(
        self,
        config: Optional[PremiumConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or PremiumConfig()
        self._client = client
        self._owns_client = client is None
        self._logger = logger

    async def __aenter__(self) -> "PremiumClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def configured(self) -> bool:
        return bool(self._config.api_token)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
            )
        return self._client

    async def lookup(self, domain: str) -> AvailabilityStatus:
        """
        Query the upstream for one domain.

        Args:
            domain: Validated domain

        Returns:
            Mapped AvailabilityStatus

        Raises:
            UpstreamError: on network failure, non-2xx answer or unparsable
                body; a 429 answer carries code 'quota_exceeded'
        """
        url = self._config.base_url.rstrip("/") + STATUS_PATH
        try:
            response = await self._get_client().get(
                url,
                params={"domain": domain},
                headers={"Fastly-Key": self._config.api_token or ""},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self._log(LogLevel.WARN, "Premium upstream unreachable", {"error_type": type(e).__name__})
            raise UpstreamError("network failure") from e

        if response.status_code == 429:
            self._log(LogLevel.WARN, "Premium upstream rate limited", {"status_code": 429})
            raise UpstreamError("upstream rate limited", code="quota_exceeded", http_status=429)

        if not response.is_success:
            self._log(
                LogLevel.WARN,
                "Premium upstream error",
                {"status_code": response.status_code},
            )
            raise UpstreamError(f"upstream answered {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("unparsable upstream body") from e

        status = parse_premium_response(data, domain)
        self._log(LogLevel.DEBUG, "Premium lookup finished", {"status": status.value})
        return status

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "PremiumClient", message, data)
