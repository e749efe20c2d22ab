"""
Breaker alert notifications.

When the monthly circuit breaker trips, one HTTP POST is sent to the configured
webhook. The payload carries the same text under ``text`` (Slack) and
``content`` (Discord) so either kind of webhook renders it. Delivery is best
effort: no configuration means no-op, and failures are logged, not retried.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from .audit_logger import AuditLogger
from .config import AlertConfig
from .enums import LogLevel


@dataclass(frozen=True)
class BreakerAlert:
    """A breaker trip: the month, the post-increment count and the ceiling."""

    period_key: str
    count: int
    limit: int

    def message(self) -> str:
        return (
            f"Domain availability circuit breaker tripped for {self.period_key}. "
            f"{self.count}/{self.limit} requests used. "
            "Premium search is now disabled until next month."
        )

    def to_payload(self) -> dict:
        text = self.message()
        return {"text": text, "content": text}


class BreakerAlerter:
    """Posts breaker alerts to a webhook."""

    def __init__(
        self,
        config: Optional[AlertConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the alerter.

        Args:
            config: Webhook URL and request timeout
            client: Optional HTTP client (tests pass one on httpx.MockTransport)
            logger: Optional audit logger
        """
        self._config = config or AlertConfig()
        self._client = client
        self._logger = logger

    @property
    def enabled(self) -> bool:
        return bool(self._config.webhook_url)

    async def send(self, alert: BreakerAlert) -> bool:
        """
        Deliver one alert.

        Returns:
            True if the webhook answered 2xx, False if unconfigured or failed
        """
        if not self.enabled:
            return False

        try:
            if self._client is not None:
                response = await self._post(self._client, alert)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, alert)
        except Exception as e:
            self._log(
                LogLevel.WARN,
                "Breaker alert delivery failed",
                {"error_type": type(e).__name__, "period": alert.period_key},
            )
            return False

        delivered = 200 <= response.status_code < 300
        self._log(
            LogLevel.INFO if delivered else LogLevel.WARN,
            "Breaker alert sent" if delivered else "Breaker alert rejected",
            {"period": alert.period_key, "status_code": response.status_code},
        )
        return delivered

    async def _post(self, client: httpx.AsyncClient, alert: BreakerAlert) -> httpx.Response:
        return await client.post(
            self._config.webhook_url,
            json=alert.to_payload(),
            headers={"Content-Type": "application/json"},
            timeout=self._config.timeout_seconds,
        )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "BreakerAlerter", message, data)
