"""
Request handlers for the domain availability endpoints.

The handlers are transport-agnostic: ``dispatch`` takes a method, a path, the
request headers and the raw body, and returns an ApiResponse that any HTTP
server can write out. Routes:

- POST /v1/check          batch availability (RDAP/WHOIS, up to 20 domains)
- POST /v1/premium-check  single domain through the guard chain and the
                          metered upstream
- POST /v1/whois-check    single WHOIS lookup for WHOIS-served TLDs
- GET  /v1/version        service version, never cached

Handlers signal failures by raising DomainAvailabilityError subclasses; the
dispatcher renders them as ``{"error": code, "message"?: text}`` and turns
anything else into a bare 500 ``internal_error``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from . import __version__
from .audit_logger import AuditLogger
from .config import SystemConfig
from .counter_store import RedisCounterStore, SharedCounterStore
from .domain_validator import DomainValidator
from .exceptions import (
    DomainAvailabilityError,
    PayloadTooLargeError,
    RateLimitedError,
    UpstreamError,
    ValidationError,
)
from .enums import LogLevel
from .guards import AdmissionGuardChain
from .notifications import BreakerAlerter
from .orchestrator import BatchOrchestrator
from .premium_client import PremiumClient
from .registry_router import DEFAULT_REGISTRY, RegistryTable, extract_tld
from .whois_client import WhoisResolver

BATCH_MAX_BODY_BYTES = 8192
SINGLE_MAX_BODY_BYTES = 4096
UNKNOWN_CLIENT = "unknown"
VERSION_BURST_LIMIT = 30

RESPONSE_HEADERS = {"Content-Type": "application/json"}


@dataclass
class ApiResponse:
    """Status, JSON body and headers of a handled request."""

    status: int
    body: Optional[dict] = None
    headers: dict = field(default_factory=lambda: dict(RESPONSE_HEADERS))

    def body_bytes(self) -> bytes:
        if self.body is None:
            return b""
        return json.dumps(self.body).encode("utf-8")

    @classmethod
    def error(cls, status: int, code: str, message: Optional[str] = None) -> "ApiResponse":
        body: dict[str, Any] = {"error": code}
        if message:
            body["message"] = message
        return cls(status=status, body=body)

    @classmethod
    def from_exception(cls, exc: DomainAvailabilityError) -> "ApiResponse":
        if exc.code == "quota_exceeded":
            return cls(status=exc.http_status, body={"error": exc.code, "remainingChecks": 0})
        return cls.error(exc.http_status, exc.code, exc.message)


Handler = Callable[[httpx.Headers, bytes], Awaitable[ApiResponse]]


def _content_length(headers: httpx.Headers, body: bytes) -> int:
    try:
        return int(headers.get("Content-Length", ""))
    except ValueError:
        return len(body)


def _require_json(headers: httpx.Headers) -> None:
    if "application/json" not in headers.get("Content-Type", ""):
        raise ValidationError("Content-Type must be application/json")


def _limit_size(headers: httpx.Headers, body: bytes, max_bytes: int) -> None:
    if _content_length(headers, body) > max_bytes:
        raise PayloadTooLargeError()


def _parse_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise ValidationError("Request body is not valid JSON") from e


def _require_domain(payload: Any) -> str:
    domain = payload.get("domain") if isinstance(payload, dict) else None
    if not domain:
        raise ValidationError("Missing required field: domain")
    if not isinstance(domain, str):
        raise ValidationError('Field "domain" must be a string')
    return domain


class RequestHandlers:
    """Endpoint handlers bound to their collaborators."""

    def __init__(
        self,
        config: SystemConfig,
        orchestrator: BatchOrchestrator,
        guards: AdmissionGuardChain,
        premium: PremiumClient,
        whois: WhoisResolver,
        registry: RegistryTable = DEFAULT_REGISTRY,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config
        self._orchestrator = orchestrator
        self._guards = guards
        self._premium = premium
        self._whois = whois
        self._registry = registry
        self._logger = logger
        self._validator = DomainValidator()
        self._routes: dict[tuple[str, str], Handler] = {
            ("POST", "/v1/check"): self.handle_check,
            ("POST", "/v1/premium-check"): self.handle_premium_check,
            ("POST", "/v1/whois-check"): self.handle_whois_check,
            ("GET", "/v1/version"): self.handle_version,
        }

    @property
    def routes(self) -> list[tuple[str, str]]:
        return list(self._routes)

    def client_key(self, headers: httpx.Headers) -> str:
        return headers.get(self._config.guards.client_ip_header) or UNKNOWN_CLIENT

    async def dispatch(
        self,
        method: str,
        path: str,
        headers: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
    ) -> ApiResponse:
        """
        Route a request and render its response.

        Args:
            method: HTTP method
            path: Request path, query string allowed
            headers: Request headers (any case)
            body: Raw request body

        Returns:
            ApiResponse; never raises
        """
        method = method.upper()
        if method == "OPTIONS":
            return ApiResponse(status=204, body=None, headers={})

        handler = self._routes.get((method, path.split("?", 1)[0]))
        if handler is None:
            return ApiResponse.error(404, "not_found", "Endpoint not found")

        try:
            return await handler(httpx.Headers(headers or {}), body)
        except DomainAvailabilityError as e:
            self._log(LogLevel.DEBUG, "Request rejected", {"code": e.code, "status": e.http_status})
            return ApiResponse.from_exception(e)
        except Exception as e:
            if self._logger:
                self._logger.log_error("RequestHandlers", "Unhandled request error", e)
            return ApiResponse.error(500, "internal_error")

    async def handle_check(self, headers: httpx.Headers, body: bytes) -> ApiResponse:
        """POST /v1/check"""
        if await self._guards.burst.is_limited(self.client_key(headers)):
            raise RateLimitedError()

        _require_json(headers)
        _limit_size(headers, body, BATCH_MAX_BODY_BYTES)
        payload = _parse_json(body)

        if not isinstance(payload, dict) or "domains" not in payload:
            raise ValidationError("Missing required field: domains")

        batch = await self._orchestrator.resolve_batch(payload["domains"])
        return ApiResponse(status=200, body=batch.to_dict())

    async def handle_premium_check(self, headers: httpx.Headers, body: bytes) -> ApiResponse:
        """POST /v1/premium-check"""
        admission = await self._guards.admit(self.client_key(headers))

        _limit_size(headers, body, SINGLE_MAX_BODY_BYTES)
        _require_json(headers)
        domain = _require_domain(_parse_json(body))
        if not self._validator.validate(domain):
            raise ValidationError("Invalid domain format")

        if not self._premium.configured:
            raise UpstreamError("premium API token not configured")

        try:
            status = await self._premium.lookup(domain.lower())
        except UpstreamError:
            await self._guards.record_outcome(admission, success=False)
            raise

        await self._guards.record_outcome(admission, success=True)
        return ApiResponse(
            status=200,
            body={
                "status": status.value,
                "remainingChecks": self._guards.remaining_checks(admission),
            },
        )

    async def handle_whois_check(self, headers: httpx.Headers, body: bytes) -> ApiResponse:
        """POST /v1/whois-check"""
        if await self._guards.burst.is_limited(self.client_key(headers)):
            raise RateLimitedError()

        _limit_size(headers, body, SINGLE_MAX_BODY_BYTES)
        _require_json(headers)
        domain = _require_domain(_parse_json(body))
        if not self._validator.validate(domain):
            raise ValidationError("Invalid domain format")

        domain = domain.lower()
        tld = extract_tld(domain)
        if self._registry.whois_server(tld) is None:
            raise ValidationError(
                f"TLD .{tld} is not supported by WHOIS check. Use RDAP instead.",
                code="unsupported_tld",
            )

        result = await self._whois.resolve(domain, tld)
        return ApiResponse(status=200, body=result.to_dict())

    async def handle_version(self, headers: httpx.Headers, body: bytes) -> ApiResponse:
        """GET /v1/version, with a looser burst ceiling than the check endpoints."""
        if await self._guards.burst.is_limited(self.client_key(headers), limit=VERSION_BURST_LIMIT):
            raise RateLimitedError()

        return ApiResponse(
            status=200,
            body={"version": __version__},
            headers={**RESPONSE_HEADERS, "Cache-Control": "no-store"},
        )

    async def close(self) -> None:
        await self._orchestrator.close()
        await self._premium.close()

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "RequestHandlers", message, data)


def build_counter_store(config: SystemConfig) -> Optional[SharedCounterStore]:
    """Redis store when REDIS_URL is configured; otherwise none (guards fail open)."""
    if config.counter_store.redis_url:
        return RedisCounterStore(config.counter_store.redis_url)
    return None


def build_handlers(
    config: SystemConfig,
    store: Optional[SharedCounterStore] = None,
    logger: Optional[AuditLogger] = None,
    registry: RegistryTable = DEFAULT_REGISTRY,
) -> RequestHandlers:
    """Wire the handlers and their collaborators from configuration."""
    whois = WhoisResolver(config=config.resolver, registry=registry, logger=logger)
    return RequestHandlers(
        config=config,
        orchestrator=BatchOrchestrator(
            config=config.resolver, registry=registry, whois_resolver=whois, logger=logger
        ),
        guards=AdmissionGuardChain.from_config(
            config.guards,
            store,
            alerter=BreakerAlerter(config.alert, logger=logger),
            logger=logger,
        ),
        premium=PremiumClient(config.premium, logger=logger),
        whois=whois,
        registry=registry,
        logger=logger,
    )
