"""
Batch Orchestrator for the domain availability engine.

This module fans a batch of candidate domains out to the resolvers:
- Request shape checks (1..20 strings) and per-domain validation
- Case-insensitive deduplication
- Routing per TLD: skip, WHOIS, RDAP, or unsupported
- Concurrent resolution with per-domain failure isolation
- Aggregation into a BatchResult with completed/incomplete counters
"""

import asyncio
import time
from typing import Any, Optional

from .audit_logger import AuditLogger
from .config import ResolverConfig
from .domain_validator import DomainValidator
from .enums import AvailabilityStatus, LogLevel, RouteKind, UnknownReason
from .exceptions import ValidationError
from .models import AvailabilityResult, BatchResult
from .rdap_client import RdapResolver
from .registry_router import DEFAULT_REGISTRY, RegistryTable, extract_tld
from .whois_client import WhoisResolver


class BatchOrchestrator:
    """
    Resolves batches of domains concurrently.

    Resolvers are injected so tests can substitute transports; when omitted
    they are built from the resolver config and share the registry table.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        registry: RegistryTable = DEFAULT_REGISTRY,
        rdap_resolver: Optional[RdapResolver] = None,
        whois_resolver: Optional[WhoisResolver] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or ResolverConfig()
        self._registry = registry
        self._logger = logger
        self._validator = DomainValidator()
        self._rdap = rdap_resolver or RdapResolver(
            config=self._config, registry=registry, logger=logger
        )
        self._whois = whois_resolver or WhoisResolver(
            config=self._config, registry=registry, logger=logger
        )

    async def __aenter__(self) -> "BatchOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def normalize_batch(self, domains: Any) -> list[str]:
        """
        Check the batch shape, then lowercase, deduplicate and validate.

        Args:
            domains: The raw "domains" value from a request

        Returns:
            Unique lowercase domains in first-seen order

        Raises:
            ValidationError: if the shape is wrong or any entry is invalid
        """
        if not isinstance(domains, list):
            raise ValidationError('Field "domains" must be an array')
        if not domains:
            raise ValidationError('Field "domains" must not be empty')
        if len(domains) > self._config.max_batch_size:
            raise ValidationError(
                f'Field "domains" exceeds the maximum of '
                f"{self._config.max_batch_size} domains per request"
            )
        if any(not isinstance(item, str) for item in domains):
            raise ValidationError('Each element in "domains" must be a string')

        unique = list(dict.fromkeys(d.lower() for d in domains))

        for domain in unique:
            if not self._validator.validate(domain):
                raise ValidationError(f"Invalid domain format: {domain}")

        return unique

    async def resolve_domain(self, domain: str) -> AvailabilityResult:
        """Route one validated domain to its resolver."""
        tld = extract_tld(domain)
        route = self._registry.route(tld)

        if route.kind is RouteKind.SKIP:
            return AvailabilityResult(status=AvailabilityStatus.SKIP)
        if route.kind is RouteKind.WHOIS:
            return await self._whois.resolve(domain, tld)
        if route.kind is RouteKind.RDAP:
            return await self._rdap.resolve(domain, tld)
        return AvailabilityResult.unknown(UnknownReason.TLD_NOT_SUPPORTED)

    async def resolve_batch(self, domains: Any) -> BatchResult:
        """
        Resolve a batch of domains concurrently.

        Validation happens before any network call; one invalid entry rejects
        the whole batch. Once validated, no resolution outcome fails the batch.

        Args:
            domains: List of 1..max_batch_size domain strings

        Returns:
            BatchResult keyed by lowercase domain

        Raises:
            ValidationError: if the batch or any domain is invalid
        """
        unique = self.normalize_batch(domains)

        start = time.perf_counter()
        outcomes = await asyncio.gather(
            *(self.resolve_domain(domain) for domain in unique),
            return_exceptions=True,
        )
        duration_ms = int((time.perf_counter() - start) * 1000)

        batch = BatchResult(checked=len(unique), duration_ms=duration_ms)
        for domain, outcome in zip(unique, outcomes):
            if isinstance(outcome, BaseException):
                batch.failed_tasks += 1
                self._log(
                    LogLevel.ERROR,
                    "Resolution task failed",
                    {"error_type": type(outcome).__name__},
                )
                continue
            batch.results[domain] = outcome

        self._log(
            LogLevel.INFO,
            "Batch resolved",
            {
                "checked": batch.checked,
                "completed": batch.completed,
                "incomplete": batch.incomplete,
                "duration_ms": batch.duration_ms,
            },
        )
        return batch

    async def close(self) -> None:
        await self._rdap.close()

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "BatchOrchestrator", message, data)
