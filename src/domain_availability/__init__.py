"""
Domain Availability - multi-registry domain availability resolver.

This package routes availability lookups to RDAP or WHOIS by TLD, reconciles
their answers into a small status vocabulary, and protects a metered premium
upstream with a burst limiter, a monthly circuit breaker and per-client quotas.
"""

__version__ = "0.1.0"
__author__ = "Domain Availability Team"

from domain_availability.exceptions import (
    DomainAvailabilityError,
    ValidationError,
    PayloadTooLargeError,
    GuardRejection,
    RateLimitedError,
    CircuitOpenError,
    QuotaExceededError,
    UpstreamError,
)
from domain_availability.enums import (
    AvailabilityStatus,
    UnknownReason,
    LogLevel,
    DomainValidationErrorCode,
    RouteKind,
    StoreOutcome,
    ReadStop,
)
from domain_availability.domain_validator import (
    DomainValidator,
    DomainValidationResult,
    DomainValidationError,
    validate_domain,
)
from domain_availability.config import (
    ResolverConfig,
    GuardConfig,
    PremiumConfig,
    AlertConfig,
    CounterStoreConfig,
    LoggingConfig,
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from domain_availability.models import (
    AvailabilityResult,
    BatchResult,
    QuotaRecord,
    CircuitState,
    RateWindow,
)
from domain_availability.registry_router import (
    RegistryRoute,
    RegistryTable,
    DEFAULT_REGISTRY,
    extract_tld,
)
from domain_availability.retry_manager import (
    RetryManager,
    RetryPolicy,
    RetryResult,
)
from domain_availability.rdap_client import (
    RdapResolver,
    RdapAttempt,
)
from domain_availability.whois_client import (
    WhoisResolver,
    WhoisReadResult,
    build_whois_query,
    parse_whois_response,
)
from domain_availability.orchestrator import (
    BatchOrchestrator,
)
from domain_availability.counter_store import (
    SharedCounterStore,
    CounterRead,
    CounterKeys,
    InMemoryCounterStore,
    RedisCounterStore,
)
from domain_availability.notifications import (
    BreakerAlert,
    BreakerAlerter,
)
from domain_availability.guards import (
    Admission,
    AdmissionGuardChain,
    BurstLimiter,
    CircuitBreaker,
    QuotaTracker,
)
from domain_availability.premium_client import (
    PremiumClient,
    map_status_tokens,
    parse_premium_response,
)
from domain_availability.audit_logger import (
    AuditLogger,
    LogEntry,
)
from domain_availability.handlers import (
    ApiResponse,
    RequestHandlers,
    build_handlers,
)
from domain_availability.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "DomainAvailabilityError",
    "ValidationError",
    "PayloadTooLargeError",
    "GuardRejection",
    "RateLimitedError",
    "CircuitOpenError",
    "QuotaExceededError",
    "UpstreamError",
    # Enums
    "AvailabilityStatus",
    "UnknownReason",
    "LogLevel",
    "DomainValidationErrorCode",
    "RouteKind",
    "StoreOutcome",
    "ReadStop",
    # Domain Validator
    "DomainValidator",
    "DomainValidationResult",
    "DomainValidationError",
    "validate_domain",
    # Configuration
    "ResolverConfig",
    "GuardConfig",
    "PremiumConfig",
    "AlertConfig",
    "CounterStoreConfig",
    "LoggingConfig",
    "SystemConfig",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "AvailabilityResult",
    "BatchResult",
    "QuotaRecord",
    "CircuitState",
    "RateWindow",
    # Registry Router
    "RegistryRoute",
    "RegistryTable",
    "DEFAULT_REGISTRY",
    "extract_tld",
    # Retry Manager
    "RetryManager",
    "RetryPolicy",
    "RetryResult",
    # RDAP
    "RdapResolver",
    "RdapAttempt",
    # WHOIS
    "WhoisResolver",
    "WhoisReadResult",
    "build_whois_query",
    "parse_whois_response",
    # Orchestrator
    "BatchOrchestrator",
    # Counter Store
    "SharedCounterStore",
    "CounterRead",
    "CounterKeys",
    "InMemoryCounterStore",
    "RedisCounterStore",
    # Notifications
    "BreakerAlert",
    "BreakerAlerter",
    # Guards
    "Admission",
    "AdmissionGuardChain",
    "BurstLimiter",
    "CircuitBreaker",
    "QuotaTracker",
    # Premium
    "PremiumClient",
    "map_status_tokens",
    "parse_premium_response",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Handlers
    "ApiResponse",
    "RequestHandlers",
    "build_handlers",
    # CLI
    "cli_main",
    "create_parser",
]
