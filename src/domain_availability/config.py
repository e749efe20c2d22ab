"""
Configuration dataclasses for the domain availability engine.

This module defines all configuration structures used throughout the system,
including resolver timeouts, admission guard limits, the premium upstream,
breaker alerting, the shared counter store and logging, plus the loaders that
build them from the environment (via python-dotenv) or from a JSON file.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class ResolverConfig:
    """Timeouts and retry settings for the RDAP and WHOIS resolvers."""

    rdap_timeout_seconds: float = 8.0
    rdap_max_attempts: int = 2
    rdap_retry_delay_seconds: float = 2.0
    whois_port: int = 43
    whois_timeout_seconds: float = 5.0
    whois_max_response_bytes: int = 10 * 1024
    max_batch_size: int = 20


@dataclass
class GuardConfig:
    """Admission guard limits."""

    free_checks_per_client: int = 5
    monthly_quota_limit: int = 8000
    burst_limit_per_minute: int = 10
    client_ip_header: str = "CF-Connecting-IP"


@dataclass
class PremiumConfig:
    """Metered premium/aftermarket upstream settings."""

    api_token: Optional[str] = None
    base_url: str = "https://api.domainr.com"
    timeout_seconds: float = 10.0


@dataclass
class AlertConfig:
    """Circuit breaker alert webhook settings."""

    webhook_url: Optional[str] = None
    timeout_seconds: float = 10.0


@dataclass
class CounterStoreConfig:
    """Shared counter store settings."""

    redis_url: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "json"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    guards: GuardConfig = field(default_factory=GuardConfig)
    premium: PremiumConfig = field(default_factory=PremiumConfig)
    alert: AlertConfig = field(default_factory=AlertConfig)
    counter_store: CounterStoreConfig = field(default_factory=CounterStoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _str_env(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def load_config_from_env(dotenv_path: Optional[Path] = None) -> SystemConfig:
    """
    Build a SystemConfig from environment variables.

    A .env file is loaded first (existing environment variables win). Integer
    settings that are missing or unparsable fall back to their defaults; a
    non-positive limit also falls back, since zero would block every request.

    Args:
        dotenv_path: Optional explicit path to a .env file

    Returns:
        SystemConfig populated from the environment
    """
    load_dotenv(dotenv_path=dotenv_path)

    defaults = GuardConfig()
    free_checks = _int_env("FREE_CHECKS_PER_IP", defaults.free_checks_per_client)
    monthly_limit = _int_env("MONTHLY_QUOTA_LIMIT", defaults.monthly_quota_limit)
    burst_limit = _int_env("BURST_LIMIT_PER_MINUTE", defaults.burst_limit_per_minute)

    guards = GuardConfig(
        free_checks_per_client=free_checks if free_checks > 0 else defaults.free_checks_per_client,
        monthly_quota_limit=monthly_limit if monthly_limit > 0 else defaults.monthly_quota_limit,
        burst_limit_per_minute=burst_limit if burst_limit > 0 else defaults.burst_limit_per_minute,
        client_ip_header=_str_env("CLIENT_IP_HEADER") or defaults.client_ip_header,
    )

    premium = PremiumConfig(
        api_token=_str_env("FASTLY_API_TOKEN"),
        base_url=_str_env("PREMIUM_API_BASE") or PremiumConfig.base_url,
    )

    return SystemConfig(
        guards=guards,
        premium=premium,
        alert=AlertConfig(webhook_url=_str_env("ALERT_WEBHOOK")),
        counter_store=CounterStoreConfig(redis_url=_str_env("REDIS_URL")),
        logging=LoggingConfig(
            level=(_str_env("LOG_LEVEL") or "info").lower(),
            output_format=(_str_env("LOG_FORMAT") or "json").lower(),
        ),
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Unknown keys are ignored and missing sections keep their defaults.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if the file exists and parses, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return None

    if not isinstance(data, dict):
        return None

    def section(cls, key):
        raw = data.get(key) or {}
        known = {k: v for k, v in raw.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    return SystemConfig(
        resolver=section(ResolverConfig, "resolver"),
        guards=section(GuardConfig, "guards"),
        premium=section(PremiumConfig, "premium"),
        alert=section(AlertConfig, "alert"),
        counter_store=section(CounterStoreConfig, "counter_store"),
        logging=section(LoggingConfig, "logging"),
    )


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(asdict(config), f, indent=2, ensure_ascii=False)
        return True
    except (OSError, TypeError):
        return False
