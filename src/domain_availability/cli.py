"""
Command-line interface for the domain availability engine.

This module provides the main CLI entry point with commands for:
- check: Resolve one batch of domains and print the batch response JSON
- check-list: Resolve domains from a file in batches
- whois: Single WHOIS lookup for a WHOIS-served TLD
- premium: Premium lookup through the admission guards
- routes: Show how TLDs are routed
- config: Configuration management
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from .counter_store import RedisCounterStore
from .domain_validator import DomainValidator
from .enums import AvailabilityStatus, LogLevel, RouteKind
from .exceptions import ValidationError
from .handlers import build_counter_store, build_handlers
from .orchestrator import BatchOrchestrator
from .registry_router import DEFAULT_REGISTRY, extract_tld
from .whois_client import WhoisResolver

DEFAULT_CONFIG_PATH = Path.home() / ".domain_availability" / "config.json"


def resolve_config(config_path: Optional[str]) -> Optional[SystemConfig]:
    """
    Load configuration from a file when given, otherwise from the environment.

    Returns:
        SystemConfig, or None if an explicit file could not be loaded
    """
    if config_path:
        config = load_config_from_file(Path(config_path))
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
        return config
    return load_config_from_env()


def create_logger(verbose: bool) -> Optional[AuditLogger]:
    """Verbose runs log as text to stderr; otherwise nothing is logged."""
    if not verbose:
        return None
    return AuditLogger(output_format="text", min_level=LogLevel.DEBUG)


def read_domain_file(domains_file: Path) -> list[str]:
    """Read one domain per line, skipping blank lines and '#' comments."""
    with open(domains_file, "r", encoding="utf-8") as f:
        return [
            line.strip() for line in f
            if line.strip() and not line.strip().startswith("#")
        ]


def chunked(items: list[str], size: int) -> list[list[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def format_result_line(domain: str, status: str, reason: Optional[str] = None) -> str:
    suffix = f" ({reason})" if reason else ""
    return f"  {domain}: {status}{suffix}"


async def check_domains(
    domains: list[str],
    config: SystemConfig,
    verbose: bool = False,
) -> int:
    """
    Resolve one batch and print the batch response.

    Returns:
        Exit code (0 on success, 1 on validation error)
    """
    logger = create_logger(verbose)
    async with BatchOrchestrator(config=config.resolver, logger=logger) as orchestrator:
        try:
            batch = await orchestrator.resolve_batch(domains)
        except ValidationError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

    print(json.dumps(batch.to_dict(), indent=2))
    return 0


async def check_domain_list(
    domains_file: Path,
    config: SystemConfig,
    output_file: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """
    Resolve domains from a file, one batch per max_batch_size entries.

    Returns:
        Exit code (0 if any available, 1 if none or on error)
    """
    try:
        domains = read_domain_file(domains_file)
    except FileNotFoundError:
        print(f"Error: File not found: {domains_file}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    if not domains:
        print("Error: No domains found in file", file=sys.stderr)
        return 1

    print(f"Checking {len(domains)} domain(s)...")

    logger = create_logger(verbose)
    results: dict[str, dict] = {}
    available_count = 0

    async with BatchOrchestrator(config=config.resolver, logger=logger) as orchestrator:
        for chunk in chunked(domains, config.resolver.max_batch_size):
            try:
                batch = await orchestrator.resolve_batch(chunk)
            except ValidationError as e:
                print(f"Error: {e.message}", file=sys.stderr)
                return 1

            for domain, result in batch.results.items():
                print(format_result_line(domain, result.status.value, result.reason))
                results[domain] = result.to_dict()
                if result.status is AvailabilityStatus.AVAILABLE:
                    available_count += 1

    print(f"\nSummary: {available_count}/{len(results)} domain(s) available")

    if output_file:
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, "w", encoding="utf-8") as f:
                json.dump(results, f, indent=2, ensure_ascii=False)
            print(f"Results written to: {output_file}")
        except OSError as e:
            print(f"Error writing results: {e}", file=sys.stderr)

    return 0 if available_count > 0 else 1


async def whois_domain(domain: str, config: SystemConfig, verbose: bool = False) -> int:
    """Single WHOIS lookup. Returns 0 when the domain is available."""
    if not DomainValidator().validate(domain):
        print("Error: Invalid domain format", file=sys.stderr)
        return 1

    domain = domain.lower()
    tld = extract_tld(domain)
    if DEFAULT_REGISTRY.whois_server(tld) is None:
        print(f"Error: TLD .{tld} is not supported by WHOIS check", file=sys.stderr)
        return 1

    resolver = WhoisResolver(config=config.resolver, logger=create_logger(verbose))
    result = await resolver.resolve(domain, tld)
    print(json.dumps(result.to_dict()))
    return 0 if result.status is AvailabilityStatus.AVAILABLE else 1


async def premium_domain(
    domain: str,
    config: SystemConfig,
    client: str,
    verbose: bool = False,
) -> int:
    """Premium lookup through the request handler. Returns 0 on HTTP 200."""
    store = build_counter_store(config)
    handlers = build_handlers(config, store=store, logger=create_logger(verbose))
    body = json.dumps({"domain": domain}).encode("utf-8")
    try:
        response = await handlers.dispatch(
            "POST",
            "/v1/premium-check",
            headers={
                "Content-Type": "application/json",
                "Content-Length": str(len(body)),
                config.guards.client_ip_header: client,
            },
            body=body,
        )
    finally:
        await handlers.close()
        if isinstance(store, RedisCounterStore):
            await store.close()

    print(json.dumps(response.body))
    return 0 if response.status == 200 else 1


def describe_route(tld: str) -> str:
    """One line describing how a TLD is resolved."""
    route = DEFAULT_REGISTRY.route(tld.lstrip("."))
    if route.kind is RouteKind.RDAP:
        return f".{route.tld}: rdap {route.build_url('example.' + route.tld)}"
    if route.kind is RouteKind.WHOIS:
        return f".{route.tld}: whois {route.whois_server}"
    return f".{route.tld}: {route.kind.value}"


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    config = resolve_config(args.config)
    if config is None:
        return 1
    return asyncio.run(check_domains(args.domains, config, verbose=args.verbose))


def cmd_check_list(args: argparse.Namespace) -> int:
    """Handle the 'check-list' command."""
    config = resolve_config(args.config)
    if config is None:
        return 1

    output_file = Path(args.output) if args.output else None

    return asyncio.run(check_domain_list(
        domains_file=Path(args.file),
        config=config,
        output_file=output_file,
        verbose=args.verbose,
    ))


def cmd_whois(args: argparse.Namespace) -> int:
    """Handle the 'whois' command."""
    config = resolve_config(args.config)
    if config is None:
        return 1
    return asyncio.run(whois_domain(args.domain, config, verbose=args.verbose))


def cmd_premium(args: argparse.Namespace) -> int:
    """Handle the 'premium' command."""
    config = resolve_config(args.config)
    if config is None:
        return 1
    return asyncio.run(premium_domain(args.domain, config, args.client, verbose=args.verbose))


def cmd_routes(args: argparse.Namespace) -> int:
    """Handle the 'routes' command."""
    for tld in args.tlds:
        print(describe_route(tld))
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Free checks per client: {config.guards.free_checks_per_client}")
        print(f"  Monthly quota limit: {config.guards.monthly_quota_limit}")
        print(f"  Burst limit per minute: {config.guards.burst_limit_per_minute}")
        print(f"  Premium API token: {'set' if config.premium.api_token else 'not set'}")
        print(f"  Alert webhook: {'set' if config.alert.webhook_url else 'not set'}")
        print(f"  Counter store: {'redis' if config.counter_store.redis_url else 'none'}")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        if save_config_to_file(load_config_from_env(), config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        print(f"Error: Could not write configuration to {config_path}", file=sys.stderr)
        return 1

    return 1


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file (default: environment / .env)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-availability",
        description="Multi-registry domain availability resolver",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Resolve a batch of domains",
    )
    check_parser.add_argument(
        "domains",
        nargs="+",
        help="Domains to check (e.g., example.com example.io)",
    )
    _add_common_options(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # 'check-list' command
    check_list_parser = subparsers.add_parser(
        "check-list",
        help="Check multiple domains from a file",
    )
    check_list_parser.add_argument(
        "file",
        help="Path to file containing domains (one per line, '#' for comments)",
    )
    check_list_parser.add_argument(
        "--output", "-o",
        help="Path to write results as JSON",
    )
    _add_common_options(check_list_parser)
    check_list_parser.set_defaults(func=cmd_check_list)

    # 'whois' command
    whois_parser = subparsers.add_parser(
        "whois",
        help="WHOIS lookup for a WHOIS-served TLD",
    )
    whois_parser.add_argument("domain", help="Domain to look up (e.g., example.de)")
    _add_common_options(whois_parser)
    whois_parser.set_defaults(func=cmd_whois)

    # 'premium' command
    premium_parser = subparsers.add_parser(
        "premium",
        help="Premium lookup through the admission guards",
    )
    premium_parser.add_argument("domain", help="Domain to look up")
    premium_parser.add_argument(
        "--client",
        default="cli",
        help="Client identity used for quota and rate limiting (default: cli)",
    )
    _add_common_options(premium_parser)
    premium_parser.set_defaults(func=cmd_premium)

    # 'routes' command
    routes_parser = subparsers.add_parser(
        "routes",
        help="Show how TLDs are routed",
    )
    routes_parser.add_argument("tlds", nargs="+", help="TLDs (e.g., com de es)")
    routes_parser.set_defaults(func=cmd_routes)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
