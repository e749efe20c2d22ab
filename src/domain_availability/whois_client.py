"""
WHOIS Resolver module for domain availability checking.

This module speaks the legacy line-oriented WHOIS protocol over a raw TCP
connection (port 43), one connection per lookup. The query line is built per
server, the response is read until EOF, a size ceiling, or a single shared
deadline, and the accumulated text is classified by a per-server parser.
"""

import asyncio
import contextlib
import re
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .audit_logger import AuditLogger
from .config import ResolverConfig
from .enums import AvailabilityStatus, LogLevel, ReadStop, UnknownReason
from .models import AvailabilityResult
from .registry_router import DEFAULT_REGISTRY, RegistryTable

Connector = Callable[[str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]
WhoisParser = Callable[[str], AvailabilityStatus]

READ_CHUNK_SIZE = 4096

_UNSAFE_QUERY_CHARS = re.compile(r"[^a-z0-9.-]", re.IGNORECASE | re.ASCII)


# ============================================================================
# QUERY BUILDING
# ============================================================================

# Most servers accept a bare "<domain>\r\n"; these need their own syntax.
WHOIS_QUERY_FORMATS: dict[str, Callable[[str], str]] = {
    "whois.denic.de": lambda domain: f"-T dn,ace {domain}\r\n",
}


def sanitize_domain(domain: str) -> str:
    """Strip everything outside [a-z0-9.-] so a label cannot inject protocol text."""
    return _UNSAFE_QUERY_CHARS.sub("", domain)


def build_whois_query(domain: str, server: str) -> str:
    """Build the CRLF-terminated query line for a server."""
    safe_domain = sanitize_domain(domain)
    formatter = WHOIS_QUERY_FORMATS.get(server)
    return formatter(safe_domain) if formatter else f"{safe_domain}\r\n"


# ============================================================================
# RESPONSE PARSING
# ============================================================================

AVAILABLE = AvailabilityStatus.AVAILABLE
TAKEN = AvailabilityStatus.TAKEN
UNKNOWN = AvailabilityStatus.UNKNOWN


def _found(pattern: str, text: str, flags: int = re.IGNORECASE) -> bool:
    return re.search(pattern, text, flags) is not None


def _signal_parser(available: str, taken: str) -> WhoisParser:
    """Parser for servers with one 'free' signal and one 'registered' signal."""
    def parse(text: str) -> AvailabilityStatus:
        if _found(available, text):
            return AVAILABLE
        if _found(taken, text):
            return TAKEN
        return UNKNOWN
    return parse


def _absence_parser(marker: str) -> WhoisParser:
    """Parser for servers that answer a bare notice when nothing is registered."""
    def parse(text: str) -> AvailabilityStatus:
        return TAKEN if _found(marker, text) else AVAILABLE
    return parse


def _parse_nic_it(text: str) -> AvailabilityStatus:
    if _found(r"AVAILABLE", text):
        return AVAILABLE
    if _found(r"Domain:", text) and _found(r"Status:", text):
        return TAKEN
    return UNKNOWN


def _parse_denic(text: str) -> AvailabilityStatus:
    flags = re.IGNORECASE | re.MULTILINE
    if _found(r"^Status:\s*free", text, flags):
        return AVAILABLE
    if _found(r"^Domain:", text, flags):
        return TAKEN
    return UNKNOWN


def _parse_dns_be(text: str) -> AvailabilityStatus:
    # "NOT AVAILABLE" contains "AVAILABLE", so it must be checked first
    if _found(r"Status:\s*NOT\s+AVAILABLE", text):
        return TAKEN
    if _found(r"Status:\s*AVAILABLE", text):
        return AVAILABLE
    if _found(r"Registered:", text):
        return TAKEN
    return UNKNOWN


def _parse_dns_pt(text: str) -> AvailabilityStatus:
    if _found(r"not found", text) or not _found(r"Domain:", text):
        return AVAILABLE
    return TAKEN


def _parse_nic_es(text: str) -> AvailabilityStatus:
    if _found(r"LIBRE", text) or _found(r"no encontrado", text):
        return AVAILABLE
    if _found(r"Nombre de dominio:", text) or _found(r"Domain Name:", text):
        return TAKEN
    return UNKNOWN


WHOIS_PARSERS: dict[str, WhoisParser] = {
    "whois.registry.co": _signal_parser(r"DOMAIN NOT FOUND", r"Domain Name:"),
    "whois.nic.it": _parse_nic_it,
    "whois.denic.de": _parse_denic,
    "whois.dns.be": _parse_dns_be,
    "whois.nic.at": _signal_parser(r"nothing found", r"domain:"),
    "whois.iis.se": _signal_parser(r"not found", r"domain:"),
    "whois.gg": _signal_parser(r"NOT FOUND", r"Domain:"),
    "whois.nic.st": _absence_parser(r"Domain Name:"),
    "whois.dns.pt": _parse_dns_pt,
    "whois.mynic.my": _absence_parser(r"Domain Name:"),
    "whois.iis.nu": _signal_parser(r"not found", r"domain:"),
    "whois.amnic.net": _signal_parser(r"No match", r"Domain Name:"),
    "whois.nic.es": _parse_nic_es,
}


def parse_whois_response(text: str, server: str) -> AvailabilityStatus:
    """
    Classify a WHOIS response with the server's parser.

    Empty or whitespace-only text is UNKNOWN without consulting any parser, as
    is text from a server that has no parser.
    """
    if not text or not text.strip():
        return UNKNOWN
    parser = WHOIS_PARSERS.get(server)
    return parser(text) if parser else UNKNOWN


# ============================================================================
# READ LOOP
# ============================================================================

@dataclass(frozen=True)
class WhoisReadResult:
    """Accumulated response text and the terminal state of the read loop."""

    text: str
    stop: ReadStop


async def read_until_deadline(
    reader: asyncio.StreamReader,
    timeout_seconds: float,
    max_bytes: int,
    clock: Callable[[], float] = time.monotonic,
    chunk_size: int = READ_CHUNK_SIZE,
) -> WhoisReadResult:
    """
    Read a response until EOF, overflow, or a shared deadline.

    The deadline is captured once on entry; every read waits at most for the
    time remaining, so many small reads cannot extend the total read phase.
    A chunk that would push the response past max_bytes is dropped and ends
    the loop.
    """
    deadline = clock() + timeout_seconds
    buffer = bytearray()

    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            stop = ReadStop.DEADLINE
            break

        try:
            chunk = await asyncio.wait_for(reader.read(chunk_size), timeout=remaining)
        except asyncio.TimeoutError:
            stop = ReadStop.DEADLINE
            break

        if not chunk:
            stop = ReadStop.STREAM_CLOSED
            break

        if len(buffer) + len(chunk) > max_bytes:
            stop = ReadStop.OVERFLOW
            break

        buffer.extend(chunk)

    return WhoisReadResult(text=buffer.decode("utf-8", errors="replace"), stop=stop)


# ============================================================================
# RESOLVER
# ============================================================================

class WhoisResolver:
    """
    WHOIS resolver over raw TCP streams.

    The connector defaults to asyncio.open_connection; tests inject one that
    targets a local server or returns fake streams. The resolver never raises
    to its caller.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        registry: RegistryTable = DEFAULT_REGISTRY,
        connector: Optional[Connector] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or ResolverConfig()
        self._registry = registry
        self._connector = connector or asyncio.open_connection
        self._logger = logger

    async def lookup(self, domain: str, server: str) -> WhoisReadResult:
        """
        Run one WHOIS exchange with a server.

        Raises:
            OSError / asyncio.TimeoutError: if connecting or writing fails
        """
        query = build_whois_query(domain, server)

        reader, writer = await asyncio.wait_for(
            self._connector(server, self._config.whois_port),
            timeout=self._config.whois_timeout_seconds,
        )
        try:
            writer.write(query.encode("ascii"))
            await writer.drain()
            return await read_until_deadline(
                reader,
                timeout_seconds=self._config.whois_timeout_seconds,
                max_bytes=self._config.whois_max_response_bytes,
            )
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

    async def resolve(self, domain: str, tld: str) -> AvailabilityResult:
        """
        Resolve availability for a domain on a WHOIS-routed TLD.

        Args:
            domain: Validated lowercase domain
            tld: Its top-level label

        Returns:
            AVAILABLE or TAKEN, or UNKNOWN with reason 'no_whois_server',
            'whois_inconclusive' or 'whois_error'
        """
        server = self._registry.whois_server(tld)
        if not server:
            return AvailabilityResult.unknown(UnknownReason.NO_WHOIS_SERVER)

        try:
            read = await self.lookup(domain, server)
        except Exception as e:
            self._log(
                LogLevel.DEBUG,
                "WHOIS exchange failed",
                {"server": server, "error_type": type(e).__name__},
            )
            return AvailabilityResult.unknown(UnknownReason.WHOIS_ERROR)

        status = parse_whois_response(read.text, server)
        self._log(
            LogLevel.DEBUG,
            "WHOIS lookup finished",
            {"server": server, "stop": read.stop.value, "status": status.value},
        )

        if status is UNKNOWN:
            return AvailabilityResult.unknown(UnknownReason.WHOIS_INCONCLUSIVE)
        return AvailabilityResult(status=status)

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "WhoisResolver", message, data)
