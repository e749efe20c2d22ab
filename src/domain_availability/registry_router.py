"""
Registry Router - static mapping from TLD to resolution protocol.

This module contains the routing table for every TLD the engine can resolve:
- RDAP TLDs, each with an endpoint builder (some operators share one builder,
  CentralNic embeds the TLD in the path)
- WHOIS TLDs with their port-43 server addresses
- TLDs explicitly skipped because their registries answer unreliably
Anything not listed is unsupported; there is no generic fallback service.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

from .enums import RouteKind

EndpointBuilder = Callable[[str], str]


def _identity_digital(domain: str) -> str:
    return f"https://rdap.identitydigital.services/rdap/domain/{domain}"


def _centralnic(tld: str) -> EndpointBuilder:
    def build(domain: str) -> str:
        return f"https://rdap.centralnic.com/{tld}/domain/{domain}"
    return build


def _prefix(base: str) -> EndpointBuilder:
    def build(domain: str) -> str:
        return f"{base}{domain}"
    return build


# ============================================================================
# RDAP ROUTES
# ============================================================================
VERISIGN_ROUTES = {
    "com": _prefix("https://rdap.verisign.com/com/v1/domain/"),
    "net": _prefix("https://rdap.verisign.com/net/v1/domain/"),
    "cc": _prefix("https://tld-rdap.verisign.com/cc/v1/domain/"),
}

GOOGLE_ROUTES = {
    "dev": _prefix("https://pubapi.registry.google/rdap/domain/"),
    "app": _prefix("https://pubapi.registry.google/rdap/domain/"),
}

# .io, .me and .sh are not listed in the IANA bootstrap for this operator
# but answer on its endpoint.
IDENTITY_DIGITAL_TLDS = (
    "ai", "io", "me", "sh", "tools", "codes", "run", "studio", "gallery",
    "media", "chat", "coffee", "cafe", "ventures", "supply", "agency",
    "capital", "community", "social", "group", "team", "market", "deals",
    "academy", "school", "training", "care", "clinic", "band", "money",
    "finance", "fund", "tax", "investments",
)

CENTRALNIC_TLDS = (
    "xyz", "build", "art", "game", "quest", "lol", "inc", "store", "audio", "fm",
)

DEDICATED_NIC_ROUTES = {
    "design": _prefix("https://rdap.nic.design/domain/"),
    "ink": _prefix("https://rdap.nic.ink/domain/"),
    "menu": _prefix("https://rdap.nic.menu/domain/"),
    "club": _prefix("https://rdap.nic.club/domain/"),
    "courses": _prefix("https://rdap.nic.courses/domain/"),
    "health": _prefix("https://rdap.nic.health/domain/"),
    "fit": _prefix("https://rdap.nic.fit/domain/"),
    "music": _prefix("https://rdap.registryservices.music/rdap/domain/"),
    "shop": _prefix("https://rdap.gmoregistry.net/rdap/domain/"),
}

CCTLD_RDAP_ROUTES = {
    "ly": _prefix("https://rdap.nic.ly/domain/"),
    "is": _prefix("https://rdap.isnic.is/rdap/domain/"),
    "to": _prefix("https://rdap.tonicregistry.to/rdap/domain/"),
    "in": _prefix("https://rdap.nixiregistry.in/rdap/domain/"),
    "re": _prefix("https://rdap.nic.re/domain/"),
    "no": _prefix("https://rdap.norid.no/domain/"),
}

DEFAULT_RDAP_ROUTES: dict[str, EndpointBuilder] = {
    **VERISIGN_ROUTES,
    **GOOGLE_ROUTES,
    **{tld: _identity_digital for tld in IDENTITY_DIGITAL_TLDS},
    **{tld: _centralnic(tld) for tld in CENTRALNIC_TLDS},
    **DEDICATED_NIC_ROUTES,
    **CCTLD_RDAP_ROUTES,
}


# ============================================================================
# WHOIS SERVERS (ccTLDs without usable RDAP)
# ============================================================================
DEFAULT_WHOIS_SERVERS: dict[str, str] = {
    "co": "whois.registry.co",
    "it": "whois.nic.it",
    "de": "whois.denic.de",
    "be": "whois.dns.be",
    "at": "whois.nic.at",
    "se": "whois.iis.se",
    "gg": "whois.gg",
    "st": "whois.nic.st",
    "pt": "whois.dns.pt",
    "my": "whois.mynic.my",
    "nu": "whois.iis.nu",
    "am": "whois.amnic.net",
    # Reachable only through the single WHOIS check; batches skip .es.
    "es": "whois.nic.es",
}


# ============================================================================
# SKIPPED TLDs
# ============================================================================
# .es WHOIS requires IP-based authorization and always answers inconclusively.
DEFAULT_SKIP_TLDS = frozenset({"es"})


@dataclass(frozen=True)
class RegistryRoute:
    """Routing decision for one TLD."""

    tld: str
    kind: RouteKind
    endpoint_builder: Optional[EndpointBuilder] = None
    whois_server: Optional[str] = None

    def build_url(self, domain: str) -> str:
        """Build the RDAP lookup URL for a domain on this route."""
        if self.endpoint_builder is None:
            raise ValueError(f"Route for .{self.tld} has no RDAP endpoint")
        return self.endpoint_builder(domain)


class RegistryTable:
    """
    Immutable TLD routing table.

    Lookups are case-normalized. Precedence: skip list, then WHOIS servers,
    then RDAP routes; anything else is UNSUPPORTED. Tests and alternate
    deployments construct their own table instead of mutating a global one.
    """

    def __init__(
        self,
        rdap_routes: Mapping[str, EndpointBuilder],
        whois_servers: Mapping[str, str],
        skip_tlds: Iterable[str] = (),
    ) -> None:
        self._rdap = MappingProxyType({k.lower(): v for k, v in rdap_routes.items()})
        self._whois = MappingProxyType({k.lower(): v for k, v in whois_servers.items()})
        self._skip = frozenset(t.lower() for t in skip_tlds)

    def route(self, tld: str) -> RegistryRoute:
        """
        Resolve the routing decision for a TLD.

        Args:
            tld: Top-level label without the leading dot, any case

        Returns:
            RegistryRoute describing how (or whether) to resolve the TLD
        """
        key = tld.lower()
        if key in self._skip:
            return RegistryRoute(tld=key, kind=RouteKind.SKIP)
        if key in self._whois:
            return RegistryRoute(tld=key, kind=RouteKind.WHOIS, whois_server=self._whois[key])
        if key in self._rdap:
            return RegistryRoute(tld=key, kind=RouteKind.RDAP, endpoint_builder=self._rdap[key])
        return RegistryRoute(tld=key, kind=RouteKind.UNSUPPORTED)

    def whois_server(self, tld: str) -> Optional[str]:
        """WHOIS server for a TLD, ignoring the skip list."""
        return self._whois.get(tld.lower())

    @property
    def rdap_tlds(self) -> frozenset[str]:
        return frozenset(self._rdap)

    @property
    def whois_tlds(self) -> frozenset[str]:
        return frozenset(self._whois)

    @property
    def skip_tlds(self) -> frozenset[str]:
        return self._skip


DEFAULT_REGISTRY = RegistryTable(
    rdap_routes=DEFAULT_RDAP_ROUTES,
    whois_servers=DEFAULT_WHOIS_SERVERS,
    skip_tlds=DEFAULT_SKIP_TLDS,
)


def extract_tld(domain: str) -> str:
    """Return the final label of a domain, lowercased."""
    return domain.rsplit(".", 1)[-1].lower()
