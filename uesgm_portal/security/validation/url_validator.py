"""
Outbound URL validation against server-side request forgery.

Only the literal host in the URL is checked. A public hostname whose DNS
record points at a private address passes here, so code that fetches the URL
must call `is_blocked_address` again on the address it actually connects to.
"""

from __future__ import annotations

import ipaddress
import socket
from typing import Iterable, Optional, Union
from urllib.parse import urlsplit

from uesgm_portal.utils.logger import get_logger

logger = get_logger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

BLOCKED_HOSTNAMES = frozenset({"localhost", "127.0.0.1", "::1"})

BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        # private
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        # link-local
        "169.254.0.0/16",
        "fe80::/10",
        # unique local
        "fc00::/7",
        # loopback and unspecified
        "127.0.0.0/8",
        "0.0.0.0/8",
        "::1/128",
        "::/128",
    )
)

ALLOWED_SCHEMES = frozenset({"https"})


def parse_ip_literal(host: str) -> Optional[IPAddress]:
    """
    Return the address `host` spells, or None if it is a DNS name.

    Legacy IPv4 spellings accepted by inet_aton (``0x7f.1``, ``010.0.0.1``,
    ``2130706433``) are normalised, and IPv4-mapped IPv6 addresses are
    unwrapped to IPv4.
    """
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        if not host or not all(c.isalnum() or c == "." for c in host):
            return None
        try:
            address = ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return address.ipv4_mapped
    return address


def is_blocked_address(address: Union[str, IPAddress]) -> bool:
    """True if `address` is loopback, private, link-local or unique-local."""
    if isinstance(address, str):
        parsed = parse_ip_literal(address)
        if parsed is None:
            return False
        address = parsed
    elif isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    return any(
        address.version == network.version and address in network
        for network in BLOCKED_NETWORKS
    )


def _host_allowed(host: str, allowed_domains: Iterable[str]) -> bool:
    for domain in allowed_domains:
        domain = domain.lower().strip(".")
        if host == domain or host.endswith("." + domain):
            return True
    return False


def is_safe_external_url(
    url: str, allowed_domains: Optional[Iterable[str]] = None
) -> bool:
    """
    Decide whether the server may fetch `url`.

    Rules, in order: malformed URL, localhost names, private or loopback IP
    literals, non-https scheme, then the optional domain allow-list.
    """
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
        parts.port  # raises ValueError on an out-of-range or non-numeric port
    except ValueError:
        return False
    if not host or any(c.isspace() for c in host):
        return False

    host = host.rstrip(".") or host
    if host in BLOCKED_HOSTNAMES:
        logger.info("unsafe_url_rejected", reason="localhost", host=host)
        return False

    if is_blocked_address(host):
        logger.info("unsafe_url_rejected", reason="private_address", host=host)
        return False

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    domains = list(allowed_domains or ())
    if domains and not _host_allowed(host, domains):
        logger.info("unsafe_url_rejected", reason="domain_not_allowed", host=host)
        return False

    return True
