"""
Remote Host Value Object

Architectural Intent:
- Immutable value object for the machine that runs the target service
- Validates hostname format (DNS, IPv4, IPv6), port bounds, non-empty user
- Derives the host from network-style destination paths (\\\\host\\share or //host/share)
"""

import re
from dataclasses import dataclass
from typing import Optional

# RFC 1123 hostname: labels of alnum/hyphens, dot-separated
_HOSTNAME_RE = re.compile(
    r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$"
)

_IPV4_RE = re.compile(
    r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$"
)

# Simplified; accepts ::1, fe80::1 and friends
_IPV6_RE = re.compile(r"^[0-9a-fA-F:]+$")

NETWORK_PATH_PREFIXES = ("\\\\", "//")


def _is_valid_hostname(host: str) -> bool:
    """Validate hostname as DNS name, IPv4, or IPv6."""
    if not host:
        return False

    m = _IPV4_RE.match(host)
    if m:
        return all(0 <= int(g) <= 255 for g in m.groups())

    if _IPV6_RE.match(host) and ":" in host:
        return True

    if _HOSTNAME_RE.match(host) and len(host) <= 253:
        return True

    return False


def is_network_path(path: str) -> bool:
    return path.startswith(NETWORK_PATH_PREFIXES)


def host_from_network_path(path: str) -> Optional[str]:
    """Returns the first segment after the network prefix, or None for local paths."""
    if not is_network_path(path):
        return None
    first = re.split(r"[\\/]", path.lstrip("\\/"), maxsplit=1)[0]
    return first or None


@dataclass(frozen=True)
class RemoteHost:
    """
    Value Object representing the host a service is controlled on.
    """
    host: str
    user: str = "root"
    port: int = 22

    def __post_init__(self) -> None:
        if not self.user:
            raise ValueError("Remote host user cannot be empty")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not _is_valid_hostname(self.host):
            raise ValueError(f"Invalid hostname: {self.host!r}")

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"

    @staticmethod
    def parse(connection_string: str) -> "RemoteHost":
        """
        Parses 'user@host:port', 'host', or 'user@[::1]:port' into a RemoteHost.
        """
        user = "root"
        port = 22
        host = connection_string.strip()

        if "@" in host:
            user, host = host.split("@", 1)

        if host.startswith("["):
            bracket_end = host.find("]")
            if bracket_end == -1:
                raise ValueError(f"Unterminated IPv6 bracket in: {connection_string}")
            ipv6_addr = host[1:bracket_end]
            remainder = host[bracket_end + 1:]
            if remainder.startswith(":"):
                port = int(remainder[1:])
            host = ipv6_addr
        elif ":" in host:
            last_colon = host.rfind(":")
            try:
                port = int(host[last_colon + 1:])
                host = host[:last_colon]
            except ValueError:
                pass

        return RemoteHost(host=host, user=user, port=port)

    @staticmethod
    def resolve(
        destination_path: str, explicit: Optional[str] = None
    ) -> Optional["RemoteHost"]:
        """
        Picks the host to control the service on.

        An explicit connection string wins; otherwise the host is taken from a
        network-style destination path. Local destinations yield None.
        """
        if explicit:
            return RemoteHost.parse(explicit)
        host = host_from_network_path(destination_path)
        if host is None:
            return None
        return RemoteHost(host=host)
