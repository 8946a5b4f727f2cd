"""
Network endpoints for remote players.

An endpoint is written as ``host:port`` everywhere it leaves the process
(settings file, config.json, the ``::Endpoint::Set`` action).  IPv6 hosts
are bracketed: ``[::1]:8080``.
"""

import ipaddress
from dataclasses import dataclass


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    def __post_init__(self):
        if not self.host or not self.host.strip():
            raise ValueError("Endpoint host cannot be empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"Endpoint port out of range: {self.port}")

    @property
    def is_ipv6(self) -> bool:
        try:
            return isinstance(ipaddress.ip_address(self.host), ipaddress.IPv6Address)
        except ValueError:
            return False

    def to_uri_string(self) -> str:
        """Canonical ``host:port`` form, also used in request URLs."""
        if self.is_ipv6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        return f"http://{self.to_uri_string()}"

    def __str__(self) -> str:
        return self.to_uri_string()


def parse_endpoint(value: str) -> Endpoint:
    """Parse ``host:port`` / ``[v6]:port``.  Raises ValueError when malformed."""
    if value is None:
        raise ValueError("Endpoint string is missing")
    text = value.strip()
    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ValueError(f"Invalid endpoint: {value!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep or ":" in host:
            raise ValueError(f"Invalid endpoint: {value!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"Invalid endpoint port: {value!r}") from None
    return Endpoint(host.strip(), port)


def try_parse_endpoint(value: str | None) -> Endpoint | None:
    """Like parse_endpoint() but returns None instead of raising."""
    if not value or not isinstance(value, str):
        return None
    try:
        return parse_endpoint(value)
    except ValueError:
        return None
