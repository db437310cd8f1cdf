"""Local network address discovery for the startup banner."""

import ipaddress
import socket

from preview_server.bootstrap.config import WILDCARD_HOST, ListenAddress

# Connecting a UDP socket sends no packets; it only selects the outbound interface.
_PROBE_ADDRESS = ("10.255.255.255", 1)


def _usable(candidate: str) -> bool:
    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return False
    return address.version == 4 and not address.is_loopback and not address.is_unspecified


def discover_local_ipv4() -> str:
    """Return a non-loopback IPv4 address of this machine, or an empty string."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
            probe.connect(_PROBE_ADDRESS)
            candidate = probe.getsockname()[0]
        if _usable(candidate):
            return candidate
    except OSError:
        pass

    try:
        _, _, candidates = socket.gethostbyname_ex(socket.gethostname())
    except OSError:
        return ""
    for candidate in candidates:
        if _usable(candidate):
            return candidate
    return ""


def browse_url(address: ListenAddress) -> str:
    """Build the URL printed at startup, swapping the wildcard host for a LAN IP."""
    if address.host == WILDCARD_HOST:
        local_ip = discover_local_ipv4()
        if local_ip:
            return f"http://{local_ip}:{address.port}"
    return f"http://{address}"
