"""Local IPv4 address lookup."""

import ipaddress
import logging
import socket
from typing import Optional

import psutil


logger = logging.getLogger(__name__)

# Used only to pick the default-route source address; no packet is sent.
_ROUTE_PROBE_HOST = "8.8.8.8"


def get_local_ipv4(interface: Optional[str] = None) -> Optional[str]:
    """
    Return this machine's IPv4 address on the local network.

    Args:
        interface: Adapter name (e.g. 'wlan0'); when omitted the default
            route's source address is used

    Returns:
        Dotted-quad address, or None if it cannot be determined
    """
    if interface:
        return _interface_ipv4(interface)

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect((_ROUTE_PROBE_HOST, 80))
            address = sock.getsockname()[0]
            if address and not address.startswith("0."):
                return address
    except OSError as e:
        logger.debug(f"Default route lookup failed: {e}")

    for addrs in psutil.net_if_addrs().values():
        for addr in addrs:
            if addr.family == socket.AF_INET and addr.address and not addr.address.startswith("127."):
                return addr.address

    logger.warning("Could not determine local IPv4 address")
    return None


def _interface_ipv4(interface: str) -> Optional[str]:
    addrs = psutil.net_if_addrs().get(interface)
    if not addrs:
        logger.warning(f"Network interface not found: {interface}")
        return None

    for addr in addrs:
        if addr.family == socket.AF_INET and addr.address:
            return addr.address

    logger.warning(f"Interface {interface} has no IPv4 address")
    return None


def subnet_prefix(address: str) -> str:
    """
    Return the /24 prefix of an IPv4 address ('192.168.1.7' -> '192.168.1').

    Raises:
        ValueError: If address is not a dotted-quad IPv4 address
    """
    ip = ipaddress.IPv4Address(address.strip())
    return str(ip).rsplit(".", 1)[0]
