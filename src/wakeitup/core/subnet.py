"""Local /24 subnet detection and broadcast address helpers."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Awaitable, Callable, Iterable

import psutil

logger = logging.getLogger(__name__)

GLOBAL_BROADCAST = "255.255.255.255"
COMMON_PREFIXES = ("192.168.0", "192.168.1", "10.0.0", "10.0.1")
COMMON_PREFIX_TIMEOUT = 0.5
VIRTUAL_INTERFACE_PREFIXES = (
    "docker",
    "br-",
    "veth",
    "virbr",
    "vmnet",
    "vboxnet",
    "tun",
    "tap",
    "wg",
    "zt",
    "utun",
)

Reachability = Callable[[str, float], Awaitable[bool]]


def is_valid_ipv4(value: str | None) -> bool:
    if not value:
        return False
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def subnet_prefix(ip: str) -> str:
    """Return the first three octets of a dotted-quad address."""
    return ip.rsplit(".", 1)[0]


def infer_broadcast_address(ip: str | None) -> str | None:
    if not is_valid_ipv4(ip):
        return None
    network = ipaddress.ip_network(f"{ip}/24", strict=False)
    return str(network.broadcast_address)


def _is_usable(address: str) -> bool:
    if not is_valid_ipv4(address):
        return False
    parsed = ipaddress.IPv4Address(address)
    return not (parsed.is_loopback or parsed.is_link_local or parsed.is_unspecified)


def is_virtual_interface(name: str) -> bool:
    return name.lower().startswith(VIRTUAL_INTERFACE_PREFIXES)


def subnet_from_interfaces(preferred_ip: str | None = None) -> str | None:
    """/24 of the active interface address.

    The interface holding ``preferred_ip`` (the route source address) wins;
    otherwise the first physical interface that is up. Container bridges,
    VPN tunnels and hypervisor adapters are never picked on their own.
    """
    try:
        addresses = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, RuntimeError) as exc:
        logger.debug("Interface enumeration failed: %s", exc)
        return None

    candidates: list[tuple[str, str]] = []
    for name, entries in addresses.items():
        iface_stats = stats.get(name)
        if iface_stats is not None and not iface_stats.isup:
            continue
        for entry in entries:
            if entry.family == socket.AF_INET and _is_usable(entry.address):
                candidates.append((name, entry.address))

    for name, address in candidates:
        if address == preferred_ip:
            logger.debug("Route source %s is on %s", address, name)
            return subnet_prefix(address)

    for name, address in candidates:
        if not is_virtual_interface(name):
            logger.debug("Found IPv4 address %s on %s", address, name)
            return subnet_prefix(address)

    if candidates:
        logger.debug("Ignoring virtual interfaces: %s", [n for n, _ in candidates])
    return None


def _decode_packed_ipv4(packed: int) -> str:
    return ".".join(str((packed >> shift) & 0xFF) for shift in (24, 16, 8, 0))


def route_source_address() -> str | None:
    """Ask the kernel which source address it would use for an outbound datagram.

    No packet is sent; connecting a UDP socket only selects a route.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            local_ip = sock.getsockname()[0]
    except OSError as exc:
        logger.debug("Route lookup failed: %s", exc)
        return None

    packed = int.from_bytes(socket.inet_aton(local_ip), "big")
    if packed == 0:
        return None
    ip = _decode_packed_ipv4(packed)
    if not _is_usable(ip):
        return None
    logger.debug("Route lookup found local address %s", ip)
    return ip


async def subnet_from_common_prefixes(
    is_reachable: Reachability,
    prefixes: Iterable[str] = COMMON_PREFIXES,
    timeout: float = COMMON_PREFIX_TIMEOUT,
) -> str | None:
    for prefix in prefixes:
        if await is_reachable(f"{prefix}.1", timeout):
            logger.debug("Gateway guess %s.1 answered", prefix)
            return prefix
    return None


async def detect_local_subnet(is_reachable: Reachability) -> str | None:
    """Local subnet as three dotted octets, or None if every strategy fails."""
    source = await asyncio.to_thread(route_source_address)

    prefix = await asyncio.to_thread(subnet_from_interfaces, source)
    if prefix:
        logger.debug("Subnet %s detected from interfaces", prefix)
        return prefix
    if source:
        logger.debug("Subnet detected from route source %s", source)
        return subnet_prefix(source)

    prefix = await subnet_from_common_prefixes(is_reachable)
    if prefix is None:
        logger.warning("Could not detect local subnet")
    return prefix


def select_broadcast_address(device_ip: str | None, local_subnet: str | None) -> str:
    """Pick the WOL destination: the device's own /24, then ours, then global."""
    broadcast = infer_broadcast_address(device_ip)
    if broadcast:
        return broadcast
    if local_subnet:
        return f"{local_subnet}.255"
    return GLOBAL_BROADCAST
