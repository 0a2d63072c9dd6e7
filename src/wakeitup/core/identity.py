"""Hostname, MAC and vendor enrichment for discovered hosts."""

from __future__ import annotations

import asyncio
import logging
import re
import socket

from .inspector import NetworkInspector

logger = logging.getLogger(__name__)

DEFAULT_DNS_TIMEOUT = 0.8
ZERO_MAC = "00:00:00:00:00:00"

_MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$")

MAC_VENDORS: dict[str, str] = {
    "00:50:56": "VMware",
    "00:0C:29": "VMware",
    "00:1A:11": "Google",
    "08:00:27": "VirtualBox",
    "00:1B:44": "SanDisk",
    "00:25:00": "Apple",
    "08:00:20": "Oracle",
    "00:04:76": "3Com",
    "00:13:10": "Cisco",
    "00:1C:B3": "Apple",
    "00:1D:BA": "Sony",
    "00:21:19": "Samsung",
    "00:22:41": "Apple",
    "00:25:BC": "Apple",
    "00:26:BB": "Apple",
    "00:30:48": "Supermicro",
    "00:0E:8F": "Sercomm",
    "00:90:FB": "TP-Link",
    "18:31:BF": "Netgear",
    "B8:27:EB": "Raspberry Pi",
    "DC:A6:32": "Raspberry Pi",
    "E0:DC:FF": "Xiaomi",
    "D8:3A:DD": "Intel",
    "48:D7:05": "Apple",
    "68:DB:CA": "Apple",
    "A0:99:9B": "Apple",
}


def get_mac_vendor(prefix: str) -> str | None:
    """Look up a three-octet OUI prefix such as ``"B8:27:EB"``."""
    return MAC_VENDORS.get(prefix.upper().replace("-", ":"))


def is_valid_mac(value: str | None) -> bool:
    return bool(value) and _MAC_PATTERN.match(value or "") is not None


def interface_kind(interface: str) -> str:
    lowered = interface.lower()
    if "wlan" in lowered or lowered.startswith("wl"):
        return "WiFi"
    if "eth" in lowered or lowered.startswith("en"):
        return "Ethernet"
    return "Device"


def _reverse_lookup(ip: str) -> str | None:
    try:
        hostname, aliases, _ = socket.gethostbyaddr(ip)
    except (OSError, UnicodeError):
        return None

    # gethostbyaddr reports the canonical name first; aliases are plain names.
    for candidate in (hostname, *aliases):
        if candidate and candidate != ip:
            return candidate
    return None


class IdentityResolver:
    """Resolves a display name and MAC for an IP, memoizing names per process.

    Name resolution cascades through reverse DNS, a NetBIOS-style lookup,
    the neighbor table (vendor + interface heuristic) and finally a synthetic
    ``Device <octet>`` label. Every outcome, including ``None``, is cached.
    """

    def __init__(
        self,
        inspector: NetworkInspector,
        dns_timeout: float = DEFAULT_DNS_TIMEOUT,
    ) -> None:
        self._inspector = inspector
        self._dns_timeout = dns_timeout
        self._cache: dict[str, str | None] = {}

    @property
    def cache(self) -> dict[str, str | None]:
        return self._cache

    async def resolve_hostname(self, ip: str) -> str | None:
        if ip in self._cache:
            return self._cache[ip]

        logger.debug("Resolving hostname for %s", ip)
        name = await self._lookup_dns(ip)
        if name is None:
            name = await asyncio.to_thread(self._lookup_fallback, ip)

        self._cache[ip] = name
        return name

    async def _lookup_dns(self, ip: str) -> str | None:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(_reverse_lookup, ip), timeout=self._dns_timeout
            )
        except (asyncio.TimeoutError, TimeoutError):
            logger.debug("Reverse DNS for %s timed out", ip)
            return None

    def _lookup_fallback(self, ip: str) -> str | None:
        try:
            name = self._inspector.lookup_name_service(ip)
            if name:
                logger.debug("Found NetBIOS name %s for %s", name, ip)
                return name
            name = self._name_from_neighbor(ip)
            if name:
                return name
        except OSError as exc:
            logger.debug("Alternative hostname lookup for %s failed: %s", ip, exc)

        last_octet = ip.rsplit(".", 1)[-1]
        return f"Device {last_octet}" if last_octet else None

    def _name_from_neighbor(self, ip: str) -> str | None:
        entry = self._inspector.lookup_neighbor(ip)
        if entry is None or not entry.interface:
            return None

        kind = interface_kind(entry.interface)
        if entry.mac and entry.mac != ZERO_MAC:
            vendor = get_mac_vendor(entry.mac[:8])
            if vendor:
                return f"{vendor} {kind}"
        return f"{kind} on {ip.rsplit('.', 1)[-1]}"

    def resolve_mac(self, ip: str) -> str | None:
        """Neighbor-table MAC for ``ip``. Blocking; call from a worker thread."""
        try:
            mac = self._inspector.lookup_neighbor_mac(ip)
        except OSError as exc:
            logger.debug("Failed to get MAC for %s: %s", ip, exc)
            return None

        if not mac or mac == ZERO_MAC or not is_valid_mac(mac):
            return None
        return mac
