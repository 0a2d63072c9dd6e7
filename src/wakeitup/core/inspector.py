"""Platform access to the neighbor (ARP) table and NetBIOS-style name lookups."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

PROC_NET_ARP = Path("/proc/net/arp")
COMMAND_TIMEOUT = 1.0

_NMBLOOKUP_NAME = re.compile(r"^\s*(\S+)\s+<00>\s+-\s+(?!<GROUP>)\S", re.MULTILINE)


@dataclass(frozen=True)
class NeighborEntry:
    ip: str
    mac: str
    interface: str = ""


class NetworkInspector(Protocol):
    def lookup_neighbor(self, ip: str) -> NeighborEntry | None: ...

    def lookup_neighbor_mac(self, ip: str) -> str | None: ...

    def lookup_name_service(self, ip: str) -> str | None: ...


def parse_proc_net_arp(text: str) -> list[NeighborEntry]:
    """Parse the kernel ARP table format (header line, whitespace columns)."""
    entries: list[NeighborEntry] = []
    for line in text.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 4:
            continue
        interface = parts[5] if len(parts) >= 6 else ""
        entries.append(NeighborEntry(ip=parts[0], mac=parts[3], interface=interface))
    return entries


def parse_ip_neigh(text: str) -> list[NeighborEntry]:
    """Parse `ip neigh show` output: `<ip> dev <if> lladdr <mac> <STATE>`."""
    entries: list[NeighborEntry] = []
    for line in text.splitlines():
        parts = line.split()
        if not parts or "lladdr" not in parts:
            continue
        mac = parts[parts.index("lladdr") + 1] if parts[-1] != "lladdr" else ""
        interface = ""
        if "dev" in parts and parts.index("dev") + 1 < len(parts):
            interface = parts[parts.index("dev") + 1]
        entries.append(NeighborEntry(ip=parts[0], mac=mac, interface=interface))
    return entries


def parse_nmblookup(text: str) -> str | None:
    match = _NMBLOOKUP_NAME.search(text)
    return match.group(1) if match else None


def parse_getent_hosts(text: str, ip: str) -> str | None:
    parts = text.split()
    if len(parts) > 1 and parts[0] == ip:
        return parts[1]
    return None


def _run(command: list[str]) -> str | None:
    if shutil.which(command[0]) is None:
        return None
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=COMMAND_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("%s failed: %s", command[0], exc)
        return None
    if result.returncode != 0:
        return None
    return result.stdout


class LinuxNetworkInspector:
    """Reads /proc/net/arp, falling back to `ip neigh`; names via nmblookup/getent.

    All methods block and are meant to run in a worker thread.
    """

    def __init__(self, arp_path: Path = PROC_NET_ARP) -> None:
        self._arp_path = arp_path

    def neighbor_table(self) -> list[NeighborEntry]:
        try:
            return parse_proc_net_arp(self._arp_path.read_text())
        except OSError as exc:
            logger.debug("Cannot read %s: %s", self._arp_path, exc)

        output = _run(["ip", "neigh", "show"])
        return parse_ip_neigh(output) if output else []

    def lookup_neighbor(self, ip: str) -> NeighborEntry | None:
        for entry in self.neighbor_table():
            if entry.ip == ip:
                return entry
        return None

    def lookup_neighbor_mac(self, ip: str) -> str | None:
        entry = self.lookup_neighbor(ip)
        return entry.mac if entry else None

    def lookup_name_service(self, ip: str) -> str | None:
        output = _run(["nmblookup", "-A", ip])
        if output:
            name = parse_nmblookup(output)
            if name:
                return name

        output = _run(["getent", "hosts", ip])
        if output:
            return parse_getent_hosts(output, ip)
        return None
