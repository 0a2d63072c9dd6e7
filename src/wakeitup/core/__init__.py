from __future__ import annotations

from .aggregator import DeviceAggregator
from .identity import IdentityResolver, get_mac_vendor
from .inspector import LinuxNetworkInspector, NeighborEntry, NetworkInspector
from .prober import SubnetProber, is_host_reachable
from .scanner import NetworkScanner
from .services import (
    ListenerEvent,
    ListenerEventKind,
    ServiceDiscoveryAdapter,
    clean_service_name,
    extract_friendly_name,
)
from .session import ScanSession
from .subnet import (
    detect_local_subnet,
    infer_broadcast_address,
    is_valid_ipv4,
    select_broadcast_address,
)
from .wol import build_magic_packet, send_magic_packet

__all__ = [
    "DeviceAggregator",
    "IdentityResolver",
    "LinuxNetworkInspector",
    "ListenerEvent",
    "ListenerEventKind",
    "NeighborEntry",
    "NetworkInspector",
    "NetworkScanner",
    "ScanSession",
    "ServiceDiscoveryAdapter",
    "SubnetProber",
    "build_magic_packet",
    "clean_service_name",
    "detect_local_subnet",
    "extract_friendly_name",
    "get_mac_vendor",
    "infer_broadcast_address",
    "is_host_reachable",
    "is_valid_ipv4",
    "select_broadcast_address",
    "send_magic_packet",
]
