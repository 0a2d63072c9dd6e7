from __future__ import annotations

import asyncio
import socket
from types import SimpleNamespace

from wakeitup.core import subnet
from wakeitup.core.subnet import (
    GLOBAL_BROADCAST,
    detect_local_subnet,
    infer_broadcast_address,
    select_broadcast_address,
    subnet_from_common_prefixes,
    subnet_from_interfaces,
)


def test_infer_broadcast_address():
    assert infer_broadcast_address("10.0.0.42") == "10.0.0.255"
    assert infer_broadcast_address("192.168.1.1") == "192.168.1.255"
    assert infer_broadcast_address("not-an-ip") is None
    assert infer_broadcast_address("") is None
    assert infer_broadcast_address(None) is None


def test_select_broadcast_prefers_device_subnet():
    assert select_broadcast_address("192.168.1.20", "10.0.0") == "192.168.1.255"
    assert select_broadcast_address("", "10.0.0") == "10.0.0.255"
    assert select_broadcast_address("garbage", None) == GLOBAL_BROADCAST


def test_decode_packed_ipv4_is_big_endian():
    assert subnet._decode_packed_ipv4(0xC0A80132) == "192.168.1.50"


def _entry(address, family=socket.AF_INET):
    return SimpleNamespace(family=family, address=address)


def _fake_interfaces(monkeypatch, interfaces):
    """``interfaces`` maps name -> (is_up, [addresses]) in enumeration order."""
    addresses = {
        name: [
            _entry(a, socket.AF_INET6 if ":" in a else socket.AF_INET) for a in ips
        ]
        for name, (_, ips) in interfaces.items()
    }
    stats = {name: SimpleNamespace(isup=up) for name, (up, _) in interfaces.items()}
    monkeypatch.setattr(subnet.psutil, "net_if_addrs", lambda: addresses)
    monkeypatch.setattr(subnet.psutil, "net_if_stats", lambda: stats)


DOCKER_HOST = {
    "lo": (True, ["127.0.0.1"]),
    "docker0": (True, ["172.17.0.1"]),
    "br-5f2c9a1e": (True, ["172.18.0.1"]),
    "tun0": (True, ["10.8.0.6"]),
    "eth1": (False, ["192.168.50.2"]),
    "wlan0": (True, ["fe80::1", "192.168.7.23"]),
}


def test_interfaces_prefer_route_source(monkeypatch):
    _fake_interfaces(monkeypatch, DOCKER_HOST)

    assert subnet_from_interfaces("192.168.7.23") == "192.168.7"
    assert subnet_from_interfaces("10.8.0.6") == "10.8.0"


def test_interfaces_skip_virtual_and_down(monkeypatch):
    _fake_interfaces(monkeypatch, DOCKER_HOST)
    assert subnet_from_interfaces() == "192.168.7"

    _fake_interfaces(monkeypatch, {"docker0": (True, ["172.17.0.1"])})
    assert subnet_from_interfaces() is None

def test_common_prefixes_probe_gateways_in_order():
    probed: list[str] = []

    async def _reachable(ip: str, timeout: float) -> bool:
        probed.append(ip)
        return ip == "10.0.0.1"

    assert asyncio.run(subnet_from_common_prefixes(_reachable)) == "10.0.0"
    assert probed == ["192.168.0.1", "192.168.1.1", "10.0.0.1"]


def test_detect_uses_active_interface_with_docker_up(monkeypatch):
    async def _never(ip: str, timeout: float) -> bool:
        return False

    _fake_interfaces(monkeypatch, DOCKER_HOST)
    monkeypatch.setattr(subnet, "route_source_address", lambda: "192.168.7.23")

    assert asyncio.run(detect_local_subnet(_never)) == "192.168.7"


def test_detect_falls_through_strategies(monkeypatch):
    async def _gateway(ip: str, timeout: float) -> bool:
        return ip == "192.168.1.1"

    _fake_interfaces(monkeypatch, {"docker0": (True, ["172.17.0.1"])})
    monkeypatch.setattr(subnet, "route_source_address", lambda: "172.16.5.9")
    assert asyncio.run(detect_local_subnet(_gateway)) == "172.16.5"

    monkeypatch.setattr(subnet, "route_source_address", lambda: None)
    assert asyncio.run(detect_local_subnet(_gateway)) == "192.168.1"

    async def _never(ip: str, timeout: float) -> bool:
        return False

    assert asyncio.run(detect_local_subnet(_never)) is None
