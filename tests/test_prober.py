from __future__ import annotations

import asyncio

from wakeitup.config import ScanningConfig
from wakeitup.core.aggregator import DeviceAggregator
from wakeitup.core.prober import SubnetProber
from wakeitup.core.session import ScanSession
from wakeitup.models import PING_SERVICE_TYPE

FAST = ScanningConfig(probe_chains=25, found_delay=0, idle_delay=0)


class _FakeResolver:
    def __init__(self, names=None, macs=None):
        self.names = names or {}
        self.macs = macs or {}

    async def resolve_hostname(self, ip):
        return self.names.get(ip)

    def resolve_mac(self, ip):
        return self.macs.get(ip)


def _sweep(prober: SubnetProber, session: ScanSession, prefix: str) -> None:
    async def _run():
        await asyncio.gather(*prober.launch(session, prefix))

    asyncio.run(_run())


def test_striped_chains_visit_every_host_once():
    visited: list[str] = []

    async def _reachable(ip, timeout):
        visited.append(ip)
        return False

    aggregator = DeviceAggregator()
    prober = SubnetProber(aggregator, _FakeResolver(), FAST, is_reachable=_reachable)
    _sweep(prober, ScanSession(), "192.168.1")

    assert len(visited) == 254
    assert set(visited) == {f"192.168.1.{i}" for i in range(1, 255)}
    assert aggregator.progress == 254
    assert aggregator.devices() == []


def test_single_chain_stride():
    visited: list[str] = []

    async def _reachable(ip, timeout):
        visited.append(ip)
        return False

    prober = SubnetProber(
        DeviceAggregator(), _FakeResolver(), FAST, is_reachable=_reachable
    )
    asyncio.run(prober.probe_chain(ScanSession(), "10.0.0", 3, 25))

    assert visited == [f"10.0.0.{i}" for i in range(3, 255, 25)]


def test_reachable_host_without_name_is_named_by_ip():
    async def _reachable(ip, timeout):
        return ip == "192.168.1.50"

    aggregator = DeviceAggregator()
    resolver = _FakeResolver(macs={"192.168.1.50": "aa:bb:cc:dd:ee:ff"})
    prober = SubnetProber(aggregator, resolver, FAST, is_reachable=_reachable)
    _sweep(prober, ScanSession(), "192.168.1")

    [device] = aggregator.devices()
    assert device.name == "192.168.1.50"
    assert device.ip == "192.168.1.50"
    assert device.port == 9
    assert device.service_type == PING_SERVICE_TYPE
    assert device.mac_address == "aa:bb:cc:dd:ee:ff"
    assert device.broadcast_address == "192.168.1.255"


def test_closed_session_stops_chain_without_commit():
    session = ScanSession()
    visited: list[str] = []

    async def _reachable(ip, timeout):
        visited.append(ip)
        session.close()
        return True

    aggregator = DeviceAggregator()
    config = ScanningConfig(probe_chains=1, found_delay=0, idle_delay=0)
    prober = SubnetProber(
        aggregator, _FakeResolver(), config, is_reachable=_reachable
    )
    _sweep(prober, session, "192.168.1")

    assert visited == ["192.168.1.1"]
    assert aggregator.devices() == []
    assert aggregator.progress == 0


def test_cancel_probes_cancels_chains():
    async def _hang(ip, timeout):
        await asyncio.sleep(10)
        return False

    async def _run():
        session = ScanSession()
        prober = SubnetProber(
            DeviceAggregator(), _FakeResolver(), FAST, is_reachable=_hang
        )
        tasks = prober.launch(session, "192.168.1")
        await asyncio.sleep(0)
        session.cancel_probes()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        return session, results

    session, results = asyncio.run(_run())
    assert session.probe_tasks == []
    assert len(results) == 25
    assert all(isinstance(r, asyncio.CancelledError) for r in results)
