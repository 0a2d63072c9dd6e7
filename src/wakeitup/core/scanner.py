from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from wakeitup.config import ScanningConfig
from wakeitup.models import NetworkDevice, SavedDevice, ScanState

from .aggregator import DeviceAggregator, DevicesCallback
from .identity import IdentityResolver
from .inspector import LinuxNetworkInspector, NetworkInspector
from .prober import SubnetProber, is_host_reachable
from .services import ServiceDiscoveryAdapter
from .session import ScanSession
from .subnet import (
    Reachability,
    detect_local_subnet,
    is_valid_ipv4,
    select_broadcast_address,
)
from .wol import send_magic_packet

logger = logging.getLogger(__name__)

StateCallback = Callable[[ScanState], None]
SubnetDetector = Callable[[Reachability], Awaitable[str | None]]


class NetworkScanner:
    """Runs discovery scans and exposes their state, results and WOL wake-ups.

    Must be driven from a running asyncio event loop; blocking network work is
    pushed to worker threads or subprocesses.
    """

    def __init__(
        self,
        config: ScanningConfig | None = None,
        inspector: NetworkInspector | None = None,
        is_reachable: Reachability = is_host_reachable,
        detect_subnet: SubnetDetector = detect_local_subnet,
        resolver: IdentityResolver | None = None,
        adapter: ServiceDiscoveryAdapter | None = None,
    ) -> None:
        self.config = config or ScanningConfig()
        self._is_reachable = is_reachable
        self._detect_subnet = detect_subnet
        self._aggregator = DeviceAggregator()
        self._resolver = resolver or IdentityResolver(
            inspector or LinuxNetworkInspector(), dns_timeout=self.config.dns_timeout
        )
        self._prober = SubnetProber(
            self._aggregator,
            self._resolver,
            self.config,
            is_reachable=is_reachable,
            on_progress=lambda _progress: self._publish(),
        )
        self._adapter = adapter or ServiceDiscoveryAdapter(
            self._aggregator,
            self._resolver,
            resolve_timeout=self.config.resolve_timeout,
        )
        self._session: ScanSession | None = None
        self._scan_task: asyncio.Task[None] | None = None
        self._teardown: asyncio.Task[None] | None = None
        self._local_subnet: str | None = None
        self._subscribers: list[StateCallback] = []

    @property
    def state(self) -> ScanState:
        session = self._session
        return ScanState(
            is_scanning=session is not None and session.scanning,
            progress=self._aggregator.progress,
            total=self._aggregator.total,
        )

    @property
    def devices(self) -> list[NetworkDevice]:
        return self._aggregator.devices()

    @property
    def local_subnet(self) -> str | None:
        return self._local_subnet

    @property
    def session(self) -> ScanSession | None:
        return self._session

    def subscribe(self, callback: StateCallback) -> None:
        self._subscribers.append(callback)

    def subscribe_devices(self, callback: DevicesCallback) -> None:
        self._aggregator.subscribe(callback)

    def _publish(self) -> None:
        state = self.state
        for callback in self._subscribers:
            callback(state)

    def start(self) -> asyncio.Task[None] | None:
        """Schedule a scan on the running loop; no-op while one is in progress.

        The new session is installed before returning, so a second call made
        before the task runs sees it and does nothing.
        """
        if self._session is not None and self._session.scanning:
            logger.debug("Scan already in progress")
            return None
        session, teardown = self._begin()
        self._scan_task = asyncio.create_task(self._scan(session, teardown))
        return self._scan_task

    async def scan(self) -> list[NetworkDevice]:
        """Run one full scan and return the devices found."""
        if self._session is not None and self._session.scanning:
            logger.debug("Scan already in progress")
            return self.devices
        await self._scan(*self._begin())
        return self.devices

    def _begin(self) -> tuple[ScanSession, asyncio.Task[None] | None]:
        logger.info("Starting network scan")
        teardown = self.stop()
        session = ScanSession()
        self._session = session
        self._aggregator.clear()
        self._aggregator.reset_progress()
        self._publish()
        return session, teardown

    async def _scan(
        self, session: ScanSession, teardown: asyncio.Task[None] | None
    ) -> None:
        if teardown is not None:
            await teardown
        try:
            await self._run(session)
        finally:
            if session is not self._session or not session.listening:
                await self._release(session)

    async def _release(self, session: ScanSession) -> None:
        """Make sure a retired session holds no probes, browsers or zeroconf."""
        session.close()
        session.cancel_probes()
        if session.listeners or session.zeroconf is not None:
            await self._adapter.stop_all(session)

    async def _run(self, session: ScanSession) -> None:
        config = self.config

        prefix = await self._detect_subnet(self._is_reachable)
        if prefix is not None:
            self._local_subnet = prefix
        logger.debug("Local subnet prefix determined: %s", prefix)

        if prefix is not None and session.scanning:
            self._prober.launch(session, prefix)
        elif prefix is None:
            logger.error("Could not get local subnet prefix, ping sweep skipped")

        priority = [
            t for t in config.priority_service_types if t in config.service_types
        ]
        for service_type in priority:
            if not session.scanning:
                break
            await self._adapter.start_listener(session, service_type)
            await asyncio.sleep(config.priority_stagger)

        if session.scanning:
            await asyncio.sleep(config.priority_pause)

        for service_type in config.service_types:
            if not session.scanning:
                break
            if service_type in priority:
                continue
            await self._adapter.start_listener(session, service_type)
            await asyncio.sleep(config.stagger)

        logger.debug("All scan processes launched, waiting %.2fs", config.scan_window)
        await self._wait_while_scanning(session, config.scan_window)

        if session is not self._session or not session.scanning:
            return

        logger.info("Scan window elapsed, finishing scan")
        session.cancel_probes()
        session.finish_scanning()
        self._publish()

        await asyncio.sleep(config.listener_grace)
        if session is not self._session or not session.listening:
            return
        session.close()
        await self._adapter.stop_all(session)
        logger.info("Scan finished with %d device(s)", len(self.devices))

    @staticmethod
    async def _wait_while_scanning(session: ScanSession, seconds: float) -> None:
        deadline = asyncio.get_running_loop().time() + seconds
        while session.scanning:
            remaining = deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                return
            await asyncio.sleep(min(remaining, 0.05))

    def stop(self) -> asyncio.Task[None] | None:
        """Cancel probing and listeners now. Safe to call repeatedly or when idle.

        Returns the listener teardown task when one had to be scheduled.
        """
        session = self._session
        self._aggregator.reset_progress()
        if session is None:
            return None

        changed = session.close()
        session.cancel_probes()
        if changed:
            logger.info("Network scan stopped")
        self._publish()

        if not session.listeners and session.zeroconf is None:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop, cannot tear down listeners")
            return None
        self._teardown = loop.create_task(self._adapter.stop_all(session))
        return self._teardown

    def clear_results(self) -> None:
        self._aggregator.clear()
        if self._session is not None:
            self._session.clear_pending()

    async def wake(self, device: SavedDevice) -> tuple[bool, str]:
        logger.debug("Attempting to wake %s (MAC: %s)", device.name, device.mac_address)
        if not device.mac_address.strip():
            return False, f"MAC address is missing for {device.name}."

        local_subnet = self._local_subnet
        if local_subnet is None and not is_valid_ipv4(device.ip_address):
            local_subnet = await self._detect_subnet(self._is_reachable)
            self._local_subnet = local_subnet
        broadcast = select_broadcast_address(device.ip_address, local_subnet)
        logger.debug("Targeting broadcast %s for %s", broadcast, device.mac_address)

        sent = await asyncio.to_thread(
            send_magic_packet, device.mac_address, broadcast, device.port
        )
        if sent:
            return True, f"WOL packet sent for {device.name}!"
        return False, f"Failed to send WOL for {device.name}."
