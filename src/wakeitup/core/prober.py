from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from collections.abc import Callable

from wakeitup.config import ScanningConfig
from wakeitup.models import (
    DEFAULT_WOL_PORT,
    PING_SERVICE_TYPE,
    PROBE_TOTAL,
    NetworkDevice,
)

from .aggregator import DeviceAggregator
from .identity import IdentityResolver
from .session import ScanSession
from .subnet import GLOBAL_BROADCAST, Reachability, infer_broadcast_address

logger = logging.getLogger(__name__)


async def is_host_reachable(ip: str, timeout: float) -> bool:
    """Send one ICMP echo via the system ``ping``; any failure counts as unreachable."""
    wait_seconds = str(max(1, int(timeout + 0.999)))
    try:
        process = await asyncio.create_subprocess_exec(
            "ping",
            "-n",
            "-c",
            "1",
            "-W",
            wait_seconds,
            ip,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        logger.debug("Cannot run ping for %s: %s", ip, exc)
        return False

    try:
        returncode = await asyncio.wait_for(process.wait(), timeout=timeout)
    except (asyncio.TimeoutError, TimeoutError):
        returncode = None
    finally:
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
    return returncode == 0


class SubnetProber:
    """Striped ping sweep of a /24.

    Chain ``i`` of ``step`` visits host octets ``i, i + step, i + 2 * step, ...``
    so at most ``step`` reachability checks are outstanding at once.
    """

    def __init__(
        self,
        aggregator: DeviceAggregator,
        resolver: IdentityResolver,
        config: ScanningConfig,
        is_reachable: Reachability = is_host_reachable,
        on_progress: Callable[[int], None] | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._resolver = resolver
        self._config = config
        self._is_reachable = is_reachable
        self._on_progress = on_progress

    def launch(self, session: ScanSession, prefix: str) -> list[asyncio.Task[None]]:
        step = self._config.probe_chains
        logger.info("Starting ping sweep of %s.0/24 with %d chains", prefix, step)
        for start in range(1, min(step, PROBE_TOTAL) + 1):
            if not session.scanning:
                break
            task = asyncio.create_task(self.probe_chain(session, prefix, start, step))
            session.probe_tasks.append(task)
        return list(session.probe_tasks)

    async def probe_chain(
        self, session: ScanSession, prefix: str, start: int, step: int
    ) -> None:
        index = start
        logger.debug("Chain %d starting at %s.%d, step %d", start, prefix, index, step)
        while index <= PROBE_TOTAL and session.scanning:
            ip = f"{prefix}.{index}"
            found = False
            reachable = await self._is_reachable(ip, self._config.ping_timeout)
            if reachable and session.scanning:
                found = await self._commit_host(session, ip)

            if not session.scanning:
                break
            progress = self._aggregator.advance_progress()
            if self._on_progress is not None:
                self._on_progress(progress)

            index += step
            await asyncio.sleep(self._delay(found))
        logger.debug("Chain %d finished or scan stopped", start)

    def _delay(self, found: bool) -> float:
        base = self._config.found_delay if found else self._config.idle_delay
        return base + random.uniform(0, base)

    async def _commit_host(self, session: ScanSession, ip: str) -> bool:
        hostname = await self._resolver.resolve_hostname(ip)
        mac_address = await asyncio.to_thread(self._resolver.resolve_mac, ip)
        if not session.scanning:
            return False

        logger.info(
            "Device found: %s (hostname: %s, MAC: %s)",
            ip,
            hostname or "N/A",
            mac_address or "unknown",
        )
        device = NetworkDevice(
            name=hostname or ip,
            ip=ip,
            port=DEFAULT_WOL_PORT,
            service_type=PING_SERVICE_TYPE,
            mac_address=mac_address,
            broadcast_address=infer_broadcast_address(ip) or GLOBAL_BROADCAST,
        )
        self._aggregator.commit_new_ip(device)
        return True
