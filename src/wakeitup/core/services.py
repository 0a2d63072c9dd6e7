"""Multicast DNS service discovery across a catalog of well-known service types."""

from __future__ import annotations

import asyncio
import enum
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote_plus

from zeroconf import Error as ZeroconfError
from zeroconf import IPVersion, ServiceListener, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from wakeitup.models import NetworkDevice

from .aggregator import DeviceAggregator
from .identity import IdentityResolver
from .session import ListenerHandle, ScanSession
from .subnet import GLOBAL_BROADCAST, infer_broadcast_address

logger = logging.getLogger(__name__)

NAME_ATTRIBUTES = ("n", "fn", "name", "model", "md", "deviceName", "am", "dn")
DEFAULT_RESOLVE_TIMEOUT = 3.0

_CAST_HASH_SUFFIX = re.compile(r"-[0-9a-f]{8}$")


class ListenerEventKind(enum.Enum):
    FOUND = "found"
    LOST = "lost"
    RESOLVED = "resolved"
    RESOLVE_FAILED = "resolve_failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ListenerEvent:
    kind: ListenerEventKind
    service_type: str
    name: str = ""
    full_name: str = ""
    info: Any = None
    error: str | None = None

    @property
    def key(self) -> str:
        return f"{self.name}-{self.service_type}"


def to_zeroconf_type(service_type: str) -> str:
    """``"_http._tcp."`` -> ``"_http._tcp.local."``."""
    base = service_type.rstrip(".")
    if base.endswith(".local"):
        return f"{base}."
    return f"{base}.local."


def _strip_service_suffix(name: str, zc_type: str) -> str:
    suffix = f".{zc_type}"
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return name.rstrip(".")


def _decode_txt_properties(properties: dict[bytes, bytes | None]) -> dict[str, str]:
    decoded: dict[str, str] = {}
    for key, value in (properties or {}).items():
        if key is None:
            continue
        if isinstance(key, bytes):
            key_text = key.decode("utf-8", errors="replace")
        else:
            key_text = str(key)
        if value is None:
            value_text = ""
        elif isinstance(value, bytes):
            value_text = value.decode("utf-8", errors="replace")
        else:
            value_text = str(value)
        decoded[key_text] = value_text
    return decoded


def _is_loopback(address: str) -> bool:
    try:
        return ipaddress.IPv4Address(address).is_loopback
    except ValueError:
        return True


def pick_ipv4(info: Any) -> str | None:
    """Prefer a non-loopback IPv4 from the parsed address list, then the packed one."""
    try:
        candidates = list(info.parsed_addresses(IPVersion.V4Only))
    except (AttributeError, ValueError):
        candidates = []
    for address in candidates:
        if "." in address and not _is_loopback(address):
            return address

    for packed in getattr(info, "addresses", None) or []:
        if len(packed) != 4:
            continue
        address = socket.inet_ntoa(packed)
        if not _is_loopback(address):
            return address
    return None


def extract_friendly_name(info: Any, original: str, host_ip: str | None) -> str:
    properties = _decode_txt_properties(getattr(info, "properties", None) or {})
    for attribute in NAME_ATTRIBUTES:
        value = properties.get(attribute, "").strip()
        if value and value != host_ip:
            logger.debug("Found better name '%s' in attribute '%s'", value, attribute)
            return value
    return original


def clean_service_name(name: str, service_type: str) -> str:
    stripped = name.rstrip(".")
    if stripped.endswith(".local"):
        name = stripped[: -len(".local")]

    if "_googlecast" in service_type:
        name = _CAST_HASH_SUFFIX.sub("", name)
    elif ("_airplay" in service_type or "_raop" in service_type) and "%" in name:
        try:
            name = unquote_plus(name, errors="strict")
        except UnicodeDecodeError:
            logger.debug("Failed to decode device name: %s", name)
    return name


class QueueListener(ServiceListener):
    """Forwards zeroconf browser callbacks into an asyncio queue."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[ListenerEvent],
        service_type: str,
    ) -> None:
        self._loop = loop
        self._queue = queue
        self.service_type = service_type

    def post(self, event: ListenerEvent) -> None:
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            logger.debug("Dropping %s event for closed loop", event.kind.value)

    def _event(self, kind: ListenerEventKind, type_: str, name: str) -> ListenerEvent:
        return ListenerEvent(
            kind=kind,
            service_type=self.service_type,
            name=_strip_service_suffix(name, type_),
            full_name=name,
        )

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.post(self._event(ListenerEventKind.FOUND, type_, name))

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.post(self._event(ListenerEventKind.FOUND, type_, name))

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.post(self._event(ListenerEventKind.LOST, type_, name))


class ServiceDiscoveryAdapter:
    """One zeroconf browser per service type, consumed as an event stream."""

    def __init__(
        self,
        aggregator: DeviceAggregator,
        resolver: IdentityResolver,
        resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT,
    ) -> None:
        self._aggregator = aggregator
        self._resolver = resolver
        self._resolve_timeout = resolve_timeout

    async def _zeroconf(self, session: ScanSession) -> AsyncZeroconf:
        if session.zeroconf is None:
            session.zeroconf = AsyncZeroconf()
        return session.zeroconf

    def _browse(
        self, aiozc: AsyncZeroconf, service_type: str, listener: QueueListener
    ) -> Any:
        return AsyncServiceBrowser(
            aiozc.zeroconf, to_zeroconf_type(service_type), listener=listener
        )

    async def request_info(self, session: ScanSession, event: ListenerEvent) -> Any:
        """Resolve a found service; returns the info or None on failure."""
        aiozc = await self._zeroconf(session)
        info = AsyncServiceInfo(to_zeroconf_type(event.service_type), event.full_name)
        timeout_ms = max(int(self._resolve_timeout * 1000), 1)
        if await info.async_request(aiozc.zeroconf, timeout_ms):
            return info
        return None

    async def start_listener(self, session: ScanSession, service_type: str) -> bool:
        if not session.scanning or service_type in session.listeners:
            return False

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[ListenerEvent] = asyncio.Queue()
        listener = QueueListener(loop, queue, service_type)
        try:
            aiozc = await self._zeroconf(session)
            browser = self._browse(aiozc, service_type, listener)
        except (OSError, ZeroconfError) as exc:
            logger.error("Error starting discovery for %s: %s", service_type, exc)
            return False

        handle = ListenerHandle(service_type=service_type, browser=browser, queue=queue)
        session.listeners[service_type] = handle
        handle.consumer = asyncio.create_task(self._consume(session, handle))
        logger.debug("Discovery initiated for %s", service_type)
        return True

    async def _consume(self, session: ScanSession, handle: ListenerHandle) -> None:
        while True:
            event = await handle.queue.get()
            try:
                await self.handle_event(session, event)
            except (OSError, ZeroconfError, ValueError) as exc:
                logger.warning(
                    "Error handling %s for %s: %s", event.kind.value, event.name, exc
                )
            if event.kind is ListenerEventKind.STOPPED:
                return

    async def handle_event(self, session: ScanSession, event: ListenerEvent) -> None:
        kind = event.kind
        if kind is ListenerEventKind.FOUND:
            self._on_found(session, event)
        elif kind is ListenerEventKind.LOST:
            self._on_lost(session, event)
        elif kind is ListenerEventKind.RESOLVED:
            await self._on_resolved(session, event)
        elif kind is ListenerEventKind.RESOLVE_FAILED:
            logger.warning("Resolve failed for %s: %s", event.name, event.error)
            session.drop_pending(event.key)
        elif kind is ListenerEventKind.STOPPED:
            if event.error:
                logger.error(
                    "Discovery for %s failed: %s", event.service_type, event.error
                )
            else:
                logger.info("Discovery stopped for %s", event.service_type)
            session.listeners.pop(event.service_type, None)

    def _on_found(self, session: ScanSession, event: ListenerEvent) -> None:
        if not session.scanning:
            return
        logger.debug("Service found: %s (type: %s)", event.name, event.service_type)
        if not session.add_pending(event.key, event.name):
            return
        handle = session.listeners.get(event.service_type)
        task = asyncio.create_task(self._resolve(session, event, handle))
        session.resolve_tasks.add(task)
        task.add_done_callback(session.resolve_tasks.discard)

    async def _resolve(
        self, session: ScanSession, event: ListenerEvent, handle: ListenerHandle | None
    ) -> None:
        try:
            info = await self.request_info(session, event)
            error = None if info is not None else "no response"
        except (OSError, ZeroconfError) as exc:
            info, error = None, str(exc)

        if info is not None:
            result = ListenerEvent(
                kind=ListenerEventKind.RESOLVED,
                service_type=event.service_type,
                name=event.name,
                full_name=event.full_name,
                info=info,
            )
        else:
            result = ListenerEvent(
                kind=ListenerEventKind.RESOLVE_FAILED,
                service_type=event.service_type,
                name=event.name,
                full_name=event.full_name,
                error=error,
            )

        consumer = handle.consumer if handle is not None else None
        if handle is not None and consumer is not None and not consumer.done():
            handle.queue.put_nowait(result)
        else:
            await self.handle_event(session, result)

    def _on_lost(self, session: ScanSession, event: ListenerEvent) -> None:
        logger.debug("Service lost: %s", event.name)
        session.drop_pending(event.key)
        if session.scanning:
            self._aggregator.remove_service(event.name, event.service_type)

    async def _on_resolved(self, session: ScanSession, event: ListenerEvent) -> None:
        session.drop_pending(event.key)
        if not session.listening:
            return
        device = await self.build_device(event.info, event.name, event.service_type)
        if device is not None and session.listening:
            self._aggregator.commit(device)

    async def build_device(
        self, info: Any, advertised_name: str, service_type: str
    ) -> NetworkDevice | None:
        ip = pick_ipv4(info)
        if ip is None:
            logger.warning("No suitable IPv4 address for %s", advertised_name)
            return None

        name = extract_friendly_name(info, advertised_name or "Unknown Service", ip)
        name = clean_service_name(name, service_type)
        mac_address = await asyncio.to_thread(self._resolver.resolve_mac, ip)

        logger.info("Service resolved: %s, host: %s, port: %s", name, ip, info.port)
        return NetworkDevice(
            name=name,
            ip=ip,
            port=info.port or 0,
            service_type=service_type,
            mac_address=mac_address,
            broadcast_address=infer_broadcast_address(ip) or GLOBAL_BROADCAST,
        )

    async def stop_listener(self, session: ScanSession, service_type: str) -> None:
        handle = session.listeners.pop(service_type, None)
        if handle is None:
            return
        error = None
        try:
            await handle.browser.async_cancel()
        except (OSError, ZeroconfError, RuntimeError) as exc:
            logger.warning("Error stopping %s: %s", service_type, exc)
            error = str(exc)
        stopped = ListenerEvent(
            kind=ListenerEventKind.STOPPED, service_type=service_type, error=error
        )
        if handle.consumer is not None and not handle.consumer.done():
            handle.queue.put_nowait(stopped)
            await handle.consumer
        else:
            await self.handle_event(session, stopped)

    async def stop_all(self, session: ScanSession) -> None:
        for service_type in list(session.listeners):
            await self.stop_listener(session, service_type)
        session.cancel_resolutions()
        session.clear_pending()

        if session.zeroconf is not None:
            aiozc, session.zeroconf = session.zeroconf, None
            try:
                await aiozc.async_close()
            except (OSError, ZeroconfError, RuntimeError) as exc:
                logger.warning("Error closing zeroconf: %s", exc)
