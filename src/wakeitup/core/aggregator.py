from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from wakeitup.models import PROBE_TOTAL, NetworkDevice

logger = logging.getLogger(__name__)

DevicesCallback = Callable[[list[NetworkDevice]], None]


class DeviceAggregator:
    """Thread-safe, deduplicated device list plus the probe progress counter."""

    def __init__(self, total: int = PROBE_TOTAL) -> None:
        self._lock = threading.Lock()
        self._devices: list[NetworkDevice] = []
        self._keys: set[tuple[str, str, int, str]] = set()
        self._progress = 0
        self._total = total
        self._subscribers: list[DevicesCallback] = []

    @property
    def total(self) -> int:
        return self._total

    @property
    def progress(self) -> int:
        with self._lock:
            return self._progress

    def devices(self) -> list[NetworkDevice]:
        with self._lock:
            return list(self._devices)

    def subscribe(self, callback: DevicesCallback) -> None:
        self._subscribers.append(callback)

    def _notify(self, snapshot: list[NetworkDevice]) -> None:
        for callback in self._subscribers:
            callback(snapshot)

    def commit(self, device: NetworkDevice) -> bool:
        """Append unless a device with the same identity key is already present."""
        with self._lock:
            if device.identity_key in self._keys:
                return False
            self._append(device)
            snapshot = list(self._devices)
        self._notify(snapshot)
        return True

    def commit_new_ip(self, device: NetworkDevice) -> bool:
        """Append only if no device with this IP has been committed yet."""
        with self._lock:
            if any(existing.ip == device.ip for existing in self._devices):
                return False
            if device.identity_key in self._keys:
                return False
            self._append(device)
            snapshot = list(self._devices)
        self._notify(snapshot)
        return True

    def _append(self, device: NetworkDevice) -> None:
        self._devices.append(device)
        self._keys.add(device.identity_key)
        logger.debug(
            "Committed %s (%s, %s)", device.name, device.ip, device.service_type
        )

    def remove_service(self, name: str, service_type: str) -> int:
        with self._lock:
            kept = [
                device
                for device in self._devices
                if not (device.name == name and device.service_type == service_type)
            ]
            removed = len(self._devices) - len(kept)
            if removed:
                self._devices = kept
                self._keys = {device.identity_key for device in kept}
            snapshot = list(self._devices)
        if removed:
            self._notify(snapshot)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._devices = []
            self._keys = set()
        self._notify([])

    def advance_progress(self) -> int:
        with self._lock:
            self._progress = min(self._progress + 1, self._total)
            return self._progress

    def reset_progress(self) -> None:
        with self._lock:
            self._progress = 0
