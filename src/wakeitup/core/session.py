from __future__ import annotations

import asyncio
import itertools
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zeroconf.asyncio import AsyncZeroconf

_generations = itertools.count(1)


@dataclass
class ListenerHandle:
    service_type: str
    browser: Any
    queue: asyncio.Queue[Any]
    consumer: asyncio.Task[None] | None = None


@dataclass
class ScanSession:
    """State owned by one scan generation.

    ``scanning`` gates probing and new service candidates; ``listening`` stays
    set a little longer so resolutions already in flight can still land.
    Work holding an older session sees both cleared and commits nothing.
    """

    generation: int = field(default_factory=lambda: next(_generations))
    probe_tasks: list[asyncio.Task[None]] = field(default_factory=list)
    resolve_tasks: set[asyncio.Task[None]] = field(default_factory=set)
    listeners: dict[str, ListenerHandle] = field(default_factory=dict)
    zeroconf: AsyncZeroconf | None = None

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._scanning = threading.Event()
        self._listening = threading.Event()
        self._pending: dict[str, str] = {}
        self._scanning.set()
        self._listening.set()

    @property
    def scanning(self) -> bool:
        return self._scanning.is_set()

    @property
    def listening(self) -> bool:
        return self._listening.is_set()

    def finish_scanning(self) -> bool:
        """Clear the scanning flag; True only for the call that actually cleared it."""
        with self._lock:
            if not self._scanning.is_set():
                return False
            self._scanning.clear()
            return True

    def close(self) -> bool:
        changed = self.finish_scanning()
        self._listening.clear()
        return changed

    def add_pending(self, key: str, name: str) -> bool:
        with self._lock:
            if key in self._pending:
                return False
            self._pending[key] = name
            return True

    def drop_pending(self, key: str) -> None:
        with self._lock:
            self._pending.pop(key, None)

    def pending(self) -> dict[str, str]:
        with self._lock:
            return dict(self._pending)

    def clear_pending(self) -> None:
        with self._lock:
            self._pending.clear()

    def cancel_probes(self) -> None:
        for task in self.probe_tasks:
            if not task.done():
                task.cancel()
        self.probe_tasks.clear()

    def cancel_resolutions(self) -> None:
        for task in list(self.resolve_tasks):
            if not task.done():
                task.cancel()
        self.resolve_tasks.clear()
