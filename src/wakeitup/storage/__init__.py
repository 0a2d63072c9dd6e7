from __future__ import annotations

from .database import DEVICES_FILE, DeviceStore

__all__ = ["DEVICES_FILE", "DeviceStore"]
