"""wakeitup - discover hosts on the local subnet and wake them with Wake-on-LAN."""

from __future__ import annotations

from importlib.metadata import version

from .config import DatabaseConfig, ScanningConfig, Settings, get_settings
from .core import NetworkScanner, send_magic_packet
from .models import Group, NetworkDevice, SavedDevice, ScanState
from .storage import DeviceStore

__all__ = [
    "DatabaseConfig",
    "DeviceStore",
    "Group",
    "NetworkDevice",
    "NetworkScanner",
    "SavedDevice",
    "ScanState",
    "ScanningConfig",
    "Settings",
    "__version__",
    "get_settings",
    "send_magic_packet",
]

__version__ = version("wakeitup")
