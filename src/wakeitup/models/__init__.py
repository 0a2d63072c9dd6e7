"""Data models for wakeitup."""

from wakeitup.models.device import (
    DEFAULT_WOL_PORT,
    PING_SERVICE_TYPE,
    PROBE_TOTAL,
    Group,
    NetworkDevice,
    SavedDevice,
    ScanState,
)

__all__ = [
    "DEFAULT_WOL_PORT",
    "Group",
    "NetworkDevice",
    "PING_SERVICE_TYPE",
    "PROBE_TOTAL",
    "SavedDevice",
    "ScanState",
]
