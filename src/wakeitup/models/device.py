"""Device models."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from wakeitup.config.settings import DEFAULT_GROUP

PING_SERVICE_TYPE = "ping_discovered"
DEFAULT_WOL_PORT = 9
PROBE_TOTAL = 254


class NetworkDevice(BaseModel):
    """One endpoint found by a scan (ping sweep or service advertisement)."""

    model_config = {"frozen": True}

    name: str
    ip: str
    port: int
    service_type: str
    mac_address: str | None = None
    broadcast_address: str = ""

    @property
    def identity_key(self) -> tuple[str, str, int, str]:
        return (self.ip, self.name, self.port, self.service_type)


@dataclass(frozen=True)
class ScanState:
    is_scanning: bool = False
    progress: int = 0
    total: int = PROBE_TOTAL


class SavedDevice(BaseModel):
    """Device remembered by the user, grouped by name."""

    name: str
    mac_address: str
    ip_address: str = ""
    port: int = DEFAULT_WOL_PORT
    group_name: str = DEFAULT_GROUP
    color: int = 0

    @classmethod
    def from_network_device(
        cls,
        device: NetworkDevice,
        group_name: str = DEFAULT_GROUP,
        port: int = DEFAULT_WOL_PORT,
    ) -> SavedDevice:
        """Remember a scan result; advertised service ports are not WOL ports."""
        return cls(
            name=device.name,
            mac_address=device.mac_address or "",
            ip_address=device.ip,
            port=port,
            group_name=group_name,
        )


class Group(BaseModel):
    name: str
