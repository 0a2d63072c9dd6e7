from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from wakeitup.config import DEFAULT_GROUP
from wakeitup.models import Group, SavedDevice

logger = logging.getLogger(__name__)

DEVICES_FILE = "devices.toml"


def _toml_string(value: str) -> str:
    return json.dumps(value)


def _render_devices_toml(groups: list[str], devices: list[SavedDevice]) -> str:
    lines = [
        "# wakeitup saved devices",
        "",
        f"groups = [{', '.join(_toml_string(name) for name in groups)}]",
    ]

    for device in devices:
        lines.extend(
            [
                "",
                "[[devices]]",
                f"name = {_toml_string(device.name)}",
                f"mac_address = {_toml_string(device.mac_address)}",
                f"ip_address = {_toml_string(device.ip_address)}",
                f"port = {device.port}",
                f"group_name = {_toml_string(device.group_name)}",
                f"color = {device.color}",
            ]
        )

    lines.append("")
    return "\n".join(lines)


class DeviceStore:
    """Saved devices and groups in a single TOML file, keyed by device name."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._devices_path = data_dir / DEVICES_FILE

    @property
    def path(self) -> Path:
        return self._data_dir

    @property
    def devices_path(self) -> Path:
        return self._devices_path

    def ensure_dirs(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)

    def _load(self) -> tuple[list[str], list[SavedDevice]]:
        if not self._devices_path.exists():
            return [DEFAULT_GROUP], []

        try:
            with self._devices_path.open("rb") as handle:
                data = tomllib.load(handle) or {}
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(
                f"Invalid TOML in devices file: {self._devices_path}\n{exc}"
            ) from exc

        try:
            devices = [SavedDevice.model_validate(d) for d in data.get("devices", [])]
        except ValidationError as exc:
            raise ValueError(
                f"Invalid devices file: {self._devices_path}\n{exc}"
            ) from exc

        groups = [str(name) for name in data.get("groups", [])]
        if DEFAULT_GROUP not in groups:
            groups.insert(0, DEFAULT_GROUP)
        return groups, devices

    def _save(self, groups: list[str], devices: list[SavedDevice]) -> None:
        self.ensure_dirs()
        self._devices_path.write_text(_render_devices_toml(groups, devices))

    def list_all_devices(self) -> list[SavedDevice]:
        return self._load()[1]

    def list_devices_in_group(self, name: str) -> list[SavedDevice]:
        return [d for d in self.list_all_devices() if d.group_name == name]

    def get_device(self, name: str) -> SavedDevice | None:
        for device in self.list_all_devices():
            if device.name == name:
                return device
        return None

    def insert_or_replace(self, device: SavedDevice) -> None:
        groups, devices = self._load()
        devices = [d for d in devices if d.name != device.name]
        devices.append(device)
        if device.group_name not in groups:
            groups.append(device.group_name)
        self._save(groups, devices)
        logger.debug("Saved device %s in group %s", device.name, device.group_name)

    def delete(self, device: SavedDevice) -> bool:
        groups, devices = self._load()
        kept = [d for d in devices if d.name != device.name]
        if len(kept) == len(devices):
            return False
        self._save(groups, kept)
        return True

    def list_groups(self) -> list[Group]:
        groups, _ = self._load()
        return [Group(name=name) for name in sorted(set(groups))]

    def insert_group_if_absent(self, name: str) -> bool:
        name = name.strip()
        if not name:
            return False
        groups, devices = self._load()
        if name in groups:
            return False
        groups.append(name)
        self._save(groups, devices)
        return True

    def get_group_by_name(self, name: str) -> Group | None:
        groups, _ = self._load()
        return Group(name=name) if name in groups else None

    def init(self) -> None:
        self.ensure_dirs()
        if not self._devices_path.exists():
            self._save([DEFAULT_GROUP], [])
