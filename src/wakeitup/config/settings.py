from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, default_data_dir, expand_path

CONFIG_ENV_VAR = "WAKEITUP_CONFIG"
DEFAULT_GROUP = "Bookmarked"

SERVICE_TYPES: tuple[str, ...] = (
    "_services._dns-sd._udp",
    "_http._tcp.",
    "_workstation._tcp.",
    "_companion-link._tcp.",
    "_ssh._tcp.",
    "_smb._tcp.",
    "_printer._tcp.",
    "_ipp._tcp.",
    "_device-info._tcp.",
    "_googlecast._tcp.",
    "_spotify-connect._tcp.",
    "_airplay._tcp.",
    "_raop._tcp.",
    "_sleep-proxy._udp",
    "_sleep-proxy._tcp",
    "_homekit._tcp",
)

PRIORITY_SERVICE_TYPES: tuple[str, ...] = (
    "_workstation._tcp.",
    "_http._tcp.",
    "_smb._tcp.",
)


class DatabaseConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(default_factory=lambda: str(default_data_dir()))


class ScanningConfig(BaseModel):
    """Timing and fan-out knobs for one discovery scan. Durations are seconds."""

    model_config = {"frozen": True, "extra": "forbid"}

    probe_chains: int = Field(default=25, ge=1, le=254)
    ping_timeout: float = Field(default=0.2, gt=0)
    scan_window: float = Field(default=3.0, ge=0)
    listener_grace: float = Field(default=1.0, ge=0)
    dns_timeout: float = Field(default=0.8, gt=0)
    resolve_timeout: float = Field(default=3.0, gt=0)
    priority_stagger: float = Field(default=0.1, ge=0)
    stagger: float = Field(default=0.08, ge=0)
    priority_pause: float = Field(default=0.5, ge=0)
    found_delay: float = Field(default=0.002, ge=0)
    idle_delay: float = Field(default=0.005, ge=0)
    wol_port: int = Field(default=9, ge=1, le=65535)
    service_types: tuple[str, ...] = SERVICE_TYPES
    priority_service_types: tuple[str, ...] = PRIORITY_SERVICE_TYPES


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scanning: ScanningConfig = Field(default_factory=ScanningConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def data_dir_from_settings(settings: Settings) -> Path:
    return expand_path(settings.database.path)


def _toml_value(value: object) -> str:
    if isinstance(value, tuple):
        value = list(value)
    return json.dumps(value)


def render_settings_toml(settings: Settings) -> str:
    lines = [
        "# wakeitup configuration",
        "",
        "[database]",
        f"path = {_toml_value(settings.database.path)}",
        "",
        "[scanning]",
    ]
    for key, value in settings.scanning.model_dump().items():
        lines.append(f"{key} = {_toml_value(value)}")
    lines.append("")
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
