from __future__ import annotations

from pathlib import Path

import pytest

from wakeitup.config import (
    CONFIG_ENV_VAR,
    DatabaseConfig,
    Settings,
    get_settings,
    write_settings,
)


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config at a temp file whose database lives under tmp_path."""
    data_dir = tmp_path / "data"
    config_path = tmp_path / "config.toml"
    write_settings(Settings(database=DatabaseConfig(path=str(data_dir))), config_path)
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_path))
    get_settings.cache_clear()
    return data_dir
