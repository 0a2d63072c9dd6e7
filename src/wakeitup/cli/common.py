"""Helpers shared by the CLI commands: config and store access that exit cleanly."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import NoReturn

import typer

from wakeitup.config import (
    Settings,
    data_dir_from_settings,
    get_settings,
    resolve_config_path,
)
from wakeitup.storage import DeviceStore

logger = logging.getLogger(__name__)


def fail(message: str, code: int = 1) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code)


@contextlib.contextmanager
def store_errors() -> Iterator[None]:
    """Turn a corrupt or unreadable devices file into an error message and exit 1."""
    try:
        yield
    except (OSError, ValueError) as exc:
        logger.debug("Device store access failed", exc_info=True)
        fail(str(exc))


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        fail(str(exc))


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        fail(str(exc))


def build_store(settings: Settings, data_dir: Path | None = None) -> DeviceStore:
    return DeviceStore(data_dir or data_dir_from_settings(settings))
