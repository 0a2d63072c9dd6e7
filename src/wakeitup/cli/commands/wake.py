from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from wakeitup.core import NetworkScanner
from wakeitup.core.wol import normalize_mac
from wakeitup.models import SavedDevice

from ..common import build_store, fail, load_settings_or_exit, store_errors


def wake(
    target: Annotated[str, typer.Argument(help="Saved device name or MAC address")],
    ip: Annotated[
        str | None, typer.Option("--ip", help="Device IP, used to pick the broadcast")
    ] = None,
    port: Annotated[
        int | None, typer.Option("--port", "-p", min=1, max=65535, help="WOL port")
    ] = None,
) -> None:
    """Send a Wake-on-LAN magic packet."""
    console = Console()
    settings = load_settings_or_exit()
    store = build_store(settings)

    with store_errors():
        device = store.get_device(target)
    if device is None:
        if normalize_mac(target) is None:
            fail(f"No saved device or MAC address matches '{target}'")
        device = SavedDevice(
            name=target,
            mac_address=target,
            ip_address=ip or "",
            port=port or settings.scanning.wol_port,
        )
    else:
        overrides: dict[str, object] = {}
        if ip is not None:
            overrides["ip_address"] = ip
        if port is not None:
            overrides["port"] = port
        if overrides:
            device = device.model_copy(update=overrides)

    scanner = NetworkScanner(settings.scanning)
    success, message = asyncio.run(scanner.wake(device))
    if success:
        console.print(f"[green]✓[/green] {message}")
    else:
        console.print(f"[red]✗[/red] {message}")
        raise typer.Exit(1)


def register(app: typer.Typer) -> None:
    app.command()(wake)
