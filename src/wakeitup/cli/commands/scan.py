from __future__ import annotations

import asyncio
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.status import Status
from rich.table import Table

from wakeitup.config import DEFAULT_GROUP, ScanningConfig
from wakeitup.core import NetworkScanner
from wakeitup.models import NetworkDevice, SavedDevice, ScanState

from ..common import build_store, load_settings_or_exit, store_errors

logger = logging.getLogger(__name__)


async def _run_scan(scanner: NetworkScanner) -> list[NetworkDevice]:
    try:
        return await scanner.scan()
    finally:
        teardown = scanner.stop()
        if teardown is not None:
            await teardown


def _one_per_host(devices: list[NetworkDevice]) -> list[NetworkDevice]:
    """One entry per MAC address, preferring an advertised name over a bare IP."""
    chosen: dict[str, NetworkDevice] = {}
    for device in devices:
        if not device.mac_address:
            logger.debug("Skipping %s, no MAC address", device.ip)
            continue
        key = device.mac_address.lower()
        current = chosen.get(key)
        if current is None or (current.name == current.ip and device.name != device.ip):
            chosen[key] = device
    return list(chosen.values())


def _render_devices(devices: list[NetworkDevice]) -> Table:
    table = Table()
    table.add_column("Name", style="green")
    table.add_column("IP", style="cyan")
    table.add_column("MAC Address")
    table.add_column("Service")
    table.add_column("Port", justify="right")

    for device in sorted(devices, key=lambda d: (d.ip, d.service_type, d.name)):
        table.add_row(
            device.name,
            device.ip,
            device.mac_address or "",
            device.service_type,
            str(device.port),
        )
    return table


def scan(
    save: Annotated[
        bool, typer.Option(help="Save devices with a known MAC address")
    ] = False,
    group: Annotated[
        str, typer.Option("--group", "-g", help="Group to save devices into")
    ] = DEFAULT_GROUP,
    window: Annotated[
        float | None,
        typer.Option("--window", min=0, help="Seconds to wait for replies"),
    ] = None,
) -> None:
    """Discover hosts on the local subnet via ping sweep and mDNS."""
    console = Console()
    settings = load_settings_or_exit()

    config: ScanningConfig = settings.scanning
    if window is not None:
        config = config.model_copy(update={"scan_window": window})

    scanner = NetworkScanner(config)
    status = Status("Scanning local network...", console=console)

    def _on_state(state: ScanState) -> None:
        status.update(
            f"Scanning local network... {state.progress}/{state.total} addresses, "
            f"{len(scanner.devices)} device(s)"
        )

    scanner.subscribe(_on_state)
    with status:
        devices = asyncio.run(_run_scan(scanner))

    if not devices:
        console.print("No devices found.")
        return

    console.print(_render_devices(devices))
    console.print(f"\n[green]Found {len(devices)} device(s)[/green]")

    if save:
        hosts = _one_per_host(devices)
        with store_errors():
            store = build_store(settings)
            store.insert_group_if_absent(group)
            for device in hosts:
                store.insert_or_replace(
                    SavedDevice.from_network_device(
                        device, group, port=settings.scanning.wol_port
                    )
                )
        console.print(
            f"[green]✓[/green] Saved {len(hosts)} device(s) to group '{group}'"
        )


def register(app: typer.Typer) -> None:
    app.command()(scan)
