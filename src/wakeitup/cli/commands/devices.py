from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from wakeitup.config import DEFAULT_GROUP
from wakeitup.core.wol import normalize_mac
from wakeitup.models import SavedDevice

from ..common import build_store, fail, load_settings_or_exit, store_errors

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_devices(
    group: Annotated[
        str | None, typer.Option("--group", "-g", help="Only show this group")
    ] = None,
) -> None:
    """List saved devices."""
    settings = load_settings_or_exit()
    store = build_store(settings)
    with store_errors():
        devices = (
            store.list_devices_in_group(group) if group else store.list_all_devices()
        )

    console = Console()
    if not devices:
        console.print("No saved devices.")
        console.print("Use 'wakeitup devices add' or 'wakeitup scan --save'.")
        return

    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("MAC Address", style="green")
    table.add_column("IP")
    table.add_column("Port", justify="right")
    table.add_column("Group", style="yellow")

    for device in sorted(devices, key=lambda d: (d.group_name, d.name)):
        table.add_row(
            device.name,
            device.mac_address,
            device.ip_address or "N/A",
            str(device.port),
            device.group_name,
        )
    console.print(table)


@app.command("add")
def add_device(
    name: Annotated[str, typer.Argument(help="Device name")],
    mac: Annotated[str, typer.Argument(help="MAC address")],
    ip: Annotated[str, typer.Option("--ip", help="Last known IP address")] = "",
    port: Annotated[
        int, typer.Option("--port", "-p", min=1, max=65535, help="WOL port")
    ] = 9,
    group: Annotated[str, typer.Option("--group", "-g")] = DEFAULT_GROUP,
) -> None:
    """Add or replace a saved device."""
    if normalize_mac(mac) is None:
        fail(f"Invalid MAC address: {mac}")

    settings = load_settings_or_exit()
    store = build_store(settings)
    with store_errors():
        store.insert_or_replace(
            SavedDevice(
                name=name, mac_address=mac, ip_address=ip, port=port, group_name=group
            )
        )
    Console().print(f"[green]✓[/green] Saved '{name}' ({mac}) in group '{group}'")


@app.command("remove")
def remove_device(name: Annotated[str, typer.Argument(help="Device name")]) -> None:
    """Remove a saved device."""
    settings = load_settings_or_exit()
    store = build_store(settings)

    console = Console()
    with store_errors():
        device = store.get_device(name)
        removed = device is not None and store.delete(device)
    if removed:
        console.print(f"[green]✓[/green] Removed device '{name}'")
    else:
        console.print(f"[yellow]![/yellow] Device '{name}' not found")
        raise typer.Exit(1)
