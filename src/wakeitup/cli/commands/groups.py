from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from ..common import build_store, load_settings_or_exit, store_errors

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_groups() -> None:
    """List device groups with their device counts."""
    settings = load_settings_or_exit()
    store = build_store(settings)

    with store_errors():
        groups = store.list_groups()
        devices = store.list_all_devices()

    console = Console()
    for group in groups:
        count = sum(1 for d in devices if d.group_name == group.name)
        console.print(f"{group.name} ({count})")


@app.command("add")
def add_group(name: Annotated[str, typer.Argument(help="Group name")]) -> None:
    """Create a group if it does not exist yet."""
    settings = load_settings_or_exit()
    store = build_store(settings)

    with store_errors():
        added = store.insert_group_if_absent(name)
    if added:
        Console().print(f"[green]✓[/green] Added group '{name.strip()}'")
    else:
        Console().print(f"[yellow]![/yellow] Group '{name}' exists or is blank")
