from __future__ import annotations

from typing import Annotated

import typer

from wakeitup.utils.logging import setup_logging

from .commands import config as config_cmd
from .commands import devices as devices_cmd
from .commands import groups as groups_cmd
from .commands.init import register as register_init
from .commands.scan import register as register_scan
from .commands.wake import register as register_wake

app = typer.Typer(
    help="wakeitup - find hosts on your LAN and wake them up", no_args_is_help=True
)

app.add_typer(config_cmd.app, name="config", help="Show or create the config file")
app.add_typer(devices_cmd.app, name="devices", help="Manage saved devices")
app.add_typer(groups_cmd.app, name="groups", help="Manage device groups")

register_init(app)
register_scan(app)
register_wake(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override $LOGLEVEL"),
    ] = None,
) -> None:
    """wakeitup CLI."""
    setup_logging(log_level)

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"wakeitup version {get_version('wakeitup')}")
        raise typer.Exit()
