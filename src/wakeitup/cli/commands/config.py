from __future__ import annotations

from typing import Annotated

import typer

from wakeitup.config import (
    Settings,
    data_dir_from_settings,
    render_settings_toml,
    write_settings,
)

from ..common import load_settings_or_exit, resolve_config_path_or_exit

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config() -> None:
    """Print the effective configuration as TOML."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    typer.echo(f"# source: {path if exists else 'built-in defaults'}")
    typer.echo(render_settings_toml(settings))


@app.command("path")
def config_path() -> None:
    """Print where the config and saved devices live."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    typer.echo(f"config: {path}{'' if exists else ' (missing)'}")
    typer.echo(f"data:   {data_dir_from_settings(settings)}")


@app.command("init")
def init_config(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite an existing file")
    ] = False,
) -> None:
    """Write the default scanning configuration."""
    path, exists = resolve_config_path_or_exit(allow_missing=True)
    if exists and not force:
        typer.echo(f"Config already exists at {path}, use --force to overwrite")
        raise typer.Exit(1)

    write_settings(Settings(), path)
    typer.echo(f"Wrote default config to {path}")
