from __future__ import annotations

import socket
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import (
    ConfigError,
    PathNotFoundError,
    UnknownAppError,
    default_dropbox_dir,
    ensure_path_exists,
    find_app,
    load_config_from_dropbox_dir,
    validate,
)
from .models import AppConfig
from .play import play as run_play
from .sync import Interaction, sync_app

app = typer.Typer(
    help="Keep application data folders in sync with their Dropbox mirrors",
    no_args_is_help=True,
)
console = Console()

DROPBOX_DIR_HELP = "Dropbox root holding dropsync.toml (default: ~/Dropbox)"
HOSTNAME_HELP = "Host name used to pick per-machine overrides (default: this machine)"


def _load_apps(dropbox_dir: Path | None, hostname: str | None) -> dict[str, AppConfig]:
    root = (dropbox_dir or default_dropbox_dir()).expanduser()
    host = hostname or socket.gethostname()
    ensure_path_exists(root)
    console.print(f"Using configuration for host [bold]{host}[/bold].")
    console.print(f"Loading configuration from {root}.")
    return load_config_from_dropbox_dir(host, root)


def _selected_apps(
    configs: dict[str, AppConfig], app_name: str | None
) -> list[AppConfig]:
    if app_name is not None:
        return [find_app(configs, app_name)]
    return [configs[name] for name in sorted(configs)]


def _fail(message: str, exc: BaseException) -> typer.Exit:
    console.print(f"[red]{message}:[/red] {exc}")
    return typer.Exit(1)


@app.command()
def sync(
    app_name: str | None = typer.Argument(
        None, help="Only sync this app (case-insensitive)"
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Copy app data into Dropbox without asking first.",
    ),
    dropbox_dir: Path | None = typer.Option(None, help=DROPBOX_DIR_HELP),
    hostname: str | None = typer.Option(None, help=HOSTNAME_HELP),
) -> None:
    """Sync every enabled app, or a single one."""
    interaction = Interaction(console=console)
    try:
        configs = _load_apps(dropbox_dir, hostname)
        for config in _selected_apps(configs, app_name):
            if config.disabled:
                console.print(f"Skipping disabled app {config.name}.")
                continue
            console.print(f"Syncing app [bold]{config.name}[/bold].")
            validate(config)
            sync_app(
                config,
                confirm_if_app_side_newer=not yes,
                interaction=interaction,
            )
    except ConfigError as exc:
        raise _fail("Invalid configuration", exc)
    except UnknownAppError as exc:
        raise _fail("Unknown app", exc)
    except PathNotFoundError as exc:
        raise _fail("Missing path", exc)
    except OSError as exc:
        raise _fail("Sync failed", exc)


@app.command()
def play(
    app_name: str = typer.Argument(..., help="App to sync, launch and sync again"),
    dropbox_dir: Path | None = typer.Option(None, help=DROPBOX_DIR_HELP),
    hostname: str | None = typer.Option(None, help=HOSTNAME_HELP),
) -> None:
    """Sync an app, run it, wait for it to exit and sync it back."""
    interaction = Interaction(console=console)
    try:
        config = find_app(_load_apps(dropbox_dir, hostname), app_name)
        if config.play_path is None:
            console.print(f"[red]App {config.name} has no play_path configured.[/red]")
            raise typer.Exit(1)
        validate(config)
        run_play(config, interaction=interaction)
    except ConfigError as exc:
        raise _fail("Invalid configuration", exc)
    except UnknownAppError as exc:
        raise _fail("Unknown app", exc)
    except PathNotFoundError as exc:
        raise _fail("Missing path", exc)
    except OSError as exc:
        raise _fail("Play failed", exc)


@app.command("list")
def list_apps(
    dropbox_dir: Path | None = typer.Option(None, help=DROPBOX_DIR_HELP),
    hostname: str | None = typer.Option(None, help=HOSTNAME_HELP),
) -> None:
    """Show the configured apps."""
    try:
        configs = _load_apps(dropbox_dir, hostname)
    except ConfigError as exc:
        raise _fail("Invalid configuration", exc)
    except PathNotFoundError as exc:
        raise _fail("Missing path", exc)
    except OSError as exc:
        raise _fail("Listing failed", exc)

    table = Table()
    table.add_column("App", no_wrap=True)
    table.add_column("Enabled", no_wrap=True)
    table.add_column("Path")
    table.add_column("Dropbox path")
    table.add_column("Play")
    for config in _selected_apps(configs, None):
        table.add_row(
            config.name,
            "yes" if config.enabled else "no",
            str(config.path),
            str(config.dropbox_path),
            str(config.play_path) if config.play_path else "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
