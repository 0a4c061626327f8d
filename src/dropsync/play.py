from __future__ import annotations

import subprocess
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TypeAlias

import psutil

from .models import AppConfig
from .sync import Interaction, sync_app

QUIET_SECONDS_REQUIRED = 3
POLL_INTERVAL_SECONDS = 1.0

ProcessLister: TypeAlias = Callable[[], Iterable[Path]]


def running_executables() -> list[Path]:
    paths: list[Path] = []
    for proc in psutil.process_iter(["exe"]):
        # Unreadable or vanished processes report no executable.
        exe = proc.info.get("exe")
        if exe:
            paths.append(Path(exe))
    return paths


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.resolve(strict=False).relative_to(root.resolve(strict=False))
    except ValueError:
        return False
    return True


def is_anything_running_under(
    watch_dir: Path, list_processes: ProcessLister = running_executables
) -> bool:
    return any(_is_under(exe, watch_dir) for exe in list_processes())


def wait_until_quiet(
    watch_dir: Path,
    *,
    list_processes: ProcessLister = running_executables,
    sleep: Callable[[float], None] = time.sleep,
    quiet_seconds: int = QUIET_SECONDS_REQUIRED,
) -> int:
    """Block until nothing has run from `watch_dir` for `quiet_seconds` polls.

    Launchers often spawn the real program and exit, so the launched process
    finishing is not enough. Returns the number of polls taken.
    """
    remaining = quiet_seconds
    polls = 0
    while remaining > 0:
        sleep(POLL_INTERVAL_SECONDS)
        polls += 1
        if is_anything_running_under(watch_dir, list_processes):
            remaining = quiet_seconds
        else:
            remaining -= 1
    return polls


def launch(play_path: Path) -> int:
    # stdin is inherited so console programs stay interactive.
    completed = subprocess.run([str(play_path)], check=False)
    return completed.returncode


def play(
    app: AppConfig,
    *,
    interaction: Interaction | None = None,
    run: Callable[[Path], int] = launch,
    wait: Callable[[Path], object] = wait_until_quiet,
) -> None:
    if app.play_path is None:
        raise ValueError(f"App '{app.name}' has no play_path configured.")
    interaction = interaction or Interaction()
    out = interaction.console

    sync_app(app, confirm_if_app_side_newer=True, interaction=interaction)

    out.print(f"Launching {app.play_path}.")
    returncode = run(app.play_path)
    if returncode != 0:
        out.print(f"[yellow]{app.name} exited with code {returncode}.[/yellow]")
    if app.play_watch_dir is not None:
        out.print(f"Waiting for processes under {app.play_watch_dir} to exit.")
        wait(app.play_watch_dir)

    # The app side is expected to be newer now; no questions asked.
    sync_app(
        app,
        confirm_if_app_side_newer=False,
        confirm_if_dropbox_side_newer=False,
        interaction=interaction,
    )
