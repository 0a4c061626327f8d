from __future__ import annotations

import platform
import shutil
import subprocess
from pathlib import Path

from rich.console import Console


def _browser_command(path: Path) -> list[str] | None:
    system = platform.system()
    if system == "Windows":
        return ["explorer", str(path)]
    if system == "Darwin":
        return ["open", str(path)]
    if system == "Linux" and shutil.which("xdg-open"):
        return ["xdg-open", str(path)]
    return None


def open_in_file_browser(path: Path, out: Console | None = None) -> None:
    """Best effort: show `path` in the platform file browser."""
    out = out or Console()
    cmd = _browser_command(path)
    if cmd is None:
        out.print(
            f"[yellow]Opening a file browser is not supported on {platform.system()}; "
            f"please open {path} manually.[/yellow]"
        )
        return
    out.print(f"Opening {path}.")
    subprocess.Popen(
        cmd,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
