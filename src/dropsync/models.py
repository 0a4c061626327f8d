from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .file_filter import FileFilter


class SyncOutcome(str, Enum):
    ALREADY_SYNCED = "already_synced"
    APP_NEWER_THAN_DROPBOX = "app_newer_than_dropbox"
    DROPBOX_NEWER_THAN_APP = "dropbox_newer_than_app"
    BOTH_EMPTY = "both_empty"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class FileRecord:
    size: int
    modified: int


@dataclass(frozen=True)
class AppConfig:
    name: str
    path: Path
    dropbox_path: Path
    disabled: bool = False
    play_path: Path | None = None
    play_watch_dir: Path | None = None
    file_filter: FileFilter = field(default_factory=FileFilter)

    @property
    def enabled(self) -> bool:
        return not self.disabled
