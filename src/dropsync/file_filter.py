from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass


def _path_text(path: str | os.PathLike[str]) -> str:
    return os.fspath(path).replace("\\", "/")


def _normalize_pattern(pattern: str) -> str:
    return pattern.strip().replace("\\", "/")


@dataclass(frozen=True)
class FileFilter:
    """Decides whether a filesystem entry takes part in a snapshot.

    With no pattern every entry is included. Otherwise the full path of the
    entry is matched against the glob pattern; `*` also matches path
    separators, so `*.sav` matches `/any/depth/game.sav`.
    """

    include_only: str | None = None

    @classmethod
    def from_pattern(cls, pattern: str | None) -> FileFilter:
        if pattern is None or not pattern.strip():
            return cls()
        return cls(include_only=_normalize_pattern(pattern))

    def includes(self, path: str | os.PathLike[str]) -> bool:
        if self.include_only is None:
            return True
        return fnmatch.fnmatchcase(_path_text(path), self.include_only)

    def excludes(self, path: str | os.PathLike[str]) -> bool:
        return not self.includes(path)
