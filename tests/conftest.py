from __future__ import annotations

import io
import os
from collections.abc import Iterable
from pathlib import Path

from rich.console import Console

from dropsync.models import AppConfig, FileRecord
from dropsync.snapshot import DirectorySnapshot
from dropsync.sync import Interaction


def write_file(root: Path, relpath: str, content: str = "", *, mtime: float = 1_000) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    mtime_ns = int(mtime * 1_000_000_000)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path


def mk_snapshot(
    files: dict[str, tuple[int, int]] | None = None,
    subdirs: dict[str, DirectorySnapshot] | None = None,
    *,
    path: str = "snap",
) -> DirectorySnapshot:
    # files: name -> (size, modified)
    return DirectorySnapshot(
        path=Path(path),
        files={
            name: FileRecord(size=size, modified=modified)
            for name, (size, modified) in (files or {}).items()
        },
        subdirs=subdirs or {},
    )


def mk_app(tmp_path: Path, name: str = "game") -> AppConfig:
    app_dir = tmp_path / "local" / name
    dropbox_dir = tmp_path / "Dropbox" / name
    app_dir.mkdir(parents=True)
    dropbox_dir.mkdir(parents=True)
    return AppConfig(name=name, path=app_dir, dropbox_path=dropbox_dir)


class ScriptedInteraction:
    """Replays canned operator answers and records what was asked."""

    def __init__(
        self,
        yes_no_answers: Iterable[bool] = (),
        choice_answers: Iterable[object] = (),
    ) -> None:
        self.yes_no_answers = list(yes_no_answers)
        self.choice_answers = list(choice_answers)
        self.yes_no_prompts: list[str] = []
        self.choice_prompts: list[str] = []
        self.opened: list[Path] = []
        self.output = io.StringIO()

    def _ask_yes_or_no(self, prompt: str) -> bool:
        self.yes_no_prompts.append(prompt)
        if not self.yes_no_answers:
            raise AssertionError(f"unexpected confirmation: {prompt}")
        return self.yes_no_answers.pop(0)

    def _ask_with_choices(self, prompt: str, choices) -> object:
        self.choice_prompts.append(prompt)
        if not self.choice_answers:
            raise AssertionError(f"unexpected choice prompt: {prompt}")
        answer = self.choice_answers.pop(0)
        assert answer in [choice.value for choice in choices]
        return answer

    def build(self) -> Interaction:
        return Interaction(
            ask_yes_or_no=self._ask_yes_or_no,
            ask_with_choices=self._ask_with_choices,
            open_path=self.opened.append,
            console=Console(file=self.output, width=200),
        )

    @property
    def text(self) -> str:
        return self.output.getvalue()
