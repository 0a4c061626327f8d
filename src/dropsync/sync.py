from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any

from rich.console import Console

from .ask import Choice, ask_with_choices, ask_yes_or_no
from .explorer import open_in_file_browser
from .models import AppConfig, SyncOutcome
from .snapshot import DirectorySnapshot


class ConflictChoice(str, Enum):
    USE_APP = "use_app"
    USE_DROPBOX = "use_dropbox"
    OPEN_BOTH = "open_both"


CONFLICT_CHOICES: tuple[Choice[ConflictChoice], ...] = (
    Choice("app", ConflictChoice.USE_APP),
    Choice("dropbox", ConflictChoice.USE_DROPBOX),
    Choice("explore", ConflictChoice.OPEN_BOTH),
)


@dataclass(frozen=True)
class Interaction:
    """Operator-facing collaborators used while syncing.

    Collaborators left unset default to the terminal ones, bound to
    `console` so prompts and messages share one output.
    """

    ask_yes_or_no: Callable[[str], bool] | None = None
    ask_with_choices: Callable[[str, Sequence[Choice[Any]]], Any] | None = None
    open_path: Callable[[Path], None] | None = None
    console: Console = field(default_factory=Console)

    def __post_init__(self) -> None:
        if self.ask_yes_or_no is None:
            object.__setattr__(
                self, "ask_yes_or_no", partial(ask_yes_or_no, out=self.console)
            )
        if self.ask_with_choices is None:
            object.__setattr__(
                self, "ask_with_choices", partial(ask_with_choices, out=self.console)
            )
        if self.open_path is None:
            object.__setattr__(
                self, "open_path", partial(open_in_file_browser, out=self.console)
            )


def decide(app_state: DirectorySnapshot, dropbox_state: DirectorySnapshot) -> SyncOutcome:
    """Classify two snapshots, checking the rules in a fixed order.

    An empty app side against a filled Dropbox side counts as Dropbox newer.
    The reverse, a filled app side against an empty Dropbox side, shares no
    files and is a conflict. Two empty trees are structurally equal and come
    out as ALREADY_SYNCED, so BOTH_EMPTY is not reached after the equality
    check; it stays as the last guard before CONFLICT.
    """
    if app_state.are_contents_equal_to(dropbox_state):
        return SyncOutcome.ALREADY_SYNCED
    if app_state.are_contents_generally_newer_than(dropbox_state):
        return SyncOutcome.APP_NEWER_THAN_DROPBOX
    if app_state.is_empty() and not dropbox_state.is_empty():
        return SyncOutcome.DROPBOX_NEWER_THAN_APP
    if dropbox_state.are_contents_generally_newer_than(app_state):
        return SyncOutcome.DROPBOX_NEWER_THAN_APP
    if app_state.is_empty() and dropbox_state.is_empty():
        return SyncOutcome.BOTH_EMPTY
    return SyncOutcome.CONFLICT


def copy_and_prune(source: DirectorySnapshot, dest: Path) -> None:
    source.copy_into(dest)
    source.remove_extraneous_files_from(dest)


def _perform_copy(source: DirectorySnapshot, dest: Path, out: Console) -> None:
    file_count = sum(1 for _ in source.iter_files())
    out.print(f"Copying {file_count} file(s) from {source.path} to {dest}.")
    copy_and_prune(source, dest)
    out.print("[green]Done.[/green]")


def _copy_with_confirmation(
    source: DirectorySnapshot,
    dest: Path,
    description: str,
    confirm: bool,
    interaction: Interaction,
) -> bool:
    interaction.console.print(description)
    if confirm and not interaction.ask_yes_or_no("Copy it over? (y/n) "):
        interaction.console.print("[yellow]Skipped; nothing was copied.[/yellow]")
        return False
    _perform_copy(source, dest, interaction.console)
    return True


def resolve_conflict(
    app: AppConfig,
    app_state: DirectorySnapshot,
    dropbox_state: DirectorySnapshot,
    interaction: Interaction,
) -> ConflictChoice:
    """Ask the operator which side wins when freshness is ambiguous.

    The chosen side is copied over the other without looking at timestamps
    again. Choosing to explore opens both folders and leaves them as they are.
    """
    out = interaction.console
    out.print(
        f"[red]Unable to tell whether {app.name} or its Dropbox copy is newer.[/red]"
    )
    out.print(f"  app:     {app.path}")
    out.print(f"  dropbox: {app.dropbox_path}")
    choice = interaction.ask_with_choices(
        "Which side should be kept?", CONFLICT_CHOICES
    )
    if choice == ConflictChoice.USE_APP:
        _perform_copy(app_state, app.dropbox_path, out)
    elif choice == ConflictChoice.USE_DROPBOX:
        _perform_copy(dropbox_state, app.path, out)
    else:
        interaction.open_path(app.path)
        interaction.open_path(app.dropbox_path)
    return choice


def sync_app(
    app: AppConfig,
    confirm_if_app_side_newer: bool,
    *,
    confirm_if_dropbox_side_newer: bool = True,
    interaction: Interaction | None = None,
) -> SyncOutcome:
    interaction = interaction or Interaction()
    out = interaction.console

    app_state = DirectorySnapshot.from_dir(app.path, app.file_filter)
    dropbox_state = DirectorySnapshot.from_dir(app.dropbox_path, app.file_filter)
    outcome = decide(app_state, dropbox_state)

    if outcome == SyncOutcome.ALREADY_SYNCED:
        out.print(f"{app.name} is already synced.")
    elif outcome == SyncOutcome.APP_NEWER_THAN_DROPBOX:
        _copy_with_confirmation(
            app_state,
            app.dropbox_path,
            f"{app.name} is newer than its Dropbox copy.",
            confirm=confirm_if_app_side_newer,
            interaction=interaction,
        )
    elif outcome == SyncOutcome.DROPBOX_NEWER_THAN_APP:
        _copy_with_confirmation(
            dropbox_state,
            app.path,
            f"The Dropbox copy of {app.name} is newer than the app's data.",
            confirm=confirm_if_dropbox_side_newer,
            interaction=interaction,
        )
    elif outcome == SyncOutcome.BOTH_EMPTY:
        out.print(f"{app.name} has no data on either side.")
    else:
        resolve_conflict(app, app_state, dropbox_state, interaction)
    return outcome
