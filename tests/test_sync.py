from __future__ import annotations

import io
from dataclasses import replace

import pytest
from rich.console import Console

from dropsync.file_filter import FileFilter
from dropsync.models import SyncOutcome
from dropsync.snapshot import DirectorySnapshot
from dropsync.sync import ConflictChoice, Interaction, decide, sync_app

from conftest import ScriptedInteraction, mk_app, mk_snapshot, write_file


def _snap(path):
    return DirectorySnapshot.from_dir(path)


def test_decide_equal_trees_are_already_synced() -> None:
    a = mk_snapshot({"x": (1, 10)})
    b = mk_snapshot({"x": (1, 10)})

    assert decide(a, b) == SyncOutcome.ALREADY_SYNCED


def test_decide_app_newer() -> None:
    assert (
        decide(mk_snapshot({"x": (1, 100)}), mk_snapshot({"x": (1, 50)}))
        == SyncOutcome.APP_NEWER_THAN_DROPBOX
    )


def test_decide_dropbox_newer() -> None:
    assert (
        decide(mk_snapshot({"x": (1, 50)}), mk_snapshot({"x": (1, 100)}))
        == SyncOutcome.DROPBOX_NEWER_THAN_APP
    )


def test_decide_disjoint_names_is_conflict() -> None:
    assert (
        decide(mk_snapshot({"x": (1, 100)}), mk_snapshot({"y": (1, 50)}))
        == SyncOutcome.CONFLICT
    )


def test_decide_empty_app_against_filled_dropbox_is_dropbox_newer() -> None:
    assert (
        decide(mk_snapshot(), mk_snapshot({"z": (1, 1)}))
        == SyncOutcome.DROPBOX_NEWER_THAN_APP
    )


def test_decide_empty_app_against_dropbox_with_only_empty_subdirs() -> None:
    dropbox = mk_snapshot(subdirs={"profiles": mk_snapshot()})

    assert decide(mk_snapshot(), dropbox) == SyncOutcome.DROPBOX_NEWER_THAN_APP


def test_decide_filled_app_against_empty_dropbox_is_conflict() -> None:
    assert decide(mk_snapshot({"z": (1, 1)}), mk_snapshot()) == SyncOutcome.CONFLICT


def test_decide_empty_subdirs_on_both_sides() -> None:
    a = mk_snapshot(subdirs={"d": mk_snapshot()})
    b = mk_snapshot(subdirs={"e": mk_snapshot()})

    assert decide(mk_snapshot(), mk_snapshot()) == SyncOutcome.ALREADY_SYNCED
    assert decide(a, b) == SyncOutcome.CONFLICT


def test_decide_mixed_evidence_is_conflict() -> None:
    a = mk_snapshot({"x": (1, 100), "y": (1, 10)})
    b = mk_snapshot({"x": (1, 50), "y": (1, 20)})

    assert decide(a, b) == SyncOutcome.CONFLICT


def test_sync_already_synced_does_nothing(tmp_path) -> None:
    app = mk_app(tmp_path)
    write_file(app.path, "x", "data", mtime=100)
    write_file(app.dropbox_path, "x", "data", mtime=100)
    scripted = ScriptedInteraction()

    outcome = sync_app(app, confirm_if_app_side_newer=True, interaction=scripted.build())

    assert outcome == SyncOutcome.ALREADY_SYNCED
    assert "already synced" in scripted.text
    assert scripted.yes_no_prompts == []


def test_sync_app_newer_overwrites_and_prunes_dropbox(tmp_path) -> None:
    app = mk_app(tmp_path)
    write_file(app.path, "x", "fresh", mtime=100)
    write_file(app.dropbox_path, "x", "stale", mtime=50)
    write_file(app.dropbox_path, "leftover/y", "junk", mtime=50)
    scripted = ScriptedInteraction()

    outcome = sync_app(app, confirm_if_app_side_newer=False, interaction=scripted.build())

    assert outcome == SyncOutcome.APP_NEWER_THAN_DROPBOX
    assert (app.dropbox_path / "x").read_text(encoding="utf-8") == "fresh"
    assert not (app.dropbox_path / "leftover").exists()
    assert _snap(app.path).are_contents_equal_to(_snap(app.dropbox_path))
    assert scripted.yes_no_prompts == []


def test_sync_app_newer_asks_when_requested(tmp_path) -> None:
    app = mk_app(tmp_path)
    write_file(app.path, "x", "fresh", mtime=100)
    write_file(app.dropbox_path, "x", "stale", mtime=50)
    scripted = ScriptedInteraction(yes_no_answers=[False])

    outcome = sync_app(app, confirm_if_app_side_newer=True, interaction=scripted.build())

    assert outcome == SyncOutcome.APP_NEWER_THAN_DROPBOX
    assert len(scripted.yes_no_prompts) == 1
    assert (app.dropbox_path / "x").read_text(encoding="utf-8") == "stale"
    assert "Skipped" in scripted.text


def test_sync_dropbox_newer_always_asks_by_default(tmp_path) -> None:
    app = mk_app(tmp_path)
    write_file(app.dropbox_path, "z", "from cloud", mtime=1)
    scripted = ScriptedInteraction(yes_no_answers=[True])

    outcome = sync_app(app, confirm_if_app_side_newer=False, interaction=scripted.build())

    assert outcome == SyncOutcome.DROPBOX_NEWER_THAN_APP
    assert len(scripted.yes_no_prompts) == 1
    assert (app.path / "z").read_text(encoding="utf-8") == "from cloud"


def test_sync_dropbox_newer_without_confirmation(tmp_path) -> None:
    app = mk_app(tmp_path)
    write_file(app.path, "x", "old", mtime=10)
    write_file(app.dropbox_path, "x", "new", mtime=20)
    scripted = ScriptedInteraction()

    outcome = sync_app(
        app,
        confirm_if_app_side_newer=False,
        confirm_if_dropbox_side_newer=False,
        interaction=scripted.build(),
    )

    assert outcome == SyncOutcome.DROPBOX_NEWER_THAN_APP
    assert (app.path / "x").read_text(encoding="utf-8") == "new"


def test_sync_two_empty_trees_are_already_synced(tmp_path) -> None:
    app = mk_app(tmp_path)
    scripted = ScriptedInteraction()

    outcome = sync_app(app, confirm_if_app_side_newer=True, interaction=scripted.build())

    assert outcome == SyncOutcome.ALREADY_SYNCED
    assert scripted.yes_no_prompts == []
    assert scripted.choice_prompts == []


@pytest.mark.parametrize(
    ("choice", "expected_x", "expected_y"),
    [
        (ConflictChoice.USE_APP, True, False),
        (ConflictChoice.USE_DROPBOX, False, True),
    ],
)
def test_conflict_copies_the_chosen_side(tmp_path, choice, expected_x, expected_y) -> None:
    app = mk_app(tmp_path)
    write_file(app.path, "x", "app", mtime=100)
    write_file(app.dropbox_path, "y", "dropbox", mtime=50)
    scripted = ScriptedInteraction(choice_answers=[choice])

    outcome = sync_app(app, confirm_if_app_side_newer=False, interaction=scripted.build())

    assert outcome == SyncOutcome.CONFLICT
    assert scripted.yes_no_prompts == []
    for root in (app.path, app.dropbox_path):
        assert (root / "x").exists() is expected_x
        assert (root / "y").exists() is expected_y
    assert _snap(app.path).are_contents_equal_to(_snap(app.dropbox_path))


def test_conflict_can_open_both_sides_without_syncing(tmp_path) -> None:
    app = mk_app(tmp_path)
    write_file(app.path, "x", "app", mtime=100)
    write_file(app.dropbox_path, "y", "dropbox", mtime=50)
    scripted = ScriptedInteraction(choice_answers=[ConflictChoice.OPEN_BOTH])

    outcome = sync_app(app, confirm_if_app_side_newer=True, interaction=scripted.build())

    assert outcome == SyncOutcome.CONFLICT
    assert scripted.opened == [app.path, app.dropbox_path]
    assert not (app.path / "y").exists()
    assert not (app.dropbox_path / "x").exists()


def test_sync_respects_the_app_filter(tmp_path) -> None:
    app = replace(mk_app(tmp_path), file_filter=FileFilter.from_pattern("*.sav"))
    write_file(app.path, "game.sav", "new", mtime=100)
    write_file(app.path, "notes.txt", "local only")
    write_file(app.dropbox_path, "game.sav", "old", mtime=50)
    scripted = ScriptedInteraction()

    outcome = sync_app(app, confirm_if_app_side_newer=False, interaction=scripted.build())

    assert outcome == SyncOutcome.APP_NEWER_THAN_DROPBOX
    assert (app.dropbox_path / "game.sav").read_text(encoding="utf-8") == "new"
    assert not (app.dropbox_path / "notes.txt").exists()


def test_sync_empty_app_pulls_everything_from_dropbox(tmp_path) -> None:
    app = mk_app(tmp_path)
    write_file(app.dropbox_path, "slot1/save.dat", "cloud", mtime=1)
    write_file(app.dropbox_path, "options.ini", "opts", mtime=2)
    scripted = ScriptedInteraction(yes_no_answers=[True])

    outcome = sync_app(app, confirm_if_app_side_newer=False, interaction=scripted.build())

    assert outcome == SyncOutcome.DROPBOX_NEWER_THAN_APP
    assert scripted.choice_prompts == []
    assert _snap(app.path).are_contents_equal_to(_snap(app.dropbox_path))


def test_default_interaction_shares_its_console() -> None:
    out = Console(file=io.StringIO())

    interaction = Interaction(console=out)

    assert interaction.ask_yes_or_no.keywords["out"] is out
    assert interaction.ask_with_choices.keywords["out"] is out
    assert interaction.open_path.keywords["out"] is out


def test_default_open_path_reports_through_the_shared_console(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr("dropsync.explorer.platform.system", lambda: "Plan9")
    output = io.StringIO()

    Interaction(console=Console(file=output, width=200)).open_path(tmp_path)

    assert "not supported on Plan9" in output.getvalue()
