from __future__ import annotations

import os
import shutil
import stat
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from .file_filter import FileFilter
from .models import FileRecord


class UnsupportedEntryError(OSError):
    """Raised when a snapshot meets a symlink or special file."""


def _entry_kind(st_mode: int) -> str:
    if stat.S_ISLNK(st_mode):
        return "symlink"
    if stat.S_ISFIFO(st_mode):
        return "fifo"
    if stat.S_ISSOCK(st_mode):
        return "socket"
    if stat.S_ISCHR(st_mode) or stat.S_ISBLK(st_mode):
        return "device"
    return "special file"


def _file_record(st: os.stat_result) -> FileRecord:
    # Whole seconds only: sub-second precision differs between filesystems.
    return FileRecord(size=st.st_size, modified=st.st_mtime_ns // 1_000_000_000)


def _clear_destination_entry(path: Path, want_dir: bool) -> None:
    if path.is_symlink():
        path.unlink()
        return
    if want_dir and path.exists() and not path.is_dir():
        path.unlink()
    elif not want_dir and path.is_dir():
        shutil.rmtree(path)


@dataclass(frozen=True, eq=False)
class DirectorySnapshot:
    """Point-in-time metadata of a directory tree.

    Files are keyed by name within each level and carry only size and whole
    second modification time. Subdirectory snapshots are owned by their
    parent. The mappings are read-only views, so a snapshot cannot change
    once built.
    """

    path: Path
    files: Mapping[str, FileRecord] = field(default_factory=dict)
    subdirs: Mapping[str, DirectorySnapshot] = field(default_factory=dict)
    file_filter: FileFilter = field(default_factory=FileFilter)

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))
        object.__setattr__(self, "subdirs", MappingProxyType(dict(self.subdirs)))

    @classmethod
    def from_dir(
        cls,
        path: str | os.PathLike[str],
        file_filter: FileFilter | None = None,
    ) -> DirectorySnapshot:
        root = Path(path)
        active_filter = file_filter if file_filter is not None else FileFilter()

        # Explicit stack walk; listings end up in parent-before-child order.
        listings: list[tuple[Path, dict[str, FileRecord], list[str]]] = []
        stack = [root]
        while stack:
            current = stack.pop()
            files: dict[str, FileRecord] = {}
            subdir_names: list[str] = []
            with os.scandir(current) as entries:
                for entry in entries:
                    entry_path = current / entry.name
                    if active_filter.excludes(entry_path):
                        continue
                    st = entry.stat(follow_symlinks=False)
                    if stat.S_ISDIR(st.st_mode):
                        subdir_names.append(entry.name)
                        stack.append(entry_path)
                    elif stat.S_ISREG(st.st_mode):
                        files[entry.name] = _file_record(st)
                    else:
                        raise UnsupportedEntryError(
                            f"Unsupported {_entry_kind(st.st_mode)} in snapshot: {entry_path}"
                        )
            listings.append((current, files, subdir_names))

        built: dict[Path, DirectorySnapshot] = {}
        for current, files, subdir_names in reversed(listings):
            built[current] = cls(
                path=current,
                files=files,
                subdirs={name: built.pop(current / name) for name in subdir_names},
                file_filter=active_filter,
            )
        return built[root]

    def is_empty(self) -> bool:
        return len(self.files) == 0 and len(self.subdirs) == 0

    def iter_files(self) -> Iterator[tuple[Path, FileRecord]]:
        """Yield `(relative_path, record)` for every file in the tree."""
        stack: list[tuple[Path, DirectorySnapshot]] = [(Path(), self)]
        while stack:
            rel_dir, node = stack.pop()
            for name in sorted(node.files):
                yield rel_dir / name, node.files[name]
            for name in sorted(node.subdirs, reverse=True):
                stack.append((rel_dir / name, node.subdirs[name]))

    def _shared_pairs(
        self, other: DirectorySnapshot
    ) -> Iterator[tuple[DirectorySnapshot, DirectorySnapshot]]:
        stack = [(self, other)]
        while stack:
            mine, theirs = stack.pop()
            yield mine, theirs
            for name, subdir in mine.subdirs.items():
                other_subdir = theirs.subdirs.get(name)
                if other_subdir is not None:
                    stack.append((subdir, other_subdir))

    def are_contents_equal_to(self, other: DirectorySnapshot) -> bool:
        for mine, theirs in self._shared_pairs(other):
            if dict(mine.files) != dict(theirs.files):
                return False
            if mine.subdirs.keys() != theirs.subdirs.keys():
                return False
        return True

    def are_any_contents_newer_than(self, other: DirectorySnapshot) -> bool:
        for mine, theirs in self._shared_pairs(other):
            for name, record in mine.files.items():
                other_record = theirs.files.get(name)
                if other_record is not None and record.modified > other_record.modified:
                    return True
        return False

    def are_any_contents_older_than(self, other: DirectorySnapshot) -> bool:
        return other.are_any_contents_newer_than(self)

    def are_contents_generally_newer_than(self, other: DirectorySnapshot) -> bool:
        """True when overlapping files agree that this tree is newer.

        Needs at least one strictly newer shared file and no strictly older
        one. An empty tree is never generally newer than anything. The
        relation is not symmetric: both directions can be false at once.
        """
        return (
            not self.is_empty()
            and not self.are_any_contents_older_than(other)
            and self.are_any_contents_newer_than(other)
        )

    def copy_into(self, dest: str | os.PathLike[str]) -> None:
        """Recreate this tree under `dest`, reading file content live.

        Only metadata lives in the snapshot, so every file is re-read from
        `self.path` now. Destination times are copied from the source so a
        fresh snapshot of `dest` matches this one.
        """
        stack: list[tuple[DirectorySnapshot, Path]] = [(self, Path(dest))]
        while stack:
            node, target = stack.pop()
            target.mkdir(parents=True, exist_ok=True)
            for name in node.files:
                src_path = node.path / name
                dst_path = target / name
                _clear_destination_entry(dst_path, want_dir=False)
                shutil.copyfile(src_path, dst_path)
                source_stat = src_path.stat()
                os.utime(dst_path, ns=(source_stat.st_atime_ns, source_stat.st_mtime_ns))
            for name, subdir in node.subdirs.items():
                # dest itself may be a linked folder and is written through.
                _clear_destination_entry(target / name, want_dir=True)
                stack.append((subdir, target / name))

    def remove_extraneous_files_from(self, dest: str | os.PathLike[str]) -> None:
        """Delete entries under `dest` that this snapshot does not record.

        The live destination is walked through the same filter used to
        build the snapshot; excluded entries are left in place.
        """
        stack: list[tuple[DirectorySnapshot, Path]] = [(self, Path(dest))]
        while stack:
            node, target = stack.pop()
            with os.scandir(target) as entries:
                live = list(entries)
            for entry in live:
                entry_path = target / entry.name
                if self.file_filter.excludes(entry_path):
                    continue
                if entry.is_dir(follow_symlinks=False):
                    subdir = node.subdirs.get(entry.name)
                    if subdir is None:
                        shutil.rmtree(entry_path)
                    else:
                        stack.append((subdir, entry_path))
                elif entry.name not in node.files:
                    entry_path.unlink()
