"""Filesystem seam used by the scanner, catalog, cache and cleaner.

Every component takes a ``FileSystem`` so tests can swap in an in-memory
implementation.  ``stat`` never follows symlinks.
"""

from __future__ import annotations

import os
import stat as statmod
import tempfile
from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True, frozen=True)
class StatResult:
    is_dir: bool
    is_symlink: bool
    size: int
    mtime: float
    dev: int = 0


@dataclass(slots=True, frozen=True)
class DirEntry:
    path: str
    name: str
    # None when the entry could not be stat'ed (vanished, permission denied).
    stat: StatResult | None


class FileSystem(Protocol):
    def expanduser(self, path: str) -> str: ...

    def resolve(self, path: str) -> str: ...

    def exists(self, path: str) -> bool: ...

    def stat(self, path: str) -> StatResult: ...

    def scandir(self, path: str) -> list[DirEntry]: ...

    def is_mount(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def write_text_atomic(self, path: str, content: str) -> None: ...

    def remove_file(self, path: str) -> None: ...

    def remove_dir(self, path: str) -> None: ...

    def file_size(self, path: str) -> int: ...


def _to_stat(st: os.stat_result) -> StatResult:
    return StatResult(
        is_dir=statmod.S_ISDIR(st.st_mode),
        is_symlink=statmod.S_ISLNK(st.st_mode),
        size=st.st_size,
        mtime=st.st_mtime,
        dev=st.st_dev,
    )


class OsFileSystem:
    def expanduser(self, path: str) -> str:
        return os.path.expanduser(path)

    def resolve(self, path: str) -> str:
        return os.path.realpath(path)

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def stat(self, path: str) -> StatResult:
        return _to_stat(os.lstat(path))

    def scandir(self, path: str) -> list[DirEntry]:
        entries: list[DirEntry] = []
        with os.scandir(path) as it:
            for entry in it:
                try:
                    st: StatResult | None = _to_stat(entry.stat(follow_symlinks=False))
                except OSError:
                    st = None
                entries.append(DirEntry(path=entry.path, name=entry.name, stat=st))
        return entries

    def is_mount(self, path: str) -> bool:
        return os.path.ismount(path)

    def read_text(self, path: str) -> str:
        with open(path, encoding="utf-8") as f:
            return f.read()

    def write_text_atomic(self, path: str, content: str) -> None:
        # Readers see either the previous file or the complete new one.
        directory = os.path.dirname(path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.lexists(tmp_path):
                os.unlink(tmp_path)
            raise

    def remove_file(self, path: str) -> None:
        os.unlink(path)

    def remove_dir(self, path: str) -> None:
        os.rmdir(path)

    def file_size(self, path: str) -> int:
        return os.lstat(path).st_size


DEFAULT_FS: FileSystem = OsFileSystem()
