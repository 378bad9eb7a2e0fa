from __future__ import annotations

import heapq
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from gigabroom.models.scan import ScanEntry
from gigabroom.services.fs import FileSystem


@dataclass(slots=True)
class TreeSize:
    size_bytes: int = 0
    files: int = 0
    directories: int = 0
    errors: int = 0
    latest_mtime: float = 0.0


def measure_tree(fs: FileSystem, path: str, is_cancelled: Callable[[], bool] | None = None) -> TreeSize:
    """Sum the sizes of regular files under *path*.

    Symlinks are neither followed nor counted, and the walk stays on the
    device *path* lives on.  Unreadable subdirectories count as errors.
    """
    totals = TreeSize()
    try:
        root_dev = fs.stat(path).dev
    except OSError:
        totals.errors += 1
        return totals

    stack = [path]
    while stack:
        if is_cancelled is not None and is_cancelled():
            break
        current = stack.pop()
        try:
            children = fs.scandir(current)
        except OSError:
            totals.errors += 1
            continue
        for child in children:
            st = child.stat
            if st is None:
                totals.errors += 1
                continue
            if st.is_symlink:
                continue
            totals.latest_mtime = max(totals.latest_mtime, st.mtime)
            if st.is_dir:
                if st.dev != root_dev:
                    continue
                totals.directories += 1
                stack.append(child.path)
            else:
                totals.files += 1
                totals.size_bytes += st.size
    return totals


def depth_of(path: str, root: str) -> int:
    """Number of path components between *root* and *path* (root children are 1)."""
    rel = os.path.relpath(path, root)
    if rel == os.curdir:
        return 0
    return len(rel.split(os.sep))


def is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def drop_nested(paths: Iterable[str]) -> list[str]:
    """Keep only paths that are not inside another path of the collection."""
    kept: list[str] = []
    # Component order keeps every descendant directly after its ancestor.
    for path in sorted(set(paths), key=lambda p: p.split(os.sep)):
        if kept and is_within(path, kept[-1]):
            continue
        kept.append(path)
    return kept


def top_entries(entries: Iterable[ScanEntry], n: int) -> list[ScanEntry]:
    """Return the *n* largest entries, ties broken by path."""
    return heapq.nsmallest(n, entries, key=lambda entry: (-entry.size_bytes, entry.path))
