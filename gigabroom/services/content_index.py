"""OS content indexes used to skip full traversal.

An index answers "which paths under this root have one of these names".
Answers may be stale or partial, so every hit is re-verified by the scanner,
and regions an index reports as uncovered are walked instead.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import sys
from collections.abc import Iterable, Sequence
from typing import Protocol

log = logging.getLogger(__name__)

QUERY_TIMEOUT_SECONDS = 60
UPDATEDB_CONF = "/etc/updatedb.conf"


class ContentIndexError(Exception):
    """The index could not answer a query."""


class ContentIndex(Protocol):
    name: str

    def available(self) -> bool: ...

    def covers(self, path: str) -> bool: ...

    def query(self, root: str, names: Iterable[str]) -> list[str]: ...


def _run(command: Sequence[str], ok_codes: tuple[int, ...] = (0,)) -> str:
    try:
        proc = subprocess.run(
            list(command),
            text=True,
            capture_output=True,
            timeout=QUERY_TIMEOUT_SECONDS,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        msg = f"{command[0]} failed: {exc}"
        raise ContentIndexError(msg) from exc
    if proc.returncode not in ok_codes:
        msg = f"{shlex.join(command)} exited with {proc.returncode}: {proc.stderr.strip()}"
        raise ContentIndexError(msg)
    return proc.stdout


class MdfindIndex:
    """macOS Spotlight, queried through ``mdfind`` / ``mdutil``."""

    name = "mdfind"

    def __init__(self) -> None:
        self._volumes: dict[int, bool] = {}

    def available(self) -> bool:
        return sys.platform == "darwin" and shutil.which("mdfind") is not None

    def covers(self, path: str) -> bool:
        try:
            dev = os.lstat(path).st_dev
        except OSError:
            return False
        if dev not in self._volumes:
            try:
                status = _run(["mdutil", "-s", path])
            except ContentIndexError as exc:
                log.debug("mdutil status unavailable for %s: %s", path, exc)
                status = ""
            self._volumes[dev] = "Indexing enabled" in status
        return self._volumes[dev]

    def query(self, root: str, names: Iterable[str]) -> list[str]:
        clauses = [f"kMDItemFSName == '{name}'" for name in sorted(set(names)) if "'" not in name]
        if not clauses:
            return []
        output = _run(["mdfind", "-onlyin", root, " || ".join(clauses)])
        return [line.strip() for line in output.splitlines() if line.strip()]


class LocateIndex:
    """``plocate`` / ``locate`` database; stale between ``updatedb`` runs."""

    name = "locate"

    def __init__(self, binary: str | None = None, prune_paths: Sequence[str] | None = None) -> None:
        self._binary = binary or shutil.which("plocate") or shutil.which("locate")
        self._prune_paths = tuple(prune_paths) if prune_paths is not None else _read_prune_paths(UPDATEDB_CONF)

    def available(self) -> bool:
        return self._binary is not None

    def covers(self, path: str) -> bool:
        for pruned in self._prune_paths:
            if path == pruned or path.startswith(pruned.rstrip("/") + "/"):
                return False
        return True

    def query(self, root: str, names: Iterable[str]) -> list[str]:
        if self._binary is None:
            msg = "locate is not installed"
            raise ContentIndexError(msg)
        patterns = [f"\\{name}" for name in sorted(set(names))]
        if not patterns:
            return []
        # Exit status 1 only means "nothing found".
        output = _run([self._binary, "-0", "-b", *patterns], ok_codes=(0, 1))
        prefix = root.rstrip("/") + "/"
        return [path for path in output.split("\0") if path.startswith(prefix)]


def _read_prune_paths(conf_path: str) -> tuple[str, ...]:
    try:
        with open(conf_path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError:
        return ()
    for line in lines:
        key, _, value = line.partition("=")
        if key.strip() == "PRUNEPATHS":
            return tuple(shlex.split(value.strip().strip('"')))
    return ()


def detect_index() -> ContentIndex | None:
    """Return the first available content index for this host."""
    candidates: list[ContentIndex] = [MdfindIndex(), LocateIndex()]
    for index in candidates:
        if index.available():
            return index
    return None


__all__ = ["ContentIndex", "ContentIndexError", "LocateIndex", "MdfindIndex", "detect_index"]
