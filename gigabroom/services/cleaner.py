# Cleaner: validated, sequential deletion of a Selection.
#
#   1. Safety gate    caution entries need force or a category opt-in,
#                     otherwise they are SKIPPED (never FAILED).
#   2. Re-validation  every remaining entry is re-matched against the catalog
#                     before anything is touched, so removing one entry can't
#                     change how a later one classifies (.NET bin/obj siblings).
#   3. Deletion       deepest paths first.  Right before each entry: it must
#                     still exist, not be a symlink, keep its file/dir nature
#                     and not be a mount point.  Directories are emptied
#                     files-first, then children-before-parents.
#
# Failures are recorded per entry and never stop the batch.  Cancellation is
# checked between entries; the rest are SKIPPED with REASON_CANCELLED.

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

from gigabroom.models.report import (
    REASON_CANCELLED,
    REASON_CATEGORY_CHANGED,
    REASON_MOUNT_POINT,
    REASON_NESTED_MOUNT,
    REASON_SAFETY,
    REASON_SYMLINK,
    REASON_TYPE_CHANGED,
    REASON_VANISHED,
    EntryResult,
    Outcome,
    Report,
)
from gigabroom.models.scan import CancelCheck, ScanEntry
from gigabroom.models.selection import Selection
from gigabroom.services.catalog import RuleCatalog
from gigabroom.services.fs import DEFAULT_FS, FileSystem

log = logging.getLogger(__name__)

# (path, index, total) after each processed entry.
CleanProgress: TypeAlias = Callable[[str, int, int], None]


@dataclass(slots=True, frozen=True)
class CleanOptions:
    dry_run: bool = False
    force: bool = False


@dataclass(slots=True)
class _Tally:
    bytes: int = 0


class _EntryFailure(Exception):
    """Deletion of one entry has to stop; the message is the report reason."""


def _depth_key(entry: ScanEntry) -> tuple[int, str]:
    return (-entry.path.count(os.sep), entry.path)


class Cleaner:
    def __init__(self, catalog: RuleCatalog, fs: FileSystem = DEFAULT_FS) -> None:
        self._catalog = catalog
        self._fs = fs

    def clean(
        self,
        selection: Selection,
        options: CleanOptions = CleanOptions(),
        *,
        cancel_check: CancelCheck | None = None,
        progress_callback: CleanProgress | None = None,
    ) -> Report:
        started = time.perf_counter()
        results: dict[str, EntryResult] = {}
        pending: list[ScanEntry] = []

        for entry in selection.entries:
            if entry.is_caution and not options.force and entry.category not in selection.opted_in:
                results[entry.path] = _result(entry, Outcome.SKIPPED, REASON_SAFETY)
            else:
                pending.append(entry)

        # Classify everything against the tree as it is now, before any mutation.
        for entry in pending:
            if entry.path not in results and self._fs.exists(entry.path):
                rule = self._catalog.match(entry.path, entry.is_dir)
                if rule is None or rule.category is not entry.category:
                    results[entry.path] = _result(entry, Outcome.FAILED, REASON_CATEGORY_CHANGED)

        planned = sum(entry.size_bytes for entry in pending if entry.path not in results)
        reclaimed = 0
        cancelled = False
        ordered = sorted((e for e in pending if e.path not in results), key=_depth_key)
        for index, entry in enumerate(ordered, start=1):
            if cancelled or (cancel_check is not None and cancel_check()):
                cancelled = True
                results[entry.path] = _result(entry, Outcome.SKIPPED, REASON_CANCELLED)
                continue
            freed = _Tally()
            try:
                self._validate(entry)
                files, dirs = self._collect(entry)
                if not options.dry_run:
                    self._delete(files, dirs, freed)
            except _EntryFailure as exc:
                results[entry.path] = _result(entry, Outcome.FAILED, str(exc))
                log.warning("Not deleting %s: %s", entry.path, exc)
            except FileNotFoundError as exc:
                results[entry.path] = _result(entry, Outcome.FAILED, REASON_VANISHED)
                log.warning("%s vanished while deleting: %s", entry.path, exc)
            except OSError as exc:
                results[entry.path] = _result(entry, Outcome.FAILED, exc.strerror or str(exc))
                log.warning("Failed deleting %s: %s", entry.path, exc)
            else:
                results[entry.path] = _result(entry, Outcome.DELETED)
            # A half-removed directory still freed what it freed.
            reclaimed += freed.bytes
            if progress_callback is not None:
                progress_callback(entry.path, index, len(ordered))

        report = Report(
            results=tuple(results[entry.path] for entry in selection.entries),
            bytes_reclaimed=0 if options.dry_run else reclaimed,
            bytes_planned=planned,
            elapsed_seconds=time.perf_counter() - started,
            dry_run=options.dry_run,
            cancelled=cancelled,
        )
        log.info(
            "Clean finished%s: %d deleted, %d failed, %d skipped",
            " (dry run)" if options.dry_run else "",
            report.succeeded,
            len(report.failures),
            len(report.skipped),
        )
        return report

    def _validate(self, entry: ScanEntry) -> None:
        if not self._fs.exists(entry.path):
            raise _EntryFailure(REASON_VANISHED)
        try:
            st = self._fs.stat(entry.path)
        except FileNotFoundError:
            raise _EntryFailure(REASON_VANISHED) from None
        if st.is_symlink:
            raise _EntryFailure(REASON_SYMLINK)
        if st.is_dir != entry.is_dir:
            raise _EntryFailure(REASON_TYPE_CHANGED)
        if st.is_dir and self._fs.is_mount(entry.path):
            raise _EntryFailure(REASON_MOUNT_POINT)

    def _collect(self, entry: ScanEntry) -> tuple[list[tuple[str, int]], list[str]]:
        """Files with their sizes and directories in pre-order under *entry*.

        Runs in dry runs too, so a nested mount fails the entry either way.
        """
        if not entry.is_dir:
            return [(entry.path, self._fs.file_size(entry.path))], []

        root_dev = self._fs.stat(entry.path).dev
        files: list[tuple[str, int]] = []
        dirs: list[str] = [entry.path]
        stack = [entry.path]
        while stack:
            current = stack.pop()
            for child in self._fs.scandir(current):
                st = child.stat
                if st is None:
                    st = self._fs.stat(child.path)
                if st.is_dir and not st.is_symlink:
                    if st.dev != root_dev:
                        raise _EntryFailure(REASON_NESTED_MOUNT)
                    dirs.append(child.path)
                    stack.append(child.path)
                else:
                    # Symlinks are removed as links, never followed.
                    files.append((child.path, 0 if st.is_symlink else st.size))
        return files, dirs

    def _delete(self, files: list[tuple[str, int]], dirs: list[str], freed: _Tally) -> None:
        """Remove what ``_collect`` found, adding the bytes actually removed to *freed*."""
        for path, size in files:
            self._fs.remove_file(path)
            freed.bytes += size
        # Pre-order lists parents before children; reverse it.
        for path in reversed(dirs):
            self._fs.remove_dir(path)


def _result(entry: ScanEntry, outcome: Outcome, reason: str = "") -> EntryResult:
    return EntryResult(
        path=entry.path,
        category=entry.category,
        size_bytes=entry.size_bytes,
        outcome=outcome,
        reason=reason,
    )
