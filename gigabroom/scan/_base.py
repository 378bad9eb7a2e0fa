# Artifact scanner base class.
#
# Architecture:
#   ScannerBase uses the Template Method pattern: subclasses implement
#   _collect (find artifacts under an already-validated root), while the base
#   class handles option validation, root resolution, the result cache,
#   cancellation, post-filtering, and result assembly.
#
# Work distribution:
#   Each root child is an independent unit of work.  Units are handed to a
#   ThreadPoolExecutor; every unit returns its own _Partial (entries plus
#   counters) and partials are merged on the calling thread as futures
#   complete.  No collection is shared between workers.
#
# Lifecycle (scan method):
#   1. Validate options → resolve root → consult the cache unless refresh.
#   2. List the root (failure here is fatal) → _collect over the children.
#   3. Cancelled → Err(CANCELLED), cache untouched.
#   4. Post-filter (counted in stats.filtered) → sort by path → cache.put.

from __future__ import annotations

import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace

from result import Err, Ok

from gigabroom.config.schema import Rule
from gigabroom.models.scan import (
    CancelCheck,
    ProgressCallback,
    ScanEntry,
    ScanError,
    ScanErrorCode,
    ScanOptions,
    ScanOutcome,
    ScanResult,
    ScanStats,
)
from gigabroom.services.cache import ResultCache
from gigabroom.services.catalog import RuleCatalog, project_name
from gigabroom.services.fs import DEFAULT_FS, DirEntry, FileSystem, StatResult
from gigabroom.services.patterns import matches_any
from gigabroom.services.tree import measure_tree

log = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


@dataclass(slots=True)
class _Partial:
    """Findings of one unit of work, merged once the unit completes."""

    entries: list[ScanEntry] = field(default_factory=list)
    files: int = 0
    directories: int = 0
    errors: int = 0

    def merge(self, other: _Partial) -> None:
        self.entries.extend(other.entries)
        self.files += other.files
        self.directories += other.directories
        self.errors += other.errors


def validate_options(options: ScanOptions) -> ScanError | None:
    problems: list[str] = []
    if options.max_depth is not None and options.max_depth < 0:
        problems.append(f"max_depth must be >= 0, got {options.max_depth}")
    if options.min_size < 0:
        problems.append(f"min_size must be >= 0, got {options.min_size}")
    if options.older_than_days is not None and options.older_than_days < 0:
        problems.append(f"older_than_days must be >= 0, got {options.older_than_days}")
    if not problems:
        return None
    return ScanError(code=ScanErrorCode.INVALID_OPTIONS, path="", message="; ".join(problems))


def resolve_root(path: str, fs: FileSystem) -> str | ScanError:
    """Validate and resolve a scan root path.

    Returns the resolved absolute path, or a ``ScanError`` on failure.
    """
    expanded = fs.expanduser(path)
    if not fs.exists(expanded):
        return ScanError(
            code=ScanErrorCode.NOT_FOUND,
            path=expanded,
            message="Path does not exist",
        )

    resolved = fs.resolve(expanded)
    try:
        root_stat = fs.stat(resolved)
    except OSError as exc:
        return ScanError(
            code=ScanErrorCode.ROOT_STAT_FAILED,
            path=resolved,
            message=f"Cannot stat root: {exc}",
        )
    if not root_stat.is_dir:
        return ScanError(
            code=ScanErrorCode.NOT_DIRECTORY,
            path=resolved,
            message="Path is not a directory",
        )
    return resolved


def within_depth(depth: int, options: ScanOptions) -> bool:
    return options.max_depth is None or depth <= options.max_depth


class ScannerBase(ABC):
    """Template Method base for artifact scanners.

    Subclasses implement ``_collect``; this class handles everything around
    it and provides the shared walk (``_walk_units``) that both strategies use.
    """

    def __init__(
        self,
        catalog: RuleCatalog,
        workers: int = 4,
        fs: FileSystem = DEFAULT_FS,
        cache: ResultCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._catalog = catalog
        self._workers = max(1, workers)
        self._fs = fs
        self._cache = cache
        self._clock = clock

    @property
    def workers(self) -> int:
        return self._workers

    @abstractmethod
    def _collect(
        self,
        root: str,
        children: Sequence[DirEntry],
        options: ScanOptions,
        is_cancelled: Callable[[], bool],
        progress: Callable[[str, _Partial], None],
    ) -> _Partial:
        """Find every artifact under *root*, whose listing is *children*."""

    def scan(
        self,
        path: str,
        options: ScanOptions,
        *,
        refresh: bool = False,
        progress_callback: ProgressCallback | None = None,
        cancel_check: CancelCheck | None = None,
    ) -> ScanOutcome:
        invalid = validate_options(options)
        if invalid is not None:
            return Err(invalid)

        resolved = resolve_root(path, self._fs)
        if isinstance(resolved, ScanError):
            return Err(resolved)
        root = resolved

        if self._cache is not None and not refresh:
            cached = self._cache.get(root, options)
            if cached is not None:
                alive = tuple(entry for entry in cached.entries if self._fs.exists(entry.path))
                return Ok(replace(cached, entries=alive, from_cache=True))

        started = time.perf_counter()
        cancelled = threading.Event()

        def _is_cancelled() -> bool:
            # Once set, later checks skip the caller's callback.
            if cancelled.is_set():
                return True
            if cancel_check is not None and cancel_check():
                cancelled.set()
                return True
            return False

        seen = _Partial()

        def _progress(current: str, partial: _Partial) -> None:
            # Called on the scanning thread only.
            seen.merge(_Partial(files=partial.files, directories=partial.directories))
            if progress_callback is not None:
                progress_callback(current, seen.files, seen.directories)

        if _is_cancelled():
            return Err(ScanError(code=ScanErrorCode.CANCELLED, path=root, message="Scan cancelled"))
        try:
            children = self._fs.scandir(root)
        except OSError as exc:
            return Err(ScanError(code=ScanErrorCode.ROOT_UNREADABLE, path=root, message=f"Cannot read root: {exc}"))

        try:
            found = self._collect(root, children, options, _is_cancelled, _progress)
        except Exception as exc:  # noqa: BLE001
            log.exception("Scan of %s failed", root)
            return Err(ScanError(code=ScanErrorCode.INTERNAL, path=root, message=str(exc)))

        if cancelled.is_set():
            return Err(ScanError(code=ScanErrorCode.CANCELLED, path=root, message="Scan cancelled"))

        now = self._clock()
        kept = [entry for entry in found.entries if self._passes_filters(entry, options, now)]
        kept.sort(key=lambda entry: entry.path)
        stats = ScanStats(
            files=found.files,
            directories=found.directories + 1,
            access_errors=found.errors,
            matched=len(found.entries),
            filtered=len(found.entries) - len(kept),
            elapsed_seconds=time.perf_counter() - started,
        )
        result = ScanResult(root=root, options=options, entries=tuple(kept), created_at=now, stats=stats)
        log.info("Scanned %s: %d artifacts, %d filtered, %d errors", root, len(kept), stats.filtered, stats.access_errors)

        if self._cache is not None:
            try:
                self._cache.put(root, options, result)
            except OSError as exc:
                log.warning("Could not write scan cache: %s", exc)
        return Ok(result)

    # -- shared helpers ---------------------------------------------------

    def _passes_filters(self, entry: ScanEntry, options: ScanOptions, now: float) -> bool:
        if entry.size_bytes < options.min_size:
            return False
        if options.categories and entry.category not in options.categories:
            return False
        if options.exclude and matches_any(_slash(entry.path), os.path.basename(entry.path), options.exclude):
            return False
        if options.older_than_days is not None:
            if now - entry.modified_ts < options.older_than_days * SECONDS_PER_DAY:
                return False
        return True

    def _make_entry(
        self, path: str, st: StatResult, rule: Rule, is_cancelled: Callable[[], bool], partial: _Partial
    ) -> ScanEntry:
        size = st.size
        modified = st.mtime
        if st.is_dir:
            # Matched directories are opaque: sized once, never descended.
            tree = measure_tree(self._fs, path, is_cancelled)
            size = tree.size_bytes
            # A directory is as recent as the newest file inside it.
            modified = max(modified, tree.latest_mtime)
            partial.files += tree.files
            partial.directories += tree.directories + 1
            partial.errors += tree.errors
        else:
            partial.files += 1
        return ScanEntry(
            path=path,
            category=rule.category,
            size_bytes=size,
            modified_ts=modified,
            is_dir=st.is_dir,
            danger=rule.danger,
            rule_id=rule.id,
            project_name=project_name(path),
        )

    def _walk_unit(self, unit: DirEntry, options: ScanOptions, is_cancelled: Callable[[], bool]) -> _Partial:
        """Iterative DFS below one root child (which sits at depth 1)."""
        partial = _Partial()
        stack: list[tuple[DirEntry, int]] = [(unit, 1)]
        while stack:
            if is_cancelled():
                break
            entry, depth = stack.pop()
            st = entry.stat
            if st is None:
                partial.errors += 1
                continue
            if st.is_symlink or not within_depth(depth, options):
                continue

            rule = self._catalog.match(entry.path, st.is_dir, entry.name)
            if rule is not None:
                partial.entries.append(self._make_entry(entry.path, st, rule, is_cancelled, partial))
                continue
            if not st.is_dir:
                partial.files += 1
                continue

            partial.directories += 1
            if options.exclude and matches_any(_slash(entry.path), entry.name, options.exclude):
                continue
            if options.max_depth is not None and depth >= options.max_depth:
                continue
            try:
                children = self._fs.scandir(entry.path)
            except OSError as exc:
                log.debug("Cannot read %s: %s", entry.path, exc)
                partial.errors += 1
                continue
            stack.extend((child, depth + 1) for child in children)
        return partial

    def _walk_units(
        self,
        units: Iterable[DirEntry],
        options: ScanOptions,
        is_cancelled: Callable[[], bool],
        progress: Callable[[str, _Partial], None],
    ) -> _Partial:
        merged = _Partial()
        with ThreadPoolExecutor(max_workers=self._workers) as pool:
            futures = {pool.submit(self._walk_unit, unit, options, is_cancelled): unit for unit in units}
            for future in as_completed(futures):
                partial = future.result()
                merged.merge(partial)
                progress(futures[future].path, partial)
        return merged


def _slash(path: str) -> str:
    return path if os.sep == "/" else path.replace(os.sep, "/")
