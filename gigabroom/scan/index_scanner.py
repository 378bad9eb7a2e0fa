from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing_extensions import override

from gigabroom.config.schema import Rule
from gigabroom.models.scan import ScanEntry, ScanOptions
from gigabroom.scan._base import ScannerBase, _Partial, within_depth
from gigabroom.services.cache import ResultCache
from gigabroom.services.catalog import RuleCatalog
from gigabroom.services.content_index import ContentIndex, ContentIndexError
from gigabroom.services.fs import DEFAULT_FS, DirEntry, FileSystem, StatResult
from gigabroom.services.patterns import matches_any
from gigabroom.services.tree import depth_of, drop_nested, is_within

log = logging.getLogger(__name__)


class IndexScanner(ScannerBase):
    """Answers from an OS content index, walking whatever it does not cover.

    Index hits are only leads: each one is re-checked against the live
    filesystem and the catalog before it becomes an entry.  Rules that match
    by extension or glob are only found in walked regions.
    """

    def __init__(
        self,
        catalog: RuleCatalog,
        index: ContentIndex | None,
        workers: int = 4,
        fs: FileSystem = DEFAULT_FS,
        cache: ResultCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(catalog, workers=workers, fs=fs, cache=cache, clock=clock)
        self._index = index

    @override
    def _collect(
        self,
        root: str,
        children: Sequence[DirEntry],
        options: ScanOptions,
        is_cancelled: Callable[[], bool],
        progress: Callable[[str, _Partial], None],
    ) -> _Partial:
        index = self._index
        if index is None or not index.available():
            log.warning("No content index available; walking %s", root)
            return self._walk_units(children, options, is_cancelled, progress)

        covered = [child for child in children if child.stat is not None and index.covers(child.path)]
        uncovered = [child for child in children if child not in covered]
        if not covered:
            return self._walk_units(children, options, is_cancelled, progress)

        try:
            hits = index.query(root, self._catalog.marker_names())
        except ContentIndexError as exc:
            log.warning("Content index %s failed (%s); walking %s", index.name, exc, root)
            return self._walk_units(children, options, is_cancelled, progress)

        merged = self._walk_units(uncovered, options, is_cancelled, progress)
        walked = [child.path for child in uncovered]
        leads = [
            path
            for path in hits
            if is_within(path, root) and path != root and not any(is_within(path, region) for region in walked)
        ]
        found = self._verify(root, leads, options, is_cancelled)
        if found.entries or found.errors:
            progress(root, found)
        merged.merge(found)
        return merged

    def _verify(
        self, root: str, leads: Sequence[str], options: ScanOptions, is_cancelled: Callable[[], bool]
    ) -> _Partial:
        matched: dict[str, tuple[StatResult, Rule]] = {}
        partial = _Partial()
        for path in sorted(set(leads)):
            if is_cancelled():
                return partial
            if not within_depth(depth_of(path, root), options):
                continue
            # Stale entries and paths reached through a symlink are dropped.
            if self._fs.resolve(path) != path:
                continue
            try:
                st = self._fs.stat(path)
            except OSError:
                continue
            if st.is_symlink:
                continue
            name = os.path.basename(path)
            rule = self._catalog.match(path, st.is_dir, name)
            if rule is None or self._blocked(root, path, options):
                continue
            matched[path] = (st, rule)

        keep = drop_nested(matched)

        def _size(path: str) -> tuple[ScanEntry, _Partial]:
            counts = _Partial()
            st, rule = matched[path]
            return self._make_entry(path, st, rule, is_cancelled, counts), counts

        with ThreadPoolExecutor(max_workers=self._workers) as pool:
            for entry, counts in pool.map(_size, keep):
                partial.merge(counts)
                partial.entries.append(entry)
        return partial

    def _blocked(self, root: str, path: str, options: ScanOptions) -> bool:
        """True when an ancestor below *root* is itself an artifact or excluded.

        A walk would never have descended into such an ancestor.
        """
        current = os.path.dirname(path)
        while current != root and is_within(current, root):
            if self._catalog.match(current, True) is not None:
                return True
            if options.exclude and matches_any(current, os.path.basename(current), options.exclude):
                return True
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent
        return False
