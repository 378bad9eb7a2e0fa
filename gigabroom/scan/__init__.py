from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol

from gigabroom.config.schema import AppConfig
from gigabroom.models.scan import CancelCheck, ProgressCallback, ScanOptions, ScanOutcome
from gigabroom.scan._base import ScannerBase, resolve_root, validate_options
from gigabroom.scan.index_scanner import IndexScanner
from gigabroom.scan.walk_scanner import WalkScanner
from gigabroom.services.cache import FileResultCache, ResultCache
from gigabroom.services.catalog import RuleCatalog
from gigabroom.services.content_index import ContentIndex, detect_index
from gigabroom.services.fs import DEFAULT_FS, FileSystem


class Scanner(Protocol):
    def scan(
        self,
        path: str,
        options: ScanOptions,
        *,
        refresh: bool = False,
        progress_callback: ProgressCallback | None = None,
        cancel_check: CancelCheck | None = None,
    ) -> ScanOutcome: ...


def default_scanner(
    catalog: RuleCatalog,
    *,
    index_mode: bool = False,
    workers: int = 4,
    fs: FileSystem = DEFAULT_FS,
    cache: ResultCache | None = None,
    clock: Callable[[], float] = time.time,
) -> ScannerBase:
    """Return the index scanner when asked for and an index exists, else the walker."""
    if index_mode:
        index = detect_index()
        if index is not None:
            return IndexScanner(catalog, index, workers=workers, fs=fs, cache=cache, clock=clock)
    return WalkScanner(catalog, workers=workers, fs=fs, cache=cache, clock=clock)


def scanner_from_config(
    config: AppConfig,
    *,
    fs: FileSystem = DEFAULT_FS,
    clock: Callable[[], float] = time.time,
) -> ScannerBase:
    """Wire catalog, cache and scanner from the user's settings."""
    catalog = RuleCatalog(config.catalog_rules(), fs)
    cache = FileResultCache(config.cache_path, fs=fs, ttl_seconds=config.cache_ttl_seconds, clock=clock)
    return default_scanner(
        catalog,
        index_mode=config.index_mode,
        workers=config.scan_workers,
        fs=fs,
        cache=cache,
        clock=clock,
    )


def create_scanner(

    name: str,
    catalog: RuleCatalog,
    *,
    workers: int = 4,
    fs: FileSystem = DEFAULT_FS,
    cache: ResultCache | None = None,
    index: ContentIndex | None = None,
    clock: Callable[[], float] = time.time,
) -> ScannerBase:
    """Create a scanner by name.

    Valid names: ``auto``, ``walk``, ``index``.
    Raises ``ValueError`` for unknown names.
    """
    if name == "auto":
        if index is not None and index.available():
            return IndexScanner(catalog, index, workers=workers, fs=fs, cache=cache, clock=clock)
        return default_scanner(catalog, index_mode=index is None, workers=workers, fs=fs, cache=cache, clock=clock)
    if name == "walk":
        return WalkScanner(catalog, workers=workers, fs=fs, cache=cache, clock=clock)
    if name == "index":
        chosen = index if index is not None else detect_index()
        return IndexScanner(catalog, chosen, workers=workers, fs=fs, cache=cache, clock=clock)
    msg = f"Unknown scanner: {name}. Use: auto, walk, index."
    raise ValueError(msg)


__all__ = [
    "IndexScanner",
    "Scanner",
    "ScannerBase",
    "WalkScanner",
    "create_scanner",
    "default_scanner",
    "resolve_root",
    "scanner_from_config",
    "validate_options",
]
