"""Single-record cache of the most recent scan.

One record is kept for all roots; a record is only served when its
fingerprint (root + scan options) matches the request and it is younger
than the validity window.  Anything unreadable is treated as a miss.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from typing_extensions import override

from gigabroom.models.scan import ScanOptions, ScanResult
from gigabroom.services.fs import DEFAULT_FS, FileSystem

log = logging.getLogger(__name__)

CACHE_VERSION = 1
DEFAULT_TTL_SECONDS = 300


def fingerprint(root: str, options: ScanOptions) -> str:
    payload = {
        "root": root,
        "maxDepth": options.max_depth,
        "minSize": options.min_size,
        "categories": sorted(cat.value for cat in options.categories),
        "exclude": sorted(options.exclude),
        "olderThanDays": options.older_than_days,
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class CacheInfo:
    path: str
    exists: bool
    entry_count: int = 0
    age_seconds: float | None = None
    size_on_disk: int = 0
    root: str | None = None
    fresh: bool = False


class ResultCache(ABC):
    """Template for caches; subclasses only move the serialized record."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
        self._ttl = max(0, ttl_seconds)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    @abstractmethod
    def _read(self) -> str | None:
        """Return the stored record, or None when nothing is stored."""

    @abstractmethod
    def _write(self, content: str) -> None: ...

    @abstractmethod
    def _delete(self) -> None: ...

    @abstractmethod
    def _location(self) -> str: ...

    def _load(self) -> dict[str, Any] | None:
        try:
            raw = self._read()
        except (OSError, ValueError) as exc:
            log.warning("Cannot read scan cache at %s: %s", self._location(), exc)
            return None
        if raw is None:
            return None
        try:
            record = json.loads(raw)
        except ValueError as exc:
            log.warning("Ignoring corrupt scan cache at %s: %s", self._location(), exc)
            return None
        if not isinstance(record, dict) or record.get("version") != CACHE_VERSION:
            log.warning("Ignoring scan cache at %s with unsupported layout", self._location())
            return None
        return record

    def _is_fresh(self, record: dict[str, Any]) -> bool:
        try:
            age = self._clock() - float(record["createdAt"])
        except (KeyError, TypeError, ValueError):
            return False
        return 0 <= age <= self._ttl

    def get(self, root: str, options: ScanOptions) -> ScanResult | None:
        record = self._load()
        if record is None:
            return None
        if record.get("fingerprint") != fingerprint(root, options) or not self._is_fresh(record):
            return None
        try:
            result = ScanResult.from_dict(record["result"])
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            log.warning("Ignoring malformed scan cache at %s: %s", self._location(), exc)
            return None
        log.info("Scan cache hit for %s (%d entries)", root, len(result.entries))
        return result

    def put(self, root: str, options: ScanOptions, result: ScanResult) -> None:
        record = {
            "version": CACHE_VERSION,
            "fingerprint": fingerprint(root, options),
            "createdAt": self._clock(),
            "validitySeconds": self._ttl,
            "result": result.to_dict(),
        }
        self._write(json.dumps(record))
        log.info("Wrote scan cache for %s to %s", root, self._location())

    def clear(self) -> None:
        self._delete()

    def info(self) -> CacheInfo:
        record = self._load()
        if record is None:
            return CacheInfo(path=self._location(), exists=self._size() > 0, size_on_disk=self._size())
        result = record.get("result")
        entries = result.get("entries", []) if isinstance(result, dict) else []
        root = result.get("root") if isinstance(result, dict) else None
        try:
            age: float | None = self._clock() - float(record["createdAt"])
        except (KeyError, TypeError, ValueError):
            age = None
        return CacheInfo(
            path=self._location(),
            exists=True,
            entry_count=len(entries),
            age_seconds=age,
            size_on_disk=self._size(),
            root=root,
            fresh=self._is_fresh(record),
        )

    @abstractmethod
    def _size(self) -> int: ...


class FileResultCache(ResultCache):
    def __init__(
        self,
        path: str,
        fs: FileSystem = DEFAULT_FS,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._fs = fs
        self._path = fs.expanduser(path)

    @override
    def _read(self) -> str | None:
        if not self._fs.exists(self._path):
            return None
        return self._fs.read_text(self._path)

    @override
    def _write(self, content: str) -> None:
        self._fs.write_text_atomic(self._path, content)

    @override
    def _delete(self) -> None:
        if self._fs.exists(self._path):
            self._fs.remove_file(self._path)

    @override
    def _location(self) -> str:
        return self._path

    @override
    def _size(self) -> int:
        try:
            return self._fs.file_size(self._path)
        except OSError:
            return 0


class MemoryResultCache(ResultCache):
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._content: str | None = None

    @override
    def _read(self) -> str | None:
        return self._content

    @override
    def _write(self, content: str) -> None:
        self._content = content

    @override
    def _delete(self) -> None:
        self._content = None

    @override
    def _location(self) -> str:
        return "<memory>"

    @override
    def _size(self) -> int:
        return len(self._content.encode("utf-8")) if self._content is not None else 0
