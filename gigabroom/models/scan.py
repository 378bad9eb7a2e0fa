from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from result import Result

from gigabroom.models.enums import Category, DangerLevel


ProgressCallback = Callable[[str, int, int], None]
CancelCheck = Callable[[], bool]


@dataclass(slots=True, frozen=True)
class ScanEntry:
    """Immutable snapshot of one artifact found by a scan.

    For directories ``size_bytes`` is the recursive sum of the regular files
    inside, measured once at discovery time.
    """

    path: str
    category: Category
    size_bytes: int
    modified_ts: float
    is_dir: bool
    danger: DangerLevel
    rule_id: str = ""
    project_name: str = ""

    @property
    def is_caution(self) -> bool:
        return self.danger is DangerLevel.CAUTION

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "category": self.category.value,
            "size": self.size_bytes,
            "modified": self.modified_ts,
            "isDir": self.is_dir,
            "danger": self.danger.value,
            "rule": self.rule_id,
            "project": self.project_name,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ScanEntry:
        return cls(
            path=str(payload["path"]),
            category=Category(str(payload["category"])),
            size_bytes=int(payload["size"]),
            modified_ts=float(payload["modified"]),
            is_dir=bool(payload["isDir"]),
            danger=DangerLevel(str(payload["danger"])),
            rule_id=str(payload.get("rule", "")),
            project_name=str(payload.get("project", "")),
        )


@dataclass(slots=True)
class ScanStats:
    files: int = 0
    directories: int = 0
    access_errors: int = 0
    matched: int = 0
    filtered: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": self.files,
            "directories": self.directories,
            "accessErrors": self.access_errors,
            "matched": self.matched,
            "filtered": self.filtered,
            "elapsedSeconds": self.elapsed_seconds,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ScanStats:
        return cls(
            files=int(payload.get("files", 0)),
            directories=int(payload.get("directories", 0)),
            access_errors=int(payload.get("accessErrors", 0)),
            matched=int(payload.get("matched", 0)),
            filtered=int(payload.get("filtered", 0)),
            elapsed_seconds=float(payload.get("elapsedSeconds", 0.0)),
        )


@dataclass(slots=True, frozen=True)
class ScanOptions:
    max_depth: int | None = None
    min_size: int = 0
    categories: frozenset[Category] = frozenset()
    exclude: tuple[str, ...] = ()
    older_than_days: int | None = None
    index_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxDepth": self.max_depth,
            "minSize": self.min_size,
            "categories": sorted(cat.value for cat in self.categories),
            "exclude": list(self.exclude),
            "olderThanDays": self.older_than_days,
            "indexMode": self.index_mode,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ScanOptions:
        max_depth = payload.get("maxDepth")
        older = payload.get("olderThanDays")
        return cls(
            max_depth=int(max_depth) if max_depth is not None else None,
            min_size=int(payload.get("minSize", 0)),
            categories=frozenset(Category(str(c)) for c in payload.get("categories", [])),
            exclude=tuple(str(p) for p in payload.get("exclude", [])),
            older_than_days=int(older) if older is not None else None,
            index_mode=bool(payload.get("indexMode", False)),
        )


@dataclass(slots=True, frozen=True)
class ScanResult:
    root: str
    options: ScanOptions
    entries: tuple[ScanEntry, ...]
    created_at: float
    stats: ScanStats = field(default_factory=ScanStats)
    from_cache: bool = field(default=False, compare=False)

    @property
    def total_size(self) -> int:
        return sum(entry.size_bytes for entry in self.entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "options": self.options.to_dict(),
            "createdAt": self.created_at,
            "stats": self.stats.to_dict(),
            "totalSize": self.total_size,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ScanResult:
        return cls(
            root=str(payload["root"]),
            options=ScanOptions.from_dict(payload.get("options", {})),
            entries=tuple(ScanEntry.from_dict(item) for item in payload.get("entries", [])),
            created_at=float(payload["createdAt"]),
            stats=ScanStats.from_dict(payload.get("stats", {})),
        )


class ScanErrorCode(str, Enum):
    INVALID_OPTIONS = "invalid_options"
    NOT_FOUND = "not_found"
    NOT_DIRECTORY = "not_directory"
    ROOT_STAT_FAILED = "root_stat_failed"
    ROOT_UNREADABLE = "root_unreadable"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


_IO_CODES = frozenset(
    {
        ScanErrorCode.NOT_FOUND,
        ScanErrorCode.NOT_DIRECTORY,
        ScanErrorCode.ROOT_STAT_FAILED,
        ScanErrorCode.ROOT_UNREADABLE,
    }
)


@dataclass(slots=True, frozen=True)
class ScanError:
    code: ScanErrorCode
    path: str
    message: str

    @property
    def is_io_error(self) -> bool:
        return self.code in _IO_CODES


ScanOutcome = Result[ScanResult, ScanError]
