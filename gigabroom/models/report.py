from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from gigabroom.models.enums import Category

# Per-entry failure reasons surfaced to users.
REASON_VANISHED = "entry no longer exists"
REASON_SYMLINK = "entry is now a symbolic link"
REASON_TYPE_CHANGED = "entry changed between file and directory"
REASON_MOUNT_POINT = "entry is a mount point"
REASON_NESTED_MOUNT = "entry contains a mount point"
REASON_CATEGORY_CHANGED = "entry no longer matches its category"
REASON_SAFETY = "caution entry requires force or category opt-in"
REASON_CANCELLED = "operation cancelled"


class Outcome(str, Enum):
    DELETED = "deleted"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class EntryResult:
    path: str
    category: Category
    size_bytes: int
    outcome: Outcome
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "category": self.category.value,
            "size": self.size_bytes,
            "outcome": self.outcome.value,
            "reason": self.reason,
        }


@dataclass(slots=True, frozen=True)
class Report:
    """Outcome of one Cleaner invocation.

    ``bytes_reclaimed`` only counts bytes actually removed, so it is always 0
    for a dry run; ``bytes_planned`` is what a real run would have targeted.
    """

    results: tuple[EntryResult, ...]
    bytes_reclaimed: int
    bytes_planned: int
    elapsed_seconds: float
    dry_run: bool
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return sum(1 for r in self.results if r.outcome is not Outcome.SKIPPED)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.outcome is Outcome.DELETED)

    @property
    def failures(self) -> tuple[EntryResult, ...]:
        return tuple(r for r in self.results if r.outcome is Outcome.FAILED)

    @property
    def skipped(self) -> tuple[EntryResult, ...]:
        return tuple(r for r in self.results if r.outcome is Outcome.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dryRun": self.dry_run,
            "cancelled": self.cancelled,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": len(self.failures),
            "skipped": len(self.skipped),
            "bytesReclaimed": self.bytes_reclaimed,
            "bytesPlanned": self.bytes_planned,
            "elapsedSeconds": self.elapsed_seconds,
            "results": [r.to_dict() for r in self.results],
        }
