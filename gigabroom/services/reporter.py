from __future__ import annotations

import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field

from gigabroom.models.enums import Category, ExitStatus
from gigabroom.models.report import Outcome, Report
from gigabroom.models.scan import ScanEntry, ScanError, ScanResult
from gigabroom.models.selection import Selection
from gigabroom.services.tree import top_entries


@dataclass(slots=True)
class CategoryStats:
    count: int = 0
    size_bytes: int = 0


@dataclass(slots=True, frozen=True)
class ScanSummary:
    total_count: int
    total_size: int
    caution_size: int
    by_category: dict[Category, CategoryStats]
    largest: tuple[ScanEntry, ...]

    @property
    def safe_size(self) -> int:
        return self.total_size - self.caution_size


@dataclass(slots=True, frozen=True)
class CleanSummary:
    deleted: int = 0
    failed: int = 0
    skipped: int = 0
    bytes_reclaimed: int = 0
    bytes_planned: int = 0
    by_category: dict[Category, CategoryStats] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class DiskContext:
    total: int
    used_before: int
    free_before: int
    used_after: int
    free_after: int


def summarize_scan(source: ScanResult | Selection, top_n: int = 5) -> ScanSummary:
    """Category-wise counts and bytes, in category declaration order."""
    entries = source.entries
    grouped: dict[Category, CategoryStats] = {}
    caution = 0
    for entry in entries:
        stats = grouped.setdefault(entry.category, CategoryStats())
        stats.count += 1
        stats.size_bytes += entry.size_bytes
        if entry.is_caution:
            caution += entry.size_bytes
    ordered = {cat: grouped[cat] for cat in Category if cat in grouped}
    return ScanSummary(
        total_count=len(entries),
        total_size=sum(entry.size_bytes for entry in entries),
        caution_size=caution,
        by_category=ordered,
        largest=tuple(top_entries(entries, top_n)),
    )


def summarize_reports(reports: Iterable[Report]) -> CleanSummary:
    deleted = failed = skipped = reclaimed = planned = 0
    grouped: dict[Category, CategoryStats] = {}
    for report in reports:
        reclaimed += report.bytes_reclaimed
        planned += report.bytes_planned
        for item in report.results:
            if item.outcome is Outcome.DELETED:
                deleted += 1
                stats = grouped.setdefault(item.category, CategoryStats())
                stats.count += 1
                stats.size_bytes += item.size_bytes
            elif item.outcome is Outcome.FAILED:
                failed += 1
            else:
                skipped += 1
    return CleanSummary(
        deleted=deleted,
        failed=failed,
        skipped=skipped,
        bytes_reclaimed=reclaimed,
        bytes_planned=planned,
        by_category={cat: grouped[cat] for cat in Category if cat in grouped},
    )


def exit_status(report: Report) -> ExitStatus:
    """Per-entry failures are partial; safety or cancellation skips are not failures."""
    if report.failures:
        return ExitStatus.PARTIAL_FAILURE
    return ExitStatus.SUCCESS


def exit_status_for_error(error: ScanError) -> ExitStatus:
    """Every whole-operation scan error (options, root access, cancellation) is hard."""
    return ExitStatus.HARD_FAILURE


def disk_context(path: str, reclaimable: int) -> DiskContext:
    usage = shutil.disk_usage(path)
    freed = min(reclaimable, usage.used)
    return DiskContext(
        total=usage.total,
        used_before=usage.used,
        free_before=usage.free,
        used_after=usage.used - freed,
        free_after=usage.free + freed,
    )
