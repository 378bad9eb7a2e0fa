from __future__ import annotations

from dataclasses import dataclass

from gigabroom.models.enums import Category
from gigabroom.models.scan import ScanEntry, ScanResult


@dataclass(slots=True, frozen=True)
class Selection:
    """A set of entries (by path) chosen from one ScanResult.

    ``opted_in`` lists caution categories the user explicitly agreed to clean.
    """

    source: ScanResult
    paths: frozenset[str] = frozenset()
    opted_in: frozenset[Category] = frozenset()

    @property
    def entries(self) -> tuple[ScanEntry, ...]:
        return tuple(entry for entry in self.source.entries if entry.path in self.paths)

    @property
    def count(self) -> int:
        return len(self.entries)

    @property
    def total_size(self) -> int:
        return sum(entry.size_bytes for entry in self.entries)

    @property
    def categories(self) -> frozenset[Category]:
        return frozenset(entry.category for entry in self.entries)

    def __contains__(self, path: object) -> bool:
        return path in self.paths
