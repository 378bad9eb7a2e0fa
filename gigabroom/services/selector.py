"""Pure selection operations over a ScanResult.

Every function returns a new ``Selection``; nothing here touches the
filesystem.  A selection only ever contains paths of its source result.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterable
from dataclasses import replace
from fnmatch import fnmatchcase
from typing import TypeAlias

from gigabroom.models.enums import Category
from gigabroom.models.scan import ScanEntry, ScanResult
from gigabroom.models.selection import Selection

Predicate: TypeAlias = Callable[[ScanEntry], bool]

SECONDS_PER_DAY = 86400


def from_result(result: ScanResult) -> Selection:
    return Selection(source=result)


def select(selection: Selection, predicate: Predicate) -> Selection:
    added = frozenset(entry.path for entry in selection.source.entries if predicate(entry))
    return replace(selection, paths=selection.paths | added)


def deselect(selection: Selection, predicate: Predicate) -> Selection:
    removed = frozenset(entry.path for entry in selection.source.entries if predicate(entry))
    return replace(selection, paths=selection.paths - removed)


def select_all(selection: Selection) -> Selection:
    return replace(selection, paths=frozenset(entry.path for entry in selection.source.entries))


def clear(selection: Selection) -> Selection:
    return replace(selection, paths=frozenset())


def opt_in(selection: Selection, *categories: Category) -> Selection:
    """Allow caution entries of *categories* to be cleaned without force."""
    return replace(selection, opted_in=selection.opted_in | frozenset(categories))


def select_category(selection: Selection, category: Category, opt_in: bool = False) -> Selection:
    selected = select(selection, by_categories(category))
    if opt_in:
        selected = replace(selected, opted_in=selected.opted_in | {category})
    return selected


# -- predicates -------------------------------------------------------------


def by_paths(paths: Iterable[str]) -> Predicate:
    wanted = frozenset(os.path.normpath(p) for p in paths)
    return lambda entry: entry.path in wanted


def by_categories(*categories: Category) -> Predicate:
    wanted = frozenset(categories)
    return lambda entry: entry.category in wanted


def min_size(size_bytes: int) -> Predicate:
    return lambda entry: entry.size_bytes >= size_bytes


def name_glob(pattern: str) -> Predicate:
    return lambda entry: fnmatchcase(os.path.basename(entry.path), pattern)


def older_than(days: int, now: float | None = None) -> Predicate:
    cutoff = (time.time() if now is None else now) - days * SECONDS_PER_DAY
    return lambda entry: entry.modified_ts <= cutoff


def safe_only(entry: ScanEntry) -> bool:
    return not entry.is_caution


def selection_from_criteria(
    result: ScanResult,
    categories: Iterable[Category] | None = None,
    select_everything: bool = False,
    paths: Iterable[str] | None = None,
    opt_in: Iterable[Category] = (),
) -> Selection:
    """Build the selection a clean invocation asks for (category set | all | paths)."""
    selection = from_result(result)
    if select_everything:
        selection = select_all(selection)
    if categories:
        selection = select(selection, by_categories(*categories))
    if paths is not None:
        selection = select(selection, by_paths(paths))
    return replace(selection, opted_in=frozenset(opt_in))
