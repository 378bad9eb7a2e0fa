"""Rule catalog: ordered artifact rules plus context-sensitive matching.

A candidate only matches a rule when every context requirement of that rule
holds; otherwise the next rule in priority order is tried.  When no rule
holds, the entry is not an artifact.  Omission is preferred over a false
positive, so any I/O error during a context check counts as "not present".
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from fnmatch import fnmatchcase

from gigabroom.config.schema import Rule
from gigabroom.models.enums import Category
from gigabroom.services.fs import DEFAULT_FS, FileSystem
from gigabroom.services.patterns import CompiledPatterns, candidates, compile_patterns, marker_names


def _has_glob_chars(s: str) -> bool:
    return "*" in s or "?" in s or "[" in s


def _slash_path(path: str) -> str:
    return path if os.sep == "/" else path.replace(os.sep, "/")


class RuleCatalog:
    def __init__(self, rules: Sequence[Rule], fs: FileSystem = DEFAULT_FS) -> None:
        ids = [rule.id for rule in rules]
        duplicates = sorted({rule_id for rule_id in ids if ids.count(rule_id) > 1})
        if duplicates:
            msg = f"Duplicate rule ids: {', '.join(duplicates)}"
            raise ValueError(msg)
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._compiled: CompiledPatterns = compile_patterns(self._rules)
        self._fs = fs

    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def by_category(self) -> dict[Category, tuple[Rule, ...]]:
        grouped: dict[Category, list[Rule]] = {}
        for rule in self._rules:
            grouped.setdefault(rule.category, []).append(rule)
        return {cat: tuple(rules) for cat, rules in grouped.items()}

    def get(self, rule_id: str) -> Rule | None:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def marker_names(self) -> set[str]:
        return marker_names(self._compiled)

    def match(self, path: str, is_dir: bool, name: str | None = None) -> Rule | None:
        """Return the first rule (in priority order) that *path* satisfies."""
        base = name if name is not None else os.path.basename(path)
        for index in candidates(self._compiled, _slash_path(path), base, is_dir):
            rule = self._rules[index]
            if not rule.needs_context or self._context_holds(rule, path, base):
                return rule
        return None

    def category_of(self, path: str, is_dir: bool) -> Category | None:
        rule = self.match(path, is_dir)
        return rule.category if rule is not None else None

    # -- context checks ---------------------------------------------------

    def _context_holds(self, rule: Rule, path: str, name: str) -> bool:
        parent = os.path.dirname(path)
        if rule.siblings:
            for sibling in rule.siblings:
                if sibling != name and not self._fs.exists(os.path.join(parent, sibling)):
                    return False
        if rule.inner_markers:
            for marker in rule.inner_markers:
                if not self._fs.exists(os.path.join(path, marker)):
                    return False
        if rule.markers:
            return any(self._has_marker(ancestor, rule.markers) for ancestor in _ancestors(path, rule.marker_depth))
        return True

    def _has_marker(self, directory: str, markers: Iterable[str]) -> bool:
        listing: list[str] | None = None
        for marker in markers:
            if not _has_glob_chars(marker):
                if self._fs.exists(os.path.join(directory, marker)):
                    return True
                continue
            if listing is None:
                try:
                    listing = [entry.name for entry in self._fs.scandir(directory)]
                except OSError:
                    listing = []
            if any(fnmatchcase(entry_name, marker) for entry_name in listing):
                return True
        return False


def _ancestors(path: str, depth: int) -> list[str]:
    """Parent, grandparent, ... of *path*, at most *depth* of them."""
    found: list[str] = []
    current = path
    for _ in range(depth):
        parent = os.path.dirname(current)
        if not parent or parent == current:
            break
        found.append(parent)
        current = parent
    return found


def project_name(path: str) -> str:
    """Name of the directory holding an artifact, used for display grouping."""
    return os.path.basename(os.path.dirname(path.rstrip(os.sep))) or "Unknown"
