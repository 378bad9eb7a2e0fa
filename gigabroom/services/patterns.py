# Pattern compilation for the rule catalog.
#
#   PHASE 1: COMPILE  (compile_patterns, called once when the catalog loads)
#
#   Each Rule carries glob patterns like "**/node_modules" or "**/*.{pyc,pyo}".
#
#   1. Brace expansion: _expand_braces turns "**/*.{pyc,pyo}" into
#      "**/*.pyc" and "**/*.pyo".
#
#   2. Classification: _classify assigns a matcher kind to each pattern:
#
#        Kind         Example              Fast operation
#        -----------  -------------------  ------------------------------
#        EXACT        **/name              dict lookup on basename
#        ENDSWITH     **/*.ext             str.endswith on basename
#        STARTSWITH   **/prefix*           str.startswith on basename
#        PATH_SUFFIX  **/parent/name       dict lookup on basename, then
#                                          str.endswith on the full path
#        GLOB         (anything else)      fnmatch fallback
#
#   3. Bucketing: patterns are split by apply_to (file/dir/both) at
#      compile time so lookups never branch on entry kind.
#
#   PHASE 2: LOOKUP  (candidates, called once per directory entry)
#
#   Returns the indices of every rule with a pattern hit, sorted ascending.
#   Index order is catalog priority order; context checks (markers, siblings)
#   happen in the catalog, not here.  Matching is case-sensitive.

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from fnmatch import fnmatchcase

from gigabroom.config.schema import Rule
from gigabroom.models.enums import ApplyTo

_FILE = ApplyTo.FILE
_DIR = ApplyTo.DIR

_EXACT = 0
_ENDSWITH = 1
_STARTSWITH = 2
_PATH_SUFFIX = 3
_GLOB = 4


@dataclass(slots=True, frozen=True)
class _Matcher:
    """Result of classifying one expanded pattern.

    For PATH_SUFFIX, ``value`` is the basename used as the dict key and
    ``alt`` the ``/parent/name`` tail the full path must end with.
    """

    kind: int
    value: str
    alt: str = ""


def _has_glob_chars(s: str) -> bool:
    return "*" in s or "?" in s or "[" in s


def _classify(pattern: str) -> _Matcher:
    if not pattern.startswith("**/"):
        return _Matcher(_GLOB, pattern)

    rest = pattern[3:]
    if not rest or rest.endswith("/**"):
        return _Matcher(_GLOB, pattern)

    # **/*.ext  →  endswith check on basename
    if rest.startswith("*") and "/" not in rest and not _has_glob_chars(rest[1:]):
        return _Matcher(_ENDSWITH, rest[1:])

    # **/prefix*  →  startswith check on basename
    if rest.endswith("*") and "/" not in rest and not _has_glob_chars(rest[:-1]):
        return _Matcher(_STARTSWITH, rest[:-1])

    if not _has_glob_chars(rest):
        # **/parent/name  →  path suffix, keyed by the last segment
        if "/" in rest:
            return _Matcher(_PATH_SUFFIX, rest.rsplit("/", 1)[-1], f"/{rest}")
        # **/exact  →  exact basename match
        return _Matcher(_EXACT, rest)

    return _Matcher(_GLOB, pattern)


def _expand_braces(pattern: str) -> tuple[str, ...]:
    start = pattern.find("{")
    end = pattern.find("}", start + 1)
    if start == -1 or end == -1:
        return (pattern,)
    choices = pattern[start + 1 : end].split(",")
    prefix = pattern[:start]
    suffix = pattern[end + 1 :]
    expanded: list[str] = []
    for choice in choices:
        expanded.extend(_expand_braces(f"{prefix}{choice}{suffix}"))
    return tuple(expanded)


def _match_pattern_slow(pattern: str, normalized_path: str, basename: str) -> bool:
    """Fallback for patterns that can't be classified into simple string ops."""
    if fnmatchcase(normalized_path, pattern):
        return True
    return fnmatchcase(basename, pattern)


@dataclass(slots=True)
class _ByKind:
    """All pattern entries for one entry kind (file or dir)."""

    exact: dict[str, list[int]] = field(default_factory=dict)
    path_suffix: dict[str, list[tuple[str, int]]] = field(default_factory=dict)
    endswith: list[tuple[str, int]] = field(default_factory=list)
    startswith: list[tuple[str, int]] = field(default_factory=list)
    glob: list[tuple[str, int]] = field(default_factory=list)

    def add(self, m: _Matcher, index: int) -> None:
        if m.kind == _EXACT:
            self.exact.setdefault(m.value, []).append(index)
        elif m.kind == _PATH_SUFFIX:
            self.path_suffix.setdefault(m.value, []).append((m.alt, index))
        elif m.kind == _ENDSWITH:
            self.endswith.append((m.value, index))
        elif m.kind == _STARTSWITH:
            self.startswith.append((m.value, index))
        else:
            self.glob.append((m.value, index))


@dataclass(slots=True)
class CompiledPatterns:
    for_file: _ByKind = field(default_factory=_ByKind)
    for_dir: _ByKind = field(default_factory=_ByKind)


def compile_patterns(rules: Sequence[Rule]) -> CompiledPatterns:
    compiled = CompiledPatterns()
    buckets = {_FILE: compiled.for_file, _DIR: compiled.for_dir}
    for index, rule in enumerate(rules):
        for pattern in rule.patterns:
            for expanded in _expand_braces(pattern):
                m = _classify(expanded)
                for flag, bucket in buckets.items():
                    if rule.apply_to & flag:
                        bucket.add(m, index)
    return compiled


def candidates(compiled: CompiledPatterns, path: str, name: str, is_dir: bool) -> list[int]:
    """Return sorted, de-duplicated indices of rules whose patterns hit.

    *path* must use ``/`` separators.
    """
    bk = compiled.for_dir if is_dir else compiled.for_file
    hits: set[int] = set()

    exact = bk.exact.get(name)
    if exact:
        hits.update(exact)

    tails = bk.path_suffix.get(name)
    if tails:
        for tail, index in tails:
            if path.endswith(tail):
                hits.add(index)

    for suffix, index in bk.endswith:
        if name.endswith(suffix):
            hits.add(index)

    for prefix, index in bk.startswith:
        if name.startswith(prefix):
            hits.add(index)

    for pattern, index in bk.glob:
        if _match_pattern_slow(pattern, path, name):
            hits.add(index)

    return sorted(hits)


def matches_any(path: str, name: str, patterns: Sequence[str]) -> bool:
    """True when *name* or the ``/``-separated *path* matches any exclusion glob."""
    for pattern in patterns:
        if "/" in pattern:
            if fnmatchcase(path, pattern) or fnmatchcase(path, f"*/{pattern.lstrip('/')}"):
                return True
        elif fnmatchcase(name, pattern):
            return True
    return False


def marker_names(compiled: CompiledPatterns) -> set[str]:
    """Basenames that can be looked up verbatim (used by content-index queries)."""
    names: set[str] = set()
    for bk in (compiled.for_file, compiled.for_dir):
        names.update(bk.exact)
        names.update(bk.path_suffix)
    return names
