from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import pytest

from gigabroom.config.defaults import default_rules
from gigabroom.models.scan import ScanOptions, ScanResult
from gigabroom.scan import IndexScanner
from gigabroom.services.catalog import RuleCatalog
from gigabroom.services.content_index import ContentIndexError
from tests.fs_mock import MemoryFileSystem

EXPECTED = ["/ws/a/node_modules", "/ws/b/node_modules", "/ws/c/target"]


class _FakeIndex:
    name = "fake"

    def __init__(
        self,
        hits: Sequence[str] = (),
        covered: Sequence[str] = ("/ws/a", "/ws/c"),
        available: bool = True,
        error: str | None = None,
    ) -> None:
        self._hits = list(hits)
        self._covered = tuple(covered)
        self._available = available
        self._error = error
        self.queried: list[tuple[str, set[str]]] = []

    def available(self) -> bool:
        return self._available

    def covers(self, path: str) -> bool:
        return path in self._covered

    def query(self, root: str, names: Iterable[str]) -> list[str]:
        self.queried.append((root, set(names)))
        if self._error is not None:
            raise ContentIndexError(self._error)
        return list(self._hits)


def _workspace() -> MemoryFileSystem:
    fs = MemoryFileSystem()
    fs.add_file("/ws/a/package.json", size=2)
    fs.add_file("/ws/a/node_modules/dep/index.js", size=100)
    fs.add_file("/ws/a/node_modules/dep/node_modules/x.js", size=10)
    fs.add_file("/ws/a/debug.log", size=9)
    fs.add_file("/ws/b/package.json", size=2)
    fs.add_file("/ws/b/node_modules/m.js", size=40)
    fs.add_file("/ws/c/Cargo.toml", size=3)
    fs.add_file("/ws/c/target/out", size=500)
    fs.add_symlink("/ws/c/link", "/ws/a")
    return fs


HITS = [
    "/ws/a/node_modules",
    "/ws/a/node_modules/dep/node_modules",
    "/ws/a/old/node_modules",
    "/ws/b/node_modules",
    "/ws/c/link/node_modules",
    "/ws/c/target",
    "/ws/c/target",
    "/other/node_modules",
]


def _scan(index: _FakeIndex | None, options: ScanOptions | None = None, fs: MemoryFileSystem | None = None) -> ScanResult:
    fs = fs or _workspace()
    scanner = IndexScanner(RuleCatalog(default_rules(), fs), index, workers=2, fs=fs)
    return scanner.scan("/ws", options or ScanOptions()).unwrap()


class TestVerification:
    def test_hits_are_verified(self) -> None:
        result = _scan(_FakeIndex(HITS))
        assert [e.path for e in result.entries] == EXPECTED

    def test_sizes_come_from_the_filesystem(self) -> None:
        result = _scan(_FakeIndex(HITS))
        sizes = {e.path: e.size_bytes for e in result.entries}
        assert sizes == {"/ws/a/node_modules": 110, "/ws/b/node_modules": 40, "/ws/c/target": 500}

    def test_queries_marker_names(self) -> None:
        index = _FakeIndex(HITS)
        _scan(index)
        root, names = index.queried[0]
        assert root == "/ws"
        assert {"node_modules", "target"} <= names

    def test_file_rules_by_extension_only_found_when_walked(self) -> None:
        result = _scan(_FakeIndex(HITS))
        assert "/ws/a/debug.log" not in {e.path for e in result.entries}

    def test_hit_whose_rule_context_fails_is_dropped(self) -> None:
        fs = _workspace()
        fs.add_dir("/ws/c/docs/target")
        result = _scan(_FakeIndex([*HITS, "/ws/c/docs/target"]), fs=fs)
        assert [e.path for e in result.entries] == EXPECTED

    def test_depth_bound_applies_to_hits(self) -> None:
        assert _scan(_FakeIndex(HITS), ScanOptions(max_depth=1)).entries == ()

    def test_excluded_ancestor_blocks_hit(self) -> None:
        result = _scan(_FakeIndex(HITS), ScanOptions(exclude=("a",)))
        assert [e.path for e in result.entries] == ["/ws/b/node_modules", "/ws/c/target"]


class TestFallback:
    def test_query_failure_walks(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="gigabroom.scan.index_scanner"):
            result = _scan(_FakeIndex(error="database missing"))
        assert [e.path for e in result.entries] == ["/ws/a/debug.log", *EXPECTED]
        assert "database missing" in caplog.text

    def test_unavailable_index_walks(self) -> None:
        index = _FakeIndex(HITS, available=False)
        result = _scan(index)
        assert "/ws/a/debug.log" in {e.path for e in result.entries}
        assert index.queried == []

    def test_missing_index_walks(self) -> None:
        assert len(_scan(None).entries) == 4

    def test_nothing_covered_walks(self) -> None:
        index = _FakeIndex(HITS, covered=())
        assert len(_scan(index).entries) == 4
        assert index.queried == []
