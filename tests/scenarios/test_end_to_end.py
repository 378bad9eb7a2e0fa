from __future__ import annotations

from gigabroom.config.defaults import default_config
from gigabroom.models.enums import Category, ExitStatus
from gigabroom.models.report import REASON_VANISHED, Outcome
from gigabroom.models.scan import ScanOptions, ScanResult
from gigabroom.scan import WalkScanner
from gigabroom.services import selector
from gigabroom.services.catalog import RuleCatalog
from gigabroom.services.cleaner import Cleaner, CleanOptions
from gigabroom.services.reporter import exit_status, summarize_scan
from gigabroom.services.tree import is_within
from tests.fs_mock import MemoryFileSystem

MB = 1024 * 1024


def _catalog(fs: MemoryFileSystem) -> RuleCatalog:
    return RuleCatalog(default_config().rules, fs)


def _scan(fs: MemoryFileSystem, root: str) -> ScanResult:
    return WalkScanner(_catalog(fs), workers=2, fs=fs).scan(root, ScanOptions()).unwrap()


def _monorepo() -> MemoryFileSystem:
    fs = MemoryFileSystem()
    fs.add_file("/repo/package.json", size=1)
    fs.add_file("/repo/node_modules/left-pad/index.js", size=10)
    fs.add_file("/repo/node_modules/left-pad/node_modules/x/i.js", size=10)
    fs.add_file("/repo/packages/ui/package.json", size=1)
    fs.add_file("/repo/packages/ui/node_modules/react/index.js", size=100)
    fs.add_file("/repo/packages/ui/dist/bundle.js", size=300)
    fs.add_file("/repo/services/api/Cargo.toml", size=1)
    fs.add_file("/repo/services/api/target/release/api", size=5000)
    fs.add_file("/repo/tools/py/pyproject.toml", size=1)
    fs.add_file("/repo/tools/py/src/__pycache__/m.cpython-312.pyc", size=40)
    fs.add_file("/repo/tools/py/.venv/pyvenv.cfg", size=1)
    fs.add_file("/repo/tools/py/.venv/lib/site.py", size=60)
    fs.add_file("/repo/docs/build/index.html", size=70)
    return fs


def test_rust_project_single_entry() -> None:
    fs = MemoryFileSystem()
    fs.add_file("/proj/Cargo.toml", size=100)
    fs.add_file("/proj/src/main.rs", size=200)
    fs.add_file("/proj/target/debug/app", size=12 * MB)

    result = _scan(fs, "/proj")

    assert len(result.entries) == 1
    entry = result.entries[0]
    assert entry.path == "/proj/target"
    assert entry.category is Category.RUST_TARGET
    assert entry.size_bytes == 12 * MB
    assert entry.project_name == "proj"


def test_bare_build_directory_is_not_an_artifact() -> None:
    fs = MemoryFileSystem()
    fs.add_file("/notes/build/chapter1.md", size=10)
    fs.add_file("/notes/target/goals.txt", size=10)
    assert _scan(fs, "/notes").entries == ()


def test_vanished_entry_is_partial_failure() -> None:
    fs = MemoryFileSystem()
    fs.add_file("/ws/a/Cargo.toml", size=1)
    fs.add_file("/ws/a/target/bin", size=50)
    fs.add_file("/ws/b/package.json", size=1)
    fs.add_file("/ws/b/node_modules/m.js", size=20)
    result = _scan(fs, "/ws")
    fs.remove_file("/ws/b/node_modules/m.js")
    fs.remove_dir("/ws/b/node_modules")

    report = Cleaner(_catalog(fs), fs).clean(selector.select_all(selector.from_result(result)))

    outcomes = {r.path: r for r in report.results}
    assert outcomes["/ws/a/target"].outcome is Outcome.DELETED
    assert outcomes["/ws/b/node_modules"].outcome is Outcome.FAILED
    assert outcomes["/ws/b/node_modules"].reason == REASON_VANISHED
    assert exit_status(report) is ExitStatus.PARTIAL_FAILURE
    assert report.bytes_reclaimed == 50


class TestMonorepo:
    def test_expected_artifacts(self) -> None:
        result = _scan(_monorepo(), "/repo")
        assert {(e.path, e.category) for e in result.entries} == {
            ("/repo/node_modules", Category.NODE_MODULES),
            ("/repo/packages/ui/node_modules", Category.NODE_MODULES),
            ("/repo/packages/ui/dist", Category.BUILD_CACHE),
            ("/repo/services/api/target", Category.RUST_TARGET),
            ("/repo/tools/py/src/__pycache__", Category.PYTHON_CACHE),
            ("/repo/tools/py/.venv", Category.PYTHON_CACHE),
        }

    def test_no_entry_nested_in_another(self) -> None:
        paths = [e.path for e in _scan(_monorepo(), "/repo").entries]
        for outer in paths:
            for inner in paths:
                assert outer == inner or not is_within(inner, outer)

    def test_summary_totals_match_entries(self) -> None:
        result = _scan(_monorepo(), "/repo")
        summary = summarize_scan(result)
        assert summary.total_size == sum(e.size_bytes for e in result.entries) == 5521
        assert sum(s.count for s in summary.by_category.values()) == len(result.entries)

    def test_dry_run_changes_nothing(self) -> None:
        fs = _monorepo()
        result = _scan(fs, "/repo")
        before = fs.snapshot()
        report = Cleaner(_catalog(fs), fs).clean(selector.select_all(selector.from_result(result)), CleanOptions(dry_run=True))
        assert fs.snapshot() == before
        assert report.bytes_planned == result.total_size

    def test_clean_then_rescan(self) -> None:
        fs = _monorepo()
        first = _scan(fs, "/repo")
        selection = selector.select(selector.from_result(first), selector.by_categories(Category.NODE_MODULES))

        report = Cleaner(_catalog(fs), fs).clean(selection)

        assert exit_status(report) is ExitStatus.SUCCESS
        assert report.bytes_reclaimed == 120
        second = _scan(fs, "/repo")
        assert {e.path for e in second.entries} == {e.path for e in first.entries} - selection.paths
        assert fs.exists("/repo/package.json")
