from __future__ import annotations

from dataclasses import replace

import pytest

import gigabroom.scan
from gigabroom.config.defaults import default_config, default_rules
from gigabroom.models.scan import ScanOptions
from gigabroom.scan import IndexScanner, WalkScanner, create_scanner, default_scanner, scanner_from_config
from gigabroom.services.catalog import RuleCatalog
from tests.fs_mock import MemoryFileSystem


class _StubIndex:
    name = "stub"

    def __init__(self, available: bool = True) -> None:
        self._available = available

    def available(self) -> bool:
        return self._available

    def covers(self, path: str) -> bool:
        return True

    def query(self, root: str, names: object) -> list[str]:
        return []


@pytest.fixture
def catalog() -> RuleCatalog:
    return RuleCatalog(default_rules())


class TestDefaultScanner:
    def test_walks_by_default(self, catalog: RuleCatalog) -> None:
        assert isinstance(default_scanner(catalog), WalkScanner)

    def test_index_mode_uses_detected_index(self, catalog: RuleCatalog, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(gigabroom.scan, "detect_index", lambda: _StubIndex())
        assert isinstance(default_scanner(catalog, index_mode=True), IndexScanner)

    def test_index_mode_without_index_walks(self, catalog: RuleCatalog, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(gigabroom.scan, "detect_index", lambda: None)
        assert isinstance(default_scanner(catalog, index_mode=True), WalkScanner)


class TestCreateScanner:
    def test_walk(self, catalog: RuleCatalog) -> None:
        assert isinstance(create_scanner("walk", catalog), WalkScanner)

    def test_index_with_explicit_index(self, catalog: RuleCatalog) -> None:
        assert isinstance(create_scanner("index", catalog, index=_StubIndex()), IndexScanner)

    def test_auto_prefers_available_index(self, catalog: RuleCatalog) -> None:
        assert isinstance(create_scanner("auto", catalog, index=_StubIndex()), IndexScanner)

    def test_auto_with_unavailable_index_walks(self, catalog: RuleCatalog) -> None:
        assert isinstance(create_scanner("auto", catalog, index=_StubIndex(available=False)), WalkScanner)

    def test_auto_detects(self, catalog: RuleCatalog, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(gigabroom.scan, "detect_index", lambda: None)
        assert isinstance(create_scanner("auto", catalog), WalkScanner)

    def test_unknown_name(self, catalog: RuleCatalog) -> None:
        with pytest.raises(ValueError, match="Unknown scanner"):
            create_scanner("bogus", catalog)


class TestScannerFromConfig:
    def _fs(self) -> MemoryFileSystem:
        fs = MemoryFileSystem()
        fs.add_file("/ws/svc/BUILD.bazel", size=1)
        fs.add_file("/ws/svc/dist/out.js", size=40)
        return fs

    def test_settings_reach_the_scanner(self) -> None:
        config = replace(default_config(), scan_workers=3)
        scanner = scanner_from_config(config, fs=self._fs())
        assert isinstance(scanner, WalkScanner)
        assert scanner.workers == 3

    def test_extra_markers_change_matching(self) -> None:
        fs = self._fs()
        plain = scanner_from_config(replace(default_config(), cache_path="/c1.json"), fs=fs)
        assert plain.scan("/ws", ScanOptions()).unwrap().entries == ()

        config = replace(default_config(), cache_path="/c2.json", extra_markers={"build-cache": ["BUILD.bazel"]})
        result = scanner_from_config(config, fs=fs).scan("/ws", ScanOptions()).unwrap()
        assert [e.path for e in result.entries] == ["/ws/svc/dist"]

    def test_cache_path_and_ttl(self) -> None:
        fs = self._fs()
        now = [1000.0]
        config = replace(default_config(), cache_path="~/scan.json", cache_ttl_seconds=60)
        scanner = scanner_from_config(config, fs=fs, clock=lambda: now[0])

        assert scanner.scan("/ws", ScanOptions()).unwrap().from_cache is False
        assert fs.exists("/mock/home/scan.json")
        assert scanner.scan("/ws", ScanOptions()).unwrap().from_cache is True
        now[0] += 61
        assert scanner.scan("/ws", ScanOptions()).unwrap().from_cache is False

    def test_index_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(gigabroom.scan, "detect_index", lambda: _StubIndex())
        config = replace(default_config(), index_mode=True)
        assert isinstance(scanner_from_config(config, fs=self._fs()), IndexScanner)
