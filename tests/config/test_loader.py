from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from result import Err, Ok

from gigabroom.config.loader import load_config, sample_config_json
from tests.fs_mock import MemoryFileSystem


def test_load_config_missing_uses_defaults(tmp_path: Path) -> None:
    result = load_config(str(tmp_path / "missing.json"))
    assert isinstance(result, Ok)
    cfg = result.unwrap()
    assert cfg.rules


def test_load_config_invalid_returns_error(tmp_path: Path) -> None:
    p = tmp_path / "config.json"
    p.write_text("not-json", encoding="utf-8")

    result = load_config(str(p))
    assert isinstance(result, Err)
    assert "failed reading config" in result.unwrap_err().lower()


def test_load_config_error_is_logged(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"maxDepth": "deep"}), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="gigabroom.config.loader"):
        result = load_config(str(p))
    assert isinstance(result, Err)
    assert "Failed reading config" in caplog.text


def test_load_config_from_disk(tmp_path: Path) -> None:
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"maxDepth": 4, "indexMode": True}), encoding="utf-8")

    cfg = load_config(str(p)).unwrap()
    assert cfg.max_depth == 4
    assert cfg.index_mode is True


class TestLoadConfig:
    def test_default_location(self) -> None:
        fs = MemoryFileSystem()
        fs.add_file("/mock/home/.config/gigabroom/config.json", content=json.dumps({"scanWorkers": 2}))
        result = load_config(fs=fs)
        assert isinstance(result, Ok)
        assert result.unwrap().scan_workers == 2

    def test_non_dict_json_returns_err(self, caplog: pytest.LogCaptureFixture) -> None:
        fs = MemoryFileSystem()
        fs.add_file("/mock/home/.config/gigabroom/config.json", content=json.dumps([1, 2, 3]))
        with caplog.at_level(logging.WARNING, logger="gigabroom.config.loader"):
            result = load_config(fs=fs)
        assert "not a JSON object" in caplog.text
        assert isinstance(result, Err)
        assert "must be a JSON object" in result.unwrap_err()

    def test_bad_rule_returns_err(self) -> None:
        fs = MemoryFileSystem()
        payload = {"rules": [{"id": "x", "category": "not-a-category", "patterns": ["**/x"]}]}
        fs.add_file("/custom/config.json", content=json.dumps(payload))
        result = load_config(path="/custom/config.json", fs=fs)
        assert isinstance(result, Err)

    def test_custom_path(self) -> None:
        fs = MemoryFileSystem()
        fs.add_file("/custom/config.json", content=json.dumps({"cacheTtlSeconds": 60}))
        result = load_config(path="/custom/config.json", fs=fs)
        assert isinstance(result, Ok)
        assert result.unwrap().cache_ttl_seconds == 60

    def test_sample_config_json_is_valid(self) -> None:
        parsed = json.loads(sample_config_json())
        assert isinstance(parsed, dict)
        assert parsed["cachePath"] == "~/.gigabroom-cache.json"
        assert any(rule["id"] == "rust-target" for rule in parsed["rules"])
