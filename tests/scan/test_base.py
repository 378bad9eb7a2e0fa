from __future__ import annotations

from collections.abc import Callable, Sequence
from typing_extensions import override

from result import Err

from gigabroom.config.defaults import default_rules
from gigabroom.models.scan import ScanErrorCode, ScanOptions
from gigabroom.scan._base import ScannerBase, _Partial, resolve_root, validate_options
from gigabroom.services.catalog import RuleCatalog
from gigabroom.services.fs import DirEntry, StatResult
from tests.fs_mock import MemoryFileSystem


class TestResolveRoot:
    def test_stat_oserror_returns_root_stat_failed(self) -> None:
        class _FailStatFS(MemoryFileSystem):
            @override
            def stat(self, path: str) -> StatResult:
                raise OSError("Permission denied")

        fs = _FailStatFS()
        fs.add_dir("/root")
        result = resolve_root("/root", fs)
        assert not isinstance(result, str)
        assert result.code is ScanErrorCode.ROOT_STAT_FAILED

    def test_file_path_returns_not_directory(self) -> None:
        fs = MemoryFileSystem()
        fs.add_file("/root/file.txt", size=10)
        result = resolve_root("/root/file.txt", fs)
        assert not isinstance(result, str)
        assert result.code is ScanErrorCode.NOT_DIRECTORY

    def test_symlinked_root_is_resolved(self) -> None:
        fs = MemoryFileSystem()
        fs.add_dir("/real/dir")
        fs.add_symlink("/alias", "/real/dir")
        assert resolve_root("/alias", fs) == "/real/dir"

    def test_tilde_expanded(self) -> None:
        fs = MemoryFileSystem()
        fs.add_dir("/mock/home/code")
        assert resolve_root("~/code", fs) == "/mock/home/code"


class TestValidateOptions:
    def test_valid(self) -> None:
        assert validate_options(ScanOptions(max_depth=0, min_size=0, older_than_days=0)) is None
        assert validate_options(ScanOptions(max_depth=None)) is None

    def test_all_problems_reported(self) -> None:
        error = validate_options(ScanOptions(max_depth=-1, min_size=-5))
        assert error is not None
        assert error.code is ScanErrorCode.INVALID_OPTIONS
        assert "max_depth" in error.message
        assert "min_size" in error.message


class _ExplodingScanner(ScannerBase):
    @override
    def _collect(
        self,
        root: str,
        children: Sequence[DirEntry],
        options: ScanOptions,
        is_cancelled: Callable[[], bool],
        progress: Callable[[str, _Partial], None],
    ) -> _Partial:
        raise RuntimeError("boom")


def test_unexpected_failure_becomes_internal_error() -> None:
    fs = MemoryFileSystem()
    fs.add_dir("/root")
    scanner = _ExplodingScanner(RuleCatalog(default_rules(), fs), workers=1, fs=fs)
    result = scanner.scan("/root", ScanOptions())
    assert isinstance(result, Err)
    assert result.unwrap_err().code is ScanErrorCode.INTERNAL
    assert "boom" in result.unwrap_err().message


def test_partial_merge() -> None:
    a = _Partial(files=1, directories=2, errors=3)
    a.merge(_Partial(files=10, directories=20, errors=30))
    assert (a.files, a.directories, a.errors) == (11, 22, 33)
