from __future__ import annotations

from collections.abc import Callable, Sequence
from typing_extensions import override

from gigabroom.models.scan import ScanOptions
from gigabroom.scan._base import ScannerBase, _Partial
from gigabroom.services.fs import DirEntry


class WalkScanner(ScannerBase):
    """Full parallel traversal; every root child is one unit of work."""

    @override
    def _collect(
        self,
        root: str,
        children: Sequence[DirEntry],
        options: ScanOptions,
        is_cancelled: Callable[[], bool],
        progress: Callable[[str, _Partial], None],
    ) -> _Partial:
        return self._walk_units(children, options, is_cancelled, progress)
