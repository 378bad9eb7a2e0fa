from __future__ import annotations

import os

_UNITS = ("B", "KB", "MB", "GB", "TB")

_SIZE_SUFFIXES: tuple[tuple[str, int], ...] = (
    ("TB", 1024**4),
    ("GB", 1024**3),
    ("MB", 1024**2),
    ("KB", 1024),
    ("B", 1),
)


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in _UNITS[:-1]:
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} {_UNITS[-1]}"


def parse_size(text: str) -> int:
    """Parse ``"100MB"``, ``"1gb"``, ``"512 KB"`` or a bare byte count.

    Raises ``ValueError`` on anything else.
    """
    normalized = text.strip().upper()
    multiplier = 1
    number = normalized
    for suffix, factor in _SIZE_SUFFIXES:
        if normalized.endswith(suffix):
            number = normalized[: -len(suffix)].strip()
            multiplier = factor
            break
    if not number.isdigit():
        msg = f"Invalid size format: {text!r}"
        raise ValueError(msg)
    return int(number) * multiplier


def format_age(seconds: float) -> str:
    secs = int(seconds)
    if secs < 60:
        return f"{secs} seconds"
    if secs < 3600:
        return f"{secs // 60} minutes"
    if secs < 86400:
        return f"{secs // 3600} hours"
    return f"{secs // 86400} days"


def format_elapsed(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    return f"{minutes}m {seconds - minutes * 60:.0f}s"


def relative_path(path: str, root_prefix: str) -> str:
    if path.startswith(root_prefix):
        return path[len(root_prefix) :]
    return path


def expand_path(path: str) -> str:
    """Expand ``~`` and unescape shell-escaped spaces (``my\\ dir``)."""
    return os.path.expanduser(path.replace("\\ ", " "))
