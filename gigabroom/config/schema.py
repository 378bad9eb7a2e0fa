from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any

from gigabroom.models.enums import ApplyTo, Category, DangerLevel
from gigabroom.models.scan import ScanOptions
from gigabroom.services.formatting import parse_size

CONFIG_PATH = "~/.config/gigabroom/config.json"
CACHE_PATH = "~/.gigabroom-cache.json"

# (json_key, attr_name, minimum) for the clamped integer settings.
_INT_FIELDS: tuple[tuple[str, str, int], ...] = (
    ("scanWorkers", "scan_workers", 1),
    ("cacheTtlSeconds", "cache_ttl_seconds", 0),
)


def default_workers() -> int:
    """Available parallelism of the host (affinity-aware where supported)."""
    if hasattr(os, "sched_getaffinity"):
        return max(1, len(os.sched_getaffinity(0)))
    return max(1, os.cpu_count() or 1)


def _get_int(data: dict[str, Any], json_key: str, default: int, minimum: int) -> int:
    return max(minimum, int(data.get(json_key, default)))


def _str_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


@dataclass(slots=True, frozen=True)
class Rule:
    """One artifact rule.

    ``patterns`` use the glob dialect understood by ``services.patterns``.
    ``markers`` are project-root indicators (names or globs) looked up in the
    ancestors of a candidate, up to ``marker_depth`` levels; when empty the
    rule needs no context.  ``siblings`` must exist next to the candidate
    (its own name excluded) and ``inner_markers`` inside it.
    """

    id: str
    category: Category
    patterns: tuple[str, ...]
    apply_to: ApplyTo = ApplyTo.DIR
    markers: tuple[str, ...] = ()
    marker_depth: int = 1
    siblings: tuple[str, ...] = ()
    inner_markers: tuple[str, ...] = ()
    danger: DangerLevel = DangerLevel.SAFE
    description: str = ""

    @property
    def needs_context(self) -> bool:
        return bool(self.markers or self.siblings or self.inner_markers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "patterns": list(self.patterns),
            "applyTo": self.apply_to.to_str(),
            "markers": list(self.markers),
            "markerDepth": self.marker_depth,
            "siblings": list(self.siblings),
            "innerMarkers": list(self.inner_markers),
            "danger": self.danger.value,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Rule:
        return cls(
            id=str(payload["id"]),
            category=Category.parse(str(payload["category"])),
            patterns=_str_tuple(payload["patterns"]),
            apply_to=ApplyTo.from_str(payload.get("applyTo", "dir")),
            markers=_str_tuple(payload.get("markers")),
            marker_depth=max(1, int(payload.get("markerDepth", 1))),
            siblings=_str_tuple(payload.get("siblings")),
            inner_markers=_str_tuple(payload.get("innerMarkers")),
            danger=DangerLevel(str(payload.get("danger", "safe"))),
            description=str(payload.get("description", "")),
        )


@dataclass(slots=True)
class AppConfig:
    rules: list[Rule] = field(default_factory=list)
    extra_markers: dict[str, list[str]] = field(default_factory=dict)
    max_depth: int | None = 10
    min_size: int = 0
    older_than_days: int | None = None
    scan_workers: int = field(default_factory=default_workers)
    cache_path: str = CACHE_PATH
    cache_ttl_seconds: int = 300
    index_mode: bool = False

    def catalog_rules(self) -> list[Rule]:
        """Rules with ``extra_markers`` merged into the matching rule ids."""
        merged: list[Rule] = []
        for rule in self.rules:
            extra = self.extra_markers.get(rule.id)
            if extra:
                rule = replace(rule, markers=rule.markers + tuple(m for m in extra if m not in rule.markers))
            merged.append(rule)
        return merged

    def scan_options(self, **overrides: Any) -> ScanOptions:
        options = ScanOptions(
            max_depth=self.max_depth,
            min_size=self.min_size,
            older_than_days=self.older_than_days,
            index_mode=self.index_mode,
        )
        return replace(options, **overrides) if overrides else options

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxDepth": self.max_depth,
            "minSize": self.min_size,
            "olderThanDays": self.older_than_days,
            "scanWorkers": self.scan_workers,
            "cachePath": self.cache_path,
            "cacheTtlSeconds": self.cache_ttl_seconds,
            "indexMode": self.index_mode,
            "extraMarkers": {k: list(v) for k, v in self.extra_markers.items()},
            "rules": [rule.to_dict() for rule in self.rules],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], defaults: AppConfig) -> AppConfig:
        max_depth_raw = data.get("maxDepth", defaults.max_depth)
        older_raw = data.get("olderThanDays", defaults.older_than_days)

        # Size strings ("100MB") are accepted as well as byte counts.
        min_size_raw = data.get("minSize", defaults.min_size)
        min_size = parse_size(min_size_raw) if isinstance(min_size_raw, str) else int(min_size_raw)

        rules_raw = data.get("rules")
        if rules_raw is not None:
            rules = [Rule.from_dict(x) for x in rules_raw]
        else:
            rules = list(defaults.rules)

        markers_raw = data.get("extraMarkers")
        if markers_raw is not None:
            extra_markers = {str(k): list(_str_tuple(v)) for k, v in markers_raw.items()}
        else:
            extra_markers = {k: list(v) for k, v in defaults.extra_markers.items()}

        int_kwargs: dict[str, int] = {}
        for json_key, attr, minimum in _INT_FIELDS:
            int_kwargs[attr] = _get_int(data, json_key, getattr(defaults, attr), minimum)

        return cls(
            rules=rules,
            extra_markers=extra_markers,
            max_depth=max(0, int(max_depth_raw)) if max_depth_raw is not None else None,
            min_size=max(0, min_size),
            older_than_days=max(0, int(older_raw)) if older_raw is not None else None,
            cache_path=str(data.get("cachePath", defaults.cache_path)),
            index_mode=bool(data.get("indexMode", defaults.index_mode)),
            **int_kwargs,
        )
