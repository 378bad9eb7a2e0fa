"""Machine-readable documents for scripting collaborators."""

from __future__ import annotations

import json
from typing import Any

from gigabroom.models.report import Report
from gigabroom.models.scan import ScanResult
from gigabroom.models.selection import Selection
from gigabroom.services.reporter import summarize_scan

EXPORT_VERSION = 1


def scan_document(source: ScanResult | Selection) -> dict[str, Any]:
    result = source.source if isinstance(source, Selection) else source
    summary = summarize_scan(source, top_n=0)
    return {
        "version": EXPORT_VERSION,
        "root": result.root,
        "createdAt": result.created_at,
        "fromCache": result.from_cache,
        "entries": [entry.to_dict() for entry in source.entries],
        "totals": {
            "count": summary.total_count,
            "size": summary.total_size,
            "cautionSize": summary.caution_size,
            "byCategory": {
                cat.value: {"count": stats.count, "size": stats.size_bytes}
                for cat, stats in summary.by_category.items()
            },
        },
        "stats": result.stats.to_dict(),
    }


def report_document(report: Report) -> dict[str, Any]:
    return {"version": EXPORT_VERSION, **report.to_dict()}


def to_json(document: dict[str, Any]) -> str:
    return json.dumps(document, indent=2, sort_keys=False)
