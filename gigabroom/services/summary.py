from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from gigabroom.models.report import Outcome, Report
from gigabroom.models.scan import ScanResult
from gigabroom.models.selection import Selection
from gigabroom.services.cache import CacheInfo
from gigabroom.services.formatting import format_age, format_bytes, format_elapsed, relative_path
from gigabroom.services.reporter import DiskContext, ScanSummary, summarize_scan

_OUTCOME_STYLE = {
    Outcome.DELETED: "green",
    Outcome.FAILED: "red",
    Outcome.SKIPPED: "yellow",
}


def _stats_panel(result: ScanResult, summary: ScanSummary) -> Panel:
    stats = result.stats
    body = (
        f"Root: [bold]{result.root}[/bold]\n"
        f"Artifacts: [bold]{summary.total_count}[/bold]\n"
        f"Reclaimable: [bold]{format_bytes(summary.total_size)}[/bold]"
        f" ([yellow]{format_bytes(summary.caution_size)} caution[/yellow])\n"
        f"Files: [bold]{stats.files}[/bold]  Directories: [bold]{stats.directories}[/bold]\n"
        f"Access Errors: [bold]{stats.access_errors}[/bold]  Filtered: [bold]{stats.filtered}[/bold]\n"
        f"Elapsed: [bold]{format_elapsed(stats.elapsed_seconds)}[/bold]"
    )
    if result.from_cache:
        body += "\n[dim]Served from cache.[/dim]"
    return Panel(body, title="Scan Summary", border_style="blue")


def _category_table(summary: ScanSummary) -> Table:
    table = Table(title="Artifacts by Category", header_style="bold magenta")
    table.add_column("Category")
    table.add_column("Count", justify="right")
    table.add_column("Size", justify="right")
    for category, stats in sorted(summary.by_category.items(), key=lambda x: x[1].size_bytes, reverse=True):
        table.add_row(category.label, str(stats.count), format_bytes(stats.size_bytes))
    return table


def _largest_table(summary: ScanSummary, root: str) -> Table:
    table = Table(title="Largest Artifacts", header_style="bold cyan")
    table.add_column("Path")
    table.add_column("Category")
    table.add_column("Size", justify="right")
    prefix = root.rstrip("/") + "/"
    for entry in summary.largest:
        label = entry.category.label
        if entry.is_caution:
            label = f"[yellow]{label} (caution)[/yellow]"
        table.add_row(relative_path(entry.path, prefix), label, format_bytes(entry.size_bytes))
    return table


def render_scan(console: Console, source: ScanResult | Selection, top_n: int = 5) -> None:
    result = source.source if isinstance(source, Selection) else source
    summary = summarize_scan(source, top_n)
    console.print(_stats_panel(result, summary))
    if not summary.total_count:
        console.print("[green]Nothing to clean.[/green]")
        return
    console.print(_category_table(summary))
    console.print(_largest_table(summary, result.root))


def render_report(console: Console, report: Report, disk: DiskContext | None = None) -> None:
    title = "Dry Run" if report.dry_run else "Clean Report"
    table = Table(title=title, header_style="bold yellow")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Outcome")
    table.add_column("Reason")
    for item in report.results:
        style = _OUTCOME_STYLE[item.outcome]
        table.add_row(item.path, format_bytes(item.size_bytes), f"[{style}]{item.outcome.value}[/{style}]", item.reason)
    console.print(table)

    freed = report.bytes_planned if report.dry_run else report.bytes_reclaimed
    verb = "Would free" if report.dry_run else "Freed"
    body = (
        f"{verb}: [bold]{format_bytes(freed)}[/bold]\n"
        f"Deleted: [bold]{report.succeeded}[/bold]  Failed: [bold]{len(report.failures)}[/bold]"
        f"  Skipped: [bold]{len(report.skipped)}[/bold]"
    )
    if report.cancelled:
        body += "\n[yellow]Cancelled before all entries were processed.[/yellow]"
    if disk is not None:
        body += (
            f"\nDisk free: [bold]{format_bytes(disk.free_before)}[/bold]"
            f" -> [bold]{format_bytes(disk.free_after)}[/bold] of {format_bytes(disk.total)}"
        )
    console.print(Panel(body, title="Summary", border_style="green" if not report.failures else "red"))


def render_cache_info(console: Console, info: CacheInfo) -> None:
    if not info.exists:
        console.print(Panel(f"No cache at {info.path}", title="Cache", border_style="blue"))
        return
    age = format_age(info.age_seconds) if info.age_seconds is not None else "unknown"
    body = (
        f"Path: [bold]{info.path}[/bold]\n"
        f"Root: [bold]{info.root or '-'}[/bold]\n"
        f"Entries: [bold]{info.entry_count}[/bold]\n"
        f"Age: [bold]{age}[/bold] ({'fresh' if info.fresh else 'expired'})\n"
        f"Size on disk: [bold]{format_bytes(info.size_on_disk)}[/bold]"
    )
    console.print(Panel(body, title="Cache", border_style="blue"))
