"""Render entries and execution results as rich tables or JSON."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

from .cache_entry import CacheEntry, Disposition, format_size
from .inspector import top_n_largest

if TYPE_CHECKING:
    from .cleaner import (
        BackupCleanupResult,
        BackupInfo,
        DryRunResult,
        FailureRecord,
        HardDeleteResult,
        RestoreResult,
        SafeDeleteResult,
    )
    from .config import CacheKillConfig
    from .inspector import CacheSummary
    from .pipeline import CleanResult

DISPOSITION_STYLES: dict[Disposition, str] = {
    Disposition.DELETE: "red",
    Disposition.BACKUP: "yellow",
    Disposition.SKIP: "dim",
}


class OutputFormatter:
    """Prints results either as rich tables or as a single JSON document."""

    def __init__(self, console: Console | None = None, json_output: bool = False) -> None:
        self.console = console or Console()
        self.json_output = json_output

    def print_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def print_message(self, message: str, style: str = "green") -> None:
        if not self.json_output:
            self.console.print(f"[{style}]{message}[/{style}]")

    def entries_table(self, entries: list[CacheEntry], title: str) -> Table:
        table = Table(title=title)
        table.add_column("Path", style="cyan")
        table.add_column("Kind")
        table.add_column("Size", justify="right")
        table.add_column("Last used", style="dim")
        table.add_column("Action")

        for entry in entries:
            disposition = entry.disposition or Disposition.SKIP
            style = DISPOSITION_STYLES[disposition]
            table.add_row(
                str(entry.path),
                entry.kind.value,
                entry.size_human,
                entry.last_used_human() + (" (stale)" if entry.stale else ""),
                f"[{style}]{disposition.value}[/{style}]",
            )

        return table

    def print_entries(self, entries: list[CacheEntry], summary: CacheSummary) -> None:
        """Print every planned entry, then the summary and the largest entries."""
        if self.json_output:
            self.print_json({"entries": [entry.to_dict() for entry in entries], "summary": summary.to_dict()})
            return

        if not entries:
            self.console.print("[green]No cache entries found[/green]")
            return

        self.console.print(self.entries_table(entries, f"Found {summary.total_count} cache entries"))
        self.print_summary(summary)

        largest = top_n_largest(entries, 5)
        self.console.print("\n[bold]Top 5 largest caches:[/bold]")
        for i, entry in enumerate(largest, 1):
            self.console.print(f"  {i}. {entry.path} ({entry.size_human})")

    def print_summary(self, summary: CacheSummary) -> None:
        table = Table(title="Summary", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Total size", summary.total_size_human)
        table.add_row("Entries", str(summary.total_count))
        table.add_row("Stale", str(summary.stale_count))
        for disposition, count in summary.counts_by_disposition.items():
            table.add_row(f"To {disposition.value}", str(count))
        for kind, size in sorted(summary.size_by_kind.items(), key=lambda item: item[1], reverse=True):
            table.add_row(f"Size ({kind.value})", format_size(size))

        self.console.print(table)

    def print_dry_run(self, result: DryRunResult) -> None:
        if self.json_output:
            self.print_json(result.to_dict())
            return

        for entries, title in (
            (result.to_delete, "Would delete"),
            (result.to_backup, "Would back up"),
            (result.to_skip, "Would skip"),
        ):
            if entries:
                self.console.print(self.entries_table(entries, f"{title} ({len(entries)})"))

        self.console.print(
            f"[bold]{result.total_count} entries, {result.total_size_human} total, "
            f"{format_size(result.reclaimable_size)} reclaimable[/bold]"
        )

    def _failures_table(self, failures: list[FailureRecord]) -> Table:
        table = Table(title=f"Failures ({len(failures)})")
        table.add_column("Path", style="red")
        table.add_column("Reason")
        table.add_column("Error", style="dim")

        for failure in failures:
            table.add_row(str(failure.path), failure.reason, failure.error)

        return table

    def print_safe_delete(self, result: SafeDeleteResult) -> None:
        table = Table(title=f"Moved to backup: {result.backup_dir}")
        table.add_column("Original", style="cyan")
        table.add_column("Size", justify="right")

        for record in result.backed_up:
            table.add_row(str(record.original_path), format_size(record.size_bytes))

        if result.backed_up:
            self.console.print(table)
        if result.failed:
            self.console.print(self._failures_table(result.failed))

    def print_hard_delete(self, result: HardDeleteResult) -> None:
        table = Table(title=f"Deleted ({len(result.deleted)})")
        table.add_column("Path", style="red")

        for path in result.deleted:
            table.add_row(str(path))

        if result.deleted:
            self.console.print(table)
        if result.failed:
            self.console.print(self._failures_table(result.failed))

    def print_clean(self, result: CleanResult) -> None:
        if self.json_output:
            self.print_json(result.to_dict())
            return

        if result.safe_delete is not None:
            self.print_safe_delete(result.safe_delete)
        self.print_hard_delete(result.hard_delete)

        if result.failure_count:
            self.console.print(f"[yellow]Cleanup completed with {result.failure_count} failures[/yellow]")
        else:
            self.console.print(f"[green]Cleaned {format_size(result.total_size)}[/green]")

    def print_restore(self, result: RestoreResult) -> None:
        if self.json_output:
            self.print_json(result.to_dict())
            return

        table = Table(title=f"Restored from {result.backup_dir.name} ({len(result.restored)})")
        table.add_column("Item", style="cyan")
        table.add_column("Restored to", style="green")

        for record in result.restored:
            table.add_row(record.backup_path.name, str(record.restored_path))

        self.console.print(table)
        if result.failed:
            self.console.print(self._failures_table(result.failed))

    def print_backups(self, backups: list[BackupInfo]) -> None:
        if self.json_output:
            self.print_json([backup.to_dict() for backup in backups])
            return

        if not backups:
            self.console.print("[green]No backups[/green]")
            return

        table = Table(title=f"Backups ({len(backups)})")
        table.add_column("Backup", style="cyan")
        table.add_column("Modified", style="dim")
        table.add_column("Items", justify="right")
        table.add_column("Size", justify="right")

        for backup in backups:
            table.add_row(
                backup.path.name,
                backup.modified.strftime("%Y-%m-%d %H:%M"),
                str(backup.item_count),
                format_size(backup.size_bytes),
            )

        self.console.print(table)

    def print_prune(self, result: BackupCleanupResult) -> None:
        if self.json_output:
            self.print_json(result.to_dict())
            return

        self.console.print(
            f"[green]Removed {len(result.removed)} expired backups, freed {format_size(result.total_freed)}[/green]"
        )
        if result.failed:
            self.console.print(self._failures_table(result.failed))

    def print_config(self, config: CacheKillConfig) -> None:
        if self.json_output:
            self.print_json(config.to_dict())
            return

        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Project root", str(config.project_root))
        table.add_row("Language", config.lang.value)
        table.add_row("Stale after", f"{config.stale_days} days")
        table.add_row("Safe delete", str(config.safe_delete))
        table.add_row("Backup directory", str(config.backup_root))
        table.add_row("Backup retention", f"{config.backup_retention_days} days")
        table.add_row("Include paths", "\n".join(config.include_paths) or "-")
        table.add_row("Exclude paths", "\n".join(config.exclude_paths) or "-")
        table.add_row("All caches", str(config.all_caches))
        table.add_row("Global caches", str(config.include_global))
        enabled = [name for name in ("npx", "js_pm", "huggingface", "torch") if getattr(config, name)]
        table.add_row("Cache sources", ", ".join(enabled) or "-")
        table.add_row("Log level", config.log_level)
        table.add_row("Log file", str(config.log_file) if config.log_file else "-")

        self.console.print(table)
