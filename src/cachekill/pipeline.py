"""Wire discovery, inspection and execution into a single cleanup run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

from .cache_entry import CacheEntry, Disposition
from .cleaner import (
    BackupCleanupResult,
    BackupInfo,
    Cleaner,
    DryRunResult,
    HardDeleteResult,
    RestoreResult,
    SafeDeleteResult,
)
from .discovery import CacheDiscoverer, DiscoveryResult, unique_paths
from .inspector import CacheInspector, CacheSummary, collapse_nested, summarize
from .sources import collect_source_entries

if TYPE_CHECKING:
    from .config import CacheKillConfig

LOGGER_NAME = "cachekill"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_logging(config: CacheKillConfig, console: Console | None = None) -> logging.Logger:
    """Configure the ``cachekill`` logger from the config.

    Returns:
        Configured logger instance.

    Raises:
        ValueError: If ``config.log_level`` is not a logging level name.

    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        msg = f"Invalid log_level: {config.log_level}"
        raise ValueError(msg)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates on repeated setup
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger


@dataclass
class RunStats:
    """Counters for one cleanup run."""

    start_time: datetime
    paths_discovered: int = 0
    entries_inspected: int = 0
    source_entries: int = 0
    backed_up: int = 0
    deleted: int = 0
    failures: int = 0


@dataclass
class PlanResult:
    """Planned entries for a project, before anything is executed."""

    discovery: DiscoveryResult
    entries: list[CacheEntry] = field(default_factory=list)

    @property
    def summary(self) -> CacheSummary:
        return summarize(self.entries)


@dataclass
class CleanResult:
    """Outcome of executing a plan: backups first, then deletions."""

    safe_delete: SafeDeleteResult | None
    hard_delete: HardDeleteResult

    @property
    def failure_count(self) -> int:
        failed = len(self.hard_delete.failed)
        if self.safe_delete is not None:
            failed += len(self.safe_delete.failed)
        return failed

    @property
    def total_size(self) -> int:
        total = self.hard_delete.total_size
        if self.safe_delete is not None:
            total += self.safe_delete.total_size
        return total

    def to_dict(self) -> dict[str, object]:
        return {
            "safe_delete": self.safe_delete.to_dict() if self.safe_delete else None,
            "hard_delete": self.hard_delete.to_dict(),
            "total_size": self.total_size,
            "failure_count": self.failure_count,
        }


class CacheKillRunner:
    """Runs the discover, inspect, plan and execute stages for one project."""

    def __init__(self, config: CacheKillConfig, logger: logging.Logger | None = None) -> None:
        """Initialize the runner.

        Args:
            config: Cleanup configuration.
            logger: Logger instance. Uses the ``cachekill`` logger if None.

        """
        self.config = config
        self.logger = logger or logging.getLogger(LOGGER_NAME)

        self.discoverer = CacheDiscoverer(config)
        self.inspector = CacheInspector(config)
        self.cleaner = Cleaner(config, self.logger)

        self.stats = RunStats(start_time=datetime.now(UTC))

    def plan(self) -> PlanResult:
        """Discover, inspect and plan every cache entry.

        Entries inside an actionable entry's path are dropped, so each byte
        is acted on and counted once.

        Raises:
            PathNotFoundError: If a discovered path vanished before inspection.

        """
        discovery = self.discoverer.discover()
        paths = unique_paths(discovery.paths)
        self.stats.paths_discovered = len(paths)
        self.logger.info(
            "Found %d cache paths in %s (%s project)",
            len(paths),
            discovery.project_root,
            discovery.project_type.value,
        )

        entries = self.inspector.inspect(paths)
        self.stats.entries_inspected = len(entries)

        source_entries = collect_source_entries(self.config)
        self.stats.source_entries = len(source_entries)

        return PlanResult(discovery=discovery, entries=collapse_nested([*entries, *source_entries]))

    def dry_run(self, plan: PlanResult | None = None) -> DryRunResult:
        plan = plan or self.plan()
        return self.cleaner.dry_run(plan.entries)

    def clean(self, plan: PlanResult | None = None) -> CleanResult:
        """Execute a plan, moving BACKUP entries before removing DELETE ones.

        Per-entry failures are collected in the result; only a backup root
        that cannot be created raises.
        """
        plan = plan or self.plan()

        safe_result: SafeDeleteResult | None = None
        if any(entry.disposition is Disposition.BACKUP for entry in plan.entries):
            safe_result = self.cleaner.safe_delete(plan.entries)
            self.stats.backed_up = len(safe_result.backed_up)

        hard_result = self.cleaner.hard_delete(plan.entries)
        self.stats.deleted = len(hard_result.deleted)

        result = CleanResult(safe_delete=safe_result, hard_delete=hard_result)
        self.stats.failures = result.failure_count

        self.logger.info(
            "Cleanup finished: backed_up=%d, deleted=%d, failed=%d",
            self.stats.backed_up,
            self.stats.deleted,
            self.stats.failures,
        )
        return result

    def restore(self, backup_dir: Path | None = None) -> RestoreResult:
        """Restore a specific backup directory, or the latest one.

        Raises:
            NoBackupFoundError: If there is no backup to restore.

        """
        if backup_dir is None:
            return self.cleaner.restore_last_backup()
        if not backup_dir.is_absolute():
            backup_dir = self.config.backup_root / backup_dir
        return self.cleaner.restore_from_backup(backup_dir)

    def list_backups(self) -> list[BackupInfo]:
        return self.cleaner.list_backups()

    def prune_backups(self, days: int | None = None) -> BackupCleanupResult:
        result = self.cleaner.clean_old_backups(days)
        if result.removed:
            self.logger.info("Cleaned %d expired backup directories", len(result.removed))
        return result
