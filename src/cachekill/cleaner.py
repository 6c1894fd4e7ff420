"""Execute planned cache dispositions with backup and restore support."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .cache_entry import CacheEntry, Disposition, format_size
from .errors import (
    BackupError,
    CacheKillError,
    ExecutionError,
    MoveFailedError,
    NoBackupFoundError,
    RemoveFailedError,
    SourceMissingError,
)
from .inspector import collapse_nested, measure_path, outermost_entries

if TYPE_CHECKING:
    from .config import CacheKillConfig

BACKUP_NAME_FORMAT = "%Y-%m-%d_%H-%M-%S"


def backup_dir_name(now: datetime | None = None) -> str:
    """Timestamped backup directory name, at second resolution."""
    return (now or datetime.now(UTC)).strftime(BACKUP_NAME_FORMAT)


@dataclass
class BackupRecord:
    """A path that was moved into a backup directory."""

    original_path: Path
    backup_path: Path
    size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_path": str(self.original_path),
            "backup_path": str(self.backup_path),
            "size_bytes": self.size_bytes,
        }


@dataclass
class RestoreRecord:
    """A backed-up item moved back into the project."""

    backup_path: Path
    restored_path: Path

    def to_dict(self) -> dict[str, Any]:
        return {"backup_path": str(self.backup_path), "restored_path": str(self.restored_path)}


@dataclass
class FailureRecord:
    """A per-entry failure captured without aborting the batch."""

    path: Path
    reason: str
    error: str

    @classmethod
    def from_error(cls, error: ExecutionError) -> FailureRecord:
        return cls(path=error.path, reason=error.reason, error=str(error))

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "reason": self.reason, "error": self.error}


@dataclass
class DryRunResult:
    """Entries partitioned by disposition, with nothing touched on disk."""

    to_delete: list[CacheEntry] = field(default_factory=list)
    to_backup: list[CacheEntry] = field(default_factory=list)
    to_skip: list[CacheEntry] = field(default_factory=list)
    total_size: int = 0
    total_count: int = 0

    @property
    def reclaimable_size(self) -> int:
        return sum(entry.size_bytes for entry in (*self.to_delete, *self.to_backup))

    @property
    def total_size_human(self) -> str:
        return format_size(self.total_size)

    def to_dict(self) -> dict[str, Any]:
        return {
            "to_delete": [entry.to_dict() for entry in self.to_delete],
            "to_backup": [entry.to_dict() for entry in self.to_backup],
            "to_skip": [entry.to_dict() for entry in self.to_skip],
            "total_size": self.total_size,
            "reclaimable_size": self.reclaimable_size,
            "total_count": self.total_count,
        }


@dataclass
class SafeDeleteResult:
    """Outcome of moving entries into a timestamped backup directory."""

    backup_dir: Path
    backed_up: list[BackupRecord] = field(default_factory=list)
    failed: list[FailureRecord] = field(default_factory=list)
    total_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "backup_dir": str(self.backup_dir),
            "backed_up": [record.to_dict() for record in self.backed_up],
            "failed": [record.to_dict() for record in self.failed],
            "total_size": self.total_size,
        }


@dataclass
class HardDeleteResult:
    """Outcome of permanently removing entries."""

    deleted: list[Path] = field(default_factory=list)
    failed: list[FailureRecord] = field(default_factory=list)
    total_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "deleted": [str(path) for path in self.deleted],
            "failed": [record.to_dict() for record in self.failed],
            "total_size": self.total_size,
        }


@dataclass
class RestoreResult:
    """Outcome of moving a backup's items back into the project."""

    backup_dir: Path
    restored: list[RestoreRecord] = field(default_factory=list)
    failed: list[FailureRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "backup_dir": str(self.backup_dir),
            "restored": [record.to_dict() for record in self.restored],
            "failed": [record.to_dict() for record in self.failed],
        }


@dataclass
class BackupCleanupResult:
    """Outcome of pruning expired backup directories."""

    removed: list[Path] = field(default_factory=list)
    failed: list[FailureRecord] = field(default_factory=list)
    total_freed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "removed": [str(path) for path in self.removed],
            "failed": [record.to_dict() for record in self.failed],
            "total_freed": self.total_freed,
        }


@dataclass
class BackupInfo:
    """A backup directory under the backup root."""

    path: Path
    modified: datetime
    size_bytes: int
    item_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "modified": self.modified.isoformat(),
            "size_bytes": self.size_bytes,
            "item_count": self.item_count,
        }


def _exists(path: Path) -> bool:
    return path.exists() or path.is_symlink()


class Cleaner:
    """Applies planned dispositions: back up, delete, restore."""

    def __init__(self, config: CacheKillConfig, logger: logging.Logger | None = None) -> None:
        """Initialize the cleaner.

        Args:
            config: Cleanup configuration. Supplies the backup root.
            logger: Logger instance. Uses the module logger if None.

        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    @property
    def backup_root(self) -> Path:
        return self.config.backup_root

    def dry_run(self, entries: Iterable[CacheEntry]) -> DryRunResult:
        """Partition entries by disposition without touching the filesystem.

        Entries without a disposition are reported as skipped. Duplicates and
        entries inside an actionable entry's path are dropped, and bytes under
        a skipped parent count once towards the total.
        """
        result = DryRunResult()
        planned = collapse_nested(entries)

        for entry in planned:
            if entry.disposition is Disposition.DELETE:
                result.to_delete.append(entry)
            elif entry.disposition is Disposition.BACKUP:
                result.to_backup.append(entry)
            else:
                result.to_skip.append(entry)
            result.total_count += 1

        result.total_size = sum(entry.size_bytes for entry in outermost_entries(planned))

        return result

    def safe_delete(self, entries: Iterable[CacheEntry]) -> SafeDeleteResult:
        """Move every BACKUP entry into a fresh timestamped backup directory.

        A failure on one entry is recorded and the remaining entries are
        still processed. Entries inside another planned path are left to it.

        Raises:
            BackupError: If the backup directory cannot be created.

        """
        backup_dir = self.backup_root / backup_dir_name()
        created = not backup_dir.exists()

        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Failed to create backup directory {backup_dir}: {e}"
            raise BackupError(msg) from e

        result = SafeDeleteResult(backup_dir=backup_dir)

        for entry in collapse_nested(entries):
            if entry.disposition is not Disposition.BACKUP:
                continue

            try:
                backup_path = self._move_to_backup(entry.path, backup_dir)
            except ExecutionError as e:
                self.logger.error("Backup failed for %s: %s", entry.path, e)
                result.failed.append(FailureRecord.from_error(e))
                continue

            self.logger.info("Moved to backup: %s -> %s", entry.path, backup_path)
            result.backed_up.append(
                BackupRecord(original_path=entry.path, backup_path=backup_path, size_bytes=entry.size_bytes)
            )
            result.total_size += entry.size_bytes

        if created and not result.backed_up:
            # Keep an empty run from shadowing the previous backup on restore
            try:
                backup_dir.rmdir()
            except OSError as e:
                self.logger.debug("Could not remove empty backup directory %s: %s", backup_dir, e)

        return result

    def _move_to_backup(self, source: Path, backup_dir: Path) -> Path:
        """Move a path into the backup directory under its base name.

        Raises:
            SourceMissingError: If the source no longer exists.
            MoveFailedError: If the name is taken or the move fails.

        """
        if not _exists(source):
            raise SourceMissingError(source, f"Source path does not exist: {source}")

        destination = backup_dir / source.name
        if _exists(destination):
            raise MoveFailedError(source, f"Backup destination already exists: {destination}")

        try:
            shutil.move(str(source), str(destination))
        except OSError as e:
            raise MoveFailedError(source, f"Failed to move {source} to backup: {e}") from e

        return destination

    def hard_delete(self, entries: Iterable[CacheEntry]) -> HardDeleteResult:
        """Permanently remove every DELETE entry.

        A path that is already gone counts as deleted, so repeating the call
        succeeds. Entries inside another planned path are left to it.
        """
        result = HardDeleteResult()

        for entry in collapse_nested(entries):
            if entry.disposition is not Disposition.DELETE:
                continue

            try:
                self._remove_path(entry.path)
            except ExecutionError as e:
                self.logger.error("Delete failed for %s: %s", entry.path, e)
                result.failed.append(FailureRecord.from_error(e))
                continue

            self.logger.info("Deleted: %s", entry.path)
            result.deleted.append(entry.path)
            result.total_size += entry.size_bytes

        return result

    def _remove_path(self, path: Path) -> None:
        """Remove a file, symlink or directory tree.

        Raises:
            RemoveFailedError: On any error other than the path being absent.

        """
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError:
            self.logger.debug("Already absent: %s", path)
        except OSError as e:
            raise RemoveFailedError(path, f"Failed to remove {path}: {e}") from e

    def _backup_dirs(self) -> list[Path]:
        """Backup directories under the root, newest first.

        Raises:
            NoBackupFoundError: If the backup root is missing or unreadable.

        """
        root = self.backup_root
        if not root.is_dir():
            msg = f"No backup directory found at {root}"
            raise NoBackupFoundError(msg)

        try:
            dirs = [path for path in root.iterdir() if path.is_dir()]
            return sorted(dirs, key=lambda path: (path.stat().st_mtime, path.name), reverse=True)
        except OSError as e:
            msg = f"Failed to read backup directory {root}: {e}"
            raise NoBackupFoundError(msg) from e

    def restore_last_backup(self) -> RestoreResult:
        """Restore the most recently modified backup directory.

        Raises:
            NoBackupFoundError: If there is no backup to restore.

        """
        backups = self._backup_dirs()
        if not backups:
            msg = f"No backups found in {self.backup_root}"
            raise NoBackupFoundError(msg)

        self.logger.info("Restoring latest backup: %s", backups[0].name)
        return self.restore_from_backup(backups[0])

    def original_path_for(self, backup_path: Path) -> Path:
        """Reconstruct where a backed-up item came from.

        This is lossy: backups do not record the original parent directory,
        so every item is re-anchored at the project root by its base name.
        Items that were backed up from nested directories are restored to
        the project root, not to their old location.
        """
        return self.config.project_root / backup_path.name

    def restore_from_backup(self, backup_dir: Path) -> RestoreResult:
        """Move every top-level item of a backup directory back into the project.

        Existing destinations are never overwritten; they are recorded as
        failures.

        Raises:
            NoBackupFoundError: If the backup directory cannot be read.

        """
        try:
            items = sorted(backup_dir.iterdir())
        except OSError as e:
            msg = f"Failed to read backup directory {backup_dir}: {e}"
            raise NoBackupFoundError(msg) from e

        result = RestoreResult(backup_dir=backup_dir)

        for item in items:
            destination = self.original_path_for(item)

            try:
                self._restore_path(item, destination)
            except ExecutionError as e:
                self.logger.error("Restore failed for %s: %s", item.name, e)
                result.failed.append(FailureRecord.from_error(e))
                continue

            self.logger.info("Restored: %s -> %s", item.name, destination)
            result.restored.append(RestoreRecord(backup_path=item, restored_path=destination))

        return result

    def _restore_path(self, backup_path: Path, destination: Path) -> None:
        if not _exists(backup_path):
            raise SourceMissingError(backup_path, f"Backup path does not exist: {backup_path}")

        if _exists(destination):
            raise MoveFailedError(backup_path, f"Restore destination already exists: {destination}")

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(backup_path), str(destination))
        except OSError as e:
            raise MoveFailedError(backup_path, f"Failed to restore {backup_path}: {e}") from e

    def clean_old_backups(self, days: int | None = None) -> BackupCleanupResult:
        """Remove backup directories older than the retention period.

        Args:
            days: Age cutoff in days. Uses ``config.backup_retention_days`` if None.

        Returns:
            Removed directories and the bytes freed.

        """
        days = self.config.backup_retention_days if days is None else days
        result = BackupCleanupResult()

        if not self.backup_root.is_dir():
            return result

        cutoff = datetime.now(UTC) - timedelta(days=days)

        try:
            candidates = [path for path in self.backup_root.iterdir() if path.is_dir()]
        except OSError as e:
            self.logger.error("Error reading backup directory: %s", e)
            return result

        for backup_dir in sorted(candidates):
            try:
                modified = datetime.fromtimestamp(backup_dir.stat().st_mtime, UTC)
                if modified >= cutoff:
                    continue
                size, _ = measure_path(backup_dir)
                shutil.rmtree(backup_dir)
            except (OSError, CacheKillError) as e:
                self.logger.error("Error removing backup %s: %s", backup_dir.name, e)
                result.failed.append(
                    FailureRecord(path=backup_dir, reason=RemoveFailedError.reason, error=str(e))
                )
                continue

            self.logger.info("Removed expired backup: %s", backup_dir.name)
            result.removed.append(backup_dir)
            result.total_freed += size

        return result

    def list_backups(self) -> list[BackupInfo]:
        """List backup directories, newest first."""
        try:
            backups = self._backup_dirs()
        except NoBackupFoundError:
            return []

        infos: list[BackupInfo] = []
        for backup_dir in backups:
            try:
                size, _ = measure_path(backup_dir)
                infos.append(
                    BackupInfo(
                        path=backup_dir,
                        modified=datetime.fromtimestamp(backup_dir.stat().st_mtime, UTC),
                        size_bytes=size,
                        item_count=sum(1 for _ in backup_dir.iterdir()),
                    )
                )
            except (OSError, CacheKillError) as e:
                self.logger.warning("Cannot read backup %s: %s", backup_dir.name, e)

        return infos
