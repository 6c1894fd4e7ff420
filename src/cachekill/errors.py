"""Exception hierarchy for cache discovery, inspection and cleanup."""

from __future__ import annotations

from pathlib import Path


class CacheKillError(Exception):
    """Base exception for cachekill."""


class ConfigError(CacheKillError):
    """Raised when a configuration file cannot be read or parsed."""


class PathNotFoundError(CacheKillError):
    """Raised when an explicitly listed path vanished before inspection."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Path does not exist: {path}")


class BackupError(CacheKillError):
    """Raised when the backup root itself cannot be created or read."""


class NoBackupFoundError(BackupError):
    """Raised when a restore is requested but there is no backup to use."""


class ExecutionError(CacheKillError):
    """Per-entry failure during execution. Always recorded, never fatal."""

    reason = "execution_failed"

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(message)


class SourceMissingError(ExecutionError):
    """The source path vanished between planning and execution."""

    reason = "source_missing"


class MoveFailedError(ExecutionError):
    """Moving a path into or out of a backup failed."""

    reason = "move_failed"


class RemoveFailedError(ExecutionError):
    """Permanently removing a path failed."""

    reason = "remove_failed"
