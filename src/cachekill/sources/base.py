"""Base protocol and helpers for global cache sources."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..cache_entry import CacheEntry, CacheKind, Disposition
from ..errors import PathNotFoundError
from ..inspector import is_stale, measure_path

if TYPE_CHECKING:
    from ..config import CacheKillConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheSource(Protocol):
    """Interface for tool-specific caches outside the project tree.

    Sources hand back fully planned entries; the cleaner never re-plans them.
    """

    SOURCE_ENABLED: bool
    name: str
    config_flag: str

    def cache_dirs(self) -> list[Path]:
        """Root directories this source manages, existing or not."""
        ...

    def list_entries(self) -> list[CacheEntry]:
        """Measure and plan every cache entry of this source.

        Returns:
            Entries with a disposition already assigned.

        """
        ...


def existing_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def safe_delete_disposition(config: CacheKillConfig) -> Disposition:
    return Disposition.BACKUP if config.safe_delete else Disposition.DELETE


def staleness_disposition(stale: bool) -> Disposition:
    """Back up stale entries and leave fresh ones alone."""
    return Disposition.BACKUP if stale else Disposition.SKIP


def make_entry(
    path: Path,
    kind: CacheKind,
    config: CacheKillConfig,
    disposition: Disposition | None = None,
    now: datetime | None = None,
) -> CacheEntry | None:
    """Measure a path and build a planned entry.

    If ``disposition`` is None the entry is planned by staleness. Excluded
    paths are always skipped. Returns None if the path vanished.
    """
    try:
        size_bytes, last_used = measure_path(path)
    except (PathNotFoundError, OSError) as e:
        logger.debug("Cache path disappeared: %s (%s)", path, e)
        return None

    stale = is_stale(last_used, config.stale_days, now)
    if config.should_exclude_path(path):
        disposition = Disposition.SKIP
    elif disposition is None:
        disposition = staleness_disposition(stale)

    return CacheEntry(
        path=path,
        kind=kind,
        size_bytes=size_bytes,
        last_used=last_used,
        stale=stale,
        disposition=disposition,
    )


def walk_files(root: Path, max_depth: int) -> Iterator[Path]:
    """Yield regular files at most ``max_depth`` levels below ``root``."""
    base_depth = len(root.parts)

    for dirpath, dirnames, filenames in os.walk(root):
        depth = len(Path(dirpath).parts) - base_depth
        if depth >= max_depth - 1:
            dirnames[:] = []
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_file() and not path.is_symlink():
                yield path
