"""Measure, classify and plan actions for candidate cache paths."""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .cache_entry import CacheEntry, CacheKind, Disposition, format_size
from .classifier import classify
from .errors import PathNotFoundError

if TYPE_CHECKING:
    from .config import CacheKillConfig

logger = logging.getLogger(__name__)


def is_stale(last_used: datetime, stale_days: int, now: datetime | None = None) -> bool:
    """Check whether more than ``stale_days`` whole days passed since last use.

    The boundary is exclusive: exactly ``stale_days`` days is not stale.
    """
    now = now or datetime.now(UTC)
    return (now - last_used).days > stale_days


def plan_disposition(path: Path, config: CacheKillConfig) -> Disposition:
    """Decide what to do with a path under the include/exclude and safe-delete policy.

    Staleness is deliberately not consulted here; only the specialised cache
    sources gate on it.
    """
    if config.should_exclude_path(path):
        return Disposition.SKIP

    if config.include_paths and not config.should_include_path(path):
        return Disposition.SKIP

    if config.safe_delete:
        return Disposition.BACKUP

    return Disposition.DELETE


def measure_path(path: Path) -> tuple[int, datetime]:
    """Compute the total file size and latest file mtime under a path.

    Only regular files count towards the size; symlinks are not followed.
    A directory's own mtime is used only when it contains no files.

    Raises:
        PathNotFoundError: If the path does not exist.

    """
    try:
        root_stat = path.lstat()
    except FileNotFoundError as e:
        raise PathNotFoundError(path) from e

    if not stat.S_ISDIR(root_stat.st_mode):
        # A symlink root counts as zero bytes at its own mtime
        size = root_stat.st_size if stat.S_ISREG(root_stat.st_mode) else 0
        return size, datetime.fromtimestamp(root_stat.st_mtime, UTC)

    total = 0
    latest: float | None = None

    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                file_stat = os.lstat(os.path.join(dirpath, name))
            except OSError:
                # Vanished or unreadable mid-walk
                continue
            if not stat.S_ISREG(file_stat.st_mode):
                continue
            total += file_stat.st_size
            if latest is None or file_stat.st_mtime > latest:
                latest = file_stat.st_mtime

    if latest is None:
        latest = root_stat.st_mtime

    return total, datetime.fromtimestamp(latest, UTC)


class CacheInspector:
    """Builds ``CacheEntry`` records for candidate paths."""

    def __init__(self, config: CacheKillConfig, now: datetime | None = None) -> None:
        """Initialize the inspector.

        Args:
            config: Cleanup configuration.
            now: Reference time for staleness. Uses the wall clock if None.

        """
        self.config = config
        self.now = now

    def inspect_path(self, path: Path) -> CacheEntry:
        """Inspect a single path.

        Raises:
            PathNotFoundError: If the path vanished.

        """
        if not path.exists() and not path.is_symlink():
            raise PathNotFoundError(path)

        size_bytes, last_used = measure_path(path)
        entry = CacheEntry(
            path=path,
            kind=classify(path),
            size_bytes=size_bytes,
            last_used=last_used,
            stale=is_stale(last_used, self.config.stale_days, self.now),
        )
        entry.with_disposition(plan_disposition(path, self.config))

        logger.debug("Inspected %s: %s, %s", path, entry.kind.value, entry.size_human)
        return entry

    async def inspect_async(self, paths: Iterable[Path]) -> list[CacheEntry]:
        """Inspect paths concurrently, walking each one in a worker thread.

        Concurrency is bounded by ``config.inspect_workers``. The first
        failure aborts the whole call.
        """
        semaphore = asyncio.Semaphore(max(1, self.config.inspect_workers))

        async def _bounded(path: Path) -> CacheEntry:
            async with semaphore:
                return await asyncio.to_thread(self.inspect_path, path)

        return list(await asyncio.gather(*(_bounded(path) for path in paths)))

    def inspect(self, paths: Iterable[Path]) -> list[CacheEntry]:
        """Inspect paths from synchronous code. See ``inspect_async``."""
        paths = list(paths)
        if not paths:
            return []
        return asyncio.run(self.inspect_async(paths))


@dataclass
class CacheSummary:
    """Summary statistics for a set of cache entries."""

    total_size: int = 0
    total_count: int = 0
    stale_count: int = 0
    counts_by_disposition: dict[Disposition, int] = field(default_factory=dict)
    size_by_kind: dict[CacheKind, int] = field(default_factory=dict)

    @property
    def reclaimable_count(self) -> int:
        return self.counts_by_disposition.get(Disposition.DELETE, 0) + self.counts_by_disposition.get(
            Disposition.BACKUP, 0
        )

    @property
    def total_size_human(self) -> str:
        return format_size(self.total_size)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_size": self.total_size,
            "total_count": self.total_count,
            "stale_count": self.stale_count,
            "counts_by_disposition": {d.value: n for d, n in self.counts_by_disposition.items()},
            "size_by_kind": {k.value: n for k, n in self.size_by_kind.items()},
        }


def _canonical(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return Path(os.path.abspath(path))


def distinct_entries(entries: Iterable[CacheEntry]) -> list[CacheEntry]:
    """Drop entries whose canonical path was already seen."""
    seen: set[Path] = set()
    distinct: list[CacheEntry] = []

    for entry in entries:
        key = _canonical(entry.path)
        if key in seen:
            continue
        seen.add(key)
        distinct.append(entry)

    return distinct


def outermost_entries(entries: Sequence[CacheEntry]) -> list[CacheEntry]:
    """Drop entries nested inside another entry's path.

    Their bytes are already part of the enclosing entry's size.
    """
    keys = {_canonical(entry.path) for entry in entries}
    return [entry for entry in entries if not any(parent in keys for parent in _canonical(entry.path).parents)]


ACTIONABLE: frozenset[Disposition] = frozenset({Disposition.DELETE, Disposition.BACKUP})


def collapse_nested(entries: Iterable[CacheEntry]) -> list[CacheEntry]:
    """Drop duplicates and entries inside the path of an actionable entry.

    Moving or removing the outer path already covers everything below it.
    Entries under a skipped path are kept, since nothing acts on the parent.
    """
    distinct = distinct_entries(entries)
    actionable = {_canonical(entry.path) for entry in distinct if entry.disposition in ACTIONABLE}

    return [
        entry for entry in distinct if not any(parent in actionable for parent in _canonical(entry.path).parents)
    ]


def summarize(entries: Iterable[CacheEntry]) -> CacheSummary:
    """Reduce entries to totals without double counting overlapping paths."""
    distinct = distinct_entries(entries)
    counted = outermost_entries(distinct)

    summary = CacheSummary(
        total_size=sum(entry.size_bytes for entry in counted),
        total_count=len(distinct),
        stale_count=sum(1 for entry in distinct if entry.stale),
        counts_by_disposition={disposition: 0 for disposition in Disposition},
    )

    for entry in distinct:
        if entry.disposition is not None:
            summary.counts_by_disposition[entry.disposition] += 1

    for entry in counted:
        summary.size_by_kind[entry.kind] = summary.size_by_kind.get(entry.kind, 0) + entry.size_bytes

    return summary


def top_n_largest(entries: Iterable[CacheEntry], n: int) -> list[CacheEntry]:
    """Return the ``n`` largest entries; ties keep their discovery order."""
    return sorted(entries, key=lambda entry: entry.size_bytes, reverse=True)[:n]
