"""PyTorch hub checkpoints and kernels under ``~/.cache/torch``.

Like the HuggingFace source, only stale files are planned for backup.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ..cache_entry import CacheEntry, CacheKind
from .base import existing_dir, make_entry, walk_files

if TYPE_CHECKING:
    from ..config import CacheKillConfig

MAX_DEPTH = 4


class TorchSource:
    """One entry per cached file, up to four levels deep."""

    SOURCE_ENABLED: bool = True
    name: str = "torch"
    config_flag: str = "torch"

    def __init__(self, config: CacheKillConfig) -> None:
        self.config = config

    def cache_dirs(self) -> list[Path]:
        return [self.config.home_dir / ".cache" / "torch"]

    def list_entries(self) -> list[CacheEntry]:
        root = self.cache_dirs()[0]
        entries: list[CacheEntry] = []

        if not existing_dir(root):
            return entries

        for path in walk_files(root, MAX_DEPTH):
            entry = make_entry(path, CacheKind.MACHINE_LEARNING, self.config)
            if entry is not None:
                entries.append(entry)

        return sorted(entries, key=lambda entry: entry.size_bytes, reverse=True)
