"""JavaScript package-manager stores (npm, pnpm, yarn).

These stores have no effect on any single project and are rebuilt on demand,
so their entries are always planned for deletion rather than backup.
"""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from ..cache_entry import CacheEntry, CacheKind, Disposition
from .base import existing_dir, make_entry

if TYPE_CHECKING:
    from ..config import CacheKillConfig


def _local_appdata() -> Path | None:
    value = os.environ.get("LOCALAPPDATA")
    return Path(value) if value else None


class _PackageManagerSource(ABC):
    """Whole package-manager stores, always planned for deletion."""

    name: str = ""
    config_flag: str = "js_pm"

    def __init__(self, config: CacheKillConfig) -> None:
        self.config = config
        self.home = config.home_dir

    @abstractmethod
    def cache_dirs(self) -> list[Path]:
        """Candidate store locations for the current platform."""

    def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []

        for directory in self.cache_dirs():
            if not existing_dir(directory):
                continue
            entry = make_entry(directory, CacheKind.JAVASCRIPT, self.config, Disposition.DELETE)
            if entry is not None:
                entries.append(entry)

        return entries


class NpmSource(_PackageManagerSource):
    """The npm download cache."""

    SOURCE_ENABLED: bool = True
    name: str = "npm"

    def cache_dirs(self) -> list[Path]:
        if sys.platform == "win32" and (local := _local_appdata()):
            return [local / "npm-cache"]
        return [self.home / ".npm"]


class PnpmSource(_PackageManagerSource):
    """The pnpm content-addressable store and metadata cache."""

    SOURCE_ENABLED: bool = True
    name: str = "pnpm"

    def cache_dirs(self) -> list[Path]:
        if sys.platform == "win32" and (local := _local_appdata()):
            return [local / "pnpm" / "store" / "v3", local / "pnpm-cache"]
        if sys.platform == "darwin":
            return [
                self.home / "Library" / "pnpm" / "store" / "v3",
                self.home / "Library" / "Caches" / "pnpm",
            ]
        return [
            self.home / ".local" / "share" / "pnpm" / "store" / "v3",
            self.home / ".cache" / "pnpm",
        ]


class YarnSource(_PackageManagerSource):
    """The global yarn cache and the project's ``.yarn/cache``."""

    SOURCE_ENABLED: bool = True
    name: str = "yarn"

    def cache_dirs(self) -> list[Path]:
        if sys.platform == "win32" and (local := _local_appdata()):
            global_dir = local / "Yarn" / "Cache"
        elif sys.platform == "darwin":
            global_dir = self.home / "Library" / "Caches" / "Yarn"
        else:
            global_dir = self.home / ".cache" / "yarn"

        return [global_dir, self.config.project_root / ".yarn" / "cache"]
