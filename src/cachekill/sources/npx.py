"""Packages cached by ``npx`` under ``~/.npm/_npx``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..cache_entry import CacheEntry, CacheKind
from .base import existing_dir, make_entry, safe_delete_disposition

if TYPE_CHECKING:
    from ..config import CacheKillConfig

logger = logging.getLogger(__name__)


class NpxSource:
    """One entry per cached npx package directory."""

    SOURCE_ENABLED: bool = True
    name: str = "npx"
    config_flag: str = "npx"

    def __init__(self, config: CacheKillConfig) -> None:
        self.config = config

    def cache_dirs(self) -> list[Path]:
        return [self.config.home_dir / ".npm" / "_npx"]

    def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        npx_dir = self.cache_dirs()[0]

        if not existing_dir(npx_dir):
            return entries

        try:
            packages = sorted(path for path in npx_dir.iterdir() if path.is_dir())
        except OSError as e:
            logger.warning("Cannot read npx cache %s: %s", npx_dir, e)
            return entries

        disposition = safe_delete_disposition(self.config)
        for package_dir in packages:
            entry = make_entry(package_dir, CacheKind.NPX, self.config, disposition)
            if entry is not None:
                entries.append(entry)

        return entries
