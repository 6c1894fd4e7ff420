"""HuggingFace hub downloads under ``~/.cache/huggingface``.

Only stale repositories are planned for backup; recently used ones are
skipped regardless of the safe-delete setting.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..cache_entry import CacheEntry, CacheKind
from .base import existing_dir, make_entry

if TYPE_CHECKING:
    from ..config import CacheKillConfig

logger = logging.getLogger(__name__)

REPO_PREFIXES: tuple[str, ...] = ("models--", "datasets--", "spaces--")


def parse_repo_id(name: str) -> str | None:
    """Turn a hub directory name such as ``models--org--name`` into ``org/name``."""
    for prefix in REPO_PREFIXES:
        if name.startswith(prefix):
            return name.removeprefix(prefix).replace("--", "/")
    return None


class HuggingFaceSource:
    """One entry per cached hub repository."""

    SOURCE_ENABLED: bool = True
    name: str = "huggingface"
    config_flag: str = "huggingface"

    def __init__(self, config: CacheKillConfig) -> None:
        self.config = config
        self.model = config.hf_model

    def cache_dirs(self) -> list[Path]:
        return [self.config.home_dir / ".cache" / "huggingface"]

    def repositories(self) -> list[tuple[str, Path]]:
        """List ``(repo_id, path)`` pairs found in the hub cache."""
        hub = self.cache_dirs()[0] / "hub"
        repos: list[tuple[str, Path]] = []

        if not existing_dir(hub):
            return repos

        try:
            children = sorted(hub.iterdir())
        except OSError as e:
            logger.warning("Cannot read HuggingFace cache %s: %s", hub, e)
            return repos

        for child in children:
            repo_id = parse_repo_id(child.name)
            if repo_id and child.is_dir():
                repos.append((repo_id, child))

        return repos

    def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []

        for repo_id, path in self.repositories():
            if self.model and repo_id != self.model:
                continue
            entry = make_entry(path, CacheKind.MACHINE_LEARNING, self.config)
            if entry is not None:
                entries.append(entry)

        return entries
