"""Pluggable global cache sources with auto-discovery."""

from __future__ import annotations

import importlib
import logging
import pkgutil
import types
from typing import TYPE_CHECKING

from .base import CacheSource

if TYPE_CHECKING:
    from ..cache_entry import CacheEntry
    from ..config import CacheKillConfig

logger = logging.getLogger(__name__)


def discover_sources(config: CacheKillConfig) -> list[CacheSource]:
    """Discover and instantiate all enabled cache sources.

    Scans the sources package for classes with SOURCE_ENABLED = True and
    keeps those whose ``config_flag`` is switched on in the config.
    """
    sources: list[CacheSource] = []
    package = importlib.import_module(__package__ or "cachekill.sources")

    for _finder, module_name, _is_pkg in pkgutil.iter_modules(package.__path__):
        if module_name == "base":
            continue
        try:
            mod = importlib.import_module(f"{__package__}.{module_name}")
        except ImportError:
            logger.warning("Failed to import cache source: %s", module_name)
            continue

        sources.extend(_find_source_classes(mod, config))

    return sorted(sources, key=lambda source: source.name)


def _find_source_classes(mod: types.ModuleType, config: CacheKillConfig) -> list[CacheSource]:
    """Instantiate all enabled CacheSource classes found in the given Python module."""
    found: list[CacheSource] = []

    for attr_name in dir(mod):
        attr = getattr(mod, attr_name)
        if not (isinstance(attr, type) and getattr(attr, "SOURCE_ENABLED", False) is True):
            continue
        # Only classes defined here, not ones imported from elsewhere
        if attr.__module__ != mod.__name__:
            continue

        if not getattr(config, attr.config_flag, False):
            logger.debug("Cache source not enabled: %s", attr_name)
            continue

        try:
            instance = attr(config)
        except (TypeError, ValueError):
            logger.warning("Failed to instantiate cache source: %s", attr_name, exc_info=True)
            continue

        found.append(instance)
        logger.debug("Loaded cache source: %s", instance.name)

    return found


def collect_source_entries(config: CacheKillConfig) -> list[CacheEntry]:
    """List the entries of every enabled source."""
    entries: list[CacheEntry] = []

    for source in discover_sources(config):
        source_entries = source.list_entries()
        logger.info("Cache source %s: %d entries", source.name, len(source_entries))
        entries.extend(source_entries)

    return entries
