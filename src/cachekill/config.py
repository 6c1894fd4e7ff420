"""Configuration management for cachekill."""

from __future__ import annotations

import dataclasses
import fnmatch
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .cache_entry import LanguageFilter
from .errors import ConfigError

CONFIG_FILENAME = ".cachekill.yaml"
DEFAULT_BACKUP_DIR = ".cachekill-backup"
DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (".git", DEFAULT_BACKUP_DIR, "node_modules/.cache")

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a YAML or CLI value as a boolean.

    Args:
        value: Raw value (bool, int, str or None).
        default: Value returned when ``value`` is None.

    Returns:
        Parsed boolean. Unrecognised strings are False.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


def _expand(path: str | Path, base: Path) -> Path:
    expanded = Path(os.path.expanduser(str(path)))
    return expanded if expanded.is_absolute() else base / expanded


@dataclass(frozen=True)
class CacheKillConfig:
    """Immutable configuration consumed by the cleanup pipeline."""

    project_root: Path = field(default_factory=Path.cwd)
    home_dir: Path = field(default_factory=Path.home)

    # Discovery
    lang: LanguageFilter = LanguageFilter.AUTO
    include_paths: tuple[str, ...] = ()
    exclude_paths: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    all_caches: bool = False
    include_global: bool = True

    # Planning
    stale_days: int = 14
    safe_delete: bool = True

    # Backups, relative paths are anchored at the project root
    backup_dir: Path = Path(DEFAULT_BACKUP_DIR)
    backup_retention_days: int = 7

    # Cache sources
    npx: bool = False
    js_pm: bool = False
    huggingface: bool = False
    torch: bool = False
    hf_model: str | None = None

    inspect_workers: int = 8

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    @property
    def backup_root(self) -> Path:
        """Directory that accumulates one timestamped backup per safe delete."""
        return _expand(self.backup_dir, self.project_root)

    @classmethod
    def find_config_file(cls, start: Path | None = None) -> Path | None:
        """Search ``start`` and its parents for a ``.cachekill.yaml`` file."""
        current = (start or Path.cwd()).resolve()

        for directory in (current, *current.parents):
            candidate = directory / CONFIG_FILENAME
            if candidate.is_file():
                return candidate

        return None

    @classmethod
    def load(cls, config_path: Path | None = None, project_root: Path | None = None) -> CacheKillConfig:
        """Load configuration from a YAML file.

        Args:
            config_path: Path to config file. Searched from the project root if None.
            project_root: Project root. Uses the current directory if None.

        Returns:
            Loaded configuration, or defaults when no file exists.

        Raises:
            ConfigError: If the file cannot be read or is not a YAML mapping.

        """
        root = project_root or Path.cwd()

        if config_path is None:
            config_path = cls.find_config_file(root)

        if config_path is None or not config_path.exists():
            return cls(project_root=root)

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            msg = f"Failed to read {config_path}: {e}"
            raise ConfigError(msg) from e

        if not isinstance(data, dict):
            msg = f"Expected a mapping in {config_path}"
            raise ConfigError(msg)

        return cls._from_dict(data, root)

    @classmethod
    def _from_dict(cls, data: dict[str, Any], project_root: Path) -> CacheKillConfig:
        """Create config from dictionary."""
        kwargs: dict[str, Any] = {"project_root": project_root}

        try:
            if "lang" in data:
                kwargs["lang"] = LanguageFilter.parse(str(data["lang"]))
            if "stale_days" in data:
                kwargs["stale_days"] = int(data["stale_days"])
            if "backup_retention_days" in data:
                kwargs["backup_retention_days"] = int(data["backup_retention_days"])
            if "inspect_workers" in data:
                kwargs["inspect_workers"] = max(1, int(data["inspect_workers"]))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if "safe_delete" in data:
            kwargs["safe_delete"] = parse_bool(data["safe_delete"], True)
        if "all" in data:
            kwargs["all_caches"] = parse_bool(data["all"], False)
        if "include_global" in data:
            kwargs["include_global"] = parse_bool(data["include_global"], True)
        if "backup_dir" in data:
            kwargs["backup_dir"] = Path(os.path.expanduser(str(data["backup_dir"])))

        # Pattern lists
        if "include_paths" in data:
            kwargs["include_paths"] = tuple(str(p) for p in data["include_paths"] or ())
        if "exclude_paths" in data:
            kwargs["exclude_paths"] = tuple(str(p) for p in data["exclude_paths"] or ())

        # Cache sources
        sources = data.get("sources") or {}
        for key in ("npx", "js_pm", "huggingface", "torch"):
            if key in sources:
                kwargs[key] = parse_bool(sources[key], False)
        if "hf_model" in sources:
            kwargs["hf_model"] = sources["hf_model"]

        # Logging
        logging_cfg = data.get("logging") or {}
        if "level" in logging_cfg:
            kwargs["log_level"] = str(logging_cfg["level"]).upper()
        if logging_cfg.get("file"):
            kwargs["log_file"] = Path(os.path.expanduser(logging_cfg["file"]))

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lang": self.lang.value,
            "stale_days": self.stale_days,
            "safe_delete": self.safe_delete,
            "backup_dir": str(self.backup_dir),
            "backup_retention_days": self.backup_retention_days,
            "include_paths": list(self.include_paths),
            "exclude_paths": list(self.exclude_paths),
            "all": self.all_caches,
            "include_global": self.include_global,
            "inspect_workers": self.inspect_workers,
            "sources": {
                "npx": self.npx,
                "js_pm": self.js_pm,
                "huggingface": self.huggingface,
                "torch": self.torch,
                "hf_model": self.hf_model,
            },
            "logging": {
                "level": self.log_level,
                "file": str(self.log_file) if self.log_file else None,
            },
        }

    def save(self, config_path: Path | None = None) -> Path:
        """Save configuration to a YAML file.

        Args:
            config_path: Path to save config. Defaults to the project root.

        Returns:
            Path the configuration was written to.

        """
        if config_path is None:
            config_path = self.project_root / CONFIG_FILENAME

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

        return config_path

    def with_overrides(self, **overrides: Any) -> CacheKillConfig:
        """Return a copy with the given non-None fields replaced."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)

    def matches_any(self, path: Path, patterns: Iterable[str]) -> bool:
        """Check a path against glob patterns.

        A pattern matches when it globs the absolute path, the path relative
        to the project root, or (for patterns without ``/``) the base name.
        ``*`` also matches across ``/``.
        """
        absolute = str(path)
        try:
            relative: str | None = path.relative_to(self.project_root).as_posix()
        except ValueError:
            relative = None

        for pattern in patterns:
            if pattern.startswith("~"):
                pattern = str(self.home_dir) + pattern[1:]
            if fnmatch.fnmatchcase(absolute, pattern):
                return True
            if relative is not None and fnmatch.fnmatchcase(relative, pattern):
                return True
            if "/" not in pattern and fnmatch.fnmatchcase(path.name, pattern):
                return True

        return False

    def should_exclude_path(self, path: Path) -> bool:
        return self.matches_any(path, self.exclude_paths)

    def should_include_path(self, path: Path) -> bool:
        """Vacuously true when no include patterns are configured."""
        if not self.include_paths:
            return True
        return self.matches_any(path, self.include_paths)

    def should_process_path(self, path: Path) -> bool:
        """Check if a path is included and not excluded."""
        return self.should_include_path(path) and not self.should_exclude_path(path)
