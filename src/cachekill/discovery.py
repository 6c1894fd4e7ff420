"""Discover candidate cache paths for a project."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .cache_entry import LanguageFilter, ProjectType

if TYPE_CHECKING:
    from .config import CacheKillConfig

logger = logging.getLogger(__name__)

# Marker files in the project root, per ecosystem
PROJECT_MARKERS: dict[ProjectType, tuple[str, ...]] = {
    ProjectType.JAVASCRIPT: ("package.json", "yarn.lock", "pnpm-lock.yaml", "bun.lockb"),
    ProjectType.PYTHON: ("pyproject.toml", "requirements.txt", "setup.py", "Pipfile", "poetry.lock"),
    ProjectType.RUST: ("Cargo.toml",),
    ProjectType.JAVA: ("pom.xml", "build.gradle", "build.gradle.kts", "gradlew"),
}
ML_REQUIREMENT_HINTS: tuple[str, ...] = ("torch", "tensorflow", "huggingface")

# Directories probed relative to the project root
RELATIVE_PROBES: dict[LanguageFilter, tuple[str, ...]] = {
    LanguageFilter.JAVASCRIPT: (
        "node_modules",
        ".next",
        ".nuxt",
        ".vite",
        ".cache",
        "dist",
        "coverage",
        ".turbo",
        ".parcel-cache",
        "build",
        "out",
        ".next/cache",
        ".nuxt/dist",
    ),
    LanguageFilter.PYTHON: (
        "__pycache__",
        ".pytest_cache",
        ".venv",
        "venv",
        ".tox",
        ".mypy_cache",
        ".ruff_cache",
        ".pip-cache",
        ".coverage",
        "htmlcov",
    ),
    LanguageFilter.RUST: ("target", ".cargo"),
    LanguageFilter.JAVA: (".gradle", "build", "target", ".m2"),
    LanguageFilter.MACHINE_LEARNING: (".dvc/cache", ".dvc/tmp", "wandb", ".wandb"),
}

# Directories probed relative to the home directory
GLOBAL_PROBES: dict[LanguageFilter, tuple[str, ...]] = {
    LanguageFilter.JAVA: (".m2/repository",),
    LanguageFilter.MACHINE_LEARNING: (".cache/huggingface", ".cache/torch", ".cache/transformers"),
}

GENERIC_PROBES: tuple[str, ...] = ("tmp", "temp", ".cache", "cache", ".tmp")

_ECOSYSTEMS: tuple[LanguageFilter, ...] = (
    LanguageFilter.JAVASCRIPT,
    LanguageFilter.PYTHON,
    LanguageFilter.RUST,
    LanguageFilter.JAVA,
    LanguageFilter.MACHINE_LEARNING,
)


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except OSError:
        return False


def _requirements_mention_ml(project_root: Path) -> bool:
    try:
        text = (project_root / "requirements.txt").read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False
    return any(hint in text for hint in ML_REQUIREMENT_HINTS)


def detect_project_type(project_root: Path) -> ProjectType:
    """Detect the project type from marker files in the project root.

    Returns ``UNKNOWN`` when no marker is present and ``MIXED`` when markers
    of more than one ecosystem are present.
    """
    found: list[ProjectType] = [
        project_type
        for project_type, markers in PROJECT_MARKERS.items()
        if any(_exists(project_root / marker) for marker in markers)
    ]

    if _requirements_mention_ml(project_root) or _is_dir(project_root / ".dvc"):
        found.append(ProjectType.MACHINE_LEARNING)

    if not found:
        return ProjectType.UNKNOWN
    if len(found) > 1:
        return ProjectType.MIXED
    return found[0]


def enabled_ecosystems(lang: LanguageFilter, project_type: ProjectType) -> list[LanguageFilter]:
    """Ecosystems whose probes run for a language filter and project type."""
    if lang is not LanguageFilter.AUTO:
        return [lang]

    if project_type in (ProjectType.MIXED, ProjectType.UNKNOWN):
        return list(_ECOSYSTEMS)

    return [LanguageFilter(project_type.value)]


def unique_paths(paths: Iterable[Path]) -> list[Path]:
    """Deduplicate paths by canonical location, keeping first occurrences."""
    seen: set[Path] = set()
    unique: list[Path] = []

    for path in paths:
        try:
            key = path.resolve()
        except OSError:
            key = Path(os.path.abspath(path))
        if key in seen:
            continue
        seen.add(key)
        unique.append(path)

    return unique


@dataclass
class DiscoveryResult:
    """Paths found by discovery. May contain duplicates."""

    project_type: ProjectType
    project_root: Path
    paths: list[Path] = field(default_factory=list)


class CacheDiscoverer:
    """Enumerates candidate cache paths for a project root."""

    def __init__(self, config: CacheKillConfig) -> None:
        self.config = config
        self.project_root = config.project_root

    def discover(self) -> DiscoveryResult:
        """Run every enabled probe and collect the existing cache paths.

        Each probe is best-effort: missing or unreadable locations are
        treated as absent and never abort the other probes.
        """
        project_type = detect_project_type(self.project_root)
        result = DiscoveryResult(project_type=project_type, project_root=self.project_root)

        for ecosystem in enabled_ecosystems(self.config.lang, project_type):
            result.paths.extend(self.probe_ecosystem(ecosystem))

        if self.config.all_caches:
            result.paths.extend(self._probe_relative(GENERIC_PROBES))

        if self.config.include_paths:
            result.paths.extend(self.expand_include_patterns())

        logger.debug(
            "Discovered %d paths in %s (project type: %s)",
            len(result.paths),
            self.project_root,
            project_type.value,
        )
        return result

    def probe_ecosystem(self, ecosystem: LanguageFilter) -> list[Path]:
        """Probe the fixed locations for one ecosystem."""
        found = self._probe_relative(RELATIVE_PROBES.get(ecosystem, ()))

        if ecosystem is LanguageFilter.PYTHON:
            found.extend(self._probe_nested_pycache())

        if self.config.include_global:
            found.extend(self._probe_home(GLOBAL_PROBES.get(ecosystem, ())))

        return found

    def expand_include_patterns(self) -> list[Path]:
        """Resolve user include patterns into existing paths.

        Literal patterns are existence-checked directly; patterns containing
        ``*`` or ``?`` are matched against every path under the project root.
        """
        found: list[Path] = []
        globs: list[str] = []

        for pattern in self.config.include_paths:
            if "*" in pattern or "?" in pattern:
                globs.append(pattern)
                continue

            if pattern.startswith("~"):
                candidate = self.config.home_dir / pattern[1:].lstrip("/")
            else:
                candidate = Path(pattern)
                if not candidate.is_absolute():
                    candidate = self.project_root / candidate

            if _exists(candidate) and self.config.should_process_path(candidate):
                found.append(candidate)

        if globs:
            found.extend(self._walk_matching(globs))

        return found

    def _walk_matching(self, patterns: list[str]) -> list[Path]:
        matched: list[Path] = []

        def _log_walk_error(error: OSError) -> None:
            logger.debug("Skipping unreadable directory during glob walk: %s", error)

        for dirpath, dirnames, filenames in os.walk(self.project_root, onerror=_log_walk_error):
            base = Path(dirpath)
            # Excluded directories are not descended into
            dirnames[:] = [d for d in dirnames if not self.config.should_exclude_path(base / d)]
            for name in (*dirnames, *filenames):
                candidate = base / name
                if self.config.matches_any(candidate, patterns) and self.config.should_process_path(candidate):
                    matched.append(candidate)

        return matched

    def _probe_relative(self, names: Iterable[str]) -> list[Path]:
        return self._probe_under(self.project_root, names)

    def _probe_home(self, names: Iterable[str]) -> list[Path]:
        return self._probe_under(self.config.home_dir, names)

    def _probe_under(self, base: Path, names: Iterable[str]) -> list[Path]:
        found: list[Path] = []

        for name in names:
            candidate = base / name
            if _is_dir(candidate) and self.config.should_process_path(candidate):
                found.append(candidate)
            else:
                logger.debug("Probe miss: %s", candidate)

        return found

    def _probe_nested_pycache(self) -> list[Path]:
        """Find ``__pycache__`` directories one level below the project root."""
        found: list[Path] = []

        try:
            children = sorted(self.project_root.iterdir())
        except OSError as e:
            logger.debug("Cannot list %s: %s", self.project_root, e)
            return found

        for child in children:
            if not _is_dir(child):
                continue
            candidate = child / "__pycache__"
            if _is_dir(candidate) and self.config.should_process_path(candidate):
                found.append(candidate)

        return found
