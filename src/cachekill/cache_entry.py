"""Shared data types for cache entries and their planned dispositions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any


class CacheKind(str, Enum):
    """Closed taxonomy of cache categories."""

    JAVASCRIPT = "js"
    PYTHON = "py"
    RUST = "rust"
    JAVA = "java"
    MACHINE_LEARNING = "ml"
    NPX = "npx"
    DOCKER = "docker"
    GENERIC = "generic"


class Disposition(str, Enum):
    """Planned outcome for a cache entry."""

    DELETE = "delete"
    BACKUP = "backup"
    SKIP = "skip"


class LanguageFilter(str, Enum):
    """Ecosystem filter applied during discovery."""

    AUTO = "auto"
    JAVASCRIPT = "js"
    PYTHON = "py"
    RUST = "rust"
    JAVA = "java"
    MACHINE_LEARNING = "ml"

    @classmethod
    def parse(cls, value: str | LanguageFilter) -> LanguageFilter:
        """Parse a filter name, accepting long aliases such as ``python``.

        Raises:
            ValueError: If the name is not a known filter.

        """
        if isinstance(value, LanguageFilter):
            return value

        aliases = {
            "javascript": cls.JAVASCRIPT,
            "python": cls.PYTHON,
            "machinelearning": cls.MACHINE_LEARNING,
        }
        name = value.strip().lower()
        if name in aliases:
            return aliases[name]
        try:
            return cls(name)
        except ValueError:
            msg = f"Unknown language filter: {value}"
            raise ValueError(msg) from None


class ProjectType(str, Enum):
    """Project type detected from marker files in the project root."""

    JAVASCRIPT = "js"
    PYTHON = "py"
    RUST = "rust"
    JAVA = "java"
    MACHINE_LEARNING = "ml"
    MIXED = "mixed"
    UNKNOWN = "unknown"


@dataclass
class CacheEntry:
    """A cache path with its measured size, recency and planned action."""

    path: Path
    kind: CacheKind
    size_bytes: int
    last_used: datetime
    stale: bool
    disposition: Disposition | None = field(default=None)

    def with_disposition(self, disposition: Disposition) -> CacheEntry:
        """Set the planned disposition and return the entry."""
        self.disposition = disposition
        return self

    @property
    def size_human(self) -> str:
        return format_size(self.size_bytes)

    def last_used_human(self, now: datetime | None = None) -> str:
        """Describe how long ago the entry was last used, e.g. ``3d ago``."""
        now = now or datetime.now(UTC)
        seconds = int((now - self.last_used).total_seconds())

        if seconds >= 86400:
            return f"{seconds // 86400}d ago"
        if seconds >= 3600:
            return f"{seconds // 3600}h ago"
        if seconds >= 60:
            return f"{seconds // 60}m ago"
        return "just now"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "kind": self.kind.value,
            "size_bytes": self.size_bytes,
            "last_used": self.last_used.isoformat(),
            "stale": self.stale,
            "disposition": self.disposition.value if self.disposition else None,
        }


def format_size(size_bytes: int) -> str:
    """Format a byte count with decimal units (``1.5 MB``)."""
    size = float(size_bytes)
    for unit in ("B", "kB", "MB", "GB", "TB"):
        if size < 1000 or unit == "TB":
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.1f} {unit}"
        size /= 1000
    return f"{size:.1f} PB"
