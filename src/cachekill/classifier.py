"""Classify cache paths into ecosystem categories."""

from __future__ import annotations

from pathlib import Path

from .cache_entry import CacheKind

# Tested in order, first match wins. Markers overlap across categories
# (e.g. ``target`` and ``docker`` in one path), so the order is significant.
KIND_MARKERS: tuple[tuple[CacheKind, tuple[str, ...]], ...] = (
    (
        CacheKind.JAVASCRIPT,
        ("node_modules", ".next", ".nuxt", ".vite", ".turbo", ".parcel-cache"),
    ),
    (
        CacheKind.PYTHON,
        ("__pycache__", ".pytest_cache", ".venv", "venv", ".tox", ".mypy_cache", ".ruff_cache", ".pip-cache"),
    ),
    (CacheKind.RUST, ("target", "cargo")),
    (CacheKind.JAVA, (".gradle", ".m2")),
    (
        CacheKind.MACHINE_LEARNING,
        ("huggingface", "torch", "transformers", ".dvc", "wandb"),
    ),
    (CacheKind.NPX, ("_npx",)),
    (CacheKind.DOCKER, ("docker",)),
)


def _matches(kind: CacheKind, markers: tuple[str, ...], text: str) -> bool:
    if any(marker in text for marker in markers):
        return True
    # Gradle build outputs are only recognised when both words appear
    return kind is CacheKind.JAVA and "build" in text and "gradle" in text


def classify(path: Path | str) -> CacheKind:
    """Map a path to a cache category.

    Pure and total: matching is a case-insensitive substring test on the
    path's text, and paths without any known marker are ``GENERIC``.
    """
    text = str(path).lower()

    for kind, markers in KIND_MARKERS:
        if _matches(kind, markers, text):
            return kind

    return CacheKind.GENERIC
