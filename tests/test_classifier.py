"""Tests for cache path classification."""

from __future__ import annotations

from pathlib import Path

import pytest

from cachekill.cache_entry import CacheKind
from cachekill.classifier import classify


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/p/node_modules", CacheKind.JAVASCRIPT),
            ("/p/.next/cache", CacheKind.JAVASCRIPT),
            ("/p/.parcel-cache", CacheKind.JAVASCRIPT),
            ("/p/__pycache__", CacheKind.PYTHON),
            ("/p/.venv", CacheKind.PYTHON),
            ("/p/.mypy_cache", CacheKind.PYTHON),
            ("/p/target", CacheKind.RUST),
            ("/home/u/.cargo/registry", CacheKind.RUST),
            ("/p/.gradle", CacheKind.JAVA),
            ("/home/u/.m2/repository", CacheKind.JAVA),
            ("/p/gradle/build", CacheKind.JAVA),
            ("/home/u/.cache/huggingface", CacheKind.MACHINE_LEARNING),
            ("/home/u/.cache/torch", CacheKind.MACHINE_LEARNING),
            ("/p/.dvc/cache", CacheKind.MACHINE_LEARNING),
            ("/p/wandb", CacheKind.MACHINE_LEARNING),
            ("/home/u/.npm/_npx/abc", CacheKind.NPX),
            ("/var/lib/docker/overlay", CacheKind.DOCKER),
            ("/p/tmp", CacheKind.GENERIC),
            ("/p/build", CacheKind.GENERIC),
        ],
    )
    def test_markers(self, path: str, expected: CacheKind) -> None:
        """Test each category is recognised by its path markers."""
        assert classify(Path(path)) is expected

    def test_case_insensitive(self) -> None:
        """Test that matching ignores case."""
        assert classify(Path("/P/Node_Modules")) is CacheKind.JAVASCRIPT

    def test_first_match_wins(self) -> None:
        """Test priority when a path carries markers of several categories."""
        assert classify(Path("/p/node_modules/pkg/target")) is CacheKind.JAVASCRIPT
        assert classify(Path("/srv/docker/app/target")) is CacheKind.RUST
        assert classify(Path("/p/.venv/lib/torch")) is CacheKind.PYTHON

    def test_accepts_strings(self) -> None:
        """Test that plain strings are accepted."""
        assert classify("/p/__pycache__") is CacheKind.PYTHON

    @pytest.mark.parametrize("path", ["", "/", "relative", "/a/b/c.txt", "ünicode/日本"])
    def test_total(self, path: str) -> None:
        """Test that every input yields some category."""
        assert isinstance(classify(Path(path)), CacheKind)
