"""Tests for project type detection and cache path discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from cachekill.cache_entry import LanguageFilter, ProjectType
from cachekill.config import CacheKillConfig
from cachekill.discovery import (
    CacheDiscoverer,
    detect_project_type,
    enabled_ecosystems,
    unique_paths,
)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "proj"
    root.mkdir()
    return root


@pytest.fixture
def home(tmp_path: Path) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


def _config(project: Path, home: Path, **overrides: object) -> CacheKillConfig:
    return CacheKillConfig(project_root=project, home_dir=home, **overrides)  # type: ignore[arg-type]


def _mkdirs(root: Path, *names: str) -> None:
    for name in names:
        (root / name).mkdir(parents=True, exist_ok=True)


class TestDetectProjectType:
    """Tests for detect_project_type()."""

    @pytest.mark.parametrize(
        ("marker", "expected"),
        [
            ("package.json", ProjectType.JAVASCRIPT),
            ("pnpm-lock.yaml", ProjectType.JAVASCRIPT),
            ("pyproject.toml", ProjectType.PYTHON),
            ("Cargo.toml", ProjectType.RUST),
            ("pom.xml", ProjectType.JAVA),
            ("build.gradle", ProjectType.JAVA),
        ],
    )
    def test_single_marker(self, project: Path, marker: str, expected: ProjectType) -> None:
        """Test each ecosystem is detected from its marker file."""
        (project / marker).touch()
        assert detect_project_type(project) is expected

    def test_unknown(self, project: Path) -> None:
        """Test that an empty directory is of unknown type."""
        assert detect_project_type(project) is ProjectType.UNKNOWN

    def test_mixed(self, project: Path) -> None:
        """Test that markers of two ecosystems make a mixed project."""
        (project / "package.json").touch()
        (project / "Cargo.toml").touch()
        assert detect_project_type(project) is ProjectType.MIXED

    def test_ml_requirements_make_mixed(self, project: Path) -> None:
        """Test that ML requirements add the ML ecosystem to Python."""
        (project / "requirements.txt").write_text("numpy\ntorch==2.3\n")
        assert detect_project_type(project) is ProjectType.MIXED

    def test_dvc_only(self, project: Path) -> None:
        """Test that a bare DVC repository is an ML project."""
        (project / ".dvc").mkdir()
        assert detect_project_type(project) is ProjectType.MACHINE_LEARNING

    def test_missing_root(self, tmp_path: Path) -> None:
        """Test that a missing root is unknown rather than an error."""
        assert detect_project_type(tmp_path / "absent") is ProjectType.UNKNOWN


class TestEnabledEcosystems:
    """Tests for enabled_ecosystems()."""

    def test_explicit_filter(self) -> None:
        """Test that an explicit filter overrides detection."""
        assert enabled_ecosystems(LanguageFilter.RUST, ProjectType.JAVASCRIPT) == [LanguageFilter.RUST]

    def test_auto_detected(self) -> None:
        """Test that auto uses the detected project type."""
        assert enabled_ecosystems(LanguageFilter.AUTO, ProjectType.PYTHON) == [LanguageFilter.PYTHON]

    @pytest.mark.parametrize("project_type", [ProjectType.MIXED, ProjectType.UNKNOWN])
    def test_auto_falls_back_to_all(self, project_type: ProjectType) -> None:
        """Test that auto with no single type probes every ecosystem."""
        assert len(enabled_ecosystems(LanguageFilter.AUTO, project_type)) == 5


class TestUniquePaths:
    """Tests for unique_paths()."""

    def test_drops_duplicates_keeping_order(self, tmp_path: Path) -> None:
        """Test that duplicates collapse to their first occurrence."""
        a, b = tmp_path / "a", tmp_path / "b"
        assert unique_paths([a, b, a, tmp_path / "x" / ".." / "b"]) == [a, b]

    def test_symlink_collapses_to_target(self, tmp_path: Path) -> None:
        """Test that a symlink and its target count once."""
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real)

        assert unique_paths([real, link]) == [real]


class TestCacheDiscoverer:
    """Tests for CacheDiscoverer.discover()."""

    def test_javascript_project(self, project: Path, home: Path) -> None:
        """Test that only JavaScript probes run for a JavaScript project."""
        (project / "package.json").touch()
        _mkdirs(project, "node_modules", ".next", "dist", "__pycache__")

        result = CacheDiscoverer(_config(project, home)).discover()

        assert result.project_type is ProjectType.JAVASCRIPT
        assert set(result.paths) == {project / "node_modules", project / ".next", project / "dist"}

    def test_files_are_not_probed(self, project: Path, home: Path) -> None:
        """Test that probes only match directories."""
        (project / "package.json").touch()
        (project / "dist").touch()

        assert CacheDiscoverer(_config(project, home)).discover().paths == []

    def test_explicit_lang(self, project: Path, home: Path) -> None:
        """Test that an explicit language ignores the detected type."""
        (project / "package.json").touch()
        _mkdirs(project, "node_modules", ".pytest_cache")

        result = CacheDiscoverer(_config(project, home, lang=LanguageFilter.PYTHON)).discover()

        assert result.paths == [project / ".pytest_cache"]

    def test_nested_pycache(self, project: Path, home: Path) -> None:
        """Test that __pycache__ one level down is found."""
        (project / "pyproject.toml").touch()
        _mkdirs(project, "__pycache__", "pkg/__pycache__", "pkg/sub/__pycache__")

        paths = CacheDiscoverer(_config(project, home)).discover().paths

        assert project / "__pycache__" in paths
        assert project / "pkg" / "__pycache__" in paths
        assert project / "pkg" / "sub" / "__pycache__" not in paths

    def test_unknown_project_probes_everything(self, project: Path, home: Path) -> None:
        """Test that an unknown project probes every ecosystem."""
        _mkdirs(project, "node_modules", ".tox", "target", ".gradle", "wandb")

        paths = set(CacheDiscoverer(_config(project, home)).discover().paths)

        assert {project / "node_modules", project / ".tox", project / ".gradle", project / "wandb"} <= paths
        assert project / "target" in paths

    def test_global_probes(self, project: Path, home: Path) -> None:
        """Test that home directory caches follow include_global."""
        (project / "pom.xml").touch()
        _mkdirs(home, ".m2/repository")

        with_global = CacheDiscoverer(_config(project, home)).discover().paths
        without_global = CacheDiscoverer(_config(project, home, include_global=False)).discover().paths

        assert home / ".m2" / "repository" in with_global
        assert home / ".m2" / "repository" not in without_global

    def test_generic_probes_need_all(self, project: Path, home: Path) -> None:
        """Test that generic directories are only probed with --all."""
        (project / "Cargo.toml").touch()
        _mkdirs(project, "tmp")

        assert project / "tmp" not in CacheDiscoverer(_config(project, home)).discover().paths
        assert project / "tmp" in CacheDiscoverer(_config(project, home, all_caches=True)).discover().paths

    def test_excluded_paths_dropped(self, project: Path, home: Path) -> None:
        """Test that exclude patterns remove probed paths."""
        (project / "package.json").touch()
        _mkdirs(project, "node_modules", "dist")

        config = _config(project, home, exclude_paths=("dist",))

        assert CacheDiscoverer(config).discover().paths == [project / "node_modules"]

    def test_include_literal_and_glob(self, project: Path, home: Path) -> None:
        """Test that include patterns add literal and globbed paths."""
        (project / "Cargo.toml").touch()
        _mkdirs(project, "artifacts/one", "artifacts/two", "scratch")

        config = _config(project, home, include_paths=("scratch", "artifacts/*"))
        paths = set(CacheDiscoverer(config).discover().paths)

        assert {project / "scratch", project / "artifacts" / "one", project / "artifacts" / "two"} <= paths

    def test_include_home_pattern(self, project: Path, home: Path) -> None:
        """Test that a ~ include pattern resolves against the home directory."""
        _mkdirs(home, ".local/tool-cache")

        config = _config(project, home, include_paths=("~/.local/tool-cache",))

        assert home / ".local" / "tool-cache" in CacheDiscoverer(config).discover().paths

    def test_missing_root(self, tmp_path: Path, home: Path) -> None:
        """Test that discovery of a missing root finds nothing without raising."""
        result = CacheDiscoverer(_config(tmp_path / "absent", home)).discover()
        assert result.paths == []

    def test_duplicates_allowed(self, project: Path, home: Path) -> None:
        """Test that discovery may report a path twice for overlapping probes."""
        _mkdirs(project, "build")

        paths = CacheDiscoverer(_config(project, home)).discover().paths

        # JavaScript and Java both probe build/
        assert paths.count(project / "build") == 2
        assert unique_paths(paths).count(project / "build") == 1
