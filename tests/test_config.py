"""Tests for configuration loading, saving and path filters."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest
import yaml

from cachekill.cache_entry import LanguageFilter
from cachekill.config import (
    CONFIG_FILENAME,
    DEFAULT_EXCLUDE_PATTERNS,
    CacheKillConfig,
    parse_bool,
)
from cachekill.errors import ConfigError


class TestParseBool:
    """Tests for boolean parsing helper."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (True, True),
            (False, False),
            ("true", True),
            ("TRUE", True),
            ("yes", True),
            ("on", True),
            ("1", True),
            ("false", False),
            ("no", False),
            ("off", False),
            ("0", False),
            ("random", False),  # Non-standard strings are False
            ("", False),
        ],
    )
    def test_parse_bool_values(self, value: bool | str, expected: bool) -> None:
        """Test parsing various boolean representations."""
        assert parse_bool(value, False) == expected

    def test_parse_bool_none_uses_default(self) -> None:
        """Test that None returns the default value."""
        assert parse_bool(None, True) is True
        assert parse_bool(None, False) is False

    def test_parse_bool_integer(self) -> None:
        """Test parsing integer values."""
        assert parse_bool(1, False) is True
        assert parse_bool(0, True) is False


class TestConfigDefaults:
    """Tests for default configuration values."""

    def test_default_values(self, tmp_path: Path) -> None:
        """Test that defaults are sensible."""
        config = CacheKillConfig(project_root=tmp_path)

        assert config.lang is LanguageFilter.AUTO
        assert config.stale_days == 14
        assert config.safe_delete is True
        assert config.all_caches is False
        assert config.include_global is True
        assert config.include_paths == ()
        assert config.exclude_paths == DEFAULT_EXCLUDE_PATTERNS
        assert config.backup_retention_days == 7
        assert config.inspect_workers == 8
        assert config.log_level == "INFO"
        assert config.log_file is None
        assert not (config.npx or config.js_pm or config.huggingface or config.torch)

    def test_backup_root_relative_to_project(self, tmp_path: Path) -> None:
        """Test that the default backup root lives in the project root."""
        config = CacheKillConfig(project_root=tmp_path)
        assert config.backup_root == tmp_path / ".cachekill-backup"

    def test_backup_root_absolute(self, tmp_path: Path) -> None:
        """Test that an absolute backup directory is used as is."""
        config = CacheKillConfig(project_root=tmp_path, backup_dir=tmp_path / "elsewhere")
        assert config.backup_root == tmp_path / "elsewhere"

    def test_frozen(self, tmp_path: Path) -> None:
        """Test that the config cannot be mutated after construction."""
        config = CacheKillConfig(project_root=tmp_path)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.stale_days = 1  # type: ignore[misc]


class TestConfigLoad:
    """Tests for loading configuration from file."""

    def _write(self, path: Path, data: object) -> Path:
        with path.open("w") as f:
            yaml.dump(data, f)
        return path

    def test_load_nonexistent_file(self, tmp_path: Path) -> None:
        """Test loading returns defaults when file doesn't exist."""
        config = CacheKillConfig.load(tmp_path / "nonexistent.yaml", tmp_path)

        assert config.project_root == tmp_path
        assert config.stale_days == 14

    def test_load_empty_file(self, tmp_path: Path) -> None:
        """Test loading empty file returns defaults."""
        config_path = tmp_path / "empty.yaml"
        config_path.touch()

        assert CacheKillConfig.load(config_path, tmp_path).safe_delete is True

    def test_load_full_config(self, tmp_path: Path) -> None:
        """Test loading every supported key."""
        config_path = self._write(
            tmp_path / "full.yaml",
            {
                "lang": "python",
                "stale_days": 30,
                "safe_delete": "no",
                "backup_dir": "/srv/backups",
                "include_paths": ["build/*"],
                "exclude_paths": ["keep"],
                "all": True,
                "include_global": False,
                "backup_retention_days": 3,
                "inspect_workers": 2,
                "sources": {"npx": True, "js_pm": "yes", "huggingface": True, "torch": False, "hf_model": "org/m"},
                "logging": {"level": "debug", "file": "/var/log/ck.log"},
            },
        )

        config = CacheKillConfig.load(config_path, tmp_path)

        assert config.lang is LanguageFilter.PYTHON
        assert config.stale_days == 30
        assert config.safe_delete is False
        assert config.backup_root == Path("/srv/backups")
        assert config.include_paths == ("build/*",)
        assert config.exclude_paths == ("keep",)
        assert config.all_caches is True
        assert config.include_global is False
        assert config.backup_retention_days == 3
        assert config.inspect_workers == 2
        assert config.npx is True
        assert config.js_pm is True
        assert config.huggingface is True
        assert config.torch is False
        assert config.hf_model == "org/m"
        assert config.log_level == "DEBUG"
        assert config.log_file == Path("/var/log/ck.log")

    def test_load_searches_parents(self, tmp_path: Path) -> None:
        """Test that the config file is found above the project root."""
        self._write(tmp_path / CONFIG_FILENAME, {"stale_days": 5})
        project = tmp_path / "project" / "sub"
        project.mkdir(parents=True)

        config = CacheKillConfig.load(project_root=project)

        assert config.stale_days == 5
        assert config.project_root == project

    def test_load_invalid_yaml_raises(self, tmp_path: Path) -> None:
        """Test that malformed YAML raises ConfigError."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("include_paths: [\n  unclosed")

        with pytest.raises(ConfigError, match="Failed to read"):
            CacheKillConfig.load(config_path, tmp_path)

    def test_load_non_mapping_raises(self, tmp_path: Path) -> None:
        """Test that a top-level list is rejected."""
        config_path = tmp_path / "list.yaml"
        config_path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="Expected a mapping"):
            CacheKillConfig.load(config_path, tmp_path)

    def test_load_invalid_lang_raises(self, tmp_path: Path) -> None:
        """Test that an unknown language filter raises ConfigError."""
        config_path = self._write(tmp_path / "lang.yaml", {"lang": "cobol"})

        with pytest.raises(ConfigError, match="Unknown language filter"):
            CacheKillConfig.load(config_path, tmp_path)

    def test_load_invalid_number_raises(self, tmp_path: Path) -> None:
        """Test that a non-numeric stale_days raises ConfigError."""
        config_path = self._write(tmp_path / "num.yaml", {"stale_days": "soon"})

        with pytest.raises(ConfigError):
            CacheKillConfig.load(config_path, tmp_path)


class TestConfigSave:
    """Tests for saving configuration."""

    def test_save_and_reload(self, tmp_path: Path) -> None:
        """Test that a saved config loads back with the same values."""
        config = CacheKillConfig(
            project_root=tmp_path,
            lang=LanguageFilter.RUST,
            stale_days=21,
            safe_delete=False,
            exclude_paths=("vendor",),
            npx=True,
        )

        saved = config.save()
        loaded = CacheKillConfig.load(saved, tmp_path)

        assert saved == tmp_path / CONFIG_FILENAME
        assert loaded.lang is LanguageFilter.RUST
        assert loaded.stale_days == 21
        assert loaded.safe_delete is False
        assert loaded.exclude_paths == ("vendor",)
        assert loaded.npx is True
        assert loaded.log_file is None

    def test_save_creates_parent(self, tmp_path: Path) -> None:
        """Test that save creates missing parent directories."""
        target = tmp_path / "nested" / "dir" / "cfg.yaml"
        CacheKillConfig(project_root=tmp_path).save(target)
        assert target.exists()


class TestOverrides:
    """Tests for layering command line values."""

    def test_none_values_ignored(self, tmp_path: Path) -> None:
        """Test that None leaves the loaded value in place."""
        config = CacheKillConfig(project_root=tmp_path, stale_days=30)
        assert config.with_overrides(stale_days=None).stale_days == 30

    def test_false_values_applied(self, tmp_path: Path) -> None:
        """Test that False is an override, not a missing value."""
        config = CacheKillConfig(project_root=tmp_path)
        updated = config.with_overrides(safe_delete=False, include_global=False)

        assert updated.safe_delete is False
        assert updated.include_global is False
        assert config.safe_delete is True


class TestPathFilters:
    """Tests for include/exclude pattern matching."""

    @pytest.fixture
    def config(self, tmp_path: Path) -> CacheKillConfig:
        return CacheKillConfig(project_root=tmp_path / "proj", home_dir=tmp_path / "home")

    def test_default_excludes(self, config: CacheKillConfig) -> None:
        """Test the default exclude patterns."""
        root = config.project_root
        assert config.should_exclude_path(root / ".git")
        assert config.should_exclude_path(root / ".cachekill-backup")
        assert config.should_exclude_path(root / "node_modules" / ".cache")
        assert not config.should_exclude_path(root / "node_modules")

    def test_glob_crosses_separators(self, config: CacheKillConfig) -> None:
        """Test that * matches across path separators."""
        assert config.matches_any(config.project_root / "a" / "b" / "dist", ["a/*"])

    def test_absolute_pattern(self, config: CacheKillConfig) -> None:
        """Test that patterns may be absolute."""
        path = config.project_root / "dist"
        assert config.matches_any(path, [f"{config.project_root}/*"])

    def test_home_pattern(self, config: CacheKillConfig) -> None:
        """Test that a leading ~ expands to the configured home."""
        assert config.matches_any(config.home_dir / ".npm", ["~/.npm"])
        assert not config.matches_any(config.project_root / ".npm", ["~/.npm"])

    def test_include_vacuous_when_empty(self, config: CacheKillConfig) -> None:
        """Test that everything is included when no include patterns exist."""
        assert config.should_include_path(config.project_root / "anything")

    def test_should_process_path(self, config: CacheKillConfig) -> None:
        """Test include and exclude together."""
        config = config.with_overrides(include_paths=("dist", "out"), exclude_paths=("out",))

        assert config.should_process_path(config.project_root / "dist")
        assert not config.should_process_path(config.project_root / "out")
        assert not config.should_process_path(config.project_root / "build")
