"""Unit tests for the config module.

Tests YAML configuration loading, environment variable overrides,
and path resolution.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from product_os.config import (
    DEFAULT_CONFIG,
    ConfigurationError,
    _deep_merge,
    _resolve_path,
    get_db_path,
    get_export_defaults,
    get_log_level,
    get_workspace_path,
    load_config,
)
from product_os.database import get_default_db_path
from product_os.export_system import ExportSystem

ENV_KEYS = ("PRODUCT_OS_CONFIG_PATH", "PRODUCT_OS_WORKSPACE", "PRODUCT_OS_DB_PATH")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's env vars and ~/.product-os/config.yaml."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    with patch("product_os.config.get_default_config_path", return_value=tmp_path / "absent.yaml"):
        yield


def _write_config(path: Path, data: dict) -> Path:
    path.write_text(yaml.dump(data))
    return path


class TestDeepMerge:
    """Tests for _deep_merge helper function."""

    def test_merge_nested_dicts(self):
        base = {"outer": {"a": 1, "b": 2}}
        override = {"outer": {"b": 3}}

        assert _deep_merge(base, override) == {"outer": {"a": 1, "b": 3}}

    def test_merge_does_not_modify_base(self):
        base = {"a": 1}
        original_base = base.copy()

        _deep_merge(base, {"b": 2})

        assert base == original_base


class TestResolvePath:
    """Tests for _resolve_path helper function."""

    def test_none(self, tmp_path):
        assert _resolve_path(None, tmp_path) is None

    def test_absolute_unchanged(self, tmp_path):
        assert _resolve_path("/abs/path", tmp_path) == Path("/abs/path")

    def test_relative_resolved(self, tmp_path):
        assert _resolve_path("sub/dir", tmp_path) == (tmp_path / "sub" / "dir").resolve()


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self):
        config = load_config()
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_file_overrides_defaults(self, tmp_path):
        path = _write_config(
            tmp_path / "config.yaml",
            {"export": {"default_mode": "full"}, "workspace": {"path": "/ws"}},
        )

        config = load_config(str(path))

        assert config["export"]["default_mode"] == "full"
        assert config["export"]["include_linked_context"] is True
        assert config["workspace"]["path"] == "/ws"

    def test_relative_paths_resolve_against_config_dir(self, tmp_path):
        path = _write_config(
            tmp_path / "config.yaml",
            {"workspace": {"path": "ws"}, "database": {"path": "data/po.db"}},
        )

        config = load_config(str(path))

        assert config["workspace"]["path"] == str((tmp_path / "ws").resolve())
        assert config["database"]["path"] == str((tmp_path / "data" / "po.db").resolve())

    def test_env_config_path(self, tmp_path, monkeypatch):
        path = _write_config(tmp_path / "env.yaml", {"logging": {"level": "DEBUG"}})
        monkeypatch.setenv("PRODUCT_OS_CONFIG_PATH", str(path))

        assert load_config()["logging"]["level"] == "DEBUG"

    def test_explicit_path_beats_env(self, tmp_path, monkeypatch):
        env_file = _write_config(tmp_path / "env.yaml", {"logging": {"level": "DEBUG"}})
        cli_file = _write_config(tmp_path / "cli.yaml", {"logging": {"level": "ERROR"}})
        monkeypatch.setenv("PRODUCT_OS_CONFIG_PATH", str(env_file))

        assert load_config(str(cli_file))["logging"]["level"] == "ERROR"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = _write_config(
            tmp_path / "config.yaml",
            {"workspace": {"path": "/from-file"}, "database": {"path": "/file.db"}},
        )
        monkeypatch.setenv("PRODUCT_OS_WORKSPACE", "/from-env")
        monkeypatch.setenv("PRODUCT_OS_DB_PATH", "/env.db")

        config = load_config(str(path))

        assert config["workspace"]["path"] == "/from-env"
        assert config["database"]["path"] == "/env.db"

    def test_missing_explicit_file_uses_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "nope.yaml")) == DEFAULT_CONFIG

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("export: [unclosed")

        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_invalid_default_file_ignored(self, tmp_path):
        bad = tmp_path / "default.yaml"
        bad.write_text("export: [unclosed")

        with patch("product_os.config.get_default_config_path", return_value=bad):
            assert load_config() == DEFAULT_CONFIG

    def test_default_file_used(self, tmp_path):
        default_file = _write_config(tmp_path / "default.yaml", {"export": {"default_mode": "full"}})

        with patch("product_os.config.get_default_config_path", return_value=default_file):
            assert load_config()["export"]["default_mode"] == "full"


class TestAccessors:
    """Tests for typed config accessors."""

    def test_db_path_default(self):
        assert get_db_path(load_config()) == get_default_db_path()

    def test_db_path_configured(self, monkeypatch):
        monkeypatch.setenv("PRODUCT_OS_DB_PATH", "/tmp/x.db")
        assert get_db_path(load_config()) == Path("/tmp/x.db")

    def test_workspace_unset(self):
        assert get_workspace_path(load_config()) is None

    def test_export_defaults(self):
        assert get_export_defaults(load_config()) == {
            "mode": "incremental",
            "include_linked_context": True,
        }

    def test_invalid_export_mode(self):
        with pytest.raises(ConfigurationError):
            get_export_defaults({"export": {"default_mode": "partial"}})

    def test_log_level(self):
        assert get_log_level(load_config()) == logging.WARNING
        assert get_log_level({"logging": {"level": "debug"}}) == logging.DEBUG
        assert get_log_level({"logging": {"level": "LOUD"}}) == logging.WARNING

    def test_export_system_from_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PRODUCT_OS_DB_PATH", str(tmp_path / "po.db"))
        monkeypatch.setenv("PRODUCT_OS_WORKSPACE", str(tmp_path / "ws"))

        exports = ExportSystem.from_config(load_config())

        assert exports.workspace_path == tmp_path / "ws"
        assert exports.store.db.db_path == tmp_path / "po.db"
