"""Tests for tflsctl.config.loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from tflsctl.bootstrap.releases import RELEASES_URL
from tflsctl.config.loader import (
    ConfigError,
    dict_to_config,
    expand_env_vars,
    find_project_config,
    global_config_path,
    load_config,
    load_yaml_file,
    merge_configs,
    migrate_legacy_settings,
    set_language_server_enabled,
    update_global_config,
)


def _write_yaml(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestExpandEnvVars:
    """Tests for expand_env_vars function."""

    def test_expands_simple_env_var(self) -> None:
        with patch.dict(os.environ, {"TF_LS_PATH": "/opt/terraform-ls"}):
            assert expand_env_vars("${TF_LS_PATH}") == "/opt/terraform-ls"

    def test_default_used_when_unset(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert expand_env_vars("${UNSET_VAR:-serve}") == "serve"

    def test_unset_without_default_is_empty(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert expand_env_vars("${UNSET_VAR}") == ""

    def test_expands_nested_structures(self) -> None:
        with patch.dict(os.environ, {"MOD": "modules/vpc"}):
            data = {"root_modules": ["${MOD}"], "language_server": {"path_to_binary": "${MOD}/bin"}}
            result = expand_env_vars(data)
            assert result["root_modules"] == ["modules/vpc"]
            assert result["language_server"]["path_to_binary"] == "modules/vpc/bin"

    def test_preserves_non_string_values(self) -> None:
        data = {"external": True, "count": 3, "none": None}
        assert expand_env_vars(data) == data


class TestMergeConfigs:
    """Tests for merge_configs function."""

    def test_overlay_wins_for_scalars(self) -> None:
        assert merge_configs({"releases_url": "a"}, {"releases_url": "b"}) == {"releases_url": "b"}

    def test_lists_are_replaced(self) -> None:
        result = merge_configs({"ignore": ["a/**"]}, {"ignore": ["b/**"]})
        assert result == {"ignore": ["b/**"]}

    def test_dicts_are_merged(self) -> None:
        base = {"language_server": {"external": True, "args": ["serve"]}}
        overlay = {"language_server": {"path_to_binary": "/bin/ls"}}
        result = merge_configs(base, overlay)
        assert result == {"language_server": {"external": True, "args": ["serve"], "path_to_binary": "/bin/ls"}}

    def test_does_not_mutate_base(self) -> None:
        base = {"root_modules": ["a"]}
        merge_configs(base, {"root_modules": ["b"]})
        assert base == {"root_modules": ["a"]}


class TestMigrateLegacySettings:
    """Tests for migrate_legacy_settings."""

    def test_enabled_is_replaced(self, caplog: pytest.LogCaptureFixture) -> None:
        data = {"language_server": {"enabled": False, "args": ["serve", "-tcp"], "path_to_binary": "/x"}}
        with caplog.at_level(logging.WARNING, logger="tflsctl"):
            result = migrate_legacy_settings(data, "config.yml")

        assert result["language_server"] == {"external": True, "args": ["serve"], "path_to_binary": "/x"}
        assert "legacy" in caplog.text
        # Input is left untouched
        assert "enabled" in data["language_server"]

    def test_current_settings_unchanged(self) -> None:
        data = {"language_server": {"external": False}}
        assert migrate_legacy_settings(data, "config.yml") is data

    def test_non_mapping_ignored(self) -> None:
        data = {"language_server": "yes"}
        assert migrate_legacy_settings(data, "config.yml") is data


class TestLoadYamlFile:
    """Tests for load_yaml_file."""

    def test_empty_file(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "empty.yml", "")
        assert load_yaml_file(path) == {}

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "list.yml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_yaml_file(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "bad.yml", "language_server: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)


class TestFindProjectConfig:
    """Tests for find_project_config."""

    def test_prefers_dotfile(self, tmp_path: Path) -> None:
        _write_yaml(tmp_path / "tflsctl.yml", "")
        _write_yaml(tmp_path / ".tflsctl.yml", "")
        assert find_project_config(tmp_path) == tmp_path / ".tflsctl.yml"

    def test_none_when_missing(self, tmp_path: Path) -> None:
        assert find_project_config(tmp_path) is None


class TestDictToConfig:
    """Tests for dict_to_config."""

    def test_defaults(self) -> None:
        config = dict_to_config({})
        assert config.enabled is True
        assert config.language_server.args == ["serve"]
        assert config.custom_binary() is None
        assert config.releases_url == RELEASES_URL

    def test_full(self) -> None:
        config = dict_to_config({
            "language_server": {
                "external": False,
                "path_to_binary": "/usr/local/bin/terraform-ls",
                "args": ["serve", "-log-file=ls.log"],
                "install_dir": "/opt/ls",
            },
            "root_modules": ["modules/vpc"],
            "ignore": ["examples/**"],
            "releases_url": "https://mirror.example/terraform-ls",
        })
        assert config.enabled is False
        assert config.custom_binary() == Path("/usr/local/bin/terraform-ls")
        assert config.language_server.args == ["serve", "-log-file=ls.log"]
        assert config.install_dir(Path("/default")) == Path("/opt/ls")
        assert config.initialization_options() == {"rootModulePaths": ["modules/vpc"]}
        assert config.ignore == ["examples/**"]
        assert config.releases_url == "https://mirror.example/terraform-ls"

    def test_wrong_types_fall_back(self) -> None:
        config = dict_to_config({
            "language_server": {"external": "yes", "args": "serve"},
            "root_modules": "modules/vpc",
        })
        assert config.enabled is True
        assert config.language_server.args == ["serve"]
        assert config.root_modules == []


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_defaults_without_files(self, tmp_path: Path) -> None:
        config = load_config(project_root=tmp_path)
        assert config.enabled is True
        assert config.sources == []

    def test_global_then_project_then_cli(self, tmp_path: Path) -> None:
        _write_yaml(
            global_config_path(),
            "language_server:\n  external: false\n  args: [serve]\nroot_modules: [global]\n",
        )
        project = tmp_path / "project"
        _write_yaml(project / ".tflsctl.yml", "root_modules: [project]\n")

        config = load_config(
            project_root=project,
            cli_overrides={"language_server": {"path_to_binary": "/cli/terraform-ls"}},
        )

        assert config.enabled is False
        assert config.root_modules == ["project"]
        assert config.custom_binary() == Path("/cli/terraform-ls")
        assert [s.split(":")[0] for s in config.sources] == ["global", "project", "cli"]

    def test_custom_config_replaces_project(self, tmp_path: Path) -> None:
        project = tmp_path / "project"
        _write_yaml(project / ".tflsctl.yml", "root_modules: [project]\n")
        custom = _write_yaml(tmp_path / "custom.yml", "root_modules: [custom]\n")

        config = load_config(project_root=project, cli_config_path=custom)
        assert config.root_modules == ["custom"]
        assert config.sources == [f"custom:{custom}"]

    def test_missing_custom_config(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(cli_config_path=tmp_path / "nope.yml")

    def test_invalid_project_yaml(self, tmp_path: Path) -> None:
        _write_yaml(tmp_path / ".tflsctl.yml", "root_modules: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(project_root=tmp_path)

    def test_broken_global_config_only_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        _write_yaml(global_config_path(), "- not\n- a mapping\n")
        with caplog.at_level(logging.WARNING, logger="tflsctl"):
            config = load_config(project_root=tmp_path)
        assert config.enabled is True
        assert "Failed to load global config" in caplog.text

    def test_legacy_project_setting_migrated(self, tmp_path: Path) -> None:
        _write_yaml(tmp_path / ".tflsctl.yml", "language_server:\n  enabled: false\n  args: [serve, -tcp]\n")
        config = load_config(project_root=tmp_path)
        assert config.enabled is True
        assert config.language_server.args == ["serve"]


class TestUpdateGlobalConfig:
    """Tests for persisting settings to the global config."""

    def test_creates_file(self) -> None:
        path = update_global_config({"root_modules": ["a"]})
        assert path == global_config_path()
        assert yaml.safe_load(path.read_text()) == {"root_modules": ["a"]}

    def test_preserves_other_settings(self) -> None:
        _write_yaml(global_config_path(), "language_server:\n  args: [serve, -tcp]\nignore: [x]\n")
        set_language_server_enabled(False)

        data = yaml.safe_load(global_config_path().read_text())
        assert data == {"language_server": {"args": ["serve", "-tcp"], "external": False}, "ignore": ["x"]}

    def test_enable_flag_round_trips_through_load(self, tmp_path: Path) -> None:
        set_language_server_enabled(False)
        assert load_config(project_root=tmp_path).enabled is False
        set_language_server_enabled(True)
        assert load_config(project_root=tmp_path).enabled is True
