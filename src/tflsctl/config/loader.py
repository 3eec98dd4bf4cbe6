"""Configuration file loading and merging.

Handles loading configuration from YAML files with:
- Project-level config (.tflsctl.yml in the first workspace root)
- Global config (~/.tflsctl/config/config.yml)
- Environment variable expansion (${VAR})
- Config merging with proper precedence
- Migration of legacy language server settings
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from tflsctl.bootstrap.paths import get_tflsctl_home
from tflsctl.bootstrap.releases import RELEASES_URL
from tflsctl.config.models import DEFAULT_SERVER_ARGS, LanguageServerConfig, TflsctlConfig
from tflsctl.config.validation import validate_config
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

# Config file names
PROJECT_CONFIG_NAMES = [".tflsctl.yml", ".tflsctl.yaml", "tflsctl.yml", "tflsctl.yaml"]
GLOBAL_CONFIG_NAME = "config.yml"

# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(Exception):
    """Configuration loading or parsing error."""

    pass


def load_config(
    project_root: Optional[Path] = None,
    cli_config_path: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
) -> TflsctlConfig:
    """Load configuration with proper precedence.

    Precedence (highest to lowest):
    1. CLI flags (cli_overrides)
    2. Custom config file (cli_config_path) OR project config (.tflsctl.yml)
    3. Global config (~/.tflsctl/config/config.yml)
    4. Built-in defaults

    Args:
        project_root: Directory searched for a project config file.
        cli_config_path: Optional path to custom config file (--config flag).
        cli_overrides: Dict of CLI flag overrides.

    Returns:
        Merged TflsctlConfig instance.

    Raises:
        ConfigError: If specified config file doesn't exist or has parse errors.
    """
    sources: List[str] = []
    merged: Dict[str, Any] = {}

    # Layer 1: Global config
    global_path = find_global_config()
    if global_path and global_path.exists():
        try:
            global_dict = migrate_legacy_settings(load_yaml_file(global_path), str(global_path))
            validate_config(global_dict, source=str(global_path))
            merged = merge_configs(merged, global_dict)
            sources.append(f"global:{global_path}")
            LOGGER.debug(f"Loaded global config from {global_path}")
        except (yaml.YAMLError, ConfigError) as e:
            LOGGER.warning(f"Failed to load global config: {e}")

    # Layer 2: Project or custom config
    if cli_config_path:
        if not cli_config_path.exists():
            raise ConfigError(f"Config file not found: {cli_config_path}")
        merged = _merge_file(merged, cli_config_path)
        sources.append(f"custom:{cli_config_path}")
        LOGGER.debug(f"Loaded custom config from {cli_config_path}")
    elif project_root is not None:
        project_path = find_project_config(project_root)
        if project_path:
            merged = _merge_file(merged, project_path)
            sources.append(f"project:{project_path}")
            LOGGER.debug(f"Loaded project config from {project_path}")

    # Layer 3: CLI overrides
    if cli_overrides:
        merged = merge_configs(merged, cli_overrides)
        sources.append("cli")
        LOGGER.debug("Applied CLI overrides")

    config = dict_to_config(merged)
    config._config_sources = sources

    LOGGER.debug(f"Config loaded from sources: {sources}")
    return config


def _merge_file(merged: Dict[str, Any], path: Path) -> Dict[str, Any]:
    try:
        data = migrate_legacy_settings(load_yaml_file(path), str(path))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    validate_config(data, source=str(path))
    return merge_configs(merged, data)


def find_project_config(project_root: Path) -> Optional[Path]:
    """Find config file in project root.

    Args:
        project_root: Directory to search in.

    Returns:
        Path to config file if found, None otherwise.
    """
    for name in PROJECT_CONFIG_NAMES:
        config_path = project_root / name
        if config_path.exists():
            return config_path
    return None


def global_config_path() -> Path:
    """Location of the global config file, whether or not it exists."""
    return get_tflsctl_home() / "config" / GLOBAL_CONFIG_NAME


def find_global_config() -> Optional[Path]:
    """Find global config at ~/.tflsctl/config/config.yml.

    Returns:
        Path to global config if it exists, None otherwise.
    """
    config_path = global_config_path()
    if config_path.exists():
        return config_path
    return None


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML config file.

    Performs environment variable expansion on string values.

    Args:
        path: Path to YAML file.

    Returns:
        Parsed dictionary.

    Raises:
        yaml.YAMLError: If YAML parsing fails.
        ConfigError: If the document is not a mapping.
        FileNotFoundError: If file doesn't exist.
    """
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    data = yaml.safe_load(content)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(data).__name__}")

    return expand_env_vars(data)


def migrate_legacy_settings(data: Dict[str, Any], source: str) -> Dict[str, Any]:
    """Rewrite pre-2.0 language server settings.

    ``language_server.enabled`` is replaced by ``external: true`` with the
    default ``serve`` arguments.
    """
    language_server = data.get("language_server")
    if not isinstance(language_server, dict) or "enabled" not in language_server:
        return data

    LOGGER.warning(f"Migrating legacy 'language_server.enabled' setting in {source}")
    migrated = {k: v for k, v in language_server.items() if k != "enabled"}
    migrated["external"] = True
    migrated["args"] = list(DEFAULT_SERVER_ARGS)
    return {**data, "language_server": migrated}


def expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports ${VAR} and ${VAR:-default} syntax.

    Args:
        data: Config data (dict, list, or scalar).

    Returns:
        Data with environment variables expanded.
    """
    if isinstance(data, dict):
        return {k: expand_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        return ENV_VAR_PATTERN.sub(_env_var_replacer, data)
    else:
        return data


def _env_var_replacer(match: re.Match[str]) -> str:
    """Replace environment variable reference with its value."""
    var_name = match.group(1)
    default_value = match.group(2)

    value = os.environ.get(var_name)
    if value is not None:
        return value
    if default_value is not None:
        return default_value

    LOGGER.warning(f"Environment variable ${var_name} is not set and has no default")
    return ""


def merge_configs(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two config dicts, with overlay taking precedence.

    Rules:
    - Scalar values: overlay replaces base
    - Lists: overlay replaces base (no merging)
    - Dicts: recursive merge

    Args:
        base: Base configuration dictionary.
        overlay: Overlay configuration to merge on top.

    Returns:
        Merged configuration dictionary.
    """
    result = base.copy()

    for key, overlay_value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(overlay_value, dict):
            result[key] = merge_configs(result[key], overlay_value)
        else:
            result[key] = overlay_value

    return result


def dict_to_config(data: Dict[str, Any]) -> TflsctlConfig:
    """Convert validated dict to typed TflsctlConfig.

    Values of the wrong type fall back to their defaults.

    Args:
        data: Configuration dictionary.

    Returns:
        Typed TflsctlConfig instance.
    """
    ls_data = data.get("language_server", {})
    if not isinstance(ls_data, dict):
        ls_data = {}

    defaults = LanguageServerConfig()
    external = ls_data.get("external", defaults.external)
    args = ls_data.get("args", defaults.args)

    language_server = LanguageServerConfig(
        external=external if isinstance(external, bool) else defaults.external,
        path_to_binary=str(ls_data.get("path_to_binary") or ""),
        args=[str(a) for a in args] if isinstance(args, list) else defaults.args,
        install_dir=str(ls_data.get("install_dir") or ""),
    )

    return TflsctlConfig(
        language_server=language_server,
        root_modules=_string_list(data.get("root_modules")),
        ignore=_string_list(data.get("ignore")),
        releases_url=str(data.get("releases_url") or RELEASES_URL),
    )


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def update_global_config(updates: Dict[str, Any]) -> Path:
    """Merge ``updates`` into the global config file and write it back.

    Used to persist the language server enable flag.

    Args:
        updates: Nested settings to store.

    Returns:
        Path of the written file.
    """
    path = global_config_path()
    current: Dict[str, Any] = {}
    if path.exists():
        try:
            current = load_yaml_file(path)
        except (yaml.YAMLError, ConfigError) as e:
            LOGGER.warning(f"Replacing unreadable global config {path}: {e}")

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(merge_configs(current, updates), f, default_flow_style=False, sort_keys=False)

    LOGGER.debug(f"Updated global config {path}")
    return path


def set_language_server_enabled(enabled: bool) -> None:
    """Persist the language server enable flag in the global config."""
    update_global_config({"language_server": {"external": enabled}})


def get_default_config() -> TflsctlConfig:
    """Get default configuration.

    Returns:
        Default TflsctlConfig instance.
    """
    return TflsctlConfig()
