"""Configuration module for tflsctl.

Provides configuration file loading, parsing, and validation with support for:
- Project-level config (.tflsctl.yml)
- Global config (~/.tflsctl/config/config.yml)
- Environment variable expansion
"""

from tflsctl.config.models import LanguageServerConfig, TflsctlConfig
from tflsctl.config.loader import (
    ConfigError,
    find_global_config,
    find_project_config,
    load_config,
    set_language_server_enabled,
)
from tflsctl.config.validation import validate_config, ConfigValidationWarning

__all__ = [
    "TflsctlConfig",
    "LanguageServerConfig",
    "ConfigError",
    "load_config",
    "find_project_config",
    "find_global_config",
    "set_language_server_enabled",
    "validate_config",
    "ConfigValidationWarning",
]
