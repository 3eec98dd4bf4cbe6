"""Configuration validation for tflsctl.

Validates configuration keys and types and warns on unknown keys.
Never raises; problems are returned and logged as warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import get_close_matches
from typing import Any, Dict, List, Optional, Set

from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

# Valid top-level keys
VALID_TOP_LEVEL_KEYS: Set[str] = {
    "language_server",
    "root_modules",
    "ignore",
    "releases_url",
}

# Valid keys under language_server
VALID_LANGUAGE_SERVER_KEYS: Set[str] = {
    "external",
    "path_to_binary",
    "args",
    "install_dir",
}


@dataclass
class ConfigValidationWarning:
    """A validation warning for configuration."""

    message: str
    source: str
    key: Optional[str] = None
    suggestion: Optional[str] = None


def validate_config(
    data: Dict[str, Any],
    source: str,
) -> List[ConfigValidationWarning]:
    """Validate configuration dictionary.

    Args:
        data: Config dictionary to validate.
        source: Source file path for warning messages.

    Returns:
        List of validation warnings.
    """
    warnings: List[ConfigValidationWarning] = []

    if not isinstance(data, dict):
        warnings.append(ConfigValidationWarning(
            message=f"Config must be a mapping, got {type(data).__name__}",
            source=source,
        ))
        return warnings

    for key in data.keys():
        if key not in VALID_TOP_LEVEL_KEYS:
            warnings.append(_unknown_key(key, VALID_TOP_LEVEL_KEYS, source))

    for key in ("root_modules", "ignore"):
        value = data.get(key)
        if value is not None and not _is_string_list(value):
            warnings.append(ConfigValidationWarning(
                message=f"'{key}' must be a list of strings",
                source=source,
                key=key,
            ))

    releases_url = data.get("releases_url")
    if releases_url is not None and not isinstance(releases_url, str):
        warnings.append(ConfigValidationWarning(
            message=f"'releases_url' must be a string, got {type(releases_url).__name__}",
            source=source,
            key="releases_url",
        ))

    language_server = data.get("language_server")
    if language_server is not None:
        if not isinstance(language_server, dict):
            warnings.append(ConfigValidationWarning(
                message=f"'language_server' must be a mapping, got {type(language_server).__name__}",
                source=source,
                key="language_server",
            ))
        else:
            warnings.extend(_validate_language_server(language_server, source))

    for warning in warnings:
        _log_warning(warning)
    return warnings


def _validate_language_server(data: Dict[str, Any], source: str) -> List[ConfigValidationWarning]:
    warnings: List[ConfigValidationWarning] = []

    for key in data.keys():
        if key not in VALID_LANGUAGE_SERVER_KEYS:
            warnings.append(
                _unknown_key(key, VALID_LANGUAGE_SERVER_KEYS, source, prefix="language_server.")
            )

    external = data.get("external")
    if external is not None and not isinstance(external, bool):
        warnings.append(ConfigValidationWarning(
            message="'language_server.external' must be a boolean",
            source=source,
            key="language_server.external",
        ))

    for key in ("path_to_binary", "install_dir"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            warnings.append(ConfigValidationWarning(
                message=f"'language_server.{key}' must be a string",
                source=source,
                key=f"language_server.{key}",
            ))

    args = data.get("args")
    if args is not None and not _is_string_list(args):
        warnings.append(ConfigValidationWarning(
            message="'language_server.args' must be a list of strings",
            source=source,
            key="language_server.args",
        ))

    return warnings


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _unknown_key(key: str, valid_keys: Set[str], source: str, prefix: str = "") -> ConfigValidationWarning:
    return ConfigValidationWarning(
        message=f"Unknown key '{prefix}{key}'",
        source=source,
        key=f"{prefix}{key}",
        suggestion=_suggest_key(key, valid_keys),
    )


def _suggest_key(invalid_key: str, valid_keys: Set[str]) -> Optional[str]:
    """Suggest a valid key for a potential typo.

    Args:
        invalid_key: The invalid key entered.
        valid_keys: Set of valid keys.

    Returns:
        Closest matching valid key, or None if no good match.
    """
    matches = get_close_matches(invalid_key, list(valid_keys), n=1, cutoff=0.6)
    return matches[0] if matches else None


def _log_warning(warning: ConfigValidationWarning) -> None:
    """Log a validation warning."""
    msg = f"{warning.message} in {warning.source}"
    if warning.suggestion:
        msg += f" (did you mean '{warning.suggestion}'?)"
    LOGGER.warning(msg)
