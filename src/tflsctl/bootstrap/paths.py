"""Path management for the tflsctl home directory.

Handles the ~/.tflsctl directory structure and path resolution.
The language server binary lives under ~/.tflsctl/bin/terraform-ls/.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

# Default directory name under user home
DEFAULT_HOME_DIR_NAME = ".tflsctl"

# Environment variable to override home directory
TFLSCTL_HOME_ENV = "TFLSCTL_HOME"

LANGUAGE_SERVER_NAME = "terraform-ls"


def get_tflsctl_home() -> Path:
    """Get the tflsctl home directory path.

    Resolution order:
    1. TFLSCTL_HOME environment variable (if set)
    2. ~/.tflsctl (default)

    Returns:
        Path to the tflsctl home directory.
    """
    env_home = os.environ.get(TFLSCTL_HOME_ENV)
    if env_home:
        return Path(env_home)
    return Path.home() / DEFAULT_HOME_DIR_NAME


def binary_name(os_name: str) -> str:
    """Return the language server executable name for an OS.

    Args:
        os_name: Normalized OS name (e.g., 'linux', 'windows').
    """
    if os_name == "windows":
        return f"{LANGUAGE_SERVER_NAME}.exe"
    return LANGUAGE_SERVER_NAME


@dataclass
class TflsctlPaths:
    """Manages paths within the tflsctl home directory.

    Directory structure:
        ~/.tflsctl/
            bin/
                terraform-ls/terraform-ls   - Installed language server
            config/config.yml               - Global configuration
            logs/                           - Debug/diagnostic logs
    """

    home: Path

    # Subdirectory names
    _BIN_DIR: ClassVar[str] = "bin"
    _CONFIG_DIR: ClassVar[str] = "config"
    _LOGS_DIR: ClassVar[str] = "logs"

    @classmethod
    def default(cls) -> "TflsctlPaths":
        """Create paths from the default tflsctl home."""
        return cls(get_tflsctl_home())

    @property
    def bin_dir(self) -> Path:
        """Directory containing installed binaries."""
        return self.home / self._BIN_DIR

    @property
    def config_dir(self) -> Path:
        """Directory for configuration files."""
        return self.home / self._CONFIG_DIR

    @property
    def logs_dir(self) -> Path:
        """Directory for log files."""
        return self.home / self._LOGS_DIR

    @property
    def language_server_dir(self) -> Path:
        """Default install directory for terraform-ls."""
        return self.bin_dir / LANGUAGE_SERVER_NAME

    def ensure_directories(self) -> None:
        """Create all required directories if they don't exist."""
        for directory in (self.home, self.bin_dir, self.config_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)
