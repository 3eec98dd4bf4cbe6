"""Bridge between CLI arguments and configuration models."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict

from tflsctl.bootstrap.paths import TflsctlPaths
from tflsctl.config.models import TflsctlConfig


class ConfigBridge:
    """Translates CLI arguments to configuration objects."""

    @staticmethod
    def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
        """Convert CLI arguments to config override dict.

        CLI arguments take precedence over config file values.

        Args:
            args: Parsed CLI arguments.

        Returns:
            Dictionary of config overrides.
        """
        overrides: Dict[str, Any] = {}
        language_server: Dict[str, Any] = {}

        # Use getattr with defaults for subcommand compatibility
        binary = getattr(args, "binary", None)
        if binary:
            language_server["path_to_binary"] = str(binary)

        install_dir = getattr(args, "dir", None)
        if install_dir:
            language_server["install_dir"] = str(install_dir)

        if language_server:
            overrides["language_server"] = language_server

        releases_url = getattr(args, "releases_url", None)
        if releases_url:
            overrides["releases_url"] = releases_url

        return overrides

    @staticmethod
    def install_dir(config: TflsctlConfig) -> Path:
        """Directory terraform-ls is installed into for ``config``."""
        return config.install_dir(TflsctlPaths.default().language_server_dir)

    @staticmethod
    def project_root(args: argparse.Namespace) -> Path:
        """Directory searched for the project config file.

        The first serve root when given, the working directory otherwise.
        """
        roots = getattr(args, "roots", None)
        if roots:
            return Path(roots[0]).resolve()
        return Path.cwd()
