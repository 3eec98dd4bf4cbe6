"""Status command implementation."""

from __future__ import annotations

import asyncio
from argparse import Namespace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tflsctl.config.models import TflsctlConfig

from tflsctl.bootstrap.download import create_http_client
from tflsctl.bootstrap.errors import InstallError
from tflsctl.bootstrap.installer import default_user_agent
from tflsctl.bootstrap.paths import binary_name, get_tflsctl_home
from tflsctl.bootstrap.platform import get_platform_info
from tflsctl.bootstrap.releases import Release, check_latest
from tflsctl.bootstrap.validation import ToolStatus, probe_installed_version, validate_binary
from tflsctl.cli.commands import Command
from tflsctl.cli.config_bridge import ConfigBridge
from tflsctl.cli.exit_codes import EXIT_INSTALL_FAILURE, EXIT_INVALID_USAGE, EXIT_SUCCESS
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)


class StatusCommand(Command):
    """Shows platform, install location and language server status."""

    def __init__(self, version: str):
        """Initialize StatusCommand.

        Args:
            version: Current tflsctl version string.
        """
        self._version = version

    @property
    def name(self) -> str:
        """Command identifier."""
        return "status"

    def execute(self, args: Namespace, config: "TflsctlConfig | None" = None) -> int:
        """Execute the status command.

        Args:
            args: Parsed command-line arguments.
            config: tflsctl configuration.

        Returns:
            Exit code.
        """
        if config is None:
            LOGGER.error("Configuration is required for status command")
            return EXIT_INVALID_USAGE

        platform_info = get_platform_info()
        binary = config.custom_binary() or ConfigBridge.install_dir(config) / binary_name(platform_info.os)

        print(f"tflsctl version: {self._version}")
        print(f"Platform: {platform_info.os}-{platform_info.arch}")
        print(f"Home: {get_tflsctl_home()}")
        print(f"Language server: {'enabled' if config.enabled else 'disabled'}")
        print(f"Binary: {binary}{' (custom)' if config.custom_binary() else ''}")
        print(f"Arguments: {' '.join(config.language_server.args)}")

        status = validate_binary(binary)
        if status == ToolStatus.PRESENT:
            installed = asyncio.run(probe_installed_version(binary))
            print(f"Installed version: {installed.reported_version or 'unknown'}")
        elif status == ToolStatus.NOT_EXECUTABLE:
            print("Installed version: binary is not executable")
        else:
            print("Installed version: not installed")

        if config.sources:
            print(f"Config sources: {', '.join(config.sources)}")

        if getattr(args, "check_latest", False):
            try:
                latest = asyncio.run(self._check_latest(config.releases_url))
            except InstallError as e:
                LOGGER.error(f"Could not check for the latest release: {e}")
                return EXIT_INSTALL_FAILURE
            print(f"Latest release: {latest.name}")

        return EXIT_SUCCESS

    async def _check_latest(self, releases_url: str) -> Release:
        async with create_http_client() as client:
            return await check_latest(client, default_user_agent(), releases_url)
