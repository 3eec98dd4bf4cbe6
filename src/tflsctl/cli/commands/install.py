"""Install command implementation.

Install or upgrade terraform-ls with console prompts and progress.
"""

from __future__ import annotations

import asyncio
from argparse import Namespace
from typing import Callable

from tflsctl.bootstrap.errors import InstallError, UnsupportedPlatformError
from tflsctl.bootstrap.installer import InstallStatus, LanguageServerInstaller
from tflsctl.cli.commands import Command
from tflsctl.cli.config_bridge import ConfigBridge
from tflsctl.cli.exit_codes import (
    EXIT_INSTALL_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SUCCESS,
    EXIT_UNSUPPORTED_PLATFORM,
)
from tflsctl.config.models import TflsctlConfig
from tflsctl.core.logging import get_logger
from tflsctl.ui.progress import CLIProgressHandler
from tflsctl.ui.prompts import ConsolePrompter, Prompter

LOGGER = get_logger(__name__)


def installer_factory(config: TflsctlConfig, prompter: Prompter) -> Callable[[], LanguageServerInstaller]:
    """Factory for installers that report progress on the console."""

    def factory() -> LanguageServerInstaller:
        return LanguageServerInstaller(
            prompter,
            progress=CLIProgressHandler(),
            releases_url=config.releases_url,
        )

    return factory


def install_error_exit_code(error: InstallError) -> int:
    """Map an install failure to an exit code."""
    if isinstance(error, UnsupportedPlatformError):
        return EXIT_UNSUPPORTED_PLATFORM
    return EXIT_INSTALL_FAILURE


class InstallCommand(Command):
    """Installs or upgrades terraform-ls."""

    @property
    def name(self) -> str:
        """Command identifier."""
        return "install"

    def execute(self, args: Namespace, config: "TflsctlConfig | None" = None) -> int:
        """Execute the install command.

        Args:
            args: Parsed command-line arguments.
            config: tflsctl configuration.

        Returns:
            Exit code.
        """
        if config is None:
            LOGGER.error("Configuration is required for install command")
            return EXIT_INVALID_USAGE

        directory = ConfigBridge.install_dir(config)
        prompter = ConsolePrompter(assume_yes=getattr(args, "yes", False))
        installer = installer_factory(config, prompter)()

        if config.custom_binary() is not None:
            LOGGER.warning(
                f"Configured binary {config.custom_binary()} is used instead of the installed one"
            )

        try:
            result = asyncio.run(installer.install(directory))
        except InstallError as e:
            LOGGER.error(f"Installation failed: {e}")
            return install_error_exit_code(e)
        except KeyboardInterrupt:
            LOGGER.error("Installation interrupted")
            return EXIT_INSTALL_FAILURE

        if result.status == InstallStatus.UP_TO_DATE:
            print(f"terraform-ls {result.version} is up to date ({result.binary_path})")
        elif result.status == InstallStatus.DECLINED:
            print("Installation skipped.")
        else:
            print(f"terraform-ls {result.version} installed to {result.binary_path}")

        return EXIT_SUCCESS
