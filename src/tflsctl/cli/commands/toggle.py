"""Enable and disable commands."""

from __future__ import annotations

import asyncio
from argparse import Namespace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tflsctl.config.models import TflsctlConfig

from tflsctl.bootstrap.errors import InstallError
from tflsctl.cli.commands import Command
from tflsctl.cli.commands.install import install_error_exit_code, installer_factory
from tflsctl.cli.config_bridge import ConfigBridge
from tflsctl.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from tflsctl.client.events import LanguageServerToggled
from tflsctl.client.manager import ClientLifecycleManager
from tflsctl.client.workspace import Workspace
from tflsctl.core.logging import get_logger
from tflsctl.ui.prompts import ConsolePrompter

LOGGER = get_logger(__name__)


class ToggleCommand(Command):
    """Turns the language server on or off.

    Enabling persists the flag and installs terraform-ls. If the install
    fails the flag is persisted back to disabled.
    """

    def __init__(self, enabled: bool):
        self._enabled = enabled

    @property
    def name(self) -> str:
        """Command identifier."""
        return "enable" if self._enabled else "disable"

    def execute(self, args: Namespace, config: "TflsctlConfig | None" = None) -> int:
        """Execute the enable or disable command.

        Args:
            args: Parsed command-line arguments.
            config: tflsctl configuration.

        Returns:
            Exit code.
        """
        if config is None:
            LOGGER.error(f"Configuration is required for {self.name} command")
            return EXIT_INVALID_USAGE

        prompter = ConsolePrompter(assume_yes=getattr(args, "yes", False))
        manager = ClientLifecycleManager(
            config,
            Workspace(),
            prompter,
            ConfigBridge.install_dir(config),
            installer_factory=installer_factory(config, prompter),
        )

        try:
            asyncio.run(manager.handle(LanguageServerToggled(self._enabled)))
        except InstallError as e:
            LOGGER.error(f"Failed to enable the language server: {e}")
            return install_error_exit_code(e)

        print(f"Language server {'enabled' if self._enabled else 'disabled'}.")
        return EXIT_SUCCESS
