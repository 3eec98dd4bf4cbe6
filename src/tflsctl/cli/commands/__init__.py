"""CLI commands package.

This module provides the base Command class and exports all command implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from argparse import Namespace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tflsctl.config.models import TflsctlConfig


class Command(ABC):
    """Base class for CLI commands.

    All CLI commands should inherit from this class and implement
    the execute method.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Command identifier.

        Returns:
            String name of the command.
        """

    @abstractmethod
    def execute(self, args: Namespace, config: "TflsctlConfig | None" = None) -> int:
        """Execute the command.

        Args:
            args: Parsed command-line arguments.
            config: Optional tflsctl configuration.

        Returns:
            Exit code (0 for success, non-zero for error).
        """


# Import command implementations for convenience
# ruff: noqa: E402
from tflsctl.cli.commands.install import InstallCommand
from tflsctl.cli.commands.status import StatusCommand
from tflsctl.cli.commands.toggle import ToggleCommand
from tflsctl.cli.commands.serve import ServeCommand

__all__ = [
    "Command",
    "InstallCommand",
    "StatusCommand",
    "ToggleCommand",
    "ServeCommand",
]
