"""User prompts raised during install and lifecycle management.

The installer and the lifecycle manager only talk to the :class:`Prompter`
interface. Confirmations are coroutines because both callers run inside an
event loop. The console implementation asks with questionary and prints
with Rich; the non-interactive one answers from fixed settings.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import Optional, TextIO

import questionary
from questionary import Style
from rich.console import Console

# Custom questionary style
STYLE = Style([
    ("qmark", "fg:cyan bold"),
    ("question", "bold"),
    ("answer", "fg:cyan"),
    ("pointer", "fg:cyan bold"),
    ("highlighted", "fg:cyan bold"),
    ("instruction", "fg:gray"),
])


class Prompter(ABC):
    """Interface to the user."""

    @abstractmethod
    async def confirm_install(self, version: str, installed_version: str = "") -> bool:
        """Ask whether a language server release should be installed.

        Args:
            version: Release about to be installed.
            installed_version: Currently installed version, empty if none.

        Returns:
            True to install, False to skip.
        """

    @abstractmethod
    async def confirm_reload(self) -> bool:
        """Tell the user that a reload is needed to apply settings.

        Returns:
            True if the user chose to reload now.
        """

    @abstractmethod
    def show_installed(self, version: str, changelog_url: str) -> None:
        """Announce a completed install with a link to its changelog."""

    @abstractmethod
    def show_error(self, message: str) -> None:
        """Show an error message."""


class ConsolePrompter(Prompter):
    """Interactive terminal prompts."""

    def __init__(self, output: TextIO = sys.stderr, assume_yes: bool = False):
        """Initialize ConsolePrompter.

        Args:
            output: Stream for messages.
            assume_yes: Accept every confirmation without asking.
        """
        self._console = Console(file=output)
        self._assume_yes = assume_yes

    async def confirm_install(self, version: str, installed_version: str = "") -> bool:
        if self._assume_yes:
            return True
        message = f"A new language server release is available: {version}. Install now?"
        if installed_version:
            message = f"A new language server release is available: {version} (installed: {installed_version}). Install now?"
        answer = await questionary.confirm(message, default=True, style=STYLE).ask_async()
        return bool(answer)

    async def confirm_reload(self) -> bool:
        if self._assume_yes:
            return True
        answer = await questionary.confirm(
            "Reload to apply language server changes?",
            default=True,
            style=STYLE,
        ).ask_async()
        return bool(answer)

    def show_installed(self, version: str, changelog_url: str) -> None:
        self._console.print(f"[green]Installed terraform-ls {version}.[/green]")
        self._console.print(f"View changelog: [link={changelog_url}]{changelog_url}[/link]")

    def show_error(self, message: str) -> None:
        self._console.print(f"[bold red]Error:[/bold red] {message}", highlight=False)


class NonInteractivePrompter(Prompter):
    """Prompter for unattended runs.

    Confirmations return the configured answers; messages go to the logger's
    output stream as plain text.
    """

    def __init__(
        self,
        install: bool = True,
        reload: bool = False,
        output: Optional[TextIO] = None,
    ):
        self._install = install
        self._reload = reload
        self._output = output

    async def confirm_install(self, version: str, installed_version: str = "") -> bool:
        return self._install

    async def confirm_reload(self) -> bool:
        return self._reload

    def show_installed(self, version: str, changelog_url: str) -> None:
        if self._output:
            print(f"Installed terraform-ls {version}. Changelog: {changelog_url}", file=self._output)

    def show_error(self, message: str) -> None:
        if self._output:
            print(f"Error: {message}", file=self._output)
