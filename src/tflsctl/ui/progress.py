"""Progress reporting for language server installation.

Provides a unified interface for reporting install progress to different
targets:
- CLI: Print to console with Rich formatting
- Callback: Forward events to another system
- Null: No-op
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from rich.console import Console


@dataclass
class ProgressEvent:
    """A progress increment reported by the installer."""

    title: str
    increment: int
    message: str
    total: int


class ProgressHandler(ABC):
    """Abstract base class for progress handlers."""

    @abstractmethod
    def start(self, title: str) -> None:
        """Signal that a tracked operation has started.

        Args:
            title: Human readable operation title.
        """

    @abstractmethod
    def advance(self, increment: int, message: str) -> None:
        """Report progress.

        Args:
            increment: Percentage points completed by this step.
            message: Description of the completed step.
        """

    @abstractmethod
    def finish(self, success: bool) -> None:
        """Signal that the operation has ended.

        Args:
            success: Whether the operation completed successfully.
        """


class NullProgressHandler(ProgressHandler):
    """No-op handler used when progress is not displayed."""

    def start(self, title: str) -> None:
        """No-op start."""
        pass

    def advance(self, increment: int, message: str) -> None:
        """No-op advance."""
        pass

    def finish(self, success: bool) -> None:
        """No-op finish."""
        pass


class CLIProgressHandler(ProgressHandler):
    """Console progress handler.

    Prints one status line per completed step, e.g.
    ``[Installing terraform-ls] 33% downloaded``.
    """

    def __init__(self, output: TextIO = sys.stderr, use_rich: bool = True):
        """Initialize CLIProgressHandler.

        Args:
            output: Output stream to write to (default: stderr).
            use_rich: Whether to use Rich for formatted output.
        """
        self._output = output
        self._console: Optional[Console] = Console(file=output) if use_rich else None
        self._title = ""
        self._total = 0

    def start(self, title: str) -> None:
        self._title = title
        self._total = 0
        self._print(f"[{title}] Starting...", "bold cyan")

    def advance(self, increment: int, message: str) -> None:
        self._total = min(100, self._total + increment)
        self._print(f"[{self._title}] {self._total}% {message}", "cyan")

    def finish(self, success: bool) -> None:
        if success:
            self._print(f"[{self._title}] Done", "bold green")
        else:
            self._print(f"[{self._title}] Failed", "bold red")

    def _print(self, message: str, style: str) -> None:
        if self._console:
            self._console.print(message, style=style, markup=False, highlight=False)
        else:
            print(message, file=self._output, flush=True)


class CallbackProgressHandler(ProgressHandler):
    """Handler that forwards progress to callbacks."""

    def __init__(
        self,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
        on_finish: Optional[Callable[[bool], None]] = None,
    ):
        """Initialize CallbackProgressHandler.

        Args:
            on_event: Callback for each progress increment.
            on_finish: Callback when the operation ends.
        """
        self._on_event = on_event
        self._on_finish = on_finish
        self._title = ""
        self._total = 0

    def start(self, title: str) -> None:
        self._title = title
        self._total = 0

    def advance(self, increment: int, message: str) -> None:
        self._total = min(100, self._total + increment)
        if self._on_event:
            self._on_event(
                ProgressEvent(
                    title=self._title,
                    increment=increment,
                    message=message,
                    total=self._total,
                )
            )

    def finish(self, success: bool) -> None:
        if self._on_finish:
            self._on_finish(success)
