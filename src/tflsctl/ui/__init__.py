"""User-facing collaborators: install progress and prompts."""

from tflsctl.ui.progress import (
    CallbackProgressHandler,
    CLIProgressHandler,
    NullProgressHandler,
    ProgressEvent,
    ProgressHandler,
)
from tflsctl.ui.prompts import ConsolePrompter, NonInteractivePrompter, Prompter

__all__ = [
    "CallbackProgressHandler",
    "CLIProgressHandler",
    "ConsolePrompter",
    "NonInteractivePrompter",
    "NullProgressHandler",
    "ProgressEvent",
    "ProgressHandler",
    "Prompter",
]
