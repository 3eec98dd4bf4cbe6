"""Events processed by the client lifecycle manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple, Union

from tflsctl.client.workspace import WorkspaceRoot
from tflsctl.config.models import TflsctlConfig


@dataclass(frozen=True)
class DocumentOpened:
    """A Terraform document was opened."""

    path: Path


@dataclass(frozen=True)
class WorkspaceFoldersChanged:
    """Folders were added to or removed from the workspace."""

    added: Tuple[WorkspaceRoot, ...] = field(default_factory=tuple)
    removed: Tuple[WorkspaceRoot, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ConfigurationChanged:
    """Configuration was reloaded from disk."""

    previous: TflsctlConfig
    current: TflsctlConfig


@dataclass(frozen=True)
class LanguageServerToggled:
    """The language server was enabled or disabled."""

    enabled: bool


@dataclass(frozen=True)
class Shutdown:
    """Stop every client and leave the event loop."""


LifecycleEvent = Union[
    DocumentOpened,
    WorkspaceFoldersChanged,
    ConfigurationChanged,
    LanguageServerToggled,
    Shutdown,
]
