"""Language server clients.

This package handles:
- Workspace roots and their outermost ancestors
- The registry of running clients, one per outermost root
- Spawning terraform-ls and speaking JSON-RPC over its stdio
- The lifecycle manager that reacts to workspace events
"""

from tflsctl.client.events import (
    ConfigurationChanged,
    DocumentOpened,
    LanguageServerToggled,
    LifecycleEvent,
    Shutdown,
    WorkspaceFoldersChanged,
)
from tflsctl.client.manager import ClientLifecycleManager
from tflsctl.client.process import ClientStartError, ClientState, LanguageServerClient
from tflsctl.client.registry import ClientRegistry
from tflsctl.client.workspace import Workspace, WorkspaceRoot, canonical_root_key, find_terraform_documents

__all__ = [
    "ClientLifecycleManager",
    "ClientRegistry",
    "ClientStartError",
    "ClientState",
    "LanguageServerClient",
    "Workspace",
    "WorkspaceRoot",
    "canonical_root_key",
    "find_terraform_documents",
    "LifecycleEvent",
    "DocumentOpened",
    "WorkspaceFoldersChanged",
    "ConfigurationChanged",
    "LanguageServerToggled",
    "Shutdown",
]
