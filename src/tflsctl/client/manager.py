"""Client lifecycle management.

One :class:`ClientLifecycleManager` owns the registry of running language
server clients. Events are queued with :meth:`dispatch` and handled one at a
time by :meth:`run`, so the registry is only ever mutated by one handler.
"""

from __future__ import annotations

import asyncio
import dataclasses
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from tflsctl.bootstrap.errors import InstallError
from tflsctl.bootstrap.installer import InstallStatus, LanguageServerInstaller
from tflsctl.bootstrap.validation import ToolStatus, validate_binary
from tflsctl.client.events import (
    ConfigurationChanged,
    DocumentOpened,
    LanguageServerToggled,
    LifecycleEvent,
    Shutdown,
    WorkspaceFoldersChanged,
)
from tflsctl.client.process import ClientStartError, LanguageServerClient
from tflsctl.client.registry import ClientRegistry
from tflsctl.client.workspace import Workspace, WorkspaceRoot
from tflsctl.config.loader import set_language_server_enabled
from tflsctl.config.models import TflsctlConfig
from tflsctl.core.logging import get_logger
from tflsctl.ui.prompts import Prompter

LOGGER = get_logger(__name__)

ClientFactory = Callable[[Path, List[str], WorkspaceRoot, Dict[str, Any]], LanguageServerClient]
InstallerFactory = Callable[[], LanguageServerInstaller]


class ClientLifecycleManager:
    """Starts and stops one language server client per outermost root."""

    def __init__(
        self,
        config: TflsctlConfig,
        workspace: Workspace,
        prompter: Prompter,
        install_dir: Path,
        installer_factory: Optional[InstallerFactory] = None,
        client_factory: ClientFactory = LanguageServerClient,
        persist_enabled: Callable[[bool], None] = set_language_server_enabled,
        on_reload: Optional[Callable[[], None]] = None,
    ):
        """Initialize ClientLifecycleManager.

        Args:
            config: Active configuration.
            workspace: Open workspace folders.
            prompter: Asked about installs and reloads, shown errors.
            install_dir: Directory terraform-ls is installed into.
            installer_factory: Creates the installer for one install attempt.
            client_factory: Creates a client for a root.
            persist_enabled: Stores the enable flag.
            on_reload: Called when the user accepts a reload.
        """
        self._config = config
        self._workspace = workspace
        self._prompter = prompter
        self._install_dir = install_dir
        self._installer_factory = installer_factory or (
            lambda: LanguageServerInstaller(prompter, releases_url=config.releases_url)
        )
        self._client_factory = client_factory
        self._persist_enabled = persist_enabled
        self._on_reload = on_reload

        self._registry: ClientRegistry[LanguageServerClient] = ClientRegistry()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._open_documents: Dict[Path, None] = {}
        self._binary: Optional[Path] = None
        self._installer: Optional[LanguageServerInstaller] = None

    @property
    def config(self) -> TflsctlConfig:
        return self._config

    @property
    def registry(self) -> ClientRegistry[LanguageServerClient]:
        return self._registry

    @property
    def binary_path(self) -> Optional[Path]:
        """Binary clients are started with, None until one is available."""
        return self._binary

    async def activate(self) -> None:
        """Install the language server and start clients for open documents.

        Does nothing while the language server is disabled.
        """
        if not self._config.enabled:
            LOGGER.info("Language server is disabled")
            return
        await self.install_then_start()

    async def install_then_start(self) -> None:
        """Make a binary available, then start a client per needed root.

        Raises:
            InstallError: If installation fails. No client is started.
        """
        binary = await self._install_language_server()
        if binary is None:
            return

        LOGGER.debug("Starting language server clients")
        for document in list(self._open_documents):
            await self._ensure_client(document)

    async def _install_language_server(self) -> Optional[Path]:
        custom = self._config.custom_binary()
        if custom is not None:
            LOGGER.info(f"Using custom language server binary {custom}")
            self._binary = custom
            return custom

        LOGGER.info(f"Installing language server to {self._install_dir}")
        await self.stop_all()

        installer = self._installer_factory()
        self._installer = installer
        try:
            result = await installer.install(self._install_dir)
        except InstallError as e:
            self._binary = None
            LOGGER.error(f"Unable to install language server: {e}")
            self._prompter.show_error(str(e))
            raise
        finally:
            self._installer = None

        if result.status == InstallStatus.DECLINED and validate_binary(result.binary_path) != ToolStatus.PRESENT:
            LOGGER.warning("Language server installation declined and no binary is installed")
            self._binary = None
            return None

        self._binary = result.binary_path
        return self._binary

    def cancel_install(self) -> None:
        """Cancel an install in progress, if any."""
        if self._installer is not None:
            self._installer.cancel()

    async def stop_all(self) -> None:
        """Stop every client, then clear the registry.

        Every stop is awaited even if some fail; failures are logged.
        """
        entries = self._registry.items()
        if not entries:
            return

        LOGGER.debug(f"Stopping {len(entries)} language server client(s)")
        results = await asyncio.gather(
            *(client.stop() for _, client in entries),
            return_exceptions=True,
        )
        for (key, _), result in zip(entries, results):
            if isinstance(result, BaseException):
                LOGGER.error(f"Failed to stop client for {key}: {result}")
        self._registry.clear()

    def dispatch(self, event: LifecycleEvent) -> None:
        """Queue an event for :meth:`run`."""
        self._queue.put_nowait(event)

    async def run(self) -> None:
        """Handle queued events one at a time until a Shutdown event."""
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            except (InstallError, ClientStartError) as e:
                LOGGER.error(f"Failed to handle {type(event).__name__}: {e}")
            finally:
                self._queue.task_done()
            if isinstance(event, Shutdown):
                return

    async def handle(self, event: LifecycleEvent) -> None:
        """Process a single event."""
        LOGGER.debug(f"Handling {type(event).__name__}")
        if isinstance(event, DocumentOpened):
            await self._on_document_opened(event.path)
        elif isinstance(event, WorkspaceFoldersChanged):
            await self._on_folders_changed(event)
        elif isinstance(event, ConfigurationChanged):
            await self._on_configuration_changed(event)
        elif isinstance(event, LanguageServerToggled):
            await self._on_toggled(event.enabled)
        elif isinstance(event, Shutdown):
            await self.deactivate()
        else:
            raise TypeError(f"Unknown lifecycle event: {event!r}")

    async def deactivate(self) -> None:
        """Cancel any install and stop all clients."""
        self.cancel_install()
        await self.stop_all()

    async def _on_document_opened(self, path: Path) -> None:
        document = Path(path).resolve()
        self._open_documents[document] = None

        if not self._config.enabled or self._binary is None:
            LOGGER.debug(f"No language server available for {document}")
            return
        await self._ensure_client(document)

    async def _ensure_client(self, document: Path) -> None:
        folder = self._workspace.folder_for(document)
        # Files outside the workspace folders are not served
        if folder is None:
            return

        root = self._workspace.outermost(folder)
        if root.key in self._registry:
            return

        if self._binary is None:
            raise RuntimeError("No language server binary to start a client with")
        LOGGER.info(f"Starting language server client for {root.name}")
        client = self._client_factory(
            self._binary,
            list(self._config.language_server.args),
            root,
            self._config.initialization_options(),
        )
        self._registry.add(root.key, client)
        try:
            await client.start()
        except ClientStartError as e:
            await client.stop()
            self._registry.remove(root.key)
            LOGGER.error(f"Failed to start language server for {root.name}: {e}")
            self._prompter.show_error(str(e))

    async def _on_folders_changed(self, event: WorkspaceFoldersChanged) -> None:
        self._workspace.remove_folders(event.removed)
        for folder in event.removed:
            client = self._registry.get(folder.key)
            if client is None:
                continue
            await client.stop()
            self._registry.remove(folder.key)

        self._workspace.add_folders(event.added)
        await self._stop_subsumed_clients()

        for document in list(self._open_documents):
            if self._workspace.folder_for(document) is None:
                del self._open_documents[document]
            elif self._config.enabled and self._binary is not None:
                await self._ensure_client(document)

    async def _stop_subsumed_clients(self) -> None:
        """Stop clients whose root is now nested inside another open folder."""
        folders = {folder.key: folder for folder in self._workspace.folders}
        for key, client in self._registry.items():
            folder = folders.get(key)
            if folder is None or self._workspace.outermost(folder).key == key:
                continue
            LOGGER.info(f"Root {folder.name} is now served by {self._workspace.outermost(folder).name}")
            await client.stop()
            self._registry.remove(key)

    async def _on_configuration_changed(self, event: ConfigurationChanged) -> None:
        if not event.current.affects_language_server(event.previous):
            self._config = event.current
            return

        LOGGER.info("Language server settings changed, reload required")
        if await self._prompter.confirm_reload() and self._on_reload is not None:
            self._on_reload()

    async def _on_toggled(self, enabled: bool) -> None:
        self._persist_enabled(enabled)
        self._set_enabled(enabled)
        await self.stop_all()

        if not enabled:
            LOGGER.info("Language server disabled")
            return

        try:
            await self.install_then_start()
        except InstallError:
            self._persist_enabled(False)
            self._set_enabled(False)
            raise

    def _set_enabled(self, enabled: bool) -> None:
        language_server = dataclasses.replace(self._config.language_server, external=enabled)
        self._config = dataclasses.replace(self._config, language_server=language_server)
