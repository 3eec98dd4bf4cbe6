"""Serve command implementation.

Run one terraform-ls client per outermost workspace root until interrupted.
"""

from __future__ import annotations

import asyncio
from argparse import Namespace
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from tflsctl.config.models import TflsctlConfig

from tflsctl.bootstrap.errors import InstallError
from tflsctl.cli.commands import Command
from tflsctl.cli.commands.install import install_error_exit_code, installer_factory
from tflsctl.cli.config_bridge import ConfigBridge
from tflsctl.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from tflsctl.client.events import ConfigurationChanged, DocumentOpened, Shutdown
from tflsctl.client.manager import ClientLifecycleManager
from tflsctl.client.workspace import Workspace, find_terraform_documents
from tflsctl.config.loader import PROJECT_CONFIG_NAMES, ConfigError, global_config_path, load_config
from tflsctl.core.logging import get_logger
from tflsctl.ui.prompts import ConsolePrompter

LOGGER = get_logger(__name__)

Fingerprint = Tuple[Tuple[str, float], ...]


class ServeCommand(Command):
    """Supervises language server clients for a set of workspace roots."""

    @property
    def name(self) -> str:
        """Command identifier."""
        return "serve"

    def execute(self, args: Namespace, config: "TflsctlConfig | None" = None) -> int:
        """Execute the serve command.

        Accepting a reload prompt restarts everything with freshly loaded
        configuration.

        Args:
            args: Parsed command-line arguments.
            config: tflsctl configuration.

        Returns:
            Exit code.
        """
        if config is None:
            LOGGER.error("Configuration is required for serve command")
            return EXIT_INVALID_USAGE

        roots = [Path(r).resolve() for r in args.roots]
        for root in roots:
            if not root.is_dir():
                LOGGER.error(f"Not a directory: {root}")
                return EXIT_INVALID_USAGE

        try:
            while True:
                exit_code = asyncio.run(self._serve(args, config, roots))
                if exit_code is not None:
                    return exit_code
                LOGGER.info("Reloading language server settings")
                config = self._load_config(args, roots[0])
        except ConfigError as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE
        except KeyboardInterrupt:
            LOGGER.info("Language server clients stopped")
            return EXIT_SUCCESS

    async def _serve(
        self,
        args: Namespace,
        config: "TflsctlConfig",
        roots: List[Path],
    ) -> Optional[int]:
        """Serve until interrupted or a reload is accepted.

        Returns:
            Exit code, or None if a reload was requested.
        """
        reload_requested = asyncio.Event()
        prompter = ConsolePrompter(assume_yes=getattr(args, "yes", False))
        manager = ClientLifecycleManager(
            config,
            Workspace.from_paths(roots),
            prompter,
            ConfigBridge.install_dir(config),
            installer_factory=installer_factory(config, prompter),
            on_reload=reload_requested.set,
        )

        try:
            await manager.activate()
        except InstallError as e:
            LOGGER.error(f"Language server unavailable: {e}")
            return install_error_exit_code(e)

        for root in roots:
            for document in find_terraform_documents(root, config.ignore):
                manager.dispatch(DocumentOpened(document))

        runner = asyncio.ensure_future(manager.run())
        reload_waiter = asyncio.ensure_future(reload_requested.wait())
        watcher = asyncio.ensure_future(
            self._watch_config(args, config, roots[0], manager, args.config_poll)
        )
        try:
            await asyncio.wait({runner, reload_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            watcher.cancel()
            reload_waiter.cancel()
            if runner.done():
                await manager.deactivate()
            else:
                manager.dispatch(Shutdown())
                await runner

        if reload_requested.is_set():
            return None
        return EXIT_SUCCESS

    async def _watch_config(
        self,
        args: Namespace,
        config: "TflsctlConfig",
        project_root: Path,
        manager: ClientLifecycleManager,
        interval: float,
    ) -> None:
        """Reload configuration whenever a config file changes on disk."""
        previous = config
        fingerprint = self._fingerprint(args, project_root)
        while True:
            await asyncio.sleep(interval)
            current_fingerprint = self._fingerprint(args, project_root)
            if current_fingerprint == fingerprint:
                continue
            fingerprint = current_fingerprint

            try:
                current = self._load_config(args, project_root)
            except ConfigError as e:
                LOGGER.warning(f"Ignoring config change: {e}")
                continue

            if current != previous:
                LOGGER.debug("Configuration changed")
                manager.dispatch(ConfigurationChanged(previous, current))
                previous = current

    def _load_config(self, args: Namespace, project_root: Path) -> "TflsctlConfig":
        return load_config(
            project_root=project_root,
            cli_config_path=args.config,
            cli_overrides=ConfigBridge.args_to_overrides(args),
        )

    def _fingerprint(self, args: Namespace, project_root: Path) -> Fingerprint:
        candidates = [global_config_path()]
        if args.config:
            candidates.append(Path(args.config))
        else:
            candidates.extend(project_root / name for name in PROJECT_CONFIG_NAMES)

        entries = []
        for path in candidates:
            try:
                entries.append((str(path), path.stat().st_mtime))
            except FileNotFoundError:
                continue
        return tuple(entries)
