"""A running terraform-ls process serving one workspace root."""

from __future__ import annotations

import asyncio
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from tflsctl import __version__
from tflsctl.client.transport import JsonRpcError, JsonRpcTransport, TransportClosedError
from tflsctl.client.workspace import WorkspaceRoot
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_START_TIMEOUT = 30.0
DEFAULT_STOP_TIMEOUT = 5.0


class ClientState(str, Enum):
    """Lifecycle of one client. STOPPED is terminal."""

    NO_CLIENT = "no_client"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class ClientStartError(Exception):
    """The language server could not be started or initialized."""


class LanguageServerClient:
    """Owns one language server subprocess and its transport.

    Example:
        client = LanguageServerClient(binary, ["serve"], root)
        await client.start()
        ...
        await client.stop()
    """

    def __init__(
        self,
        command: Path,
        args: List[str],
        root: WorkspaceRoot,
        initialization_options: Optional[Dict[str, Any]] = None,
        start_timeout: float = DEFAULT_START_TIMEOUT,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ):
        self._command = Path(command)
        self._args = list(args)
        self._root = root
        self._initialization_options = initialization_options or {}
        self._start_timeout = start_timeout
        self._stop_timeout = stop_timeout

        self._state = ClientState.NO_CLIENT
        self._process: Optional[asyncio.subprocess.Process] = None
        self._transport: Optional[JsonRpcTransport] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._server_info: Dict[str, Any] = {}

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def root(self) -> WorkspaceRoot:
        return self._root

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def server_info(self) -> Dict[str, Any]:
        """``serverInfo`` reported by the server during initialization."""
        return dict(self._server_info)

    @property
    def name(self) -> str:
        return f"{self._command.name}[{self._root.name}]"

    async def start(self) -> None:
        """Spawn the server and complete the initialize handshake.

        Raises:
            ClientStartError: If the process cannot be spawned or does not
                initialize. The process is stopped before raising.
        """
        if self._state != ClientState.NO_CLIENT:
            raise ClientStartError(f"{self.name} was already started")

        self._state = ClientState.STARTING
        LOGGER.info(f"Launching language server: {self._command} {' '.join(self._args)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                str(self._command),
                *self._args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self._root.path),
            )
        except OSError as e:
            self._state = ClientState.STOPPED
            raise ClientStartError(f"Failed to launch {self._command}: {e}") from e

        self._transport = JsonRpcTransport(self._process.stdout, self._process.stdin, name=self.name)
        self._transport.start()
        self._stderr_task = asyncio.ensure_future(self._drain_stderr())

        try:
            result = await asyncio.wait_for(
                self._transport.request("initialize", self._initialize_params()),
                timeout=self._start_timeout,
            )
            await self._transport.notify("initialized", {})
        except (asyncio.TimeoutError, JsonRpcError, TransportClosedError) as e:
            await self.stop()
            raise ClientStartError(f"{self.name} failed to initialize: {e}") from e

        if isinstance(result, dict) and isinstance(result.get("serverInfo"), dict):
            self._server_info = result["serverInfo"]

        self._state = ClientState.RUNNING
        LOGGER.info(f"Started {self.name} (pid {self.pid})")

    async def stop(self) -> None:
        """Shut the server down. Safe to call more than once."""
        if self._state == ClientState.STOPPED or self._process is None:
            self._state = ClientState.STOPPED
            return

        was_running = self._state == ClientState.RUNNING
        self._state = ClientState.STOPPED
        transport = self._transport

        if was_running and transport is not None and not transport.closed:
            try:
                await asyncio.wait_for(transport.request("shutdown"), timeout=self._stop_timeout)
                await transport.notify("exit")
            except (asyncio.TimeoutError, JsonRpcError, TransportClosedError) as e:
                LOGGER.debug(f"{self.name} did not shut down cleanly: {e}")

        # Closing stdin also ends a server that never finished initializing
        if transport is not None:
            await transport.close()
        await self._wait_or_kill()

        if self._stderr_task is not None:
            self._stderr_task.cancel()
            try:
                await self._stderr_task
            except asyncio.CancelledError:
                pass

        LOGGER.info(f"Stopped {self.name}")

    async def _wait_or_kill(self) -> None:
        process = self._process
        assert process is not None
        try:
            await asyncio.wait_for(process.wait(), timeout=self._stop_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning(f"{self.name} did not exit within {self._stop_timeout}s, killing it")
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
            await process.wait()

    async def _drain_stderr(self) -> None:
        process = self._process
        if process is None or process.stderr is None:
            return
        while True:
            line = await process.stderr.readline()
            if not line:
                return
            LOGGER.debug(f"[{self.name}] {line.decode('utf-8', errors='replace').rstrip()}")

    def _initialize_params(self) -> Dict[str, Any]:
        return {
            "processId": os.getpid(),
            "clientInfo": {"name": "tflsctl", "version": __version__},
            "rootUri": self._root.uri,
            "rootPath": str(self._root.path),
            "workspaceFolders": [{"uri": self._root.uri, "name": self._root.name}],
            "capabilities": {
                "workspace": {"workspaceFolders": True},
                "window": {"workDoneProgress": False},
            },
            "initializationOptions": self._initialization_options,
        }
