"""Tests for tflsctl.cli.commands.serve."""

from __future__ import annotations

import asyncio
import os
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from helpers import fake_binary
from tflsctl.bootstrap.errors import UnsupportedPlatformError
from tflsctl.cli.commands.serve import ServeCommand
from tflsctl.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS, EXIT_UNSUPPORTED_PLATFORM
from tflsctl.client.events import ConfigurationChanged
from tflsctl.client.manager import ClientLifecycleManager
from tflsctl.client.workspace import WorkspaceRoot, canonical_root_key
from tflsctl.config.models import LanguageServerConfig, TflsctlConfig


class StubClient:
    def __init__(self, command: Path, args: List[str], root: WorkspaceRoot, options: Dict[str, Any]):
        self.root = root
        self.stopped = False

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        self.stopped = True


def _args(roots: List[Path], **kwargs) -> Namespace:
    defaults = dict(roots=[str(r) for r in roots], config=None, binary=None, releases_url=None, yes=True, config_poll=60.0)
    defaults.update(kwargs)
    return Namespace(**defaults)


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestServeCommand:
    """Tests for ServeCommand."""

    def test_name(self) -> None:
        assert ServeCommand().name == "serve"

    def test_missing_root(self, tmp_path: Path) -> None:
        args = _args([tmp_path / "missing"])
        assert ServeCommand().execute(args, TflsctlConfig()) == EXIT_INVALID_USAGE

    def test_install_failure_exit_code(self, tmp_path: Path) -> None:
        installer = MagicMock()
        installer.install = AsyncMock(side_effect=UnsupportedPlatformError("plan9", "mips"))

        with patch("tflsctl.cli.commands.serve.installer_factory", return_value=lambda: installer):
            result = ServeCommand().execute(_args([tmp_path]), TflsctlConfig())

        assert result == EXIT_UNSUPPORTED_PLATFORM

    def test_reload_restarts_with_fresh_config(self, tmp_path: Path) -> None:
        command = ServeCommand()
        fresh = TflsctlConfig(root_modules=["modules/vpc"])

        with patch.object(command, "_serve", AsyncMock(side_effect=[None, EXIT_SUCCESS])) as serve, \
                patch.object(command, "_load_config", return_value=fresh) as load:
            assert command.execute(_args([tmp_path]), TflsctlConfig()) == EXIT_SUCCESS

        load.assert_called_once()
        assert serve.await_args_list[1][0][1] is fresh

    def test_serves_outermost_roots_until_cancelled(self, tmp_path: Path) -> None:
        outer, inner, other = tmp_path / "a", tmp_path / "a" / "b", tmp_path / "c"
        for root in (outer, inner, other):
            root.mkdir(parents=True, exist_ok=True)
            (root / "main.tf").write_text("")
        (other / ".terraform").mkdir()
        (other / ".terraform" / "cached.tf").write_text("")

        binary = fake_binary(tmp_path / "bin" / "terraform-ls", "0.2.0")
        config = TflsctlConfig(language_server=LanguageServerConfig(path_to_binary=str(binary)))
        managers: List[ClientLifecycleManager] = []
        clients: List[StubClient] = []

        def client_factory(*args) -> StubClient:
            client = StubClient(*args)
            clients.append(client)
            return client

        class RecordingManager(ClientLifecycleManager):
            def __init__(self, *args, **kwargs):
                kwargs["client_factory"] = client_factory
                super().__init__(*args, **kwargs)
                managers.append(self)

        async def run() -> None:
            task = asyncio.ensure_future(ServeCommand()._serve(_args([outer, inner, other]), config, [outer, inner, other]))
            await _wait_for(lambda: bool(managers) and len(managers[0].registry) == 2)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        with patch("tflsctl.cli.commands.serve.ClientLifecycleManager", RecordingManager):
            asyncio.run(run())

        assert sorted(c.root.key for c in clients) == sorted([canonical_root_key(outer), canonical_root_key(other)])
        assert all(c.stopped for c in clients)
        assert len(managers[0].registry) == 0

    def test_watch_config_dispatches_changes(self, tmp_path: Path) -> None:
        config_file = tmp_path / ".tflsctl.yml"
        config_file.write_text("root_modules: [a]\n")
        manager = MagicMock()
        command = ServeCommand()
        args = _args([tmp_path])
        initial = command._load_config(args, tmp_path)

        async def run() -> None:
            watcher = asyncio.ensure_future(command._watch_config(args, initial, tmp_path, manager, 0.01))
            await asyncio.sleep(0.05)
            manager.dispatch.assert_not_called()

            config_file.write_text("root_modules: [b]\n")
            stat = config_file.stat()
            os.utime(config_file, (stat.st_atime, stat.st_mtime + 10))
            await _wait_for(lambda: manager.dispatch.called)
            watcher.cancel()

        asyncio.run(run())
        event = manager.dispatch.call_args[0][0]
        assert isinstance(event, ConfigurationChanged)
        assert event.previous.root_modules == ["a"]
        assert event.current.root_modules == ["b"]
