"""Tests for tflsctl.cli.commands.status."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from helpers import FEED_URL, FakeReleaseFeed, fake_binary, mock_client
from tflsctl.cli.commands.status import StatusCommand
from tflsctl.cli.exit_codes import EXIT_INSTALL_FAILURE, EXIT_SUCCESS
from tflsctl.config.models import LanguageServerConfig, TflsctlConfig


def _config(tmp_path: Path, **language_server) -> TflsctlConfig:
    language_server.setdefault("install_dir", str(tmp_path / "lsp"))
    return TflsctlConfig(language_server=LanguageServerConfig(**language_server), releases_url=FEED_URL)


class TestStatusCommand:
    """Tests for StatusCommand."""

    def test_not_installed(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert StatusCommand("1.0").execute(Namespace(check_latest=False), _config(tmp_path)) == EXIT_SUCCESS

        out = capsys.readouterr().out
        assert "tflsctl version: 1.0" in out
        assert "Installed version: not installed" in out
        assert "Arguments: serve" in out

    def test_installed(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        fake_binary(tmp_path / "lsp" / "terraform-ls", "0.1.0")
        config = _config(tmp_path, external=False)

        assert StatusCommand("1.0").execute(Namespace(check_latest=False), config) == EXIT_SUCCESS

        out = capsys.readouterr().out
        assert "Installed version: 0.1.0" in out
        assert "Language server: disabled" in out

    def test_not_executable(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        binary = tmp_path / "custom" / "terraform-ls"
        binary.parent.mkdir()
        binary.write_text("")
        binary.chmod(0o644)

        StatusCommand("1.0").execute(Namespace(check_latest=False), _config(tmp_path, path_to_binary=str(binary)))
        assert "binary is not executable" in capsys.readouterr().out

    def test_check_latest(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        feed = FakeReleaseFeed("0.3.0", b"zip")
        with patch("tflsctl.cli.commands.status.create_http_client", feed.client):
            result = StatusCommand("1.0").execute(Namespace(check_latest=True), _config(tmp_path))

        assert result == EXIT_SUCCESS
        assert "Latest release: 0.3.0" in capsys.readouterr().out

    def test_check_latest_failure(self, tmp_path: Path) -> None:
        client = mock_client(lambda request: httpx.Response(500))
        with patch("tflsctl.cli.commands.status.create_http_client", return_value=client):
            result = StatusCommand("1.0").execute(Namespace(check_latest=True), _config(tmp_path))
        assert result == EXIT_INSTALL_FAILURE
