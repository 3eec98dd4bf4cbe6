"""Tests for tflsctl.bootstrap.download."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List

import httpx
import pytest

from tflsctl.bootstrap.download import MAX_REDIRECTS, create_http_client, download, fetch_json, fetch_text
from tflsctl.bootstrap.errors import DownloadError, NetworkError

from helpers import mock_client

PAYLOAD = b"terraform-ls package bytes" * 1000


def _download(handler, destination: Path, url: str = "https://example.test/pkg.zip", **kwargs) -> Path:
    async def run() -> Path:
        async with mock_client(handler) as client:
            return await download(client, url, destination, "tflsctl-test", **kwargs)

    return asyncio.run(run())


class TestDownload:
    """Tests for download."""

    def test_direct_download(self, tmp_path: Path) -> None:
        destination = tmp_path / "pkg.zip"
        result = _download(lambda request: httpx.Response(200, content=PAYLOAD), destination)
        assert result == destination
        assert destination.read_bytes() == PAYLOAD

    def test_redirect_then_ok_matches_direct(self, tmp_path: Path) -> None:
        """302 followed by 200 writes the same bytes as a direct download."""
        requests: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(str(request.url))
            if request.url.path == "/pkg.zip":
                return httpx.Response(302, headers={"Location": "/mirror/pkg.zip"})
            return httpx.Response(200, content=PAYLOAD)

        redirected = _download(handler, tmp_path / "redirected.zip")
        direct = _download(lambda request: httpx.Response(200, content=PAYLOAD), tmp_path / "direct.zip")

        assert redirected.read_bytes() == direct.read_bytes()
        assert requests == ["https://example.test/pkg.zip", "https://example.test/mirror/pkg.zip"]

    def test_sends_user_agent_on_every_hop(self, tmp_path: Path) -> None:
        agents: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            agents.append(request.headers["user-agent"])
            if request.url.host == "example.test":
                return httpx.Response(301, headers={"Location": "https://cdn.example.test/pkg.zip"})
            return httpx.Response(200, content=b"ok")

        _download(handler, tmp_path / "pkg.zip")
        assert agents == ["tflsctl-test", "tflsctl-test"]

    def test_not_found_raises_download_error(self, tmp_path: Path) -> None:
        with pytest.raises(DownloadError) as exc_info:
            _download(lambda request: httpx.Response(404), tmp_path / "pkg.zip")
        assert exc_info.value.status_code == 404
        assert exc_info.value.reason == "Not Found"
        assert isinstance(exc_info.value, NetworkError)

    def test_redirect_loop_is_bounded(self, tmp_path: Path) -> None:
        calls: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(302, headers={"Location": "/again"})

        with pytest.raises(DownloadError) as exc_info:
            _download(handler, tmp_path / "pkg.zip")
        assert len(calls) == MAX_REDIRECTS + 1
        assert exc_info.value.status_code == 302
        assert "redirects" in str(exc_info.value)

    def test_redirect_without_location(self, tmp_path: Path) -> None:
        with pytest.raises(DownloadError):
            _download(lambda request: httpx.Response(302), tmp_path / "pkg.zip")

    def test_transport_error_is_network_error(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError):
            _download(handler, tmp_path / "pkg.zip")

    def test_corrupt_gzip_body_is_network_error(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip at all")
            )

        with pytest.raises(NetworkError):
            _download(handler, tmp_path / "pkg.zip")

    def test_malformed_location_is_network_error(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"Location": "/mirror/\x01pkg.zip"})

        with pytest.raises(NetworkError):
            _download(handler, tmp_path / "pkg.zip")

    def test_reports_chunks(self, tmp_path: Path) -> None:
        sizes: List[int] = []
        _download(lambda request: httpx.Response(200, content=PAYLOAD), tmp_path / "pkg.zip", on_chunk=sizes.append)
        assert sum(sizes) == len(PAYLOAD)


class TestFetchText:
    """Tests for fetch_text."""

    def test_returns_body(self) -> None:
        async def run() -> str:
            async with mock_client(lambda request: httpx.Response(200, text="abc  file.zip\n")) as client:
                return await fetch_text(client, "https://example.test/SUMS", "ua")

        assert asyncio.run(run()) == "abc  file.zip\n"

    def test_non_200_raises(self) -> None:
        async def run() -> str:
            async with mock_client(lambda request: httpx.Response(403)) as client:
                return await fetch_text(client, "https://example.test/SUMS", "ua")

        with pytest.raises(NetworkError, match="403"):
            asyncio.run(run())

    def test_follows_redirect(self) -> None:
        requests: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(str(request.url))
            if request.url.path == "/SUMS":
                return httpx.Response(302, headers={"Location": "https://cdn.example.test/SUMS"})
            return httpx.Response(200, text="abc  file.zip\n")

        async def run() -> str:
            async with mock_client(handler) as client:
                return await fetch_text(client, "https://example.test/SUMS", "ua")

        assert asyncio.run(run()) == "abc  file.zip\n"
        assert requests == ["https://example.test/SUMS", "https://cdn.example.test/SUMS"]


class TestFetchJson:
    """Tests for fetch_json."""

    def test_follows_redirect(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "example.test":
                return httpx.Response(302, headers={"Location": "https://cdn.example.test/index.json"})
            return httpx.Response(200, json={"versions": {}})

        async def run() -> dict:
            async with mock_client(handler) as client:
                return await fetch_json(client, "https://example.test/index.json", "ua")

        assert asyncio.run(run()) == {"versions": {}}

    def test_invalid_json_raises(self) -> None:
        async def run() -> dict:
            async with mock_client(lambda request: httpx.Response(200, text="{not json")) as client:
                return await fetch_json(client, "https://example.test/index.json", "ua")

        with pytest.raises(NetworkError, match="Invalid JSON"):
            asyncio.run(run())


class TestCreateHttpClient:
    """Tests for create_http_client."""

    def test_redirects_disabled(self) -> None:
        async def run() -> bool:
            async with create_http_client() as client:
                return client.follow_redirects

        assert asyncio.run(run()) is False
