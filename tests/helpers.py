"""Test helpers: zip archives, a fake release feed and fake binaries."""

from __future__ import annotations

import hashlib
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx

from tflsctl.bootstrap.platform import PlatformInfo

FEED_URL = "https://releases.example.test/terraform-ls"
LINUX_AMD64 = PlatformInfo(os="linux", arch="amd64")


def make_zip(path: Path, entries: Dict[str, bytes]) -> Path:
    """Write a deflated zip archive with the given entries."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def zip_bytes(tmp_path: Path, entries: Dict[str, bytes]) -> bytes:
    return make_zip(tmp_path / "payload.zip", entries).read_bytes()


def release_entry(version: str, os_name: str = "linux", arch: str = "amd64") -> Dict[str, Any]:
    filename = f"terraform-ls_{version}_{os_name}_{arch}.zip"
    return {
        "name": "terraform-ls",
        "version": version,
        "shasums": f"terraform-ls_{version}_SHA256SUMS",
        "shasums_signature": f"terraform-ls_{version}_SHA256SUMS.sig",
        "builds": [
            {
                "name": "terraform-ls",
                "version": version,
                "os": os_name,
                "arch": arch,
                "filename": filename,
                "url": f"{FEED_URL}/{version}/{filename}",
            }
        ],
    }


class FakeReleaseFeed:
    """In-memory release feed served through httpx.MockTransport.

    Records every requested URL so tests can assert what was fetched.
    """

    def __init__(self, version: str, package: bytes, os_name: str = "linux", arch: str = "amd64"):
        self.version = version
        self.package = package
        self.entry = release_entry(version, os_name, arch)
        self.filename = self.entry["builds"][0]["filename"]
        self.digest = hashlib.sha256(package).hexdigest()
        self.requests: List[str] = []
        self.overrides: Dict[str, httpx.Response] = {}

    @property
    def package_url(self) -> str:
        return self.entry["builds"][0]["url"]

    @property
    def shasums_url(self) -> str:
        return f"{FEED_URL}/{self.version}/{self.entry['shasums']}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.overrides:
            return self.overrides[url]
        if url == f"{FEED_URL}/index.json":
            return httpx.Response(200, json={"name": "terraform-ls", "versions": {self.version: self.entry}})
        if url == self.shasums_url:
            return httpx.Response(200, text=f"{self.digest}  {self.filename}\n")
        if url == self.package_url:
            return httpx.Response(200, content=self.package)
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=False)

    def downloads(self) -> List[str]:
        return [url for url in self.requests if url == self.package_url]


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=False)


def write_executable(path: Path, script: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(script)
    path.chmod(0o755)
    return path


def fake_binary(path: Path, version: Optional[str]) -> Path:
    """Shell script answering ``--version`` like terraform-ls."""
    if version is None:
        return write_executable(path, "#!/bin/sh\nexit 1\n")
    return write_executable(path, f"#!/bin/sh\necho '{version}'\necho 'platform: linux/amd64'\n")
