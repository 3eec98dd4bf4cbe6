"""SHA-256 verification of downloaded packages.

The local digest and the published manifest are obtained concurrently and
compared only once both are available.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
from pathlib import Path
from typing import Optional

import httpx

from tflsctl.bootstrap.download import fetch_text
from tflsctl.bootstrap.errors import ChecksumMismatchError, ChecksumNotFoundError
from tflsctl.bootstrap.releases import RELEASES_URL, Release
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

HASH_CHUNK_SIZE = 1024 * 1024

_WHITESPACE = re.compile(r"\s+")


def _hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


async def calculate_sha256(path: Path) -> str:
    """Stream-hash a file in a worker thread.

    Returns:
        Lower-case hex digest.
    """
    return await asyncio.to_thread(_hash_file, path)


def find_checksum(manifest: str, build_name: str) -> Optional[str]:
    """Extract the digest for ``build_name`` from a SHA256SUMS document.

    Lines look like ``<hex>  <filename>``; the digest is the token before the
    first whitespace run. A ``*`` binary-mode marker before the file name is
    ignored.

    Returns:
        The digest, or None if the manifest has no entry for the file.
    """
    for line in manifest.splitlines():
        parts = _WHITESPACE.split(line.strip(), maxsplit=1)
        if len(parts) != 2:
            continue
        digest, name = parts
        if name.lstrip("*") == build_name:
            return digest
    return None


async def fetch_remote_checksum(
    client: httpx.AsyncClient,
    release: Release,
    build_name: str,
    user_agent: str,
    releases_url: str = RELEASES_URL,
) -> str:
    """Download the release's checksum manifest and return the build's digest.

    Raises:
        NetworkError: If the manifest cannot be fetched.
        ChecksumNotFoundError: If the manifest has no entry for the build.
    """
    manifest = await fetch_text(client, release.shasums_url(releases_url), user_agent)
    digest = find_checksum(manifest, build_name)
    if digest is None:
        raise ChecksumNotFoundError(build_name)
    return digest


async def verify(
    client: httpx.AsyncClient,
    release: Release,
    package_path: Path,
    build_name: str,
    user_agent: str,
    releases_url: str = RELEASES_URL,
) -> str:
    """Check a downloaded package against the release's published digest.

    Returns:
        The verified digest.

    Raises:
        ChecksumNotFoundError: If the manifest has no entry for the build.
        ChecksumMismatchError: If the digests differ.
        NetworkError: If the manifest cannot be fetched.
    """
    local_task = asyncio.ensure_future(calculate_sha256(package_path))
    remote_task = asyncio.ensure_future(
        fetch_remote_checksum(client, release, build_name, user_agent, releases_url)
    )
    try:
        local_sum, remote_sum = await asyncio.gather(local_task, remote_task)
    except BaseException:
        for task in (local_task, remote_task):
            task.cancel()
        await asyncio.gather(local_task, remote_task, return_exceptions=True)
        raise

    if remote_sum != local_sum:
        raise ChecksumMismatchError(build_name, expected=remote_sum, calculated=local_sum)

    LOGGER.debug(f"SHA256 sum for {build_name} verified: {local_sum}")
    return local_sum
