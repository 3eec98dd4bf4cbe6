"""HTTP helpers for the release feed.

Redirects are followed by hand so that each hop is logged and the chain is
bounded; the shared client is created with ``follow_redirects=False``.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Optional

import httpx

from tflsctl.bootstrap.errors import DownloadError, NetworkError
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

MAX_REDIRECTS = 5
CHUNK_SIZE = 64 * 1024
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

_REDIRECT_STATUSES = (301, 302)


def create_http_client(timeout: httpx.Timeout = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Create the async HTTP client used for one install attempt."""
    return httpx.AsyncClient(timeout=timeout, follow_redirects=False)


@asynccontextmanager
async def _open(
    client: httpx.AsyncClient,
    url: str,
    user_agent: str,
    max_redirects: int = MAX_REDIRECTS,
) -> AsyncIterator[httpx.Response]:
    """Stream a GET of ``url``, following 301/302 up to ``max_redirects`` hops.

    Yields the final 200 response with its body not yet read. httpx errors
    raised while the caller reads the body are mapped as well.

    Raises:
        DownloadError: On a non-200, non-redirect status or too many redirects.
        NetworkError: On connection, decoding or URL failures.
    """
    headers = {"User-Agent": user_agent}
    current = url
    last_status = 0

    for hop in range(max_redirects + 1):
        try:
            async with client.stream("GET", current, headers=headers) as response:
                if response.status_code in _REDIRECT_STATUSES:
                    location = response.headers.get("location")
                    if not location:
                        raise DownloadError(current, response.status_code, "redirect without Location header")
                    target = str(response.url.join(location))
                    LOGGER.debug(f"Redirect {hop + 1}: {current} -> {target}")
                    current = target
                    last_status = response.status_code
                    continue

                if response.status_code != 200:
                    raise DownloadError(current, response.status_code, response.reason_phrase)

                yield response
                return
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NetworkError(f"Unable to fetch {current}: {e}") from e

    raise DownloadError(current, last_status, f"stopped after {max_redirects} redirects")


async def download(
    client: httpx.AsyncClient,
    url: str,
    destination: Path,
    user_agent: str,
    max_redirects: int = MAX_REDIRECTS,
    on_chunk: Optional[Callable[[int], None]] = None,
) -> Path:
    """Stream a remote file to disk, following 301/302 redirects.

    Args:
        client: HTTP client.
        url: Package URL.
        destination: File to write; truncated if present.
        user_agent: Value of the User-Agent header.
        max_redirects: Maximum number of redirect hops to follow.
        on_chunk: Optional callback receiving the size of each written chunk.

    Returns:
        The destination path.

    Raises:
        DownloadError: On a non-200, non-redirect status or too many redirects.
        NetworkError: On connection-level failures or a corrupt body.
    """
    async with _open(client, url, user_agent, max_redirects) as response:
        with open(destination, "wb") as f:
            async for chunk in response.aiter_bytes(CHUNK_SIZE):
                f.write(chunk)
                if on_chunk is not None:
                    on_chunk(len(chunk))
        LOGGER.debug(f"Downloaded {response.url} to {destination}")
    return destination


async def _get(client: httpx.AsyncClient, url: str, user_agent: str) -> httpx.Response:
    async with _open(client, url, user_agent) as response:
        await response.aread()
    return response


async def fetch_text(client: httpx.AsyncClient, url: str, user_agent: str) -> str:
    """GET a plaintext document, following redirects like :func:`download`.

    Raises:
        NetworkError: On transport failure or a non-200 status.
    """
    response = await _get(client, url, user_agent)
    return response.text


async def fetch_json(client: httpx.AsyncClient, url: str, user_agent: str) -> Any:
    """GET and decode a JSON document, following redirects like :func:`download`.

    Raises:
        NetworkError: On transport failure, a non-200 status or invalid JSON.
    """
    response = await _get(client, url, user_agent)
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise NetworkError(f"Invalid JSON from {url}: {e}") from e
