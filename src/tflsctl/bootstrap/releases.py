"""Release feed resolution for terraform-ls.

The feed publishes ``index.json`` mapping version strings to release
records::

    {"versions": {"0.2.0": {"version": "0.2.0",
                            "shasums": "terraform-ls_0.2.0_SHA256SUMS",
                            "shasums_signature": "...sig",
                            "builds": [{"os": "linux", "arch": "amd64",
                                        "url": "...", "filename": "..."}]}}}

The newest release is picked by semantic-version precedence with
prereleases taking part in the comparison.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
from semver import Version

from tflsctl.bootstrap.download import fetch_json
from tflsctl.bootstrap.errors import NetworkError, NoReleasesError, UnsupportedPlatformError
from tflsctl.bootstrap.platform import PlatformInfo
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

RELEASES_URL = "https://releases.hashicorp.com/terraform-ls"
CHANGELOG_URL = "https://github.com/hashicorp/terraform-ls/releases/tag/v{version}"

_VERSION_TOKEN = re.compile(r"v?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)")


def find_version_token(text: str) -> Optional[str]:
    """Return the first semantic version in ``text`` without a leading ``v``."""
    match = _VERSION_TOKEN.search(text or "")
    return match.group(1) if match else None


def parse_version(text: str) -> Optional[Version]:
    """Parse a semantic version string.

    Accepts a leading ``v`` and surrounding text, so the output of
    ``terraform-ls --version`` (``0.2.0\\nplatform: linux/amd64``) parses too.

    Returns:
        Parsed version, or None when no version token is found.
    """
    token = find_version_token(text)
    if token is None:
        return None
    try:
        return Version.parse(token)
    except ValueError:
        return None


@dataclass(frozen=True)
class BuildArtifact:
    """One platform-specific package of a release."""

    os: str
    arch: str
    url: str
    filename: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BuildArtifact":
        return cls(
            os=str(data.get("os", "")),
            arch=str(data.get("arch", "")),
            url=str(data.get("url", "")),
            filename=str(data.get("filename", "")),
        )


@dataclass(frozen=True)
class Release:
    """A published terraform-ls version."""

    name: str
    version: Version
    builds: Tuple[BuildArtifact, ...]
    shasums: str
    shasums_signature: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Release":
        """Build a Release from an index entry.

        Raises:
            ValueError: If the entry has no parsable version.
        """
        name = str(data.get("version", ""))
        try:
            version = Version.parse(name)
        except ValueError as e:
            raise ValueError(f"Invalid release version: {name!r}") from e
        builds = tuple(BuildArtifact.from_dict(b) for b in data.get("builds") or [])
        return cls(
            name=name,
            version=version,
            builds=builds,
            shasums=str(data.get("shasums", "")),
            shasums_signature=str(data.get("shasums_signature", "")),
        )

    def select_build(self, platform_info: PlatformInfo) -> BuildArtifact:
        """Find the build matching the host platform.

        Raises:
            UnsupportedPlatformError: If no build matches, or the match has no URL.
        """
        for build in self.builds:
            if build.os == platform_info.os and build.arch == platform_info.arch and build.url:
                return build
        raise UnsupportedPlatformError(platform_info.os, platform_info.arch, self.name)

    def shasums_url(self, releases_url: str = RELEASES_URL) -> str:
        return f"{releases_url.rstrip('/')}/{self.name}/{self.shasums}"

    @property
    def changelog_url(self) -> str:
        return CHANGELOG_URL.format(version=self.name)


def select_latest(index: Mapping[str, Any]) -> Release:
    """Pick the newest release from a parsed index document.

    Args:
        index: Either the full document (with a ``versions`` key) or the
            version mapping itself.

    Returns:
        The release with the highest version, prereleases included.

    Raises:
        NetworkError: If the document does not have the expected shape.
        NoReleasesError: If no entry carries a usable version.
    """
    versions = index.get("versions", index) if isinstance(index, Mapping) else None
    if not isinstance(versions, Mapping):
        raise NetworkError("Release index is not a mapping of versions")

    latest: Optional[Release] = None
    for key, entry in versions.items():
        if not isinstance(entry, Mapping):
            LOGGER.warning(f"Skipping malformed release entry {key!r}")
            continue
        try:
            release = Release.from_dict({"version": key, **entry})
        except ValueError as e:
            LOGGER.warning(f"Skipping release {key!r}: {e}")
            continue
        if latest is None or release.version > latest.version:
            latest = release

    if latest is None:
        raise NoReleasesError("Release index does not contain any releases")
    return latest


async def check_latest(
    client: httpx.AsyncClient,
    user_agent: str,
    releases_url: str = RELEASES_URL,
) -> Release:
    """Fetch the release index and return the newest release.

    Raises:
        NetworkError: If the index cannot be fetched or parsed.
        NoReleasesError: If the index is empty.
    """
    index_url = f"{releases_url.rstrip('/')}/index.json"
    LOGGER.debug(f"Fetching release index {index_url}")
    index: Dict[str, Any] = await fetch_json(client, index_url, user_agent)
    release = select_latest(index)
    LOGGER.info(f"Latest terraform-ls release is {release.name}")
    return release
