"""Errors raised by the acquisition and verification pipeline.

Every failure except :class:`ProbeError` aborts an install. Probe failures
only mean "not installed" and are absorbed by the installer.
"""

from __future__ import annotations

from typing import Optional


class InstallError(Exception):
    """Base class for language server installation failures."""


class NetworkError(InstallError):
    """Release index, checksum manifest or package could not be fetched."""


class DownloadError(NetworkError):
    """Server answered a download with an unexpected status."""

    def __init__(self, url: str, status_code: int, reason: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Download of {url} failed: {status_code} {reason}".rstrip())


class NoReleasesError(InstallError):
    """Release index does not list any usable version."""


class UnsupportedPlatformError(InstallError):
    """No build is published for the host platform."""

    def __init__(self, os_name: str, arch: str, version: Optional[str] = None) -> None:
        self.os = os_name
        self.arch = arch
        self.version = version
        suffix = f" in release {version}" if version else ""
        super().__init__(f"No terraform-ls build for platform {os_name}/{arch}{suffix}")


class ChecksumNotFoundError(InstallError):
    """Checksum manifest has no entry for the package."""

    def __init__(self, build_name: str) -> None:
        self.build_name = build_name
        super().__init__(f"No matching SHA256 sum for {build_name}")


class ChecksumMismatchError(InstallError):
    """Downloaded package does not match its published digest."""

    def __init__(self, build_name: str, expected: str, calculated: str) -> None:
        self.build_name = build_name
        self.expected = expected
        self.calculated = calculated
        super().__init__(
            f"SHA256 sum for {build_name} does not match "
            f"(expected: {expected} calculated: {calculated})"
        )


class ArchiveError(InstallError):
    """Package archive is malformed or could not be extracted."""


class ProbeError(InstallError):
    """Installed binary could not report its version."""


class InstallCancelledError(InstallError):
    """Installation was cancelled before it completed."""
