"""Validation of the installed language server binary.

Checks that the binary is present and executable, and asks it for its
version. Probe failures are never fatal: they mean "not installed".
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from semver import Version

from tflsctl.bootstrap.errors import ProbeError
from tflsctl.bootstrap.releases import find_version_token, parse_version
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

PROBE_TIMEOUT = 10.0


class ToolStatus(str, Enum):
    """Status of a tool binary."""

    PRESENT = "present"
    MISSING = "missing"
    NOT_EXECUTABLE = "not_executable"


@dataclass(frozen=True)
class InstalledBinaryRef:
    """Result of probing an installed binary.

    An empty ``reported_version`` means the binary is missing or unreadable.
    """

    path: Path
    reported_version: str = ""

    @property
    def version(self) -> Optional[Version]:
        """Parsed version, or None if nothing usable was reported."""
        if not self.reported_version:
            return None
        return parse_version(self.reported_version)

    @property
    def installed(self) -> bool:
        return self.version is not None


def validate_binary(path: Path) -> ToolStatus:
    """Validate a single binary file.

    Args:
        path: Path to the binary file.

    Returns:
        ToolStatus indicating whether the binary is present and executable.
    """
    if not path.exists():
        return ToolStatus.MISSING

    if not os.access(path, os.X_OK):
        return ToolStatus.NOT_EXECUTABLE

    return ToolStatus.PRESENT


async def run_version_command(binary: Path, timeout: float = PROBE_TIMEOUT) -> str:
    """Run ``<binary> --version`` and return its output.

    stdout is preferred; stderr is used when stdout is empty.

    Raises:
        ProbeError: If the binary cannot be run, times out, exits non-zero or
            prints no version.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            str(binary),
            "--version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProbeError(f"Unable to run {binary}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        raise ProbeError(f"{binary} --version timed out after {timeout}s") from e

    if process.returncode != 0:
        raise ProbeError(f"{binary} --version exited with code {process.returncode}")

    output = (stdout or stderr).decode("utf-8", errors="replace").strip()
    if parse_version(output) is None:
        raise ProbeError(f"Unable to parse version from {output!r}")
    return output


async def probe_installed_version(binary: Path) -> InstalledBinaryRef:
    """Ask an installed binary for its version.

    Returns:
        InstalledBinaryRef whose version is empty if probing failed.
    """
    try:
        output = await run_version_command(binary)
    except ProbeError as e:
        LOGGER.warning(f"Error executing language server version command: {e}")
        return InstalledBinaryRef(path=binary)

    return InstalledBinaryRef(path=binary, reported_version=find_version_token(output) or "")
