"""Host platform detection.

Release builds are published per ``os``/``arch`` pair using Go naming
(``linux``/``amd64``, ``windows``/``386``...). Python reports the host with
its own names, so both sides are normalized here.
"""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass

_OS_ALIASES = {
    "win32": "windows",
    "cygwin": "windows",
    "msys": "windows",
}

_ARCH_ALIASES = {
    "x64": "amd64",
    "x86_64": "amd64",
    "amd64": "amd64",
    "x32": "386",
    "x86": "386",
    "i386": "386",
    "i686": "386",
    "aarch64": "arm64",
    "armv7l": "arm",
}


@dataclass(frozen=True)
class PlatformInfo:
    """Normalized operating system and CPU architecture."""

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}_{self.arch}"


def normalize_os(name: str) -> str:
    """Map a platform name to the release feed's OS name.

    Unknown names pass through unchanged (lower-cased).
    """
    name = name.lower()
    if name.startswith("linux"):
        return "linux"
    return _OS_ALIASES.get(name, name)


def normalize_arch(machine: str) -> str:
    """Map a machine name to the release feed's architecture name.

    Unknown names pass through unchanged (lower-cased).
    """
    machine = machine.lower()
    return _ARCH_ALIASES.get(machine, machine)


def get_platform_info() -> PlatformInfo:
    """Detect the running host's normalized platform."""
    return PlatformInfo(
        os=normalize_os(sys.platform),
        arch=normalize_arch(platform.machine()),
    )
