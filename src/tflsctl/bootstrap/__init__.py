"""
Bootstrap module for terraform-ls binary management.

This module handles:
- Platform detection (OS + architecture)
- Release resolution against the HashiCorp release feed
- Download, checksum verification and unpacking of release packages
- Probing an installed binary for its version

The installer sequences these steps; everything else builds on it.
"""

from tflsctl.bootstrap.platform import get_platform_info, PlatformInfo
from tflsctl.bootstrap.paths import get_tflsctl_home, TflsctlPaths
from tflsctl.bootstrap.validation import validate_binary, InstalledBinaryRef, ToolStatus
from tflsctl.bootstrap.installer import InstallResult, InstallStatus, LanguageServerInstaller

__all__ = [
    "get_platform_info",
    "PlatformInfo",
    "get_tflsctl_home",
    "TflsctlPaths",
    "validate_binary",
    "InstalledBinaryRef",
    "ToolStatus",
    "InstallResult",
    "InstallStatus",
    "LanguageServerInstaller",
]
