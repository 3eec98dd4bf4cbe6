"""Configuration data models for tflsctl.

Defines typed configuration classes that represent the .tflsctl.yml
structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tflsctl.bootstrap.releases import RELEASES_URL

DEFAULT_SERVER_ARGS: List[str] = ["serve"]


@dataclass
class LanguageServerConfig:
    """Install and run settings for terraform-ls.

    ``external`` is the enable flag toggled by ``tflsctl enable``/``disable``.
    A non-empty ``path_to_binary`` bypasses acquisition entirely.
    """

    external: bool = True
    path_to_binary: str = ""
    args: List[str] = field(default_factory=lambda: list(DEFAULT_SERVER_ARGS))
    install_dir: str = ""  # Empty = ~/.tflsctl/bin/terraform-ls


@dataclass
class TflsctlConfig:
    """Complete tflsctl configuration.

    Example .tflsctl.yml:
        language_server:
          external: true
          args: ["serve"]
        root_modules:
          - "modules/network"
        ignore:
          - "examples/**"
    """

    language_server: LanguageServerConfig = field(default_factory=LanguageServerConfig)
    root_modules: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)
    releases_url: str = RELEASES_URL

    # Metadata (not from YAML, set by loader)
    _config_sources: List[str] = field(default_factory=list, repr=False)

    @property
    def enabled(self) -> bool:
        return self.language_server.external

    @property
    def sources(self) -> List[str]:
        return list(self._config_sources)

    def install_dir(self, default: Path) -> Path:
        """Directory terraform-ls is installed into.

        Args:
            default: Directory used when none is configured.
        """
        if self.language_server.install_dir:
            return Path(self.language_server.install_dir).expanduser()
        return default

    def custom_binary(self) -> Optional[Path]:
        """User-provided binary, if configured."""
        if self.language_server.path_to_binary:
            return Path(self.language_server.path_to_binary).expanduser()
        return None

    def initialization_options(self) -> Dict[str, Any]:
        """initializationOptions sent to each language server instance."""
        return {"rootModulePaths": list(self.root_modules)}

    def _language_server_settings(self) -> Tuple[Any, ...]:
        ls = self.language_server
        return (
            ls.external,
            ls.path_to_binary,
            tuple(ls.args),
            ls.install_dir,
            tuple(self.root_modules),
            self.releases_url,
        )

    def affects_language_server(self, other: "TflsctlConfig") -> bool:
        """Whether switching to ``other`` changes install or run settings."""
        return self._language_server_settings() != other._language_server_settings()
