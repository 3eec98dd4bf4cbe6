"""terraform-ls installation.

Sequences probe -> resolve -> confirm -> download -> verify -> unpack. The
package file is removed whatever the outcome, so a failed or cancelled
install never leaves a corrupt or unverified archive behind.
"""

from __future__ import annotations

import asyncio
import platform as _platform
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from tflsctl import __version__
from tflsctl.bootstrap.archive import unpack_async
from tflsctl.bootstrap.checksums import verify
from tflsctl.bootstrap.download import create_http_client, download
from tflsctl.bootstrap.errors import InstallCancelledError
from tflsctl.bootstrap.paths import LANGUAGE_SERVER_NAME, binary_name
from tflsctl.bootstrap.platform import PlatformInfo, get_platform_info
from tflsctl.bootstrap.releases import RELEASES_URL, Release, check_latest
from tflsctl.bootstrap.validation import probe_installed_version
from tflsctl.core.logging import get_logger
from tflsctl.ui.progress import NullProgressHandler, ProgressHandler
from tflsctl.ui.prompts import Prompter

LOGGER = get_logger(__name__)

# Download, verify and unpack; the increments sum to 100.
STEP_INCREMENTS = (33, 33, 34)

T = TypeVar("T")


def default_user_agent() -> str:
    """User-Agent sent to the release feed."""
    return f"tflsctl/{__version__} Python/{_platform.python_version()}"


class InstallStatus(str, Enum):
    """Outcome of a successful install call."""

    INSTALLED = "installed"
    UP_TO_DATE = "up_to_date"
    DECLINED = "declined"


@dataclass(frozen=True)
class InstallResult:
    """What :meth:`LanguageServerInstaller.install` did."""

    status: InstallStatus
    binary_path: Path
    version: str = ""


class LanguageServerInstaller:
    """Installs or upgrades terraform-ls into a directory.

    Binary management:
    - Resolves the newest release from https://releases.hashicorp.com/terraform-ls
    - Verifies packages against the release's SHA256SUMS manifest
    - Installs to <directory>/terraform-ls
    """

    def __init__(
        self,
        prompter: Prompter,
        progress: Optional[ProgressHandler] = None,
        releases_url: str = RELEASES_URL,
        user_agent: Optional[str] = None,
        platform_info: Optional[PlatformInfo] = None,
        client_factory: Callable[[], httpx.AsyncClient] = create_http_client,
    ) -> None:
        """Initialize LanguageServerInstaller.

        Args:
            prompter: Asked before installing and told about the result.
            progress: Receives download/verify/unpack progress.
            releases_url: Base URL of the release feed.
            user_agent: User-Agent header; defaults to the tflsctl version.
            platform_info: Host platform; detected when omitted.
            client_factory: Creates the HTTP client for one install attempt.
        """
        self._prompter = prompter
        self._progress = progress or NullProgressHandler()
        self._releases_url = releases_url
        self._user_agent = user_agent or default_user_agent()
        self._platform = platform_info or get_platform_info()
        self._client_factory = client_factory
        self._cancelled: Optional[asyncio.Event] = None

    @property
    def platform_info(self) -> PlatformInfo:
        return self._platform

    def binary_path(self, directory: Path) -> Path:
        """Location of the installed executable inside ``directory``."""
        return directory / binary_name(self._platform.os)

    def cancel(self) -> None:
        """Request cancellation of a running install.

        Takes effect at the next suspension point of the download, verify or
        unpack step.
        """
        if self._cancelled is not None:
            self._cancelled.set()

    async def install(self, directory: Path) -> InstallResult:
        """Install the newest terraform-ls release into ``directory``.

        Returns:
            InstallResult describing whether anything was installed.

        Raises:
            NetworkError: If the feed, manifest or package cannot be fetched.
            NoReleasesError: If the feed lists no releases.
            UnsupportedPlatformError: If no build matches the host.
            ChecksumNotFoundError: If the manifest has no entry for the build.
            ChecksumMismatchError: If the package digest is wrong.
            ArchiveError: If the package cannot be extracted.
            InstallCancelledError: If :meth:`cancel` was called.
        """
        self._cancelled = asyncio.Event()
        binary = self.binary_path(directory)

        installed = await probe_installed_version(binary)

        async with self._client_factory() as client:
            latest = await check_latest(client, self._user_agent, self._releases_url)

            if installed.version is not None and installed.version >= latest.version:
                LOGGER.info(f"terraform-ls {installed.reported_version} is up to date")
                return InstallResult(InstallStatus.UP_TO_DATE, binary, installed.reported_version)

            if not await self._prompter.confirm_install(latest.name, installed.reported_version):
                LOGGER.info(f"Installation of terraform-ls {latest.name} declined")
                return InstallResult(InstallStatus.DECLINED, binary, installed.reported_version)

            await self._install_release(client, directory, latest)

        self._prompter.show_installed(latest.name, latest.changelog_url)
        return InstallResult(InstallStatus.INSTALLED, binary, latest.name)

    async def _install_release(self, client: httpx.AsyncClient, directory: Path, release: Release) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        build = release.select_build(self._platform)
        self._remove_old_binary(directory)

        destination = directory / f"{LANGUAGE_SERVER_NAME}_v{release.name}.zip"
        LOGGER.info(f"Installing terraform-ls {release.name} to {directory}")

        self._progress.start(f"Installing {LANGUAGE_SERVER_NAME}")
        try:
            await self._run_step(download(client, build.url, destination, self._user_agent))
            self._progress.advance(STEP_INCREMENTS[0], "downloaded")

            await self._run_step(
                verify(client, release, destination, build.filename, self._user_agent, self._releases_url)
            )
            self._progress.advance(STEP_INCREMENTS[1], "verified")

            await self._run_step(unpack_async(directory, destination, binary_name(self._platform.os)))
            self._progress.advance(STEP_INCREMENTS[2], "unpacked")
        except BaseException:
            self._progress.finish(False)
            raise
        finally:
            destination.unlink(missing_ok=True)

        self._progress.finish(True)
        LOGGER.info(f"Installed terraform-ls {release.name}")

    def _remove_old_binary(self, directory: Path) -> None:
        try:
            self.binary_path(directory).unlink()
        except FileNotFoundError:
            pass

    async def _run_step(self, step: Awaitable[T]) -> T:
        """Await an install step unless cancellation is requested first."""
        if self._cancelled is None or self._cancelled.is_set():
            if asyncio.iscoroutine(step):
                step.close()
            if self._cancelled is None:
                raise RuntimeError("Install steps can only run inside install()")
            raise InstallCancelledError("Installation cancelled")

        task = asyncio.ensure_future(step)
        waiter = asyncio.ensure_future(self._cancelled.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            task.cancel()
            await asyncio.wait({task})
            raise
        finally:
            waiter.cancel()

        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            raise InstallCancelledError("Installation cancelled")
        return task.result()
