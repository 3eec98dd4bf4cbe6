"""Zip extraction for downloaded language server packages."""

from __future__ import annotations

import asyncio
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import List, Optional

from tflsctl.bootstrap.errors import ArchiveError
from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

EXECUTABLE_MODE = 0o755
COPY_CHUNK_SIZE = 64 * 1024


def unpack(directory: Path, archive_path: Path, binary_name: Optional[str] = None) -> Path:
    """Extract a package archive entry by entry and mark the payload executable.

    Packages are expected to hold a single executable. Extra entries are
    logged as anomalous; the payload is then the entry named ``binary_name``
    if present, otherwise the last file written.

    Args:
        directory: Target directory.
        archive_path: Zip file to extract.
        binary_name: Expected executable name.

    Returns:
        Path to the executable.

    Raises:
        ArchiveError: If the archive is malformed, empty, escapes the target
            directory, or cannot be written.
    """
    root = directory.resolve()
    written: List[Path] = []

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                target = (root / info.filename).resolve()
                if root not in target.parents:
                    raise ArchiveError(f"Path traversal detected: {info.filename}")
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as source, open(target, "wb") as dest:
                    shutil.copyfileobj(source, dest, COPY_CHUNK_SIZE)
                written.append(target)
    except (zipfile.BadZipFile, zlib.error) as e:
        raise ArchiveError(f"Invalid package archive {archive_path}: {e}") from e
    except OSError as e:
        raise ArchiveError(f"Unable to extract {archive_path}: {e}") from e

    if not written:
        raise ArchiveError(f"Package archive {archive_path} has no entries")

    executable = written[-1]
    if len(written) > 1:
        names = ", ".join(p.name for p in written)
        LOGGER.warning(f"Package archive contains {len(written)} entries ({names})")
        for path in written:
            if path.name == binary_name:
                executable = path
                break

    executable.chmod(EXECUTABLE_MODE)
    LOGGER.debug(f"Extracted {executable}")
    return executable


async def unpack_async(directory: Path, archive_path: Path, binary_name: Optional[str] = None) -> Path:
    """Run :func:`unpack` in a worker thread."""
    return await asyncio.to_thread(unpack, directory, archive_path, binary_name)
