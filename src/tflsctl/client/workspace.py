"""Workspace roots and Terraform document discovery.

Roots are compared by their canonical key: the resolved ``file://`` URI with
a trailing slash, so that ``/a`` and ``/a/`` are the same root and ``/ab/``
is never mistaken for a child of ``/a/``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import pathspec

from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

TERRAFORM_SUFFIXES = (".tf", ".tfvars")

# Never opened as documents
DEFAULT_IGNORE_PATTERNS = [
    ".git/**",
    "**/.terraform/**",
]

PathLike = Union[str, Path]


def canonical_root_key(path: PathLike) -> str:
    """Registry key for a workspace root."""
    uri = Path(path).resolve().as_uri()
    if not uri.endswith("/"):
        uri += "/"
    return uri


def _document_uri(path: PathLike) -> str:
    return Path(path).resolve().as_uri()


@dataclass(frozen=True)
class WorkspaceRoot:
    """A folder opened in the workspace."""

    uri: str
    name: str = ""

    @classmethod
    def from_path(cls, path: PathLike) -> "WorkspaceRoot":
        resolved = Path(path).resolve()
        return cls(uri=resolved.as_uri(), name=resolved.name or str(resolved))

    @property
    def path(self) -> Path:
        """Filesystem path of the root."""
        return Path(url2pathname(unquote(urlparse(self.uri).path)))

    @property
    def key(self) -> str:
        return self.uri if self.uri.endswith("/") else self.uri + "/"

    def contains(self, path: PathLike) -> bool:
        """Whether ``path`` is this root or lies below it."""
        uri = _document_uri(path)
        return uri == self.uri.rstrip("/") or uri.startswith(self.key)


class Workspace:
    """The set of open workspace folders."""

    def __init__(self, folders: Optional[Iterable[WorkspaceRoot]] = None):
        self._folders: List[WorkspaceRoot] = []
        if folders:
            self.add_folders(folders)

    @classmethod
    def from_paths(cls, paths: Iterable[PathLike]) -> "Workspace":
        return cls(WorkspaceRoot.from_path(p) for p in paths)

    @property
    def folders(self) -> List[WorkspaceRoot]:
        return list(self._folders)

    def first(self) -> Optional[WorkspaceRoot]:
        """First folder opened, used to locate the project config."""
        return self._folders[0] if self._folders else None

    def add_folders(self, folders: Iterable[WorkspaceRoot]) -> List[WorkspaceRoot]:
        """Add folders, ignoring ones already open.

        Returns:
            The folders that were actually added.
        """
        added = []
        keys = {f.key for f in self._folders}
        for folder in folders:
            if folder.key in keys:
                continue
            self._folders.append(folder)
            keys.add(folder.key)
            added.append(folder)
        return added

    def remove_folders(self, folders: Iterable[WorkspaceRoot]) -> List[WorkspaceRoot]:
        """Remove folders by key. Unknown folders are ignored.

        Returns:
            The folders that were actually removed.
        """
        doomed = {f.key for f in folders}
        removed = [f for f in self._folders if f.key in doomed]
        self._folders = [f for f in self._folders if f.key not in doomed]
        return removed

    def folder_for(self, path: PathLike) -> Optional[WorkspaceRoot]:
        """Innermost open folder containing ``path``, if any."""
        candidates = [f for f in self._folders if f.contains(path)]
        if not candidates:
            return None
        return max(candidates, key=lambda f: len(f.key))

    def outermost(self, folder: WorkspaceRoot) -> WorkspaceRoot:
        """Shortest open folder enclosing ``folder``.

        Nested roots share the client of their outermost ancestor.
        """
        for candidate in sorted(self._folders, key=lambda f: len(f.key)):
            if folder.key.startswith(candidate.key):
                return candidate
        return folder

    def __len__(self) -> int:
        return len(self._folders)

    def __contains__(self, folder: object) -> bool:
        if not isinstance(folder, WorkspaceRoot):
            return False
        return any(f.key == folder.key for f in self._folders)


def find_terraform_documents(root: Path, ignore: Optional[List[str]] = None) -> List[Path]:
    """Collect .tf and .tfvars files below ``root``.

    Args:
        root: Directory to search.
        ignore: Additional gitignore-style patterns, relative to ``root``.

    Returns:
        Sorted list of document paths.
    """
    spec = pathspec.PathSpec.from_lines(
        "gitignore",
        DEFAULT_IGNORE_PATTERNS + list(ignore or []),
    )

    documents = []
    for path in root.rglob("*"):
        if path.suffix not in TERRAFORM_SUFFIXES or not path.is_file():
            continue
        relative_path = path.relative_to(root).as_posix()
        if spec.match_file(relative_path):
            continue
        documents.append(path)

    LOGGER.debug(f"Found {len(documents)} Terraform documents under {root}")
    return sorted(documents)
