"""Mapping of workspace root keys to running clients."""

from __future__ import annotations

from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

C = TypeVar("C")


class ClientRegistry(Generic[C]):
    """At most one client per canonical root key.

    The registry never starts or stops anything itself. Callers stop a
    client before removing its entry.
    """

    def __init__(self) -> None:
        self._clients: Dict[str, C] = {}

    def add(self, key: str, client: C) -> None:
        """Register ``client`` under ``key``.

        Raises:
            KeyError: If ``key`` already has a client.
        """
        if key in self._clients:
            raise KeyError(f"A client is already registered for {key}")
        self._clients[key] = client

    def get(self, key: str) -> Optional[C]:
        return self._clients.get(key)

    def remove(self, key: str) -> Optional[C]:
        """Drop the entry for ``key`` and return its client, if any."""
        return self._clients.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._clients)

    def values(self) -> List[C]:
        return list(self._clients.values())

    def items(self) -> List[Tuple[str, C]]:
        return list(self._clients.items())

    def clear(self) -> None:
        self._clients.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._clients))
