"""Key-value persistence for finished build artifacts.

Provides :class:`ArtifactStore` (abstract base) and :class:`InMemoryArtifactStore`
(default implementation backed by a plain dict).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ArtifactStore(ABC):
    """Abstract key-value store for JSON-compatible values.

    Subclass this to plug in Redis, a database, or any other backend.
    """

    @staticmethod
    def build_key(build_id: str, name: str) -> str:
        """Key under which artifact *name* of build *build_id* is stored."""
        return f"build:{build_id}:{name}"

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value, or ``None`` when *key* is absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """Return the stored keys starting with *prefix*, sorted."""


class InMemoryArtifactStore(ArtifactStore):
    def __init__(self) -> None:
        self._store: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return self._store.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._store if k.startswith(prefix))
