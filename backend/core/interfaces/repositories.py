"""Repository interfaces for data access."""

from abc import ABC, abstractmethod
from typing import Any


class _ServerTimestamp:
    """Sentinel asking the store to stamp a field with its own clock."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class QuotaStore(ABC):
    """Document key-value store holding the subscription and usage documents.

    Paths are slash-separated document paths. A merge-set is atomic for one
    document; there are no multi-document transactions and no compare-and-set.
    Implementations raise ``core.exceptions.StorageError`` on any fault.
    """

    @abstractmethod
    async def get(self, path: str) -> dict[str, Any] | None:
        """Return the document at ``path``, or None if it does not exist."""
        ...

    @abstractmethod
    async def merge_set(self, path: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into the document at ``path``, creating it if needed.

        Fields not named are left untouched. Values equal to
        ``SERVER_TIMESTAMP`` are replaced by the store's current time.
        """
        ...

    async def ping(self) -> bool:
        """Check connectivity. Stores without a remote end are always up."""
        return True

    async def close(self) -> None:
        """Release client resources."""
        return None
