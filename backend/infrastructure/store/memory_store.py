"""
In-process quota store.

Used in development and tests. Documents live in a dict keyed by path;
state is lost on restart and is not shared between workers.
"""

import asyncio
import copy
import logging
from datetime import UTC, datetime
from typing import Any

from core.interfaces.repositories import SERVER_TIMESTAMP, QuotaStore

logger = logging.getLogger(__name__)


class InMemoryQuotaStore(QuotaStore):
    """Dict-backed document store with per-document atomic merges."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None):
        self._documents: dict[str, dict[str, Any]] = copy.deepcopy(documents or {})
        self._lock = asyncio.Lock()

    async def get(self, path: str) -> dict[str, Any] | None:
        doc = self._documents.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    async def merge_set(self, path: str, fields: dict[str, Any]) -> None:
        now = datetime.now(UTC)
        resolved = {
            key: (now if value is SERVER_TIMESTAMP else copy.deepcopy(value))
            for key, value in fields.items()
        }
        async with self._lock:
            self._documents.setdefault(path, {}).update(resolved)
        logger.debug("Merged %d field(s) into %s", len(resolved), path)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Return a copy of every stored document, keyed by path."""
        return copy.deepcopy(self._documents)
