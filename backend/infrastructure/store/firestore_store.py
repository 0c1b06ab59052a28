"""Firestore-backed quota store.

Document paths map one-to-one onto Firestore document paths, and
``set(..., merge=True)`` provides the partial-update semantics.
"""

import logging
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from core.exceptions import StorageError
from core.interfaces.repositories import SERVER_TIMESTAMP, QuotaStore

logger = logging.getLogger(__name__)

_HEALTH_PATH = "_health/ping"


class FirestoreQuotaStore(QuotaStore):
    """Quota store on Google Cloud Firestore."""

    def __init__(
        self,
        project: str | None = None,
        database: str | None = None,
        client: Any | None = None,
    ) -> None:
        if client is None:
            kwargs: dict[str, Any] = {}
            if project:
                kwargs["project"] = project
            if database:
                kwargs["database"] = database
            client = firestore.AsyncClient(**kwargs)
        self._client = client

    async def get(self, path: str) -> dict[str, Any] | None:
        try:
            snapshot = await self._client.document(path).get()
        except gcp_exceptions.GoogleAPIError as e:
            logger.error("Firestore read failed for %s: %s", path, e)
            raise StorageError(f"Read failed for {path}") from e
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    async def merge_set(self, path: str, fields: dict[str, Any]) -> None:
        payload = {
            key: (firestore.SERVER_TIMESTAMP if value is SERVER_TIMESTAMP else value)
            for key, value in fields.items()
        }
        try:
            await self._client.document(path).set(payload, merge=True)
        except gcp_exceptions.GoogleAPIError as e:
            logger.error("Firestore write failed for %s: %s", path, e)
            raise StorageError(f"Write failed for {path}") from e

    async def ping(self) -> bool:
        try:
            await self._client.document(_HEALTH_PATH).get()
            return True
        except gcp_exceptions.GoogleAPIError as e:
            logger.warning("Firestore ping failed: %s", e)
            return False
