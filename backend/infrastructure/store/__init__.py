"""Quota store backends and factory."""

import logging

from core.interfaces.repositories import QuotaStore
from infrastructure.config.settings import Settings

from .memory_store import InMemoryQuotaStore

logger = logging.getLogger(__name__)


def create_quota_store(settings: Settings) -> QuotaStore:
    """
    Build the quota store selected by ``QUOTA_STORE_BACKEND``.

    Backend modules are imported lazily so a deployment only needs the
    client library of the backend it uses at import time.
    """
    backend = settings.quota_store_backend

    if backend == "redis":
        from .redis_store import RedisQuotaStore

        logger.info("Using Redis quota store")
        return RedisQuotaStore(redis_url=settings.redis_url)

    if backend == "firestore":
        from .firestore_store import FirestoreQuotaStore

        logger.info("Using Firestore quota store (project=%s)", settings.firestore_project)
        return FirestoreQuotaStore(
            project=settings.firestore_project,
            database=settings.firestore_database,
        )

    logger.warning("Using in-memory quota store; state is per-process and lost on restart")
    return InMemoryQuotaStore()


__all__ = ["InMemoryQuotaStore", "create_quota_store"]
