"""
Redis-backed quota store.

Each document is a Redis hash keyed by its path; every field value is stored
JSON-encoded so counts round-trip as integers. ``HSET`` with a mapping is a
single command, so a merge is atomic for one document.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from core.exceptions import StorageError
from core.interfaces.repositories import SERVER_TIMESTAMP, QuotaStore

logger = logging.getLogger(__name__)


def _encode(value: Any) -> str:
    if value is SERVER_TIMESTAMP:
        value = datetime.now(UTC)
    return json.dumps(value, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class RedisQuotaStore(QuotaStore):
    """Quota store on Redis hashes."""

    def __init__(
        self,
        redis_url: str | None = None,
        client: aioredis.Redis | None = None,
        key_prefix: str = "",
    ):
        """
        Initialize the store.

        Args:
            redis_url: Connection URL, used when no client is given
            client: Pre-built async Redis client
            key_prefix: Optional prefix prepended to every document path
        """
        if client is None:
            if not redis_url:
                raise ValueError("redis_url or client is required for the Redis quota store")
            # Cap connections per worker
            client = aioredis.from_url(redis_url, decode_responses=True, max_connections=20)
        self._client = client
        self._key_prefix = key_prefix

    def _key(self, path: str) -> str:
        return f"{self._key_prefix}{path}"

    async def get(self, path: str) -> dict[str, Any] | None:
        try:
            raw = await self._client.hgetall(self._key(path))
        except RedisError as e:
            logger.error("Redis read failed for %s: %s", path, e)
            raise StorageError(f"Read failed for {path}") from e

        if not raw:
            return None

        doc: dict[str, Any] = {}
        try:
            for field, value in raw.items():
                if isinstance(field, bytes):
                    field = field.decode("utf-8")
                if isinstance(value, bytes):
                    value = value.decode("utf-8")
                doc[field] = json.loads(value)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Undecodable document at %s: %s", path, e)
            raise StorageError(f"Corrupt document at {path}") from e
        return doc

    async def merge_set(self, path: str, fields: dict[str, Any]) -> None:
        if not fields:
            return
        try:
            mapping = {field: _encode(value) for field, value in fields.items()}
        except TypeError as e:
            raise StorageError(f"Unserializable field for {path}: {e}") from e
        try:
            await self._client.hset(self._key(path), mapping=mapping)
        except RedisError as e:
            logger.error("Redis write failed for %s: %s", path, e)
            raise StorageError(f"Write failed for {path}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    async def close(self) -> None:
        await self._client.aclose()
