"""MongoDB-backed cache in the ``apiCache`` collection.

Document shape::

    {"key": str, "value": Any, "expiresAt": datetime, "hits": int, "createdAt": datetime}

Expired documents are ignored on read and removed by the TTL index on
``expiresAt`` (created by :meth:`ensure_indexes`).
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from tiko.interfaces.cache_provider import ICacheProvider
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

COLLECTION = "apiCache"


class MongoCacheProvider(ICacheProvider):
    def __init__(self, database: Database, ttl: int = 86400) -> None:
        self._collection = database[COLLECTION]
        self._default_ttl = ttl
        self._logger = get_logger(__name__)

    def _fail(self, operation: str, exc: PyMongoError) -> StorageError:
        self._logger.error("cache_storage_error", operation=operation, error=str(exc))
        return StorageError(f"{operation} failed: {exc}", provider_name="mongodb")

    async def ensure_indexes(self) -> None:
        try:
            await asyncio.to_thread(self._collection.create_index, "key", unique=True)
            await asyncio.to_thread(self._collection.create_index, "expiresAt", expireAfterSeconds=0)
        except PyMongoError as exc:
            raise self._fail("ensure_indexes", exc) from exc

    async def get(self, key: str) -> Any | None:
        now = datetime.now(timezone.utc)
        try:
            doc = await asyncio.to_thread(
                self._collection.find_one_and_update,
                {"key": key, "expiresAt": {"$gt": now}},
                {"$inc": {"hits": 1}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise self._fail("get", exc) from exc
        self._logger.debug("cache_hit" if doc else "cache_miss", key=key)
        return doc.get("value") if doc else None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl if ttl is not None else self._default_ttl)
        try:
            await asyncio.to_thread(
                self._collection.update_one,
                {"key": key},
                {"$set": {"value": value, "expiresAt": expires_at, "createdAt": now}, "$setOnInsert": {"hits": 0}},
                upsert=True,
            )
        except PyMongoError as exc:
            raise self._fail("set", exc) from exc
        self._logger.debug("cache_set", key=key)

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._collection.delete_one, {"key": key})
        except PyMongoError as exc:
            raise self._fail("delete", exc) from exc

    async def exists(self, key: str) -> bool:
        now = datetime.now(timezone.utc)
        try:
            count = await asyncio.to_thread(
                self._collection.count_documents, {"key": key, "expiresAt": {"$gt": now}}, limit=1
            )
        except PyMongoError as exc:
            raise self._fail("exists", exc) from exc
        return count > 0

    async def clear(self, prefix: str | None = None) -> int:
        query = {"key": {"$regex": f"^{re.escape(prefix)}"}} if prefix else {}
        try:
            result = await asyncio.to_thread(self._collection.delete_many, query)
        except PyMongoError as exc:
            raise self._fail("clear", exc) from exc
        self._logger.info("cache_cleared", prefix=prefix, removed=result.deleted_count)
        return result.deleted_count
