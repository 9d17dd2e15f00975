"""MongoDB implementation of :class:`IEventStore` over ``events_unified``.

Documents are matched by their ``id`` field.  Documents written before
``id`` existed carry only ``_id`` and ``sourceId``; events read back from
the catalog keep that ``_id`` as ``Event.document_id`` and writes for
them match on ``_id`` directly.

pymongo is synchronous; every call runs in a worker thread via
``asyncio.to_thread`` so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo import ASCENDING, UpdateOne
from pymongo.database import Database
from pymongo.errors import PyMongoError

from tiko.interfaces.document_store import IEventStore
from tiko.models.event import Event, Venue
from tiko.services.event_normalizer import event_to_document, normalize_event
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

COLLECTION = "events_unified"

# Fields owned by the scoring job; an upsert from a live fetch must not reset them.
_SCORE_FIELDS = ("personalizedScore", "scoringMethod", "scoringVersion", "scoringTimestamp")


def _id_filter(event_id: str, document_id: str | None = None) -> dict[str, Any]:
    """Match on the known ``_id``, else on ``id`` or an ObjectId id tail."""
    if document_id:
        return {"_id": ObjectId(document_id) if ObjectId.is_valid(document_id) else document_id}
    tail = event_id.rsplit("-", 1)[-1]
    if ObjectId.is_valid(tail):
        return {"$or": [{"id": event_id}, {"_id": ObjectId(tail)}]}
    return {"id": event_id}


def _city_filter(city: str) -> dict[str, Any]:
    pattern = {"$regex": f"^{re.escape(city)}$", "$options": "i"}
    return {"$or": [{"venue.city": pattern}, {"city": pattern}]}


class MongoEventStore(IEventStore):
    def __init__(self, database: Database) -> None:
        self._collection = database[COLLECTION]
        self._logger = get_logger(__name__)

    def _fail(self, operation: str, exc: PyMongoError) -> StorageError:
        self._logger.error("event_store_error", operation=operation, error=str(exc))
        return StorageError(f"{operation} failed: {exc}", provider_name="mongodb")

    def _to_event(self, doc: dict[str, Any]) -> Event | None:
        if "_id" not in doc:
            return normalize_event(doc, source=doc.get("source") or "unknown")
        document_id = str(doc["_id"])
        event = normalize_event({**doc, "_id": document_id}, source=doc.get("source") or "unknown")
        return event.model_copy(update={"document_id": document_id}) if event is not None else None

    async def ensure_indexes(self) -> None:
        try:
            await asyncio.to_thread(self._collection.create_index, "id")
            await asyncio.to_thread(self._collection.create_index, [("date", ASCENDING)])
            await asyncio.to_thread(self._collection.create_index, "venue.city")
        except PyMongoError as exc:
            raise self._fail("ensure_indexes", exc) from exc

    async def upsert_events(self, events: list[Event]) -> int:
        if not events:
            return 0
        now = datetime.now(timezone.utc)
        operations = []
        for event in events:
            doc = event_to_document(event)
            for field in _SCORE_FIELDS:
                doc.pop(field, None)
            doc["updatedAt"] = now
            operations.append(
                UpdateOne({"id": event.id}, {"$set": doc, "$setOnInsert": {"createdAt": now}}, upsert=True)
            )
        try:
            result = await asyncio.to_thread(self._collection.bulk_write, operations, ordered=False)
        except PyMongoError as exc:
            raise self._fail("upsert_events", exc) from exc
        written = result.upserted_count + result.modified_count
        self._logger.info("events_upserted", submitted=len(events), written=written)
        return written

    async def find_events(self, city: str | None = None, limit: int = 100) -> list[Event]:
        query: dict[str, Any] = {"date": {"$gte": datetime.now(timezone.utc)}}
        if city:
            query.update(_city_filter(city))

        def _run() -> list[dict[str, Any]]:
            return list(self._collection.find(query).sort("date", ASCENDING).limit(limit))

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("find_events", exc) from exc
        return [e for e in (self._to_event(d) for d in docs) if e is not None]

    async def count_events(self, city: str | None = None, scored: bool | None = None) -> int:
        query: dict[str, Any] = {}
        if city:
            query.update(_city_filter(city))
        if scored is not None:
            query["personalizedScore"] = {"$exists": True, "$ne": None} if scored else {"$in": [None]}
        try:
            return await asyncio.to_thread(self._collection.count_documents, query)
        except PyMongoError as exc:
            raise self._fail("count_events", exc) from exc

    async def find_unscored(self, limit: int, include_scored: bool = False) -> list[Event]:
        query: dict[str, Any] = {} if include_scored else {"personalizedScore": {"$in": [None]}}

        def _run() -> list[dict[str, Any]]:
            return list(self._collection.find(query).limit(limit))

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("find_unscored", exc) from exc
        return [e for e in (self._to_event(d) for d in docs) if e is not None]

    async def update_score(
        self,
        event_id: str,
        score: int,
        method: str,
        version: str,
        scored_at: datetime,
        document_id: str | None = None,
    ) -> bool:
        update = {
            "$set": {
                "personalizedScore": score,
                "scoringMethod": method,
                "scoringVersion": version,
                "scoringTimestamp": scored_at,
            }
        }
        try:
            result = await asyncio.to_thread(
                self._collection.update_one, _id_filter(event_id, document_id), update
            )
        except PyMongoError as exc:
            raise self._fail("update_score", exc) from exc
        return result.matched_count > 0

    async def iter_raw_venues(self, limit: int | None = None) -> list[tuple[str, Any]]:
        def _run() -> list[dict[str, Any]]:
            cursor = self._collection.find({}, {"id": 1, "venue": 1, "source": 1})
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("iter_raw_venues", exc) from exc
        pairs = []
        for doc in docs:
            event_id = doc.get("id") or f"{doc.get('source') or 'unknown'}-{doc['_id']}"
            pairs.append((str(event_id), doc.get("venue")))
        return pairs

    async def replace_venue(self, event_id: str, venue: Venue) -> bool:
        value = {
            "name": venue.name,
            "address": venue.address,
            "city": venue.city,
            "state": venue.state,
            "country": venue.country,
            "type": venue.venue_type,
            "capacity": venue.capacity,
            "url": venue.url,
        }
        try:
            result = await asyncio.to_thread(
                self._collection.update_one, _id_filter(event_id), {"$set": {"venue": value}}
            )
        except PyMongoError as exc:
            raise self._fail("replace_venue", exc) from exc
        return result.modified_count > 0
