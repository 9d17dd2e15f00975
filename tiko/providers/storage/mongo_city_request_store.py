"""MongoDB implementation of :class:`ICityRequestStore` over ``cityRequests``.

Requests are keyed by ``cityKey`` (lowercased ``city|country``).  Adding
a request is one upsert: a new city is inserted as ``pending``; a known
one has ``requestCount`` bumped and goes back to ``pending``.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from tiko.interfaces.document_store import ICityRequestStore
from tiko.models.city_request import CityRequest, CityRequestStats, city_key
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

COLLECTION = "cityRequests"


class MongoCityRequestStore(ICityRequestStore):
    def __init__(self, database: Database) -> None:
        self._collection = database[COLLECTION]
        self._logger = get_logger(__name__)

    def _fail(self, operation: str, exc: PyMongoError) -> StorageError:
        self._logger.error("city_request_store_error", operation=operation, error=str(exc))
        return StorageError(f"{operation} failed: {exc}", provider_name="mongodb")

    def _to_request(self, doc: dict[str, Any]) -> CityRequest | None:
        try:
            return CityRequest(
                city=doc.get("city") or "",
                country=doc.get("country") or "",
                country_code=doc.get("countryCode") or "",
                latitude=doc.get("latitude") or 0.0,
                longitude=doc.get("longitude") or 0.0,
                status=doc.get("status") or "pending",
                priority=doc.get("priority") or 30,
                request_count=doc.get("requestCount") or 1,
                requested_at=doc.get("requestedAt"),
                last_requested_at=doc.get("lastRequestedAt"),
                completed_at=doc.get("completedAt"),
                event_count=doc.get("eventCount") or 0,
                error_message=doc.get("errorMessage") or "",
            )
        except ValidationError as exc:
            self._logger.warning("city_request_invalid", city_key=doc.get("cityKey"), error=str(exc))
            return None

    async def ensure_indexes(self) -> None:
        try:
            await asyncio.to_thread(self._collection.create_index, "cityKey", unique=True)
            await asyncio.to_thread(
                self._collection.create_index, [("status", 1), ("priority", DESCENDING)]
            )
        except PyMongoError as exc:
            raise self._fail("ensure_indexes", exc) from exc

    async def add_request(
        self,
        city: str,
        country: str,
        country_code: str,
        latitude: float,
        longitude: float,
        priority: int,
    ) -> tuple[CityRequest, bool]:
        now = datetime.now(timezone.utc)
        update = {
            "$set": {
                "status": "pending",
                "lastRequestedAt": now,
                "latitude": latitude,
                "longitude": longitude,
            },
            "$inc": {"requestCount": 1},
            "$setOnInsert": {
                "city": city.strip(),
                "country": country.strip(),
                "countryCode": country_code,
                "priority": priority,
                "requestedAt": now,
            },
        }
        try:
            doc = await asyncio.to_thread(
                self._collection.find_one_and_update,
                {"cityKey": city_key(city, country)},
                update,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise self._fail("add_request", exc) from exc
        request = self._to_request(doc or {})
        if request is None:
            raise StorageError(f"stored request for {city} is unreadable", provider_name="mongodb")
        is_new = request.request_count == 1
        self._logger.info("city_requested", city=request.city, country=request.country, new=is_new)
        return request, is_new

    async def pending(self, limit: int) -> list[CityRequest]:
        def _run() -> list[dict[str, Any]]:
            cursor = self._collection.find({"status": "pending"})
            return list(cursor.sort([("priority", DESCENDING), ("requestCount", DESCENDING)]).limit(limit))

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("pending", exc) from exc
        return [r for r in (self._to_request(d) for d in docs) if r is not None]

    async def _set_status(self, operation: str, city: str, country: str, fields: dict[str, Any]) -> bool:
        try:
            result = await asyncio.to_thread(
                self._collection.update_one, {"cityKey": city_key(city, country)}, {"$set": fields}
            )
        except PyMongoError as exc:
            raise self._fail(operation, exc) from exc
        return result.matched_count > 0

    async def mark_processing(self, city: str, country: str) -> bool:
        fields = {"status": "processing", "processingStartedAt": datetime.now(timezone.utc)}
        return await self._set_status("mark_processing", city, country, fields)

    async def mark_completed(self, city: str, country: str, event_count: int) -> bool:
        fields = {
            "status": "completed",
            "completedAt": datetime.now(timezone.utc),
            "eventCount": event_count,
            "errorMessage": "",
        }
        return await self._set_status("mark_completed", city, country, fields)

    async def mark_error(self, city: str, country: str, message: str) -> bool:
        fields = {"status": "error", "errorMessage": message, "errorAt": datetime.now(timezone.utc)}
        return await self._set_status("mark_error", city, country, fields)

    async def stats(self) -> CityRequestStats:
        def _run() -> list[dict[str, Any]]:
            return list(self._collection.find({}, {"status": 1, "country": 1}))

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("stats", exc) from exc
        statuses = Counter(d.get("status") or "pending" for d in docs)
        return CityRequestStats(
            total=len(docs),
            pending=statuses["pending"],
            processing=statuses["processing"],
            completed=statuses["completed"],
            error=statuses["error"],
            by_country=dict(Counter(d.get("country") or "unknown" for d in docs)),
        )

    async def cleanup_completed(self, older_than: datetime) -> int:
        try:
            result = await asyncio.to_thread(
                self._collection.delete_many, {"status": "completed", "completedAt": {"$lt": older_than}}
            )
        except PyMongoError as exc:
            raise self._fail("cleanup_completed", exc) from exc
        return result.deleted_count
