"""MongoDB implementation of :class:`IInterestedEventStore` over ``interestedEvents``.

One document per (listener, event): ``{userId, event, savedAt, source}``
where ``event`` is the stored event document as it was when saved.  The
pair is unique, so saving twice leaves the first entry in place.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from tiko.interfaces.document_store import IInterestedEventStore
from tiko.models.event import Event
from tiko.models.saved_event import SavedEvent
from tiko.services.event_normalizer import event_to_document, normalize_event, safe_date
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

COLLECTION = "interestedEvents"


class MongoInterestedEventStore(IInterestedEventStore):
    def __init__(self, database: Database) -> None:
        self._collection = database[COLLECTION]
        self._logger = get_logger(__name__)

    def _fail(self, operation: str, exc: PyMongoError) -> StorageError:
        self._logger.error("interested_event_store_error", operation=operation, error=str(exc))
        return StorageError(f"{operation} failed: {exc}", provider_name="mongodb")

    @staticmethod
    def _require_user(user_id: str) -> None:
        if not user_id:
            raise StorageError("saved events need a user_id", provider_name="mongodb")

    def _to_saved(self, doc: dict[str, Any]) -> SavedEvent | None:
        raw = doc.get("event")
        event = normalize_event(raw, source=(raw or {}).get("source") or "unknown") if isinstance(raw, dict) else None
        if event is None:
            self._logger.warning("saved_event_unreadable", user_id=doc.get("userId"))
            return None
        return SavedEvent(
            user_id=str(doc.get("userId") or ""),
            event=event,
            saved_at=safe_date(doc.get("savedAt")),
            source=str(doc.get("source") or "user_action"),
        )

    async def ensure_indexes(self) -> None:
        try:
            await asyncio.to_thread(
                self._collection.create_index, [("userId", ASCENDING), ("event.id", ASCENDING)], unique=True
            )
        except PyMongoError as exc:
            raise self._fail("ensure_indexes", exc) from exc

    async def list_saved(self, user_id: str) -> list[SavedEvent]:
        self._require_user(user_id)

        def _run() -> list[dict[str, Any]]:
            return list(self._collection.find({"userId": user_id}).sort("savedAt", ASCENDING))

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("list_saved", exc) from exc
        return [s for s in (self._to_saved(d) for d in docs) if s is not None]

    async def save(self, user_id: str, event: Event) -> tuple[SavedEvent, bool]:
        self._require_user(user_id)
        now = datetime.now(timezone.utc)
        key = {"userId": user_id, "event.id": event.id}
        insert = {"event": event_to_document(event), "savedAt": now, "source": "user_action"}
        try:
            result = await asyncio.to_thread(
                self._collection.update_one, key, {"$setOnInsert": insert}, upsert=True
            )
            if result.upserted_id is not None:
                self._logger.info("event_saved", user_id=user_id, event_id=event.id)
                return SavedEvent(user_id=user_id, event=event, saved_at=now), True
            existing = await asyncio.to_thread(self._collection.find_one, key)
        except PyMongoError as exc:
            raise self._fail("save", exc) from exc
        saved = self._to_saved(existing) if existing else None
        return saved or SavedEvent(user_id=user_id, event=event), False

    async def remove(self, user_id: str, event_id: str) -> bool:
        self._require_user(user_id)
        try:
            result = await asyncio.to_thread(
                self._collection.delete_one, {"userId": user_id, "event.id": event_id}
            )
        except PyMongoError as exc:
            raise self._fail("remove", exc) from exc
        return result.deleted_count > 0
