"""MongoDB implementation of :class:`IProfileStore` over ``userTasteProfiles``."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

from tiko.interfaces.document_store import IProfileStore
from tiko.models.taste import UserTasteProfile
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

COLLECTION = "userTasteProfiles"


class MongoProfileStore(IProfileStore):
    """Stores one document per listener, keyed by ``userId``.

    The profile itself is stored under ``profile`` as the model's JSON
    dump, so the document survives model field additions.
    """

    def __init__(self, database: Database) -> None:
        self._collection = database[COLLECTION]
        self._logger = get_logger(__name__)

    async def get_profile(self, user_id: str) -> UserTasteProfile | None:
        try:
            doc = await asyncio.to_thread(self._collection.find_one, {"userId": user_id})
        except PyMongoError as exc:
            self._logger.error("profile_store_error", operation="get_profile", error=str(exc))
            raise StorageError(f"get_profile failed: {exc}", provider_name="mongodb") from exc
        if not doc or not isinstance(doc.get("profile"), dict):
            return None
        try:
            profile = UserTasteProfile.model_validate(doc["profile"])
        except ValidationError as exc:
            self._logger.warning("stored_profile_invalid", user_id=user_id, error=str(exc))
            return None
        return profile.model_copy(update={"source": "stored"})

    async def save_profile(self, profile: UserTasteProfile) -> None:
        if not profile.user_id:
            raise StorageError("profile has no user_id", provider_name="mongodb")
        update = {
            "$set": {
                "profile": profile.model_dump(mode="json"),
                "lastUpdated": datetime.now(timezone.utc),
            }
        }
        try:
            await asyncio.to_thread(
                self._collection.update_one, {"userId": profile.user_id}, update, upsert=True
            )
        except PyMongoError as exc:
            self._logger.error("profile_store_error", operation="save_profile", error=str(exc))
            raise StorageError(f"save_profile failed: {exc}", provider_name="mongodb") from exc
        self._logger.info("profile_saved", user_id=profile.user_id)
