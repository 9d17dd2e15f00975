"""MongoDB implementation of :class:`IArtistStore` over ``artistGenres``.

Document shape (camelCase, as written by earlier jobs)::

    artistName, genres, popularity, spotifyId, edmWeight, audioFeatures,
    essentiaMatrix, needsGenreEnrichment, enrichmentError, lastUpdated

Artist names are matched case-insensitively.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any

from pymongo.database import Database
from pymongo.errors import PyMongoError

from tiko.config.genre_knowledge import is_edm_genre
from tiko.interfaces.document_store import IArtistStore
from tiko.models.artist import Artist, AudioFeatures
from tiko.utils.errors import StorageError
from tiko.utils.logging import get_logger

COLLECTION = "artistGenres"


def _name_filter(name: str) -> dict[str, Any]:
    return {"artistName": {"$regex": f"^{re.escape(name.strip())}$", "$options": "i"}}


def _to_artist(doc: dict[str, Any]) -> Artist | None:
    name = doc.get("artistName") or doc.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    popularity = doc.get("popularity")
    edm_weight = doc.get("edmWeight")
    return Artist(
        name=name.strip(),
        spotify_id=doc.get("spotifyId"),
        genres=[g for g in doc.get("genres") or [] if isinstance(g, str)],
        popularity=popularity if isinstance(popularity, int) and 0 <= popularity <= 100 else None,
        audio_features=AudioFeatures.from_mapping(doc.get("audioFeatures")),
        edm_weight=min(1.0, max(0.0, float(edm_weight))) if isinstance(edm_weight, (int, float)) else 0.0,
        needs_genre_enrichment=bool(doc.get("needsGenreEnrichment")),
        essentia_matrix=doc.get("essentiaMatrix") if isinstance(doc.get("essentiaMatrix"), dict) else None,
    )


class MongoArtistStore(IArtistStore):
    def __init__(self, database: Database) -> None:
        self._collection = database[COLLECTION]
        self._logger = get_logger(__name__)

    def _fail(self, operation: str, exc: PyMongoError) -> StorageError:
        self._logger.error("artist_store_error", operation=operation, error=str(exc))
        return StorageError(f"{operation} failed: {exc}", provider_name="mongodb")

    async def find_needing_enrichment(self, limit: int) -> list[Artist]:
        def _run() -> list[dict[str, Any]]:
            return list(self._collection.find({"needsGenreEnrichment": True}).limit(limit))

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("find_needing_enrichment", exc) from exc
        return [a for a in (_to_artist(d) for d in docs) if a is not None]

    async def update_enrichment(
        self,
        name: str,
        genres: list[str],
        popularity: int | None,
        spotify_id: str | None,
    ) -> bool:
        edm_weight = sum(1 for g in genres if is_edm_genre(g)) / len(genres) if genres else 0.0
        update = {
            "$set": {
                "genres": genres,
                "popularity": popularity,
                "spotifyId": spotify_id,
                "edmWeight": round(edm_weight, 3),
                "needsGenreEnrichment": False,
                "lastUpdated": datetime.now(timezone.utc),
            },
            "$unset": {"enrichmentError": ""},
        }
        try:
            result = await asyncio.to_thread(self._collection.update_one, _name_filter(name), update)
        except PyMongoError as exc:
            raise self._fail("update_enrichment", exc) from exc
        return result.matched_count > 0

    async def mark_enrichment_failed(self, name: str, reason: str) -> bool:
        update = {
            "$set": {
                "needsGenreEnrichment": False,
                "enrichmentError": reason,
                "lastUpdated": datetime.now(timezone.utc),
            }
        }
        try:
            result = await asyncio.to_thread(self._collection.update_one, _name_filter(name), update)
        except PyMongoError as exc:
            raise self._fail("mark_enrichment_failed", exc) from exc
        return result.matched_count > 0

    async def add_placeholder(self, name: str) -> bool:
        now = datetime.now(timezone.utc)
        update = {
            "$setOnInsert": {
                "artistName": name.strip(),
                "genres": [],
                "needsGenreEnrichment": True,
                "createdAt": now,
                "lastUpdated": now,
            }
        }
        try:
            result = await asyncio.to_thread(self._collection.update_one, _name_filter(name), update, upsert=True)
        except PyMongoError as exc:
            raise self._fail("add_placeholder", exc) from exc
        return result.upserted_id is not None

    async def list_names(self) -> list[str]:
        def _run() -> list[dict[str, Any]]:
            return list(self._collection.find({}, {"artistName": 1}))

        try:
            docs = await asyncio.to_thread(_run)
        except PyMongoError as exc:
            raise self._fail("list_names", exc) from exc
        return [d["artistName"] for d in docs if isinstance(d.get("artistName"), str)]

    async def count_artists(self, needing_enrichment: bool | None = None) -> int:
        query: dict[str, Any] = {}
        if needing_enrichment is not None:
            query["needsGenreEnrichment"] = True if needing_enrichment else {"$ne": True}
        try:
            return await asyncio.to_thread(self._collection.count_documents, query)
        except PyMongoError as exc:
            raise self._fail("count_artists", exc) from exc
