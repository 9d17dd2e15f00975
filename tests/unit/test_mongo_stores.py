"""Unit tests for the MongoDB stores.

The pymongo collection is a MagicMock; the stores run its synchronous
methods in a worker thread, which a MagicMock supports as-is.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument, UpdateOne
from pymongo.errors import AutoReconnect

from tiko.models.event import Venue
from tiko.providers.storage.mongo_artist_store import MongoArtistStore
from tiko.providers.storage.mongo_city_request_store import MongoCityRequestStore
from tiko.providers.storage.mongo_client import create_mongo_client, get_database
from tiko.providers.storage.mongo_event_store import MongoEventStore, _id_filter
from tiko.providers.storage.mongo_interested_event_store import MongoInterestedEventStore
from tiko.providers.storage.mongo_profile_store import MongoProfileStore
from tiko.services.event_normalizer import event_to_document
from tiko.utils.errors import ConfigurationError, StorageError

OBJECT_ID = "65f1c2a9e4b0a1b2c3d4e5f6"


@pytest.fixture
def collection() -> MagicMock:
    return MagicMock()


@pytest.fixture
def database(collection) -> MagicMock:
    db = MagicMock()
    db.__getitem__.return_value = collection
    return db


class TestMongoClient:
    def test_missing_uri(self, settings) -> None:
        with pytest.raises(ConfigurationError, match="MONGODB_URI"):
            create_mongo_client(settings)

    def test_get_database_uses_configured_name(self, settings_factory) -> None:
        client = MagicMock()
        settings = settings_factory(mongodb_db_name="tiko_test")

        get_database(client, settings)

        client.__getitem__.assert_called_once_with("tiko_test")


class TestIdFilter:
    def test_plain_id(self) -> None:
        assert _id_filter("ticketmaster-abc123") == {"id": "ticketmaster-abc123"}

    def test_legacy_object_id(self) -> None:
        assert _id_filter(f"edmtrain-{OBJECT_ID}") == {
            "$or": [{"id": f"edmtrain-{OBJECT_ID}"}, {"_id": ObjectId(OBJECT_ID)}]
        }

    def test_document_id_wins(self) -> None:
        assert _id_filter("ticketmaster-G5vYZ9", OBJECT_ID) == {"_id": ObjectId(OBJECT_ID)}
        assert _id_filter("ticketmaster-G5vYZ9", "tm-G5vYZ9") == {"_id": "tm-G5vYZ9"}


class TestMongoEventStore:
    @pytest.mark.asyncio
    async def test_upsert_events(self, database, collection, techno_event) -> None:
        scored = techno_event.model_copy(update={"personalized_score": 88})
        collection.bulk_write.return_value = MagicMock(upserted_count=1, modified_count=0)

        written = await MongoEventStore(database).upsert_events([scored])

        assert written == 1
        operations = collection.bulk_write.call_args.args[0]
        assert collection.bulk_write.call_args.kwargs == {"ordered": False}
        assert len(operations) == 1 and isinstance(operations[0], UpdateOne)

    @pytest.mark.asyncio
    async def test_upsert_leaves_score_fields_alone(self, database, collection, techno_event) -> None:
        collection.bulk_write.return_value = MagicMock(upserted_count=0, modified_count=1)

        await MongoEventStore(database).upsert_events([techno_event])

        operation = collection.bulk_write.call_args.args[0][0]
        update = operation._doc
        assert "personalizedScore" not in update["$set"]
        assert update["$set"]["id"] == "ticketmaster-abc123"
        assert "createdAt" in update["$setOnInsert"]

    @pytest.mark.asyncio
    async def test_upsert_empty(self, database, collection) -> None:
        assert await MongoEventStore(database).upsert_events([]) == 0
        collection.bulk_write.assert_not_called()

    @pytest.mark.asyncio
    async def test_find_events(self, database, collection, techno_event) -> None:
        doc = {**event_to_document(techno_event), "_id": ObjectId(OBJECT_ID)}
        collection.find.return_value.sort.return_value.limit.return_value = [doc, {"venue": "broken"}]

        events = await MongoEventStore(database).find_events(city="Toronto", limit=10)

        assert [e.id for e in events][0] == "ticketmaster-abc123"
        query = collection.find.call_args.args[0]
        assert "$gte" in query["date"]
        assert query["$or"][0]["venue.city"]["$regex"] == "^Toronto$"
        collection.find.return_value.sort.return_value.limit.assert_called_once_with(10)

    @pytest.mark.asyncio
    async def test_legacy_document_id(self, database, collection) -> None:
        legacy = {
            "_id": ObjectId(OBJECT_ID),
            "source": "edmtrain",
            "name": "Warehouse Rave",
            "date": datetime.now(timezone.utc) + timedelta(days=3),
        }
        collection.find.return_value.limit.return_value = [legacy]

        events = await MongoEventStore(database).find_unscored(limit=5)

        assert events[0].id == f"edmtrain-{OBJECT_ID}"
        assert collection.find.call_args.args[0] == {"personalizedScore": {"$in": [None]}}

    @pytest.mark.asyncio
    async def test_find_unscored_can_include_scored(self, database, collection) -> None:
        collection.find.return_value.limit.return_value = []
        await MongoEventStore(database).find_unscored(limit=5, include_scored=True)
        assert collection.find.call_args.args[0] == {}

    @pytest.mark.asyncio
    async def test_count_events(self, database, collection) -> None:
        collection.count_documents.return_value = 7
        store = MongoEventStore(database)

        assert await store.count_events(scored=True) == 7
        assert collection.count_documents.call_args.args[0] == {"personalizedScore": {"$exists": True, "$ne": None}}

        await store.count_events()
        assert collection.count_documents.call_args.args[0] == {}

    @pytest.mark.asyncio
    async def test_update_score(self, database, collection, now) -> None:
        collection.update_one.return_value = MagicMock(matched_count=1)

        assert await MongoEventStore(database).update_score("ticketmaster-abc123", 82, "vibe-match", "2.0", now)

        query, update = collection.update_one.call_args.args
        assert query == {"id": "ticketmaster-abc123"}
        assert update["$set"] == {
            "personalizedScore": 82,
            "scoringMethod": "vibe-match",
            "scoringVersion": "2.0",
            "scoringTimestamp": now,
        }

    @pytest.mark.asyncio
    async def test_source_id_document_round_trip(self, database, collection, now) -> None:
        collection.find.return_value.limit.return_value = [
            {"_id": ObjectId(OBJECT_ID), "source": "ticketmaster", "sourceId": "G5vYZ9", "name": "Techno Night"}
        ]
        collection.update_one.return_value = MagicMock(matched_count=1)
        store = MongoEventStore(database)

        [event] = await store.find_unscored(limit=5)
        written = await store.update_score(event.id, 70, "baseline", "2.0", now, document_id=event.document_id)

        assert event.id == "ticketmaster-G5vYZ9"
        assert event.document_id == OBJECT_ID
        assert "document_id" not in event.model_dump()
        assert written
        assert collection.update_one.call_args.args[0] == {"_id": ObjectId(OBJECT_ID)}

    @pytest.mark.asyncio
    async def test_update_score_no_match(self, database, collection, now) -> None:
        collection.update_one.return_value = MagicMock(matched_count=0)
        assert not await MongoEventStore(database).update_score("gone", 50, "vibe-match", "2.0", now)

    @pytest.mark.asyncio
    async def test_iter_raw_venues(self, database, collection) -> None:
        collection.find.return_value.limit.return_value = [
            {"_id": ObjectId(OBJECT_ID), "id": "ticketmaster-abc123", "venue": "CODA"},
            {"_id": ObjectId(OBJECT_ID), "source": "edmtrain", "venue": {"name": "Rebel"}},
        ]

        pairs = await MongoEventStore(database).iter_raw_venues(limit=2)

        assert pairs == [("ticketmaster-abc123", "CODA"), (f"edmtrain-{OBJECT_ID}", {"name": "Rebel"})]

    @pytest.mark.asyncio
    async def test_replace_venue(self, database, collection) -> None:
        collection.update_one.return_value = MagicMock(modified_count=1)

        changed = await MongoEventStore(database).replace_venue("ticketmaster-abc123", Venue(name="CODA", venue_type="club"))

        assert changed
        update = collection.update_one.call_args.args[1]
        assert update["$set"]["venue"]["name"] == "CODA"
        assert update["$set"]["venue"]["type"] == "club"

    @pytest.mark.asyncio
    async def test_driver_error(self, database, collection) -> None:
        collection.count_documents.side_effect = AutoReconnect("connection reset")

        with pytest.raises(StorageError, match="count_events failed"):
            await MongoEventStore(database).count_events()


class TestMongoArtistStore:
    @pytest.mark.asyncio
    async def test_find_needing_enrichment(self, database, collection) -> None:
        collection.find.return_value.limit.return_value = [
            {"artistName": " Amelie Lens ", "genres": ["techno", 3], "popularity": 140, "needsGenreEnrichment": True},
            {"artistName": ""},
        ]

        artists = await MongoArtistStore(database).find_needing_enrichment(limit=10)

        assert len(artists) == 1
        assert artists[0].name == "Amelie Lens"
        assert artists[0].genres == ["techno"]
        assert artists[0].popularity is None
        assert artists[0].needs_genre_enrichment

    @pytest.mark.asyncio
    async def test_update_enrichment(self, database, collection) -> None:
        collection.update_one.return_value = MagicMock(matched_count=1)

        updated = await MongoArtistStore(database).update_enrichment(
            "Amelie Lens", ["techno", "pop", "deep house"], 70, "sp-1"
        )

        assert updated
        query, update = collection.update_one.call_args.args
        assert query == {"artistName": {"$regex": "^Amelie\\ Lens$", "$options": "i"}}
        assert update["$set"]["edmWeight"] == 0.667
        assert update["$set"]["needsGenreEnrichment"] is False
        assert update["$unset"] == {"enrichmentError": ""}

    @pytest.mark.asyncio
    async def test_mark_enrichment_failed(self, database, collection) -> None:
        collection.update_one.return_value = MagicMock(matched_count=1)

        assert await MongoArtistStore(database).mark_enrichment_failed("Nobody", "not found on spotify")

        update = collection.update_one.call_args.args[1]
        assert update["$set"]["enrichmentError"] == "not found on spotify"
        assert update["$set"]["needsGenreEnrichment"] is False

    @pytest.mark.asyncio
    async def test_add_placeholder(self, database, collection) -> None:
        collection.update_one.return_value = MagicMock(upserted_id=ObjectId(OBJECT_ID))

        assert await MongoArtistStore(database).add_placeholder("Argy")

        assert collection.update_one.call_args.kwargs == {"upsert": True}
        update = collection.update_one.call_args.args[1]
        assert update["$setOnInsert"]["needsGenreEnrichment"] is True

    @pytest.mark.asyncio
    async def test_add_placeholder_existing(self, database, collection) -> None:
        collection.update_one.return_value = MagicMock(upserted_id=None)
        assert not await MongoArtistStore(database).add_placeholder("Argy")

    @pytest.mark.asyncio
    async def test_list_names_and_count(self, database, collection) -> None:
        collection.find.return_value = [{"artistName": "Argy"}, {"name": "ignored"}]
        collection.count_documents.return_value = 3
        store = MongoArtistStore(database)

        assert await store.list_names() == ["Argy"]
        assert await store.count_artists(needing_enrichment=False) == 3
        assert collection.count_documents.call_args.args[0] == {"needsGenreEnrichment": {"$ne": True}}


class TestMongoProfileStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, database, collection, techno_profile) -> None:
        store = MongoProfileStore(database)

        await store.save_profile(techno_profile)

        query, update = collection.update_one.call_args.args
        assert query == {"userId": "user-1"}
        assert collection.update_one.call_args.kwargs == {"upsert": True}

        collection.find_one.return_value = {"userId": "user-1", "profile": update["$set"]["profile"]}
        loaded = await store.get_profile("user-1")

        assert loaded is not None
        assert loaded.source == "stored"
        assert loaded.primary_genres == techno_profile.primary_genres

    @pytest.mark.asyncio
    async def test_missing_and_invalid_profiles(self, database, collection) -> None:
        store = MongoProfileStore(database)

        collection.find_one.return_value = None
        assert await store.get_profile("user-2") is None

        collection.find_one.return_value = {"userId": "user-2", "profile": {"confidence": "very"}}
        assert await store.get_profile("user-2") is None

    @pytest.mark.asyncio
    async def test_save_requires_user_id(self, database, collection, techno_profile) -> None:
        with pytest.raises(StorageError):
            await MongoProfileStore(database).save_profile(techno_profile.model_copy(update={"user_id": ""}))
        collection.update_one.assert_not_called()


class TestMongoInterestedEventStore:
    @pytest.mark.asyncio
    async def test_save_new(self, database, collection, techno_event) -> None:
        collection.update_one.return_value = MagicMock(upserted_id=ObjectId(OBJECT_ID))

        saved, is_new = await MongoInterestedEventStore(database).save("user-1", techno_event)

        assert is_new
        assert saved.event.id == techno_event.id
        query, update = collection.update_one.call_args.args
        assert query == {"userId": "user-1", "event.id": techno_event.id}
        assert update["$setOnInsert"]["event"]["name"] == techno_event.name
        assert update["$setOnInsert"]["source"] == "user_action"
        assert collection.update_one.call_args.kwargs == {"upsert": True}
        collection.find_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_existing_returns_stored_entry(self, database, collection, techno_event, now) -> None:
        collection.update_one.return_value = MagicMock(upserted_id=None)
        collection.find_one.return_value = {
            "userId": "user-1",
            "event": event_to_document(techno_event),
            "savedAt": now,
            "source": "user_action",
        }

        saved, is_new = await MongoInterestedEventStore(database).save("user-1", techno_event)

        assert not is_new
        assert saved.saved_at == now
        assert saved.event.id == techno_event.id

    @pytest.mark.asyncio
    async def test_list_saved_skips_unreadable(self, database, collection, techno_event, now) -> None:
        collection.find.return_value.sort.return_value = [
            {"userId": "user-1", "event": event_to_document(techno_event), "savedAt": now},
            {"userId": "user-1", "event": "not a document"},
        ]

        saved = await MongoInterestedEventStore(database).list_saved("user-1")

        assert [s.event.id for s in saved] == [techno_event.id]
        assert collection.find.call_args.args[0] == {"userId": "user-1"}

    @pytest.mark.asyncio
    async def test_remove(self, database, collection) -> None:
        collection.delete_one.return_value = MagicMock(deleted_count=0)

        assert not await MongoInterestedEventStore(database).remove("user-1", "ticketmaster-gone")
        assert collection.delete_one.call_args.args[0] == {"userId": "user-1", "event.id": "ticketmaster-gone"}

    @pytest.mark.asyncio
    async def test_user_id_required(self, database, collection) -> None:
        with pytest.raises(StorageError, match="user_id"):
            await MongoInterestedEventStore(database).list_saved("")
        collection.find.assert_not_called()


def _city_doc(**overrides) -> dict:
    doc = {
        "cityKey": "berlin|germany",
        "city": "Berlin",
        "country": "Germany",
        "countryCode": "DE",
        "latitude": 52.52,
        "longitude": 13.405,
        "status": "pending",
        "priority": 80,
        "requestCount": 1,
    }
    doc.update(overrides)
    return doc


class TestMongoCityRequestStore:
    @pytest.mark.asyncio
    async def test_add_request_new(self, database, collection) -> None:
        collection.find_one_and_update.return_value = _city_doc()

        request, is_new = await MongoCityRequestStore(database).add_request(
            " Berlin ", "Germany", "DE", 52.52, 13.405, 80
        )

        assert is_new
        assert (request.city, request.country_code, request.priority) == ("Berlin", "DE", 80)
        query, update = collection.find_one_and_update.call_args.args
        assert query == {"cityKey": "berlin|germany"}
        assert update["$inc"] == {"requestCount": 1}
        assert update["$set"]["status"] == "pending"
        assert update["$setOnInsert"]["city"] == "Berlin"
        assert collection.find_one_and_update.call_args.kwargs == {
            "upsert": True,
            "return_document": ReturnDocument.AFTER,
        }

    @pytest.mark.asyncio
    async def test_repeat_request_is_not_new(self, database, collection) -> None:
        collection.find_one_and_update.return_value = _city_doc(requestCount=3)

        request, is_new = await MongoCityRequestStore(database).add_request(
            "berlin", "germany", "DE", 52.52, 13.405, 80
        )

        assert not is_new
        assert request.request_count == 3

    @pytest.mark.asyncio
    async def test_pending_order(self, database, collection) -> None:
        collection.find.return_value.sort.return_value.limit.return_value = [
            _city_doc(),
            _city_doc(latitude=123.0),
        ]

        pending = await MongoCityRequestStore(database).pending(5)

        assert [r.city for r in pending] == ["Berlin"]
        assert collection.find.call_args.args[0] == {"status": "pending"}
        collection.find.return_value.sort.assert_called_once_with([("priority", -1), ("requestCount", -1)])
        collection.find.return_value.sort.return_value.limit.assert_called_once_with(5)

    @pytest.mark.asyncio
    async def test_status_transitions(self, database, collection) -> None:
        collection.update_one.return_value = MagicMock(matched_count=1)
        store = MongoCityRequestStore(database)

        assert await store.mark_completed("Berlin", "Germany", 42)

        query, update = collection.update_one.call_args.args
        assert query == {"cityKey": "berlin|germany"}
        assert update["$set"]["status"] == "completed"
        assert update["$set"]["eventCount"] == 42

        collection.update_one.return_value = MagicMock(matched_count=0)
        assert not await store.mark_error("Nowhere", "Germany", "no events")

    @pytest.mark.asyncio
    async def test_stats(self, database, collection) -> None:
        collection.find.return_value = [
            {"status": "pending", "country": "Germany"},
            {"status": "completed", "country": "Germany"},
            {"status": "error", "country": "Japan"},
        ]

        stats = await MongoCityRequestStore(database).stats()

        assert (stats.total, stats.pending, stats.completed, stats.error) == (3, 1, 1, 1)
        assert stats.by_country == {"Germany": 2, "Japan": 1}

    @pytest.mark.asyncio
    async def test_cleanup_completed(self, database, collection, now) -> None:
        collection.delete_many.return_value = MagicMock(deleted_count=4)

        assert await MongoCityRequestStore(database).cleanup_completed(now) == 4
        assert collection.delete_many.call_args.args[0] == {"status": "completed", "completedAt": {"$lt": now}}

    @pytest.mark.asyncio
    async def test_driver_error(self, database, collection) -> None:
        collection.find_one_and_update.side_effect = AutoReconnect("connection reset")

        with pytest.raises(StorageError, match="add_request failed"):
            await MongoCityRequestStore(database).add_request("Berlin", "Germany", "DE", 52.52, 13.405, 80)
