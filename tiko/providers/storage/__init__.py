"""MongoDB-backed stores sharing one injected client."""

from tiko.providers.storage.mongo_artist_store import MongoArtistStore
from tiko.providers.storage.mongo_city_request_store import MongoCityRequestStore
from tiko.providers.storage.mongo_client import create_mongo_client, get_database
from tiko.providers.storage.mongo_event_store import MongoEventStore
from tiko.providers.storage.mongo_interested_event_store import MongoInterestedEventStore
from tiko.providers.storage.mongo_profile_store import MongoProfileStore

__all__ = [
    "MongoArtistStore",
    "MongoCityRequestStore",
    "MongoEventStore",
    "MongoInterestedEventStore",
    "MongoProfileStore",
    "create_mongo_client",
    "get_database",
]
