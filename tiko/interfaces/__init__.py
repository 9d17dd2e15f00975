"""Public interface definitions for all external boundaries.

Every upstream API and the document store are reached only through the
abstract base classes below.  Concrete adapters live in
``tiko/providers/`` and are wired together in ``tiko/main.py``; tests
inject ``MagicMock(spec=...)`` stand-ins instead.

    Interface               →  Concrete implementations (in tiko/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEventSourceProvider    →  TicketmasterProvider, EDMTrainProvider,
                               SampleEventProvider
    IMusicProfileProvider   →  SpotifyProvider
    IGeocodingProvider      →  GoogleGeocodingProvider,
                               NominatimGeocodingProvider
    ICacheProvider          →  MemoryCacheProvider, MongoCacheProvider
    IEventStore             →  MongoEventStore
    IArtistStore            →  MongoArtistStore
    IProfileStore           →  MongoProfileStore
    IInterestedEventStore   →  MongoInterestedEventStore
    ICityRequestStore       →  MongoCityRequestStore
"""

from tiko.interfaces.cache_provider import ICacheProvider
from tiko.interfaces.document_store import (
    IArtistStore,
    ICityRequestStore,
    IEventStore,
    IInterestedEventStore,
    IProfileStore,
)
from tiko.interfaces.event_source_provider import IEventSourceProvider
from tiko.interfaces.geocoding_provider import IGeocodingProvider
from tiko.interfaces.music_profile_provider import IMusicProfileProvider

__all__ = [
    "IArtistStore",
    "ICacheProvider",
    "ICityRequestStore",
    "IEventSourceProvider",
    "IEventStore",
    "IGeocodingProvider",
    "IInterestedEventStore",
    "IMusicProfileProvider",
    "IProfileStore",
]
