"""Cache providers.

Event listings are cached so repeated requests for the same city and
genre do not hit Ticketmaster / EDMTrain again, and so a recent listing
can still be served when every source is down.

MemoryCacheProvider is process-local; MongoCacheProvider shares entries
across workers through the ``apiCache`` collection.
"""

from tiko.providers.cache.memory_cache import MemoryCacheProvider
from tiko.providers.cache.mongo_cache import MongoCacheProvider

__all__ = ["MemoryCacheProvider", "MongoCacheProvider"]
