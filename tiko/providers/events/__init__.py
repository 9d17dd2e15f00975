"""Event listing sources.

Live sources (Ticketmaster, EDMTrain) raise on failure; the aggregation
service in ``tiko/services/event_service.py`` decides when to fall back to
the sample feed.
"""

from tiko.providers.events.edmtrain_provider import EDMTrainProvider
from tiko.providers.events.sample_provider import SampleEventProvider
from tiko.providers.events.ticketmaster_provider import TicketmasterProvider

__all__ = ["EDMTrainProvider", "SampleEventProvider", "TicketmasterProvider"]
