"""TIKO domain models - re-exports all public model classes.

    - artist.py      - Artist and AudioFeatures
    - city_request.py - CityRequest queue entries and stats
    - event.py       - Event, Venue, EventFeed, VenueSummary
    - location.py    - Location and the default locations
    - maintenance.py - Batch job reports
    - recommendation.py - RecommendationResult
    - saved_event.py - SavedEvent
    - scoring.py     - ScoringWeights, VibeMatchResult, ScoredEvent
    - taste.py       - UserTasteProfile and its parts
"""

from __future__ import annotations

from tiko.models.artist import Artist, AudioFeatures
from tiko.models.city_request import CityRequest, CityRequestStats
from tiko.models.event import (
    Event,
    EventArtist,
    EventFeed,
    GeoPoint,
    PriceRange,
    Venue,
    VenueSummary,
)
from tiko.models.location import DEFAULT_LOCATION, TORONTO_LOCATION, Location
from tiko.models.maintenance import DataQualityReport, JobReport, VenueShapeAudit
from tiko.models.recommendation import RecommendationResult
from tiko.models.saved_event import SavedEvent
from tiko.models.scoring import ScoredEvent, ScoringWeights, VibeMatchResult
from tiko.models.taste import ArtistAffinity, UserTasteProfile, VenueVisit

__all__ = [
    "DEFAULT_LOCATION",
    "TORONTO_LOCATION",
    "Artist",
    "ArtistAffinity",
    "AudioFeatures",
    "CityRequest",
    "CityRequestStats",
    "DataQualityReport",
    "Event",
    "EventArtist",
    "EventFeed",
    "GeoPoint",
    "JobReport",
    "Location",
    "PriceRange",
    "RecommendationResult",
    "SavedEvent",
    "ScoredEvent",
    "ScoringWeights",
    "UserTasteProfile",
    "Venue",
    "VenueShapeAudit",
    "VenueSummary",
    "VenueVisit",
    "VibeMatchResult",
]
