"""Built-in sample events used when every live source fails.

The listings are fixed Toronto club nights; only their dates move, so a
sample feed always shows upcoming events.  Samples carry no scores.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from tiko.interfaces.event_source_provider import IEventSourceProvider

_TM_IMAGE = "https://s1.ticketm.net/dam/a/1f6/0e4fe8ee-488a-46ba-9d6e-717fde4841f6_1339761_RETINA_PORTRAIT_16_9.jpg"
_EDMTRAIN_IMAGE = "https://edmtrain-public.s3.us-east-2.amazonaws.com/img/logos/edmtrain-logo-tag.png"

# (source id, name, venue, address, days ahead, start time, genres, artists, url, image)
_SAMPLES: tuple[tuple[Any, ...], ...] = (
    ("tm-12345", "House & Techno Night", "CODA", "794 Bathurst St", 3, "22:00:00",
     ["house", "techno"], [], "https://www.ticketmaster.ca/electronic-dance-music-tickets/category/10001", _TM_IMAGE),
    ("tm-23456", "Deep House Sessions", "Rebel", "11 Polson St", 10, "21:00:00",
     ["deep house"], [], "https://www.ticketmaster.ca/club-passes-tickets/category/10007", _TM_IMAGE),
    ("tm-34567", "Electronic Music Festival", "Echo Beach", "909 Lake Shore Blvd W", 17, "16:00:00",
     ["electronic", "edm"], [], "https://www.ticketmaster.ca/music-festivals-tickets/category/10005", _TM_IMAGE),
    ("edmtrain-12345", "Armin van Buuren", "Rebel", "11 Polson St", 5, "22:00:00",
     ["trance"], ["Armin van Buuren"], "https://edmtrain.com/toronto", _EDMTRAIN_IMAGE),
    ("edmtrain-23456", "Deadmau5", "CODA", "794 Bathurst St", 12, "21:00:00",
     ["progressive house"], ["Deadmau5"], "https://edmtrain.com/toronto", _EDMTRAIN_IMAGE),
    ("edmtrain-34567", "Above & Beyond", "Danforth Music Hall", "147 Danforth Ave", 19, "20:00:00",
     ["trance", "progressive house"], ["Above & Beyond"], "https://edmtrain.com/toronto", _EDMTRAIN_IMAGE),
)

_VENUE_TYPES = {"CODA": "club", "Rebel": "club", "Echo Beach": "festival", "Danforth Music Hall": "concert hall"}


class SampleEventProvider(IEventSourceProvider):
    """Deterministic sample feed; always available."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now

    def get_provider_name(self) -> str:
        return "sample"

    def is_available(self) -> bool:
        return True

    async def fetch_events(
        self,
        city: str,
        genre: str,
        limit: int = 10,
        country_code: str | None = None,
    ) -> list[dict[str, Any]]:
        return self.sample_documents(city)[:limit]

    def sample_documents(self, city: str = "Toronto") -> list[dict[str, Any]]:
        today = (self._now or datetime.now(timezone.utc)).date()
        documents = []
        for source_id, name, venue, address, days, start, genres, artists, url, image in _SAMPLES:
            documents.append(
                {
                    "source": "sample",
                    "sourceId": source_id,
                    "name": name,
                    "date": (today + timedelta(days=days)).isoformat(),
                    "startTime": start,
                    "venue": {
                        "name": venue,
                        "address": address,
                        "city": "Toronto",
                        "country": "CA",
                        "type": _VENUE_TYPES[venue],
                    },
                    "genres": genres,
                    "artists": [{"name": a} for a in artists],
                    "images": [image],
                    "url": url,
                }
            )
        return documents
