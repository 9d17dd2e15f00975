"""Requests for event coverage in a city the catalog does not serve yet.

A request moves ``pending`` -> ``processing`` -> ``completed`` or
``error``.  Asking again for the same city and country bumps
``request_count`` and puts the request back to ``pending``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CityRequestStatus = Literal["pending", "processing", "completed", "error"]


class CityRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    country: str
    country_code: str
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    status: CityRequestStatus = "pending"
    priority: int = 30
    request_count: int = Field(default=1, ge=1)
    requested_at: datetime | None = None
    last_requested_at: datetime | None = None
    completed_at: datetime | None = None
    event_count: int = 0
    error_message: str = ""

    @property
    def key(self) -> str:
        return city_key(self.city, self.country)


class CityRequestStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    error: int = 0
    by_country: dict[str, int] = Field(default_factory=dict)


def city_key(city: str, country: str) -> str:
    """Case-insensitive identity of a request: ``"berlin|germany"``."""
    return f"{' '.join(city.lower().split())}|{' '.join(country.lower().split())}"
