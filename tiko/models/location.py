"""Geographic location model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    city: str = ""
    region: str = ""
    country: str = ""
    source: str = Field(default="", description="google, nominatim or default.")

    @property
    def label(self) -> str:
        return ", ".join(part for part in (self.city, self.region, self.country) if part)


# Fallback when every geocoder fails: New York City.
DEFAULT_LOCATION = Location(
    latitude=40.7128, longitude=-74.0060,
    city="New York", region="NY", country="United States", source="default",
)

# Any Canadian result resolves to the Toronto market.
TORONTO_LOCATION = Location(
    latitude=43.6532, longitude=-79.3832,
    city="Toronto", region="ON", country="Canada", source="default",
)
