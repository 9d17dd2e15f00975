"""Abstract base class for reverse-geocoding providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from tiko.models.location import Location


class IGeocodingProvider(ABC):
    """Contract for turning coordinates into a city / region / country."""

    @abstractmethod
    async def reverse_geocode(self, latitude: float, longitude: float) -> Location | None:
        """Resolve coordinates to a :class:`Location`.

        Returns ``None`` when the provider has no result for the point.

        Raises
        ------
        ProviderUnavailableError
            Transport failure or non-2xx response.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider name (``"google"``, ``"nominatim"``)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when the provider is configured."""
