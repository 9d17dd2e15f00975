"""Reverse-geocoding providers, tried in order by the location service."""

from tiko.providers.location.google_geocoding_provider import GoogleGeocodingProvider
from tiko.providers.location.nominatim_provider import NominatimGeocodingProvider

__all__ = ["GoogleGeocodingProvider", "NominatimGeocodingProvider"]
