"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from (highest priority first):
#
#   1. Environment variables - e.g. TICKETMASTER_API_KEY=abc123
#   2. .env file in the working directory (local development)
#   3. The defaults declared below
#
# Field `mongodb_uri` maps to env var `MONGODB_URI` automatically.
#
# An empty API key means "source not configured": the factory in
# main.py still builds the provider, but ``is_available()`` reports
# False and the event service skips it.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """TIKO application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Event sources ===
    ticketmaster_api_key: str = ""
    ticketmaster_base_url: str = "https://app.ticketmaster.com/discovery/v2"
    edmtrain_api_key: str = ""
    edmtrain_base_url: str = "https://edmtrain.com/api"

    # === Spotify ===
    # Client credentials are only needed for catalog lookups (genre
    # backfill).  User-facing routes accept an already-issued token.
    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    spotify_api_url: str = "https://api.spotify.com/v1"
    spotify_accounts_url: str = "https://accounts.spotify.com/api/token"

    # === Geocoding ===
    google_maps_api_key: str = ""
    nominatim_user_agent: str = "tiko/0.1 (event-recommendations)"

    # === MongoDB ===
    # Empty URI = run without persistence (stores are not built).
    mongodb_uri: str = ""
    mongodb_db_name: str = "tiko"

    # === Events ===
    default_city: str = "Toronto"
    default_genre: str = "electronic"
    event_cache_ttl: int = 3600
    event_cache_stale_ttl: int = 86400
    event_fetch_limit: int = 10
    max_concurrent_sources: int = 4

    # === HTTP / batch jobs ===
    http_timeout: float = 5.0
    maintenance_request_delay: float = 0.5

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    allowed_origins: str = ""

    def get_available_event_sources(self) -> list[str]:
        """Return the names of event sources that have an API key configured."""
        sources: list[str] = []
        if self.ticketmaster_api_key:
            sources.append("ticketmaster")
        if self.edmtrain_api_key:
            sources.append("edmtrain")
        return sources
