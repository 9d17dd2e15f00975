"""Exception hierarchy for TIKO.

Every application exception inherits from :class:`TikoError`, which
carries an optional ``provider_name`` naming the external boundary
(e.g. "ticketmaster", "spotify", "mongodb") that caused the failure.

    TikoError  (base -- catch-all for any TIKO error)
    +-- ProviderUnavailableError (event source / geocoder down or unreachable)
    +-- RateLimitError           (upstream returned 429; carries retry_after)
    +-- AuthenticationError      (missing / rejected bearer token)
    +-- ConfigurationError       (startup / missing settings)
    +-- StorageError             (MongoDB read or write failed)
    +-- ScoringError             (vibe match could not be computed)
    +-- EventValidationError     (raw event document unusable)
    +-- CitySupportError         (city requested in an uncovered country)

Event sources raise; the aggregation layer decides whether to fall back
to sample data.  Nothing below the service layer swallows these.
"""


class TikoError(Exception):
    """Base exception for all TIKO errors.

    ``__str__`` prefixes the provider name in brackets so log lines read
    like ``[ticketmaster] HTTP 503``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# External boundary errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(TikoError):
    """Raised when an external service is unreachable or answers non-2xx.

    :class:`~tiko.services.event_service.EventService` catches this per
    source and continues with the remaining sources.
    """

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(TikoError):
    """Raised when an upstream API answers HTTP 429.

    ``retry_after`` holds the server-advertised delay in seconds when the
    response carried a ``Retry-After`` header, otherwise ``None``.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._retry_after = retry_after

    @property
    def retry_after(self) -> float | None:
        return self._retry_after


class AuthenticationError(TikoError):
    """Raised when a bearer token is missing, expired or rejected."""

    def __init__(
        self,
        message: str = "Authentication failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Internal errors
# ---------------------------------------------------------------------------

class ConfigurationError(TikoError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(TikoError):
    """Raised when a document-store operation fails."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ScoringError(TikoError):
    """Raised when a vibe match cannot be computed (e.g. invalid weights)."""

    def __init__(
        self,
        message: str = "Scoring failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EventValidationError(TikoError):
    """Raised when a raw event document cannot be normalized at all."""

    def __init__(
        self,
        message: str = "Event document is invalid",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CitySupportError(TikoError):
    """Raised when events are requested for a country no source covers."""

    def __init__(
        self,
        message: str = "Country is not supported",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
