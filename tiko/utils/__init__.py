"""Utility modules for TIKO.

- **confidence** -- Weighted confidence math and display tiers.
- **errors** -- Exception hierarchy rooted at TikoError.
- **concurrency** -- Semaphore-bounded fan-out and fixed-delay pacing.
- **logging** -- structlog setup (console in development, JSON in production).
- **text_normalizer** -- Artist name normalization and fuzzy matching.
"""

from tiko.utils.concurrency import paced, throttled_gather
from tiko.utils.confidence import (
    ConfidenceLevel,
    calculate_confidence,
    confidence_to_level,
    merge_confidence,
)
from tiko.utils.errors import (
    AuthenticationError,
    CitySupportError,
    ConfigurationError,
    EventValidationError,
    ProviderUnavailableError,
    RateLimitError,
    ScoringError,
    StorageError,
    TikoError,
)
from tiko.utils.logging import configure_logging, get_logger
from tiko.utils.text_normalizer import (
    artist_key,
    fuzzy_match,
    normalize_artist_name,
    split_artist_names,
)

__all__ = [
    "AuthenticationError",
    "CitySupportError",
    "ConfidenceLevel",
    "ConfigurationError",
    "EventValidationError",
    "ProviderUnavailableError",
    "RateLimitError",
    "ScoringError",
    "StorageError",
    "TikoError",
    "artist_key",
    "calculate_confidence",
    "confidence_to_level",
    "configure_logging",
    "fuzzy_match",
    "get_logger",
    "merge_confidence",
    "normalize_artist_name",
    "paced",
    "split_artist_names",
    "throttled_gather",
]
