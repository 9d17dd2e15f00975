"""TIKO API layer: routes, schemas and middleware."""

from tiko.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from tiko.api.routes import router
from tiko.api.schemas import (
    ErrorResponse,
    HealthResponse,
    RecommendationRequest,
    ScoreEventRequest,
    UserTasteResponse,
    VenueListResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "HealthResponse",
    "RecommendationRequest",
    "ScoreEventRequest",
    "UserTasteResponse",
    "VenueListResponse",
]
