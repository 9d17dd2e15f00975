"""Reports returned by the batch maintenance jobs."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class JobReport(BaseModel):
    """Outcome of one maintenance job run.

    ``interrupted`` is True when the run was stopped (SIGINT) before the
    candidate list was exhausted; counts cover the work done until then.
    """

    model_config = ConfigDict(frozen=True)

    job: str
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    dry_run: bool = False
    interrupted: bool = False
    errors: list[str] = Field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None


class VenueShapeAudit(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    counts: dict[str, int] = Field(
        default_factory=dict, description="object / string / missing / other -> count."
    )
    string_venue_ids: list[str] = Field(
        default_factory=list, description="Sample of event ids with a plain-string venue."
    )


class DataQualityReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_events: int = 0
    scored_events: int = 0
    scored_percentage: float = 0.0
    venue_shapes: dict[str, int] = Field(default_factory=dict)
    mean_completeness: float = 0.0
    total_artists: int = 0
    artists_needing_enrichment: int = 0
