"""A listener's saved ("interested") event."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from tiko.models.event import Event


class SavedEvent(BaseModel):
    """One event a listener marked as interesting, as it looked when saved."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    event: Event
    saved_at: datetime | None = None
    source: str = Field(default="user_action", description="What created the entry.")
