"""
Analytics event record emitted by the engine.

Events are append-only, fire-and-forget side records: an ``EngineEvent`` is
handed to an ``EventSink`` and the engine never reads it back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from journey_recommender.taxonomy.event_taxonomy import EventCategory, EventType
from journey_recommender.utils.time_utils import utcnow


class EngineEvent(BaseModel):
    """One analytics event.

    Attributes:
        category: Operation that emitted the event.
        event_type: Lifecycle point (request / success / error / ...).
        subject_id: Company id or step id the operation was about.
        company_id: Company id for assistant events keyed by step.
        payload: JSON-serialisable event data.
        created_at: UTC emission time.
    """

    model_config = ConfigDict(frozen=True)

    category: EventCategory
    event_type: EventType
    subject_id: str
    company_id: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
