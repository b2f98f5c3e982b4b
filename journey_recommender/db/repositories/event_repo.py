"""
Repository for ``engine_events``, the analytics event log.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from journey_recommender.db.repositories.base import BaseRepository
from journey_recommender.models.event import EngineEvent
from journey_recommender.taxonomy.event_taxonomy import EventCategory, EventType
from journey_recommender.utils.time_utils import parse_timestamp, to_iso

logger = logging.getLogger(__name__)


class EngineEventRepository(BaseRepository):
    """Append and query analytics events."""

    def insert(self, event: EngineEvent) -> int:
        """Persist one event and return its ``event_id``."""
        cursor = self.execute(
            """
            INSERT INTO engine_events (
                category, event_type, subject_id, company_id, payload, created_at
            ) VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                event.category.value,
                event.event_type.value,
                event.subject_id,
                event.company_id,
                json.dumps(event.payload, default=str, sort_keys=True),
                to_iso(event.created_at),
            ),
        )
        return int(cursor.lastrowid)

    def list_events(
        self,
        category: Optional[EventCategory] = None,
        event_type: Optional[EventType] = None,
        subject_id: Optional[str] = None,
    ) -> list[EngineEvent]:
        """Events matching every given filter, oldest first."""
        clauses: list[str] = []
        params: list[str] = []
        if category is not None:
            clauses.append("category = ?")
            params.append(EventCategory(category).value)
        if event_type is not None:
            clauses.append("event_type = ?")
            params.append(EventType(event_type).value)
        if subject_id is not None:
            clauses.append("subject_id = ?")
            params.append(subject_id)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.fetchall(
            f"SELECT * FROM engine_events{where} ORDER BY event_id;", tuple(params)
        )
        return [_row_to_event(r) for r in rows]

    def count(self) -> int:
        return int(self.scalar("SELECT COUNT(*) FROM engine_events;", default=0))


def _row_to_event(row: sqlite3.Row) -> EngineEvent:
    return EngineEvent(
        category=EventCategory(row["category"]),
        event_type=EventType(row["event_type"]),
        subject_id=row["subject_id"],
        company_id=row["company_id"],
        payload=json.loads(row["payload"] or "{}"),
        created_at=parse_timestamp(row["created_at"]),
    )
