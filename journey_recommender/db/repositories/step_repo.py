"""
Repository for the step catalog: ``journey_phases`` and ``journey_steps``.

Catalog order is phase ``order_index``, then step ``order_index``, then
``step_id``; unphased steps sort after phased ones. Every list query uses
this order so repeated reads are identical.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional, Sequence

from journey_recommender.db.repositories.base import (
    BaseRepository,
    dump_list,
    load_list,
    placeholders,
)
from journey_recommender.models.lookup import DependentStep, StepRef
from journey_recommender.models.step import JourneyPhase, Step

logger = logging.getLogger(__name__)

_STEP_SELECT = """
    SELECT s.*, p.name AS phase_name
    FROM journey_steps s
    LEFT JOIN journey_phases p ON p.phase_id = s.phase_id
"""

_CATALOG_ORDER = """
    ORDER BY p.order_index IS NULL, p.order_index, s.order_index, s.step_id
"""


class StepRepository(BaseRepository):
    """Read/write access to phases and steps."""

    # ── Phases ────────────────────────────────────────────────────────────────

    def upsert_phase(self, phase: JourneyPhase) -> None:
        self.execute(
            """
            INSERT INTO journey_phases (phase_id, name, description, order_index)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(phase_id) DO UPDATE SET
                name        = excluded.name,
                description = excluded.description,
                order_index = excluded.order_index;
            """,
            (phase.id, phase.name, phase.description, phase.order_index),
        )

    def list_phases(self) -> list[JourneyPhase]:
        rows = self.fetchall("SELECT * FROM journey_phases ORDER BY order_index, phase_id;")
        return [
            JourneyPhase(
                id=r["phase_id"],
                name=r["name"],
                description=r["description"],
                order_index=r["order_index"],
            )
            for r in rows
        ]

    # ── Steps ─────────────────────────────────────────────────────────────────

    def upsert_step(self, step: Step) -> None:
        """Insert or update a step by id. ``phase_name`` is not stored."""
        self.execute(
            """
            INSERT INTO journey_steps (
                step_id, name, description, phase_id, difficulty_level,
                estimated_time_min, estimated_time_max, prerequisite_steps,
                categories, tags, order_index
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(step_id) DO UPDATE SET
                name               = excluded.name,
                description        = excluded.description,
                phase_id           = excluded.phase_id,
                difficulty_level   = excluded.difficulty_level,
                estimated_time_min = excluded.estimated_time_min,
                estimated_time_max = excluded.estimated_time_max,
                prerequisite_steps = excluded.prerequisite_steps,
                categories         = excluded.categories,
                tags               = excluded.tags,
                order_index        = excluded.order_index,
                updated_at         = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (
                step.id,
                step.name,
                step.description,
                step.phase_id,
                step.difficulty_level,
                step.estimated_time_min,
                step.estimated_time_max,
                dump_list(step.prerequisite_steps),
                dump_list(step.categories),
                dump_list(step.tags),
                step.order_index,
            ),
        )

    def get_step(self, step_id: str) -> Optional[Step]:
        row = self.fetchone(_STEP_SELECT + " WHERE s.step_id = ?;", (step_id,))
        return _row_to_step(row) if row else None

    def list_steps(
        self,
        exclude_ids: Iterable[str] = (),
        phase_ids: Optional[Sequence[str]] = None,
    ) -> list[Step]:
        """Steps in catalog order, minus ``exclude_ids``, optionally phase-filtered."""
        excluded = list(dict.fromkeys(exclude_ids))
        clauses: list[str] = []
        params: list[str] = []
        if excluded:
            clauses.append(f"s.step_id NOT IN ({placeholders(excluded)})")
            params.extend(excluded)
        if phase_ids:
            phases = list(phase_ids)
            clauses.append(f"s.phase_id IN ({placeholders(phases)})")
            params.extend(phases)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.fetchall(_STEP_SELECT + where + _CATALOG_ORDER + ";", tuple(params))
        return [_row_to_step(r) for r in rows]

    def get_refs(self, ids: Iterable[str]) -> list[StepRef]:
        """Id + name for the known ids among ``ids``, in catalog order."""
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        rows = self.fetchall(
            f"""
            SELECT s.step_id, s.name
            FROM journey_steps s
            LEFT JOIN journey_phases p ON p.phase_id = s.phase_id
            WHERE s.step_id IN ({placeholders(wanted)})
            {_CATALOG_ORDER};
            """,
            tuple(wanted),
        )
        return [StepRef(id=r["step_id"], name=r["name"]) for r in rows]

    def list_dependents(self, step_id: str) -> list[DependentStep]:
        """Steps whose prerequisite JSON array contains ``step_id``."""
        rows = self.fetchall(
            _STEP_SELECT
            + """
            WHERE EXISTS (
                SELECT 1 FROM json_each(s.prerequisite_steps) j WHERE j.value = ?
            )
            """
            + _CATALOG_ORDER
            + ";",
            (step_id,),
        )
        return [
            DependentStep(
                id=r["step_id"],
                name=r["name"],
                prerequisite_steps=load_list(r["prerequisite_steps"]),
            )
            for r in rows
        ]

    def count(self) -> int:
        return int(self.scalar("SELECT COUNT(*) FROM journey_steps;", default=0))


def _row_to_step(row: sqlite3.Row) -> Step:
    return Step(
        id=row["step_id"],
        name=row["name"],
        description=row["description"] or "",
        difficulty_level=row["difficulty_level"],
        estimated_time_min=row["estimated_time_min"],
        estimated_time_max=row["estimated_time_max"],
        phase_id=row["phase_id"],
        phase_name=row["phase_name"],
        prerequisite_steps=load_list(row["prerequisite_steps"]),
        categories=load_list(row["categories"]),
        tags=load_list(row["tags"]),
        order_index=row["order_index"],
    )
