"""
Request context and public result shapes of the recommendation engine.

``RecommendationContext`` carries the optional request-time knobs.
``StepRecommendation`` is the plain-data shape returned by both
``get_recommendations`` and ``get_optimized_path``.
``StepRelationship`` is one directed edge returned by ``get_step_relationships``.

All models are frozen.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from journey_recommender.taxonomy.journey_taxonomy import RelationshipType


class RecommendationContext(BaseModel):
    """Optional request context for scoring.

    Attributes:
        selected_phases: Restrict candidates to these phase ids (empty = all).
        focus_areas: Extra focus areas, unioned with the company's own.
        time_constraint_days: Time budget in workdays; ``None`` or ``0``
            disables the time-budget factor.
    """

    model_config = ConfigDict(frozen=True)

    selected_phases: tuple[str, ...] = ()
    focus_areas: tuple[str, ...] = ()
    time_constraint_days: Optional[float] = None

    @field_validator("time_constraint_days")
    @classmethod
    def validate_time_constraint(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"time_constraint_days must be non-negative, got {v}.")
        return v

    @property
    def has_time_constraint(self) -> bool:
        return bool(self.time_constraint_days)


class StepRecommendation(BaseModel):
    """A recommended step with its relevance score and reasoning.

    Attributes:
        id: Step id.
        name: Step display name.
        description: Step description.
        difficulty_level: Ordinal difficulty 1–5.
        estimated_time_min: Lower effort estimate in minutes.
        estimated_time_max: Upper effort estimate in minutes.
        phase_id: Owning phase id.
        phase_name: Owning phase name.
        relevance_score: Base 1.0 plus the eight factor contributions.
        reasoning: Reasons for the materially contributing factors only.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    difficulty_level: int
    estimated_time_min: int
    estimated_time_max: int
    phase_id: Optional[str] = None
    phase_name: Optional[str] = None
    relevance_score: float
    reasoning: tuple[str, ...] = ()


class StepRelationship(BaseModel):
    """A directed edge in the step relationship graph.

    Attributes:
        source_id: Edge source step id.
        target_id: Edge target step id.
        relationship_type: ``prerequisite``, ``dependent`` or ``related``.
        source_name: Display name of the source, when resolved.
        target_name: Display name of the target, when resolved.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str
    target_id: str
    relationship_type: RelationshipType
    source_name: Optional[str] = None
    target_name: Optional[str] = None

    @property
    def pair(self) -> tuple[str, str]:
        """``(source_id, target_id)``, used to de-duplicate edges."""
        return (self.source_id, self.target_id)

    def other_end(self, step_id: str) -> str:
        """Return the endpoint that is not ``step_id``."""
        return self.target_id if self.source_id == step_id else self.source_id
