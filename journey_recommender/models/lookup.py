"""
Row models returned by the auxiliary data accessors.

These are thin, frozen records. The scoring lookups (popularity, sequences,
similar-company patterns) are turned into ``step_id -> value`` dicts by the
scorer; the graph lookups feed the relationship resolver directly.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class IndustryPopularity(BaseModel):
    """How popular a step is within an industry, as a 0–100 percentile."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    percentile: float

    @field_validator("percentile")
    @classmethod
    def validate_percentile(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"percentile must be in [0, 100], got {v}.")
        return v


class SequenceFrequency(BaseModel):
    """How often ``next_step_id`` follows the company's completed steps."""

    model_config = ConfigDict(frozen=True)

    next_step_id: str
    frequency: float


class SimilarCompanyPattern(BaseModel):
    """Similarity-weighted signal that peer companies chose this step next."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    similarity_score: float


class RelatedStep(BaseModel):
    """A step frequently completed together with the queried step."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    step_name: str | None = None
    similarity: float | None = None


class StepRef(BaseModel):
    """Id + display name, used to label relationship edges."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class DependentStep(BaseModel):
    """A step that lists the queried step among its prerequisites."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    prerequisite_steps: tuple[str, ...] = ()
