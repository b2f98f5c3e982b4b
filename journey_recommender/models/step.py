"""
Journey phase, step, company progress, and company profile models.

``Step`` is an immutable catalog snapshot read fresh per engine call; the
engine never mutates it. ``CompanyProgressRecord`` and ``CompanyProfile`` are
likewise read-only inputs to scoring.

All three models are frozen. List-valued fields are tuples so that a frozen
instance is immutable all the way down.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from journey_recommender.taxonomy.journey_taxonomy import ProgressStatus
from journey_recommender.utils.time_utils import average_minutes

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


class JourneyPhase(BaseModel):
    """A named group of steps; ``order_index`` orders phases in the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    order_index: int = 0


class Step(BaseModel):
    """A discrete unit of work in a company's guided journey.

    Attributes:
        id: Stable step identifier.
        name: Display name, e.g. ``"Validate Product-Market Fit"``.
        description: Free-text description (searched by the business-model factor).
        difficulty_level: Ordinal difficulty. Catalogs use 1 (easiest) to 5; the
            seed loader enforces that range, while rows read back from the
            store are accepted at any non-negative level.
        estimated_time_min: Lower bound of the effort estimate, in minutes.
        estimated_time_max: Upper bound of the effort estimate, in minutes.
        phase_id: Owning phase id, or ``None`` for unphased steps.
        phase_name: Owning phase display name (drives stage relevance).
        prerequisite_steps: Ids of steps that should be completed first.
        categories: Category labels (matched against focus areas).
        tags: Free-form tags (matched against focus areas).
        order_index: Natural catalog order; candidate fetches sort by it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    difficulty_level: int = MIN_DIFFICULTY
    estimated_time_min: int = 0
    estimated_time_max: int = 0
    phase_id: Optional[str] = None
    phase_name: Optional[str] = None
    prerequisite_steps: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    order_index: int = 0

    @field_validator("difficulty_level")
    @classmethod
    def validate_difficulty(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"difficulty_level must be non-negative, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_time_range(self) -> "Step":
        if self.estimated_time_min < 0:
            raise ValueError("estimated_time_min must be non-negative.")
        if self.estimated_time_min > self.estimated_time_max:
            raise ValueError(
                f"estimated_time_min ({self.estimated_time_min}) must be <= "
                f"estimated_time_max ({self.estimated_time_max})."
            )
        return self

    @property
    def average_minutes(self) -> float:
        """Midpoint of the estimated effort range, in minutes."""
        return average_minutes(self.estimated_time_min, self.estimated_time_max)

    @property
    def metadata_labels(self) -> tuple[str, ...]:
        """Categories followed by tags; focus areas match against these."""
        return self.categories + self.tags


class CompanyProgressRecord(BaseModel):
    """One company's status on one step.

    Attributes:
        company_id: Company identifier.
        step_id: Step identifier.
        status: Current ``ProgressStatus``.
        updated_at: UTC datetime of the last status change, if known.
    """

    model_config = ConfigDict(frozen=True)

    company_id: str
    step_id: str
    status: ProgressStatus
    updated_at: Optional[datetime] = None


class CompanyProfile(BaseModel):
    """Company attributes used as scoring context.

    Every field is optional: a missing attribute makes the factor that reads
    it contribute zero rather than fail.
    """

    model_config = ConfigDict(frozen=True)

    company_id: str
    name: Optional[str] = None
    industry_id: Optional[str] = None
    stage: Optional[str] = None
    size: Optional[str] = None
    business_model: Optional[str] = None
    focus_areas: tuple[str, ...] = ()
    maturity_score: Optional[float] = None

    @field_validator("maturity_score")
    @classmethod
    def validate_maturity(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"maturity_score must be non-negative, got {v}.")
        return v
