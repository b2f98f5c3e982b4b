"""
Journey analytics result models.

``JourneyAnalytics`` bundles per-phase completion, status counts, per-step
completion times and an industry peer comparison for one company.

A step's actual completion time is the wall-clock gap between a company
completing it and that company's previous completion, both taken from
progress ``updated_at`` stamps. The first completion of each company has no
reference point and is not sampled.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PhaseCompletionStat(BaseModel):
    """Completion counts for one phase for one company."""

    model_config = ConfigDict(frozen=True)

    phase_id: str
    phase_name: str
    total_steps: int
    completed_steps: int

    @property
    def completion_pct(self) -> float:
        if self.total_steps == 0:
            return 0.0
        return self.completed_steps / self.total_steps


class IndustryComparison(BaseModel):
    """The company's completed-step count against its industry peers."""

    model_config = ConfigDict(frozen=True)

    industry_id: Optional[str] = None
    company_completed: int = 0
    peer_count: int = 0
    peer_avg_completed: float = 0.0


class StepCompletionTimeStat(BaseModel):
    """Observed completion time of one step against its effort estimate.

    Attributes:
        step_id: Step identifier.
        step_name: Display name, ``None`` when the step is not in the catalog.
        estimated_minutes: Midpoint of the catalog estimate, if known.
        sample_count: Completions with a measurable duration, across companies.
        avg_actual_minutes: Mean measured duration over those samples.
        company_actual_minutes: The requesting company's own duration, if sampled.
    """

    model_config = ConfigDict(frozen=True)

    step_id: str
    step_name: Optional[str] = None
    estimated_minutes: Optional[float] = None
    sample_count: int = 0
    avg_actual_minutes: float = 0.0
    company_actual_minutes: Optional[float] = None

    @property
    def overrun_ratio(self) -> Optional[float]:
        """Average actual over estimated time; ``None`` without a positive estimate."""
        if not self.estimated_minutes:
            return None
        return self.avg_actual_minutes / self.estimated_minutes


class JourneyAnalytics(BaseModel):
    """Journey progress analytics for one company.

    An empty instance (all defaults) is returned when analytics fail.
    """

    model_config = ConfigDict(frozen=True)

    phase_statistics: tuple[PhaseCompletionStat, ...] = ()
    status_counts: dict[str, int] = Field(default_factory=dict)
    completion_time_statistics: tuple[StepCompletionTimeStat, ...] = ()
    industry_comparison: Optional[IndustryComparison] = None
