"""
Step scoring: aggregates the eight relevance factors into one score and a
reasoning list per candidate step.

Score formula
-------------
    score = base_score (1.0)
          + prerequisite + industry_popularity + sequence + stage
          + business_model + similar_companies + focus_area + time_fit

The base keeps every candidate above zero even when no signal is available.
All eight factors are non-negative (see ``factors.py``).

Reasoning
---------
A factor adds a reason only when it is *material*: its contribution exceeds
``reason_threshold_ratio × factor_max`` (0.5 by default, i.e. more than half
of its range). A step with no material factor gets an empty reasoning list.

Lookup tables
-------------
Industry popularity, common sequences, and similar-company patterns come from
the data source. ``load_scoring_tables()`` fetches each one independently; a
failing lookup leaves its table empty (factor → 0) and is recorded in
``ScoringTables.failures`` so the caller can report it. Scoring never raises
because of a lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from journey_recommender.config import ScoringConfig
from journey_recommender.models.recommendation import RecommendationContext
from journey_recommender.models.step import CompanyProfile, CompanyProgressRecord, Step
from journey_recommender.recommendations.factors import (
    FACTOR_MAXIMA,
    business_model_score,
    focus_area_score,
    industry_popularity_score,
    merge_focus_areas,
    prerequisite_score,
    sequence_score,
    similar_companies_score,
    stage_score,
    time_fit_score,
)
from journey_recommender.recommendations.sources import StepDataSource
from journey_recommender.taxonomy.journey_taxonomy import ProgressStatus
from journey_recommender.utils.time_utils import DEFAULT_WORKDAY_HOURS

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class ScoreComponents:
    """Per-factor contributions for one step.

    Attributes:
        prerequisite:        0–3.0, prerequisite completion.
        industry_popularity: 0–2.0, industry popularity percentile.
        sequence:            0–2.5, common next-step frequency.
        stage:               0 or 1.5, phase applicable to company stage.
        business_model:      0–1.0, business-model keyword hits.
        similar_companies:   0–2.0, peer-company pattern similarity.
        focus_area:          0–1.5, focus-area alignment.
        time_fit:            0–1.0, time-budget fit.
        base:                Base score every candidate starts from.
    """

    prerequisite:        float = 0.0
    industry_popularity: float = 0.0
    sequence:            float = 0.0
    stage:               float = 0.0
    business_model:      float = 0.0
    similar_companies:   float = 0.0
    focus_area:          float = 0.0
    time_fit:            float = 0.0
    base:                float = 1.0

    def factors(self) -> dict[str, float]:
        """Factor name → contribution, in canonical factor order."""
        return {name: getattr(self, name) for name in FACTOR_MAXIMA}

    @property
    def total(self) -> float:
        """Base plus the sum of all eight factor contributions."""
        return self.base + sum(self.factors().values())


@dataclass
class RecommendationScore:
    """A candidate step with its computed relevance.

    Attributes:
        step:       The scored ``Step`` (unchanged).
        score:      ``components.total``.
        components: Per-factor breakdown.
        reasoning:  Reasons for the materially contributing factors.
    """

    step:       Step
    score:      float
    components: ScoreComponents
    reasoning:  list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.step.id

    @property
    def prerequisite_steps(self) -> tuple[str, ...]:
        return self.step.prerequisite_steps


@dataclass
class ScoringTables:
    """Auxiliary lookups keyed by step id, plus any lookup failures.

    Attributes:
        popularity:   step_id → industry percentile (0–100).
        sequences:    step_id → next-step frequency.
        patterns:     step_id → peer similarity score.
        failures:     lookup name → stringified error for failed lookups.
    """

    popularity: dict[str, float] = field(default_factory=dict)
    sequences:  dict[str, float] = field(default_factory=dict)
    patterns:   dict[str, float] = field(default_factory=dict)
    failures:   dict[str, str]   = field(default_factory=dict)


# ── Lookup loading ────────────────────────────────────────────────────────────

def completed_step_ids(progress: Sequence[CompanyProgressRecord]) -> list[str]:
    """Ids of steps with status ``completed``, in input order."""
    return [p.step_id for p in progress if p.status == ProgressStatus.COMPLETED]


def recently_completed_ids(
    progress: Sequence[CompanyProgressRecord],
    window: int,
) -> list[str]:
    """Up to ``window`` completed step ids, most recently updated first.

    Records without ``updated_at`` sort last; ties keep input order.
    """
    completed = [p for p in progress if p.status == ProgressStatus.COMPLETED]
    ordered = sorted(completed, key=lambda p: p.updated_at or _EPOCH, reverse=True)
    return [p.step_id for p in ordered[:window]]


def load_scoring_tables(
    source:   StepDataSource,
    progress: Sequence[CompanyProgressRecord],
    profile:  CompanyProfile,
    recent_window: int = 5,
) -> ScoringTables:
    """Fetch the three scoring lookups, degrading each one independently.

    Args:
        source:        Data accessor.
        progress:      Company progress records (any statuses).
        profile:       Company profile (industry id and stage are used).
        recent_window: How many recent completions seed the peer-pattern lookup.

    Returns:
        ``ScoringTables``; failed lookups are empty and listed in ``failures``.
    """
    tables = ScoringTables()
    completed = completed_step_ids(progress)
    recent = recently_completed_ids(progress, recent_window)

    rows = _guarded(
        "industry_popularity", tables,
        lambda: source.fetch_industry_popularity(profile.industry_id),
    )
    tables.popularity = {r.step_id: r.percentile for r in rows}

    rows = _guarded(
        "common_sequences", tables,
        lambda: source.fetch_common_sequences(completed),
    )
    tables.sequences = {r.next_step_id: r.frequency for r in rows}

    rows = _guarded(
        "similar_company_patterns", tables,
        lambda: source.fetch_similar_company_patterns(
            recent, profile.industry_id, profile.stage
        ),
    )
    tables.patterns = {r.step_id: r.similarity_score for r in rows}

    return tables


def _guarded(name: str, tables: ScoringTables, fetch: Callable[[], list]) -> list:
    """Run one lookup; on failure record it and return an empty list."""
    try:
        return list(fetch() or [])
    except Exception as exc:
        logger.warning("Scoring lookup '%s' failed; factor degraded to 0: %s", name, exc)
        tables.failures[name] = str(exc)
        return []


# ── Scoring ───────────────────────────────────────────────────────────────────

def compute_components(
    step:          Step,
    completed_ids: set[str],
    profile:       CompanyProfile,
    context:       RecommendationContext,
    tables:        ScoringTables,
    base_score:    float = 1.0,
    workday_hours: float = DEFAULT_WORKDAY_HOURS,
) -> ScoreComponents:
    """Evaluate all eight factors for one step."""
    focus_areas = merge_focus_areas(profile.focus_areas, context.focus_areas)
    return ScoreComponents(
        prerequisite=prerequisite_score(step, completed_ids),
        industry_popularity=industry_popularity_score(step.id, tables.popularity),
        sequence=sequence_score(step.id, tables.sequences),
        stage=stage_score(step, profile.stage),
        business_model=business_model_score(step, profile.business_model),
        similar_companies=similar_companies_score(step.id, tables.patterns),
        focus_area=focus_area_score(step, focus_areas),
        time_fit=time_fit_score(step, context.time_constraint_days, workday_hours),
        base=base_score,
    )


def build_reasoning(
    components:      ScoreComponents,
    step:            Step,
    completed_ids:   set[str],
    profile:         CompanyProfile,
    threshold_ratio: float = 0.5,
) -> list[str]:
    """Reasons for the factors whose contribution is material.

    Args:
        components:      Output of ``compute_components()``.
        step:            The scored step (for the prerequisite reason).
        completed_ids:   Completed step ids (for the prerequisite reason).
        profile:         Company profile (stage / business model wording).
        threshold_ratio: Fraction of a factor's maximum it must exceed.

    Returns:
        Reason strings in canonical factor order; possibly empty.
    """
    def material(name: str) -> bool:
        return getattr(components, name) > FACTOR_MAXIMA[name] * threshold_ratio

    reasons: list[str] = []

    if material("prerequisite"):
        prereqs = step.prerequisite_steps
        if prereqs:
            done = sum(1 for p in prereqs if p in completed_ids)
            reasons.append(f"{done / len(prereqs):.0%} of prerequisites complete")
        else:
            reasons.append("No prerequisites required")
    if material("industry_popularity"):
        reasons.append("Popular in your industry")
    if material("sequence"):
        reasons.append("Commonly done at this stage")
    if material("stage"):
        reasons.append(f"Relevant for {profile.stage} stage")
    if material("business_model"):
        reasons.append(f"Aligned with {profile.business_model} business model")
    if material("similar_companies"):
        reasons.append("Chosen by similar companies")
    if material("focus_area"):
        reasons.append("Matches your focus areas")
    if material("time_fit"):
        reasons.append("Fits your time constraints")

    return reasons


def score_steps(
    candidates: Sequence[Step],
    progress:   Sequence[CompanyProgressRecord],
    profile:    CompanyProfile,
    context:    Optional[RecommendationContext] = None,
    tables:     Optional[ScoringTables] = None,
    config:     Optional[ScoringConfig] = None,
    workday_hours: float = DEFAULT_WORKDAY_HOURS,
) -> list[RecommendationScore]:
    """Score every candidate step.

    Args:
        candidates:    Steps to score (not mutated).
        progress:      Company progress; only ``completed`` records count.
        profile:       Company profile.
        context:       Request context (focus areas, time constraint).
        tables:        Pre-loaded lookup tables; ``None`` means all empty.
        config:        Scoring parameters (base score, reason threshold).
        workday_hours: Hours per workday for the time-fit factor.

    Returns:
        One ``RecommendationScore`` per candidate, in input order (unsorted).
    """
    context = context or RecommendationContext()
    tables  = tables or ScoringTables()
    config  = config or ScoringConfig()
    completed = set(completed_step_ids(progress))

    scored: list[RecommendationScore] = []
    for step in candidates:
        components = compute_components(
            step=step,
            completed_ids=completed,
            profile=profile,
            context=context,
            tables=tables,
            base_score=config.base_score,
            workday_hours=workday_hours,
        )
        reasoning = build_reasoning(
            components=components,
            step=step,
            completed_ids=completed,
            profile=profile,
            threshold_ratio=config.reason_threshold_ratio,
        )
        scored.append(
            RecommendationScore(
                step=step,
                score=components.total,
                components=components,
                reasoning=reasoning,
            )
        )
    return scored
