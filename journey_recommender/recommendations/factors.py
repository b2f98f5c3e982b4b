"""
Relevance factors: eight pure functions, each mapping a step plus context to
a bounded, non-negative contribution.

Factor table
------------
    factor                 range        rule
    ---------------------  -----------  ---------------------------------------
    prerequisite           [0, 3.0]     3.0 if no prereqs, else 3.0 × done/total
    industry_popularity    [0, 2.0]     2.0 × percentile / 100
    sequence               [0, 2.5]     min(frequency × 0.1, 2.5)
    stage                  {0, 1.5}     1.5 if company stage ∈ phase's stages
    business_model         [0, 1.0]     min(keyword_hits × 0.25, 1.0)
    similar_companies      [0, 2.0]     min(similarity × 2, 2.0)
    focus_area             [0, 1.5]     1.5 × matched_focus / total_focus
    time_fit               [0, 1.0]     1 − step_days / budget_days (see below)

A step absent from a lookup table contributes 0 for that factor. Missing
profile attributes (no stage, no business model, no focus areas) also
contribute 0. No factor can go negative, so totals are comparable across
calls with identical context.

No DB or I/O in this module.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from journey_recommender.models.step import Step
from journey_recommender.taxonomy.journey_taxonomy import (
    BUSINESS_MODEL_KEYWORDS,
    PHASE_STAGE_MAP,
)
from journey_recommender.utils.time_utils import DEFAULT_WORKDAY_HOURS, minutes_to_workdays

# Maximum contribution of each factor.
PREREQUISITE_MAX        = 3.0
INDUSTRY_POPULARITY_MAX = 2.0
SEQUENCE_MAX            = 2.5
STAGE_MAX               = 1.5
BUSINESS_MODEL_MAX      = 1.0
SIMILAR_COMPANIES_MAX   = 2.0
FOCUS_AREA_MAX          = 1.5
TIME_FIT_MAX            = 1.0

FACTOR_MAXIMA: dict[str, float] = {
    "prerequisite":        PREREQUISITE_MAX,
    "industry_popularity": INDUSTRY_POPULARITY_MAX,
    "sequence":            SEQUENCE_MAX,
    "stage":               STAGE_MAX,
    "business_model":      BUSINESS_MODEL_MAX,
    "similar_companies":   SIMILAR_COMPANIES_MAX,
    "focus_area":          FOCUS_AREA_MAX,
    "time_fit":            TIME_FIT_MAX,
}

_SEQUENCE_WEIGHT       = 0.1
_KEYWORD_WEIGHT        = 0.25
_QUICK_WIN_FRACTION    = 0.1   # step uses <= 10% of the budget → full time_fit


def prerequisite_score(step: Step, completed_ids: Iterable[str]) -> float:
    """Share of the step's prerequisites already completed, scaled to 0–3.

    A step with no prerequisites is ready to go and scores the maximum.
    """
    prereqs = step.prerequisite_steps
    if not prereqs:
        return PREREQUISITE_MAX
    completed = set(completed_ids)
    done = sum(1 for p in prereqs if p in completed)
    return PREREQUISITE_MAX * done / len(prereqs)


def industry_popularity_score(step_id: str, percentiles: Mapping[str, float]) -> float:
    """Industry popularity percentile mapped onto 0–2."""
    percentile = percentiles.get(step_id)
    if percentile is None:
        return 0.0
    return _clamp(INDUSTRY_POPULARITY_MAX * percentile / 100.0, 0.0, INDUSTRY_POPULARITY_MAX)


def sequence_score(step_id: str, frequencies: Mapping[str, float]) -> float:
    """How often this step follows the company's completions, capped at 2.5."""
    frequency = frequencies.get(step_id)
    if frequency is None:
        return 0.0
    return _clamp(frequency * _SEQUENCE_WEIGHT, 0.0, SEQUENCE_MAX)


def stage_score(step: Step, company_stage: Optional[str]) -> float:
    """1.5 when the step's phase is applicable to the company's stage, else 0."""
    if not step.phase_name or not company_stage:
        return 0.0
    stages = PHASE_STAGE_MAP.get(step.phase_name.lower())
    if stages is None:
        return 0.0
    return STAGE_MAX if company_stage.lower() in stages else 0.0


def business_model_score(step: Step, business_model: Optional[str]) -> float:
    """Keyword hits for the company's business model in the step text."""
    if not business_model:
        return 0.0
    keywords = BUSINESS_MODEL_KEYWORDS.get(business_model.lower(), ())
    text = f"{step.name} {step.description}".lower()
    matches = sum(1 for word in keywords if word in text)
    return min(matches * _KEYWORD_WEIGHT, BUSINESS_MODEL_MAX)


def similar_companies_score(step_id: str, similarities: Mapping[str, float]) -> float:
    """Peer-company similarity for this step, doubled and capped at 2."""
    similarity = similarities.get(step_id)
    if similarity is None:
        return 0.0
    return _clamp(similarity * 2.0, 0.0, SIMILAR_COMPANIES_MAX)


def merge_focus_areas(*sources: Sequence[str]) -> list[str]:
    """Ordered union of focus-area lists (first occurrence wins)."""
    merged: list[str] = []
    for source in sources:
        for area in source:
            if area and area not in merged:
                merged.append(area)
    return merged


def focus_area_score(step: Step, focus_areas: Sequence[str]) -> float:
    """Fraction of focus areas found in the step's categories/tags, scaled to 0–1.5.

    A focus area matches when any label contains it (case-insensitive).
    """
    if not focus_areas:
        return 0.0
    labels = [label.lower() for label in step.metadata_labels]
    if not labels:
        return 0.0
    matched = sum(
        1 for focus in focus_areas if any(focus.lower() in label for label in labels)
    )
    return min(matched / len(focus_areas) * FOCUS_AREA_MAX, FOCUS_AREA_MAX)


def time_fit_score(
    step: Step,
    time_constraint_days: Optional[float],
    workday_hours: float = DEFAULT_WORKDAY_HOURS,
) -> float:
    """How comfortably the step fits a time budget given in workdays.

    Returns 0 with no budget or when the step alone exceeds it, 1.0 when the
    step needs at most a tenth of the budget, and ``1 − step_days/budget``
    in between.
    """
    if not time_constraint_days or time_constraint_days <= 0:
        return 0.0
    step_days = minutes_to_workdays(step.average_minutes, workday_hours)
    if step_days > time_constraint_days:
        return 0.0
    if step_days <= time_constraint_days * _QUICK_WIN_FRACTION:
        return TIME_FIT_MAX
    return _clamp(1.0 - step_days / time_constraint_days, 0.0, TIME_FIT_MAX)


# ── Helper ────────────────────────────────────────────────────────────────────

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
