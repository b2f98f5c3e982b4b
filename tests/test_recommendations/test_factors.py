"""
Tests for journey_recommender/recommendations/factors.py.

What we test
------------
prerequisite_score():
  - Maximum (3.0) for a step with no prerequisites.
  - Proportional to the completed share; saturates at 3.0 when all are done.

industry_popularity_score() / sequence_score() / similar_companies_score():
  - Scale the looked-up value and clamp at the factor maximum.
  - Return 0 for a step absent from the lookup table.

stage_score():
  - 1.5 when the company stage is applicable to the step's phase (case-insensitive).
  - 0 for an inapplicable stage, unknown phase, or missing stage.

business_model_score():
  - 0.25 per keyword hit, capped at 1.0; 0 without or with unknown model.

focus_area_score():
  - Fraction of matched focus areas scaled to 1.5; substring, case-insensitive.
  - 0 with no focus areas or a step without labels.

time_fit_score():
  - 0 with no budget, or when the step alone exceeds it.
  - 1.0 for a quick win (<= 10% of the budget).
  - 1 - step_days / budget in between; honours workday_hours.

Every factor stays within [0, max].
"""

from __future__ import annotations

import pytest

from journey_recommender.models.step import Step
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


def _by_id(steps: list[Step]) -> dict[str, Step]:
    return {s.id: s for s in steps}


# ── prerequisite ──────────────────────────────────────────────────────────────

class TestPrerequisiteScore:
    def test_no_prerequisites_scores_maximum(self, sample_steps):
        assert prerequisite_score(_by_id(sample_steps)["a"], []) == 3.0

    def test_none_completed_scores_zero(self, sample_steps):
        assert prerequisite_score(_by_id(sample_steps)["d"], []) == 0.0

    def test_partial_completion_is_proportional(self, sample_steps):
        assert prerequisite_score(_by_id(sample_steps)["d"], ["b"]) == pytest.approx(1.5)

    def test_saturates_when_all_done(self, sample_steps):
        d = _by_id(sample_steps)["d"]
        assert prerequisite_score(d, ["b", "c"]) == 3.0
        assert prerequisite_score(d, ["a", "b", "c", "e"]) == 3.0

    def test_non_decreasing_as_completions_grow(self, sample_steps):
        d = _by_id(sample_steps)["d"]
        scores = [prerequisite_score(d, done) for done in ([], ["b"], ["b", "c"])]
        assert scores == sorted(scores)


# ── lookup-backed factors ─────────────────────────────────────────────────────

class TestLookupFactors:
    def test_industry_popularity_scaled(self):
        assert industry_popularity_score("b", {"b": 90.0}) == pytest.approx(1.8)
        assert industry_popularity_score("b", {"b": 100.0}) == pytest.approx(2.0)

    def test_industry_popularity_missing_is_zero(self):
        assert industry_popularity_score("x", {"b": 90.0}) == 0.0

    def test_sequence_scaled_and_capped(self):
        assert sequence_score("c", {"c": 8.0}) == pytest.approx(0.8)
        assert sequence_score("b", {"b": 30.0}) == 2.5

    def test_sequence_missing_is_zero(self):
        assert sequence_score("b", {}) == 0.0

    def test_similar_companies_doubled_and_capped(self):
        assert similar_companies_score("c", {"c": 0.8}) == pytest.approx(1.6)
        assert similar_companies_score("c", {"c": 1.5}) == 2.0

    def test_similar_companies_missing_is_zero(self):
        assert similar_companies_score("c", {}) == 0.0


# ── stage ─────────────────────────────────────────────────────────────────────

class TestStageScore:
    def test_applicable_stage(self, sample_steps):
        assert stage_score(_by_id(sample_steps)["b"], "seed") == 1.5

    def test_stage_is_case_insensitive(self, sample_steps):
        assert stage_score(_by_id(sample_steps)["b"], "Seed") == 1.5

    def test_inapplicable_stage(self, sample_steps):
        assert stage_score(_by_id(sample_steps)["b"], "growth") == 0.0

    def test_missing_stage(self, sample_steps):
        assert stage_score(_by_id(sample_steps)["b"], None) == 0.0

    def test_unknown_phase(self):
        step = Step(id="x", name="X", phase_name="Other")
        assert stage_score(step, "seed") == 0.0

    def test_unphased_step(self):
        assert stage_score(Step(id="x", name="X"), "seed") == 0.0


# ── business model ────────────────────────────────────────────────────────────

class TestBusinessModelScore:
    def test_counts_keyword_hits(self):
        step = Step(id="x", name="Subscription Pricing",
                    description="Model recurring revenue and churn.")
        assert business_model_score(step, "saas") == pytest.approx(0.75)

    def test_capped_at_one(self):
        step = Step(id="x", name="Customer retention",
                    description="subscription, recurring billing and churn")
        assert business_model_score(step, "SaaS") == 1.0

    def test_no_model_or_unknown_model(self):
        step = Step(id="x", name="Subscription")
        assert business_model_score(step, None) == 0.0
        assert business_model_score(step, "barter") == 0.0


# ── focus area ────────────────────────────────────────────────────────────────

class TestFocusAreaScore:
    def test_full_match(self, sample_steps):
        assert focus_area_score(_by_id(sample_steps)["b"], ["marketing"]) == 1.5

    def test_partial_match(self, sample_steps):
        score = focus_area_score(_by_id(sample_steps)["b"], ["marketing", "finance"])
        assert score == pytest.approx(0.75)

    def test_substring_and_case_insensitive(self, sample_steps):
        assert focus_area_score(_by_id(sample_steps)["b"], ["MARKET"]) == 1.5

    def test_no_focus_areas(self, sample_steps):
        assert focus_area_score(_by_id(sample_steps)["b"], []) == 0.0

    def test_step_without_labels(self, sample_steps):
        assert focus_area_score(_by_id(sample_steps)["a"], ["marketing"]) == 0.0

    def test_merge_focus_areas_keeps_first_occurrence(self):
        assert merge_focus_areas(["a", "b"], ["b", "", "c"]) == ["a", "b", "c"]


# ── time fit ──────────────────────────────────────────────────────────────────

class TestTimeFitScore:
    def test_no_budget(self, sample_steps):
        a = _by_id(sample_steps)["a"]
        assert time_fit_score(a, None) == 0.0
        assert time_fit_score(a, 0) == 0.0

    def test_quick_win(self, sample_steps):
        # 90 min = 0.1875 workdays <= 10% of 10 days
        assert time_fit_score(_by_id(sample_steps)["a"], 10) == 1.0

    def test_exceeding_budget_scores_zero(self, sample_steps):
        # 3600 min = 7.5 workdays
        assert time_fit_score(_by_id(sample_steps)["d"], 5) == 0.0

    def test_linear_between(self, sample_steps):
        assert time_fit_score(_by_id(sample_steps)["d"], 10) == pytest.approx(0.25)

    def test_exactly_filling_budget(self, sample_steps):
        assert time_fit_score(_by_id(sample_steps)["d"], 7.5) == pytest.approx(0.0)

    def test_shorter_workday_makes_step_longer(self, sample_steps):
        # 3600 min at 4h/day = 15 workdays
        assert time_fit_score(_by_id(sample_steps)["d"], 10, workday_hours=4.0) == 0.0


def test_every_factor_within_bounds(sample_steps):
    completed = ["a", "b"]
    tables = {"b": 100.0, "c": 50.0, "d": 1e6}
    for step in sample_steps:
        values = {
            "prerequisite": prerequisite_score(step, completed),
            "industry_popularity": industry_popularity_score(step.id, tables),
            "sequence": sequence_score(step.id, tables),
            "stage": stage_score(step, "seed"),
            "business_model": business_model_score(step, "saas"),
            "similar_companies": similar_companies_score(step.id, tables),
            "focus_area": focus_area_score(step, ["marketing", "x"]),
            "time_fit": time_fit_score(step, 3),
        }
        for name, value in values.items():
            assert 0.0 <= value <= FACTOR_MAXIMA[name], (step.id, name, value)
