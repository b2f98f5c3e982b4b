"""
Tests for journey_recommender/recommendations/path.py.

What we test
------------
select_path_candidates():
  - Without a budget: first ``max_steps`` candidates in catalog order.
  - With a budget: easiest first, greedy, never exceeding the budget.
  - A step too long for the remaining budget is skipped, not a stop.
  - ``max_steps`` caps both branches; ``max_steps <= 0`` yields [].

order_steps_optimally():
  - Prerequisites always precede the steps that need them.
  - Among available steps the highest score goes first; on equal scores the
    last in input order wins.
  - Only steps placed in the path satisfy a prerequisite; a completed step
    outside the path does not.
  - Cycles and unresolvable prerequisites are broken by forcing the
    highest-scored remaining step, recorded in ``forced_step_ids``.
  - Every input step appears exactly once.
"""

from __future__ import annotations

import pytest

from journey_recommender.models.step import Step
from journey_recommender.recommendations.path import (
    order_steps_optimally,
    select_path_candidates,
)
from journey_recommender.recommendations.scorer import RecommendationScore, ScoreComponents
from journey_recommender.utils.time_utils import workdays_to_minutes


def _scored(step: Step, score: float) -> RecommendationScore:
    return RecommendationScore(step=step, score=score, components=ScoreComponents())


def _step(step_id: str, prereqs: tuple[str, ...] = (), difficulty: int = 1,
          minutes: int = 60) -> Step:
    return Step(id=step_id, name=step_id.upper(), difficulty_level=difficulty,
                estimated_time_min=minutes, estimated_time_max=minutes,
                prerequisite_steps=prereqs)


# ── Selection ─────────────────────────────────────────────────────────────────

class TestSelectPathCandidates:
    def test_unconstrained_takes_catalog_order(self, sample_steps):
        selected = select_path_candidates(sample_steps, None, 3)
        assert [s.id for s in selected] == ["a", "b", "c"]

    def test_zero_budget_means_unconstrained(self, sample_steps):
        selected = select_path_candidates(sample_steps, 0, 10)
        assert [s.id for s in selected] == ["a", "b", "c", "d", "e"]

    def test_budget_prefers_easy_steps(self, sample_steps):
        # 2 workdays = 960 min: a(90) + b(360) + e(180); c(720) and d(3600) do not fit.
        selected = select_path_candidates(sample_steps, 2, 10)
        assert [s.id for s in selected] == ["a", "b", "e"]

    def test_budget_never_exceeded(self, sample_steps):
        for days in (0.5, 1, 2, 5, 10):
            selected = select_path_candidates(sample_steps, days, 10)
            assert sum(s.average_minutes for s in selected) <= workdays_to_minutes(days)

    def test_long_step_is_skipped_not_a_stop(self):
        steps = [_step("long", difficulty=1, minutes=600), _step("short", difficulty=2, minutes=60)]
        selected = select_path_candidates(steps, 1, 10)
        assert [s.id for s in selected] == ["short"]

    def test_max_steps_caps_budgeted_selection(self, sample_steps):
        selected = select_path_candidates(sample_steps, 100, 2)
        assert [s.id for s in selected] == ["a", "b"]

    def test_max_steps_zero(self, sample_steps):
        assert select_path_candidates(sample_steps, None, 0) == []
        assert select_path_candidates(sample_steps, 5, 0) == []

    def test_workday_hours(self):
        steps = [_step("x", minutes=400)]
        assert select_path_candidates(steps, 1, 10, workday_hours=8.0) != []
        assert select_path_candidates(steps, 1, 10, workday_hours=6.0) == []


# ── Ordering ──────────────────────────────────────────────────────────────────

class TestOrderStepsOptimally:
    @pytest.fixture
    def scored(self, sample_steps) -> list[RecommendationScore]:
        scores = {"a": 1.0, "b": 5.0, "c": 7.0, "d": 10.0, "e": 20.0}
        return [_scored(s, scores[s.id]) for s in sample_steps]

    def test_dependency_respecting_order(self, scored):
        result = order_steps_optimally(scored)
        assert [s.id for s in result.steps] == ["a", "c", "b", "d", "e"]
        assert result.forced_step_ids == []

    def test_prerequisites_precede_dependents(self, scored):
        result = order_steps_optimally(list(reversed(scored)))
        ids = [s.id for s in result.steps]
        for s in result.steps:
            for prereq in s.prerequisite_steps:
                assert ids.index(prereq) < ids.index(s.id)

    def test_prerequisite_outside_path_is_not_satisfied(self):
        # "x" may be completed by the company, but it is not in the path.
        needs_x = _scored(_step("a", prereqs=("x",)), 5.0)
        free = _scored(_step("b"), 1.0)
        result = order_steps_optimally([needs_x, free])
        assert [s.id for s in result.steps] == ["b", "a"]
        assert result.forced_step_ids == ["a"]

    def test_completed_prerequisites_do_not_unlock(self, scored):
        without_a = [s for s in scored if s.id != "a"]
        result = order_steps_optimally(without_a)
        # Nothing is ever available, so every step is forced by score.
        assert [s.id for s in result.steps] == ["e", "d", "c", "b"]
        assert result.forced_step_ids == ["e", "d", "c", "b"]

    def test_ties_go_to_last_in_input(self):
        steps = [_scored(_step("x"), 2.0), _scored(_step("y"), 2.0), _scored(_step("z"), 2.0)]
        assert [s.id for s in order_steps_optimally(steps).steps] == ["z", "y", "x"]

    def test_forced_tie_goes_to_last_in_input(self):
        x = _scored(_step("x", prereqs=("y",)), 2.0)
        y = _scored(_step("y", prereqs=("x",)), 2.0)
        result = order_steps_optimally([x, y])
        assert [s.id for s in result.steps] == ["y", "x"]
        assert result.forced_step_ids == ["y"]

    def test_cycle_is_broken_by_forcing(self):
        x = _scored(_step("x", prereqs=("y",)), 2.0)
        y = _scored(_step("y", prereqs=("x",)), 3.0)
        result = order_steps_optimally([x, y])
        assert [s.id for s in result.steps] == ["y", "x"]
        assert result.forced_step_ids == ["y"]

    def test_unresolvable_prerequisite_is_forced_last(self):
        free = _scored(_step("free"), 1.0)
        blocked = _scored(_step("blocked", prereqs=("missing",)), 9.0)
        result = order_steps_optimally([blocked, free])
        assert [s.id for s in result.steps] == ["free", "blocked"]
        assert result.forced_step_ids == ["blocked"]

    def test_every_step_placed_once(self, scored):
        result = order_steps_optimally(scored)
        assert sorted(s.id for s in result.steps) == sorted(s.id for s in scored)

    def test_empty_input(self):
        result = order_steps_optimally([])
        assert result.steps == []
        assert result.forced_step_ids == []
