"""
Tests for the pydantic models in journey_recommender/models/.

What we test
------------
- Step: negative difficulty rejected, out-of-catalog levels accepted; time
  range, frozen, derived properties.
- CompanyProfile: optional attributes, non-negative maturity score.
- RecommendationContext: non-negative time constraint, has_time_constraint.
- StepRelationship: pair and other_end().
- IndustryPopularity percentile range; StepAssistantResponse confidence range.
- PhaseCompletionStat.completion_pct handles empty phases;
  StepCompletionTimeStat.overrun_ratio needs a positive estimate.
- EngineEvent gets a timezone-aware creation time.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from journey_recommender.models.analytics import PhaseCompletionStat, StepCompletionTimeStat
from journey_recommender.models.assistant import StepAssistantResponse
from journey_recommender.models.event import EngineEvent
from journey_recommender.models.lookup import IndustryPopularity
from journey_recommender.models.recommendation import RecommendationContext, StepRelationship
from journey_recommender.models.step import CompanyProfile, Step
from journey_recommender.taxonomy.event_taxonomy import EventCategory, EventType
from journey_recommender.taxonomy.journey_taxonomy import RelationshipType


class TestStep:
    def test_defaults(self):
        step = Step(id="x", name="X")
        assert step.difficulty_level == 1
        assert step.prerequisite_steps == ()
        assert step.phase_id is None

    def test_negative_difficulty_rejected(self):
        with pytest.raises(ValidationError):
            Step(id="x", name="X", difficulty_level=-1)

    @pytest.mark.parametrize("level", [0, 6, 9])
    def test_out_of_catalog_range_difficulty_accepted(self, level):
        # The 1 to 5 range is a catalog rule checked by the seed loader.
        assert Step(id="x", name="X", difficulty_level=level).difficulty_level == level

    def test_time_range(self):
        with pytest.raises(ValidationError):
            Step(id="x", name="X", estimated_time_min=120, estimated_time_max=60)
        with pytest.raises(ValidationError):
            Step(id="x", name="X", estimated_time_min=-5, estimated_time_max=60)

    def test_frozen(self):
        step = Step(id="x", name="X")
        with pytest.raises(ValidationError):
            step.name = "Y"

    def test_lists_become_tuples(self):
        step = Step(id="x", name="X", prerequisite_steps=["a", "b"], categories=["c"], tags=["t"])
        assert step.prerequisite_steps == ("a", "b")
        assert step.metadata_labels == ("c", "t")

    def test_average_minutes(self):
        assert Step(id="x", name="X", estimated_time_min=60, estimated_time_max=180).average_minutes == 120


class TestCompanyProfile:
    def test_only_id_required(self):
        profile = CompanyProfile(company_id="c")
        assert profile.stage is None
        assert profile.focus_areas == ()

    def test_negative_maturity_rejected(self):
        with pytest.raises(ValidationError):
            CompanyProfile(company_id="c", maturity_score=-1)


class TestRecommendationContext:
    def test_negative_time_constraint_rejected(self):
        with pytest.raises(ValidationError):
            RecommendationContext(time_constraint_days=-1)

    @pytest.mark.parametrize("days, expected", [(None, False), (0, False), (2.5, True)])
    def test_has_time_constraint(self, days, expected):
        assert RecommendationContext(time_constraint_days=days).has_time_constraint is expected


class TestStepRelationship:
    def test_pair_and_other_end(self):
        rel = StepRelationship(source_id="a", target_id="b",
                               relationship_type=RelationshipType.PREREQUISITE)
        assert rel.pair == ("a", "b")
        assert rel.other_end("a") == "b"
        assert rel.other_end("b") == "a"

    def test_type_from_string(self):
        rel = StepRelationship(source_id="a", target_id="b", relationship_type="related")
        assert rel.relationship_type is RelationshipType.RELATED


class TestRanges:
    def test_percentile(self):
        IndustryPopularity(step_id="s", percentile=0)
        IndustryPopularity(step_id="s", percentile=100)
        with pytest.raises(ValidationError):
            IndustryPopularity(step_id="s", percentile=100.5)

    def test_confidence(self):
        with pytest.raises(ValidationError):
            StepAssistantResponse(answer="x", confidence=1.2)

    def test_completion_pct(self):
        assert PhaseCompletionStat(phase_id="p", phase_name="P", total_steps=0,
                                   completed_steps=0).completion_pct == 0.0
        assert PhaseCompletionStat(phase_id="p", phase_name="P", total_steps=4,
                                   completed_steps=1).completion_pct == 0.25

    @pytest.mark.parametrize("estimate, expected", [(None, None), (0, None), (120, 1.5)])
    def test_overrun_ratio(self, estimate, expected):
        stat = StepCompletionTimeStat(step_id="s", estimated_minutes=estimate,
                                      sample_count=1, avg_actual_minutes=180)
        assert stat.overrun_ratio == expected


def test_event_created_at_is_aware():
    event = EngineEvent(category=EventCategory.PATH, event_type=EventType.REQUEST, subject_id="c")
    assert event.created_at.tzinfo is not None
