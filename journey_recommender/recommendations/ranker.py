"""
Recommendation ranker: sorts scored steps, truncates to a limit, and maps
them to the public ``StepRecommendation`` shape.

Usage flow
----------
1. score_steps(...)                      (scorer.py)
   -> list[RecommendationScore]  (catalog order)

2. rank_scores(scored, limit=5)
   -> list[RecommendationScore]  (score descending, at most ``limit``)

3. build_recommendations(ranked)
   -> list[StepRecommendation]   (plain data for the caller)

Ordering is a stable sort on score descending: equal scores keep the catalog
order in which the data source returned the candidates, so repeated calls on
unchanged data produce identical output.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from journey_recommender.models.recommendation import StepRecommendation
from journey_recommender.recommendations.scorer import RecommendationScore


def rank_scores(
    scored: Sequence[RecommendationScore],
    limit:  int,
) -> list[RecommendationScore]:
    """Return the top ``limit`` scores, highest first.

    Args:
        scored: Scored candidates in catalog order.
        limit:  Maximum results; values below 1 yield an empty list.

    Returns:
        At most ``limit`` entries, sorted by score descending (stable).
    """
    if limit <= 0:
        return []
    return sorted(scored, key=lambda s: s.score, reverse=True)[:limit]


def to_recommendation(scored: RecommendationScore) -> StepRecommendation:
    """Map one ``RecommendationScore`` onto the public result shape."""
    step = scored.step
    return StepRecommendation(
        id=step.id,
        name=step.name,
        description=step.description,
        difficulty_level=step.difficulty_level,
        estimated_time_min=step.estimated_time_min,
        estimated_time_max=step.estimated_time_max,
        phase_id=step.phase_id,
        phase_name=step.phase_name,
        relevance_score=scored.score,
        reasoning=tuple(scored.reasoning),
    )


def build_recommendations(scored: Iterable[RecommendationScore]) -> list[StepRecommendation]:
    """Map scores to ``StepRecommendation`` objects, preserving order."""
    return [to_recommendation(s) for s in scored]
