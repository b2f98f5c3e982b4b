"""
Optimized path construction: budget-constrained candidate selection followed
by a greedy, dependency-respecting ordering.

Selection (``select_path_candidates``)
--------------------------------------
With a time budget (workdays → minutes at ``workday_hours`` per day), the
candidates are stable-sorted by difficulty ascending and accepted greedily
while ``total + step_minutes <= budget`` and fewer than ``max_steps`` are
accepted. A step too long for the remaining budget is skipped, not a stop
condition; later, shorter steps may still fit.

Without a budget the first ``max_steps`` candidates are taken in catalog
order. No difficulty sort is applied in that branch.

Ordering (``order_steps_optimally``)
------------------------------------
Repeatedly append the highest-scored remaining step whose prerequisites are
all already placed in the path (or which has none). Among equal scores the
step that appears last in the input wins.

Only steps placed in the path count: a prerequisite outside the candidate
set, even one the company already completed, never becomes available. If no
remaining step is available (a prerequisite cycle, or such an outside
prerequisite), the highest-scored remaining step is appended regardless and
recorded as *forced*. Every iteration places one step, so ordering always
terminates in O(n²).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from journey_recommender.models.step import Step
from journey_recommender.recommendations.scorer import RecommendationScore
from journey_recommender.utils.time_utils import DEFAULT_WORKDAY_HOURS, workdays_to_minutes

logger = logging.getLogger(__name__)


@dataclass
class OrderedPath:
    """Result of ``order_steps_optimally``.

    Attributes:
        steps:           Scored steps in path order.
        forced_step_ids: Steps placed by the deadlock rule, in placement order.
    """

    steps:           list[RecommendationScore]
    forced_step_ids: list[str] = field(default_factory=list)


def select_path_candidates(
    steps:                Sequence[Step],
    time_constraint_days: Optional[float],
    max_steps:            int,
    workday_hours:        float = DEFAULT_WORKDAY_HOURS,
) -> list[Step]:
    """Choose which candidate steps enter the path.

    Args:
        steps:                Not-yet-completed steps in catalog order.
        time_constraint_days: Budget in workdays; ``None``/``0`` = unconstrained.
        max_steps:            Maximum number of steps to select.
        workday_hours:        Hours of effort per workday.

    Returns:
        Selected steps (difficulty order when budgeted, catalog order otherwise).
    """
    if max_steps <= 0:
        return []

    if not time_constraint_days:
        return list(steps[:max_steps])

    budget = workdays_to_minutes(time_constraint_days, workday_hours)
    by_difficulty = sorted(steps, key=lambda s: s.difficulty_level)

    selected: list[Step] = []
    total = 0.0
    for step in by_difficulty:
        if len(selected) >= max_steps:
            break
        minutes = step.average_minutes
        if total + minutes <= budget:
            selected.append(step)
            total += minutes

    logger.debug(
        "Selected %d/%d steps within %.0f-minute budget (%.0f used).",
        len(selected), len(steps), budget, total,
    )
    return selected


def order_steps_optimally(scored: Sequence[RecommendationScore]) -> OrderedPath:
    """Order scored steps so prerequisites come first, best score first.

    Args:
        scored: Scored steps to order (not mutated).

    Returns:
        ``OrderedPath`` with every input step exactly once.
    """
    remaining = list(scored)
    placed: set[str] = set()
    ordered: list[RecommendationScore] = []
    forced: list[str] = []

    while remaining:
        available = [
            s for s in remaining
            if all(p in placed for p in s.prerequisite_steps)
        ]
        if available:
            pick = _highest_scored(available)
        else:
            pick = _highest_scored(remaining)
            forced.append(pick.id)
            logger.warning(
                "No step has all prerequisites satisfied; placing '%s' anyway "
                "(cyclic or unresolvable prerequisites: %s).",
                pick.id, ", ".join(pick.prerequisite_steps),
            )

        ordered.append(pick)
        placed.add(pick.id)
        del remaining[next(i for i, s in enumerate(remaining) if s is pick)]

    return OrderedPath(steps=ordered, forced_step_ids=forced)


def _highest_scored(candidates: Sequence[RecommendationScore]) -> RecommendationScore:
    # Last of equal maxima wins.
    best = candidates[0]
    for candidate in candidates[1:]:
        if candidate.score >= best.score:
            best = candidate
    return best
