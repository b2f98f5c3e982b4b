"""
Recommendation engine: the public entry point.

Operations
----------
  get_recommendations(company_id, limit, context)     -> list[StepRecommendation]
  get_step_relationships(step_id, depth)              -> list[StepRelationship]
  get_optimized_path(company_id, time_constraint_days, max_steps)
                                                      -> list[StepRecommendation]
  get_journey_analytics(company_id)                   -> JourneyAnalytics

Every operation follows the same lifecycle:
  1. emit a ``request`` event;
  2. run the pipeline against the injected ``StepDataSource``;
  3. emit ``success`` and return the result, or, on any exception, log it,
     emit ``error`` and return an empty result.

No public operation raises. Scoring-lookup failures do not fail the
operation: the affected factor scores 0 and a ``lookup_error`` event is
emitted per failed lookup.

The engine keeps no state between calls beyond its collaborators (data
source, event sink, config), so one instance can serve many requests.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Callable, Optional, TypeVar

from journey_recommender.config import AppConfig
from journey_recommender.models.analytics import JourneyAnalytics
from journey_recommender.models.recommendation import (
    RecommendationContext,
    StepRecommendation,
    StepRelationship,
)
from journey_recommender.recommendations.events import EventSink, NullEventSink, emit_event
from journey_recommender.recommendations.path import (
    order_steps_optimally,
    select_path_candidates,
)
from journey_recommender.recommendations.ranker import build_recommendations, rank_scores
from journey_recommender.recommendations.relationships import RelationshipResolver
from journey_recommender.recommendations.scorer import (
    ScoringTables,
    completed_step_ids,
    load_scoring_tables,
    score_steps,
)
from journey_recommender.recommendations.sources import StepDataSource
from journey_recommender.taxonomy.event_taxonomy import EventCategory, EventType
from journey_recommender.taxonomy.journey_taxonomy import ENGAGED_STATUSES

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecommendationEngine:
    """Scores, relates and sequences journey steps for a company.

    Attributes:
        source: Read-only data accessor.
        events: Analytics sink (``NullEventSink`` when omitted).
        config: Application config; only the engine-related sections are read.
    """

    def __init__(
        self,
        source: StepDataSource,
        events: Optional[EventSink] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.source = source
        self.events = events or NullEventSink()
        self.config = config or AppConfig()
        self.resolver = RelationshipResolver(
            source,
            min_similarity=self.config.relationships.min_similarity,
            visited_guard=self.config.relationships.visited_guard,
        )

    # ── Recommendations ───────────────────────────────────────────────────────

    def get_recommendations(
        self,
        company_id: str,
        limit: Optional[int] = None,
        context: Optional[RecommendationContext] = None,
    ) -> list[StepRecommendation]:
        """Top-scored steps the company has not yet engaged with.

        Args:
            company_id: Company to recommend for.
            limit:      Maximum results (default from config; negatives → 0).
            context:    Optional phase filter, focus areas, time constraint.

        Returns:
            Recommendations, highest relevance first; ``[]`` on failure.
        """
        if limit is None:
            limit = self.config.recommendations.default_limit
        limit = max(limit, 0)
        context = context or RecommendationContext()

        def pipeline() -> tuple[list[StepRecommendation], dict[str, Any]]:
            progress = self.source.fetch_progress(company_id, ENGAGED_STATUSES)
            profile = self.source.fetch_company_profile(company_id)
            candidates = self.source.fetch_candidate_steps(
                exclude_ids=[p.step_id for p in progress],
                phase_ids=list(context.selected_phases) or None,
            )
            tables = load_scoring_tables(
                self.source, progress, profile,
                recent_window=self.config.scoring.recent_completion_window,
            )
            self._report_lookup_failures(EventCategory.RECOMMENDATION, company_id, tables)

            scored = score_steps(
                candidates, progress, profile,
                context=context,
                tables=tables,
                config=self.config.scoring,
                workday_hours=self.config.path.workday_hours,
            )
            recommendations = build_recommendations(rank_scores(scored, limit))
            return recommendations, {
                "count": len(recommendations),
                "step_ids": [r.id for r in recommendations],
                "candidate_count": len(candidates),
            }

        return self._run(
            EventCategory.RECOMMENDATION,
            subject_id=company_id,
            company_id=company_id,
            request={"limit": limit, "context": context.model_dump(mode="json")},
            pipeline=pipeline,
            fallback=list,
        )

    # ── Relationships ─────────────────────────────────────────────────────────

    def get_step_relationships(
        self,
        step_id: str,
        depth: Optional[int] = None,
    ) -> list[StepRelationship]:
        """Prerequisite, dependent and related edges around a step.

        Args:
            step_id: The origin step.
            depth:   Hops to expand (default from config; values < 1 → 1).

        Returns:
            Edge list; ``[]`` on failure.
        """
        if depth is None:
            depth = self.config.relationships.default_depth
        depth = max(depth, 1)

        def pipeline() -> tuple[list[StepRelationship], dict[str, Any]]:
            relationships = self.resolver.resolve(step_id, depth)
            by_type = Counter(str(r.relationship_type) for r in relationships)
            return relationships, {"count": len(relationships), "by_type": dict(by_type)}

        return self._run(
            EventCategory.RELATIONSHIP,
            subject_id=step_id,
            request={"depth": depth},
            pipeline=pipeline,
            fallback=list,
        )

    # ── Optimized path ────────────────────────────────────────────────────────

    def get_optimized_path(
        self,
        company_id: str,
        time_constraint_days: Optional[float] = None,
        max_steps: Optional[int] = None,
    ) -> list[StepRecommendation]:
        """A dependency-respecting sequence of not-yet-completed steps.

        Args:
            company_id:           Company to plan for.
            time_constraint_days: Optional budget in workdays (``<= 0`` → none).
            max_steps:            Maximum path length (default from config).

        Returns:
            Steps in execution order; ``[]`` on failure.
        """
        if max_steps is None:
            max_steps = self.config.path.default_max_steps
        max_steps = max(max_steps, 0)
        if time_constraint_days is not None and time_constraint_days <= 0:
            time_constraint_days = None
        workday_hours = self.config.path.workday_hours

        def pipeline() -> tuple[list[StepRecommendation], dict[str, Any]]:
            progress = self.source.fetch_progress(company_id)
            profile = self.source.fetch_company_profile(company_id)
            completed = completed_step_ids(progress)
            candidates = self.source.fetch_candidate_steps(exclude_ids=completed)

            selected = select_path_candidates(
                candidates, time_constraint_days, max_steps, workday_hours
            )
            tables = load_scoring_tables(
                self.source, progress, profile,
                recent_window=self.config.scoring.recent_completion_window,
            )
            self._report_lookup_failures(EventCategory.PATH, company_id, tables)

            scored = score_steps(
                selected, progress, profile,
                context=RecommendationContext(time_constraint_days=time_constraint_days),
                tables=tables,
                config=self.config.scoring,
                workday_hours=workday_hours,
            )
            ordered = order_steps_optimally(scored)
            path = build_recommendations(ordered.steps)
            return path, {
                "count": len(path),
                "step_ids": [s.id for s in path],
                "forced_step_ids": ordered.forced_step_ids,
                "total_minutes": sum(s.step.average_minutes for s in ordered.steps),
            }

        return self._run(
            EventCategory.PATH,
            subject_id=company_id,
            company_id=company_id,
            request={
                "time_constraint_days": time_constraint_days,
                "max_steps": max_steps,
            },
            pipeline=pipeline,
            fallback=list,
        )

    # ── Analytics ─────────────────────────────────────────────────────────────

    def get_journey_analytics(self, company_id: str) -> JourneyAnalytics:
        """Phase completion, status counts, step completion times and industry comparison.

        Returns an empty ``JourneyAnalytics`` on failure.
        """
        try:
            phases = self.source.fetch_phase_completion_stats(company_id)
            progress = self.source.fetch_progress(company_id)
            completion_times = self.source.fetch_step_completion_time_stats(company_id)
            comparison = self.source.fetch_industry_comparison(company_id)
        except Exception as exc:
            logger.error("Journey analytics FAILED for company '%s': %s", company_id, exc)
            return JourneyAnalytics()

        counts = Counter(str(p.status) for p in progress)
        return JourneyAnalytics(
            phase_statistics=tuple(phases),
            status_counts=dict(sorted(counts.items())),
            completion_time_statistics=tuple(completion_times),
            industry_comparison=comparison,
        )

    def close(self) -> None:
        """Flush and release the event sink."""
        self.events.close()

    # ── Internals ─────────────────────────────────────────────────────────────

    def _run(
        self,
        category: EventCategory,
        subject_id: str,
        request: dict[str, Any],
        pipeline: Callable[[], tuple[T, dict[str, Any]]],
        fallback: Callable[[], T],
        company_id: Optional[str] = None,
    ) -> T:
        log_extra = {"operation": str(category), "subject_id": subject_id}
        self._emit(category, EventType.REQUEST, subject_id, request, company_id)
        logger.info("[%s] request for '%s' | %s", category, subject_id, request, extra=log_extra)

        try:
            result, summary = pipeline()
        except Exception as exc:
            logger.error("[%s] FAILED for '%s': %s", category, subject_id, exc, extra=log_extra)
            self._emit(
                category, EventType.ERROR, subject_id,
                {"error": str(exc), "error_type": type(exc).__name__},
                company_id,
            )
            return fallback()

        logger.info(
            "[%s] completed for '%s' | count=%s",
            category, subject_id, summary.get("count"), extra=log_extra,
        )
        self._emit(category, EventType.SUCCESS, subject_id, summary, company_id)
        return result

    def _report_lookup_failures(
        self,
        category: EventCategory,
        company_id: str,
        tables: ScoringTables,
    ) -> None:
        for lookup, error in tables.failures.items():
            self._emit(
                category, EventType.LOOKUP_ERROR, company_id,
                {"lookup": lookup, "error": error},
                company_id,
            )

    def _emit(
        self,
        category: EventCategory,
        event_type: EventType,
        subject_id: str,
        payload: dict[str, Any],
        company_id: Optional[str],
    ) -> None:
        emit_event(self.events, category, event_type, subject_id, payload, company_id)
