"""
Repository for the aggregate tables behind scoring and analytics.

Tables:
  industry_step_popularity   per-industry step percentile
  step_sequences             prior -> next step frequencies
  similar_company_patterns   peer-company next-step similarity
  step_similarity            symmetric co-completion similarity

Read methods return the lookup row models consumed by the scorer and the
relationship resolver. The analytics aggregates are computed from
``company_progress`` on the fly; completion times use SQLite window
functions (3.25+).
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from journey_recommender.db.repositories.base import BaseRepository, placeholders
from journey_recommender.models.analytics import (
    IndustryComparison,
    PhaseCompletionStat,
    StepCompletionTimeStat,
)
from journey_recommender.models.lookup import (
    IndustryPopularity,
    RelatedStep,
    SequenceFrequency,
    SimilarCompanyPattern,
)
from journey_recommender.utils.time_utils import average_minutes

logger = logging.getLogger(__name__)


class StatsRepository(BaseRepository):
    """Read/write access to scoring statistics and analytics aggregates."""

    # ── Writes (seed loader) ──────────────────────────────────────────────────

    def upsert_popularity(self, industry_id: str, step_id: str, percentile: float) -> None:
        self.execute(
            """
            INSERT INTO industry_step_popularity (industry_id, step_id, percentile)
            VALUES (?, ?, ?)
            ON CONFLICT(industry_id, step_id) DO UPDATE SET percentile = excluded.percentile;
            """,
            (industry_id, step_id, percentile),
        )

    def upsert_sequence(self, prior_step_id: str, next_step_id: str, frequency: float) -> None:
        self.execute(
            """
            INSERT INTO step_sequences (prior_step_id, next_step_id, frequency)
            VALUES (?, ?, ?)
            ON CONFLICT(prior_step_id, next_step_id) DO UPDATE SET frequency = excluded.frequency;
            """,
            (prior_step_id, next_step_id, frequency),
        )

    def upsert_pattern(
        self,
        industry_id: str,
        stage: str,
        prior_step_id: str,
        step_id: str,
        similarity_score: float,
    ) -> None:
        self.execute(
            """
            INSERT INTO similar_company_patterns (
                industry_id, stage, prior_step_id, step_id, similarity_score
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(industry_id, stage, prior_step_id, step_id)
            DO UPDATE SET similarity_score = excluded.similarity_score;
            """,
            (industry_id, stage, prior_step_id, step_id, similarity_score),
        )

    def upsert_similarity(self, step_a: str, step_b: str, similarity: float) -> None:
        self.execute(
            """
            INSERT INTO step_similarity (step_a, step_b, similarity)
            VALUES (?, ?, ?)
            ON CONFLICT(step_a, step_b) DO UPDATE SET similarity = excluded.similarity;
            """,
            (step_a, step_b, similarity),
        )

    # ── Scoring lookups ───────────────────────────────────────────────────────

    def get_industry_popularity(self, industry_id: Optional[str]) -> list[IndustryPopularity]:
        if not industry_id:
            return []
        rows = self.fetchall(
            """
            SELECT step_id, percentile FROM industry_step_popularity
            WHERE industry_id = ? ORDER BY step_id;
            """,
            (industry_id,),
        )
        return [IndustryPopularity(step_id=r["step_id"], percentile=r["percentile"]) for r in rows]

    def get_common_sequences(self, completed_step_ids: Sequence[str]) -> list[SequenceFrequency]:
        """Summed frequency of each next step following any completed step."""
        completed = list(dict.fromkeys(completed_step_ids))
        if not completed:
            return []
        rows = self.fetchall(
            f"""
            SELECT next_step_id, SUM(frequency) AS frequency
            FROM step_sequences
            WHERE prior_step_id IN ({placeholders(completed)})
            GROUP BY next_step_id
            ORDER BY next_step_id;
            """,
            tuple(completed),
        )
        return [
            SequenceFrequency(next_step_id=r["next_step_id"], frequency=r["frequency"])
            for r in rows
        ]

    def get_similar_patterns(
        self,
        recent_step_ids: Sequence[str],
        industry_id: Optional[str],
        stage: Optional[str],
    ) -> list[SimilarCompanyPattern]:
        """Best peer similarity per step, for peers in the same industry and stage."""
        recent = list(dict.fromkeys(recent_step_ids))
        if not recent or not industry_id or not stage:
            return []
        rows = self.fetchall(
            f"""
            SELECT step_id, MAX(similarity_score) AS similarity_score
            FROM similar_company_patterns
            WHERE industry_id = ? AND stage = ?
              AND prior_step_id IN ({placeholders(recent)})
            GROUP BY step_id
            ORDER BY step_id;
            """,
            (industry_id, stage, *recent),
        )
        return [
            SimilarCompanyPattern(step_id=r["step_id"], similarity_score=r["similarity_score"])
            for r in rows
        ]

    def get_related_steps(self, step_id: str, min_similarity: float) -> list[RelatedStep]:
        """Steps similar to ``step_id`` in either column, strongest first."""
        rows = self.fetchall(
            """
            SELECT pairs.other_id AS step_id, s.name AS step_name,
                   MAX(pairs.similarity) AS similarity
            FROM (
                SELECT step_b AS other_id, similarity FROM step_similarity WHERE step_a = ?
                UNION ALL
                SELECT step_a AS other_id, similarity FROM step_similarity WHERE step_b = ?
            ) AS pairs
            LEFT JOIN journey_steps s ON s.step_id = pairs.other_id
            WHERE pairs.similarity >= ?
            GROUP BY pairs.other_id
            ORDER BY similarity DESC, pairs.other_id;
            """,
            (step_id, step_id, min_similarity),
        )
        return [
            RelatedStep(step_id=r["step_id"], step_name=r["step_name"], similarity=r["similarity"])
            for r in rows
        ]

    # ── Analytics aggregates ──────────────────────────────────────────────────

    def get_phase_completion(self, company_id: str) -> list[PhaseCompletionStat]:
        rows = self.fetchall(
            """
            SELECT p.phase_id, p.name,
                   COUNT(s.step_id) AS total_steps,
                   COALESCE(SUM(CASE WHEN cp.status = 'completed' THEN 1 ELSE 0 END), 0)
                       AS completed_steps
            FROM journey_phases p
            LEFT JOIN journey_steps s ON s.phase_id = p.phase_id
            LEFT JOIN company_progress cp
                   ON cp.step_id = s.step_id AND cp.company_id = ?
            GROUP BY p.phase_id, p.name, p.order_index
            ORDER BY p.order_index, p.phase_id;
            """,
            (company_id,),
        )
        return [
            PhaseCompletionStat(
                phase_id=r["phase_id"],
                phase_name=r["name"],
                total_steps=r["total_steps"],
                completed_steps=r["completed_steps"],
            )
            for r in rows
        ]

    def get_industry_comparison(
        self,
        company_id: str,
        industry_id: Optional[str],
    ) -> IndustryComparison:
        company_completed = int(self.scalar(
            """
            SELECT COUNT(*) FROM company_progress
            WHERE company_id = ? AND status = 'completed';
            """,
            (company_id,),
            default=0,
        ))
        if not industry_id:
            return IndustryComparison(company_completed=company_completed)

        row = self.fetchone(
            """
            SELECT COUNT(*) AS peer_count, COALESCE(AVG(done), 0) AS peer_avg
            FROM (
                SELECT c.company_id,
                       (SELECT COUNT(*) FROM company_progress cp
                        WHERE cp.company_id = c.company_id
                          AND cp.status = 'completed') AS done
                FROM companies c
                WHERE c.industry_id = ? AND c.company_id != ?
            );
            """,
            (industry_id, company_id),
        )
        return IndustryComparison(
            industry_id=industry_id,
            company_completed=company_completed,
            peer_count=int(row["peer_count"]) if row else 0,
            peer_avg_completed=float(row["peer_avg"]) if row else 0.0,
        )

    def get_completion_times(self, company_id: str) -> list[StepCompletionTimeStat]:
        """Per-step completion times measured from consecutive completions.

        Each company's completed rows are ordered by ``updated_at``; a step's
        duration is the gap since that company's previous completion. Rows
        without a timestamp are ignored.
        """
        rows = self.fetchall(
            """
            WITH completions AS (
                SELECT company_id, step_id, updated_at,
                       LAG(updated_at) OVER (
                           PARTITION BY company_id ORDER BY updated_at, step_id
                       ) AS prev_at
                FROM company_progress
                WHERE status = 'completed' AND updated_at IS NOT NULL
            ),
            durations AS (
                SELECT company_id, step_id,
                       (julianday(updated_at) - julianday(prev_at)) * 1440.0 AS minutes
                FROM completions
                WHERE prev_at IS NOT NULL
            )
            SELECT d.step_id, s.name, s.estimated_time_min, s.estimated_time_max,
                   COUNT(*) AS samples,
                   AVG(d.minutes) AS avg_minutes,
                   MAX(CASE WHEN d.company_id = ? THEN d.minutes END) AS company_minutes
            FROM durations d
            LEFT JOIN journey_steps s ON s.step_id = d.step_id
            GROUP BY d.step_id, s.name, s.estimated_time_min, s.estimated_time_max
            ORDER BY d.step_id;
            """,
            (company_id,),
        )
        return [
            StepCompletionTimeStat(
                step_id=r["step_id"],
                step_name=r["name"],
                estimated_minutes=(
                    average_minutes(r["estimated_time_min"], r["estimated_time_max"])
                    if r["name"] is not None else None
                ),
                sample_count=r["samples"],
                avg_actual_minutes=r["avg_minutes"],
                company_actual_minutes=r["company_minutes"],
            )
            for r in rows
        ]
