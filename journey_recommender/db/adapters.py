"""
SQLite bindings of the engine's collaborator interfaces.

  SqliteStepDataSource  ``StepDataSource`` over the repositories in
                        ``db/repositories``. Driver errors and malformed rows
                        are re-raised as ``DataAccessError``.
  SqliteEventSink       ``EventSink`` writing to ``engine_events``. It opens
                        a short-lived connection per event, so it is safe to
                        use from ``BackgroundEventSink`` worker threads.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Generator, Iterable, Optional, Sequence

from journey_recommender.db.connection import get_connection
from journey_recommender.db.repositories.assistant_repo import AssistantContentRepository
from journey_recommender.db.repositories.company_repo import CompanyRepository
from journey_recommender.db.repositories.event_repo import EngineEventRepository
from journey_recommender.db.repositories.stats_repo import StatsRepository
from journey_recommender.db.repositories.step_repo import StepRepository
from journey_recommender.models.analytics import (
    IndustryComparison,
    PhaseCompletionStat,
    StepCompletionTimeStat,
)
from journey_recommender.models.assistant import KnowledgeEntry, StepResource
from journey_recommender.models.event import EngineEvent
from journey_recommender.models.lookup import (
    DependentStep,
    IndustryPopularity,
    RelatedStep,
    SequenceFrequency,
    SimilarCompanyPattern,
    StepRef,
)
from journey_recommender.models.step import CompanyProfile, CompanyProgressRecord, Step
from journey_recommender.recommendations.events import EventSink
from journey_recommender.recommendations.sources import (
    CompanyNotFoundError,
    DataAccessError,
    StepDataSource,
    StepNotFoundError,
)
from journey_recommender.taxonomy.journey_taxonomy import ProgressStatus

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(operation: str) -> Generator[None, None, None]:
    try:
        yield
    except (sqlite3.Error, ValueError) as exc:
        raise DataAccessError(f"{operation} failed: {exc}") from exc


class SqliteStepDataSource(StepDataSource):
    """``StepDataSource`` backed by an open SQLite connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.steps = StepRepository(conn)
        self.companies = CompanyRepository(conn)
        self.stats = StatsRepository(conn)
        self.content = AssistantContentRepository(conn)

    # ── Company-scoped reads ──────────────────────────────────────────────────

    def fetch_progress(
        self,
        company_id: str,
        statuses: Optional[Iterable[ProgressStatus]] = None,
    ) -> list[CompanyProgressRecord]:
        with _store_errors("fetch_progress"):
            return self.companies.get_progress(company_id, statuses)

    def fetch_company_profile(self, company_id: str) -> CompanyProfile:
        with _store_errors("fetch_company_profile"):
            profile = self.companies.get_profile(company_id)
        if profile is None:
            raise CompanyNotFoundError(company_id)
        return profile

    # ── Step catalog reads ────────────────────────────────────────────────────

    def fetch_candidate_steps(
        self,
        exclude_ids: Iterable[str],
        phase_ids: Optional[Sequence[str]] = None,
    ) -> list[Step]:
        with _store_errors("fetch_candidate_steps"):
            return self.steps.list_steps(exclude_ids, phase_ids)

    def fetch_step(self, step_id: str) -> Step:
        with _store_errors("fetch_step"):
            step = self.steps.get_step(step_id)
        if step is None:
            raise StepNotFoundError(step_id)
        return step

    def fetch_prerequisite_ids(self, step_id: str) -> list[str]:
        return list(self.fetch_step(step_id).prerequisite_steps)

    def fetch_steps_by_id(self, ids: Iterable[str]) -> list[StepRef]:
        with _store_errors("fetch_steps_by_id"):
            return self.steps.get_refs(ids)

    def fetch_dependents(self, step_id: str) -> list[DependentStep]:
        with _store_errors("fetch_dependents"):
            return self.steps.list_dependents(step_id)

    def fetch_related_steps(self, step_id: str, min_similarity: float) -> list[RelatedStep]:
        with _store_errors("fetch_related_steps"):
            return self.stats.get_related_steps(step_id, min_similarity)

    # ── Scoring lookups ───────────────────────────────────────────────────────

    def fetch_industry_popularity(self, industry_id: Optional[str]) -> list[IndustryPopularity]:
        with _store_errors("fetch_industry_popularity"):
            return self.stats.get_industry_popularity(industry_id)

    def fetch_common_sequences(self, completed_step_ids: Sequence[str]) -> list[SequenceFrequency]:
        with _store_errors("fetch_common_sequences"):
            return self.stats.get_common_sequences(completed_step_ids)

    def fetch_similar_company_patterns(
        self,
        recent_step_ids: Sequence[str],
        industry_id: Optional[str],
        stage: Optional[str],
    ) -> list[SimilarCompanyPattern]:
        with _store_errors("fetch_similar_company_patterns"):
            return self.stats.get_similar_patterns(recent_step_ids, industry_id, stage)

    # ── Assistant / analytics reads ───────────────────────────────────────────

    def fetch_step_resources(self, step_id: str) -> list[StepResource]:
        with _store_errors("fetch_step_resources"):
            return self.content.get_resources(step_id)

    def fetch_knowledge_entries(self, step_id: str) -> list[KnowledgeEntry]:
        with _store_errors("fetch_knowledge_entries"):
            return self.content.get_knowledge(step_id)

    def fetch_phase_completion_stats(self, company_id: str) -> list[PhaseCompletionStat]:
        with _store_errors("fetch_phase_completion_stats"):
            return self.stats.get_phase_completion(company_id)

    def fetch_industry_comparison(self, company_id: str) -> IndustryComparison:
        profile = self.fetch_company_profile(company_id)
        with _store_errors("fetch_industry_comparison"):
            return self.stats.get_industry_comparison(company_id, profile.industry_id)

    def fetch_step_completion_time_stats(self, company_id: str) -> list[StepCompletionTimeStat]:
        with _store_errors("fetch_step_completion_time_stats"):
            return self.stats.get_completion_times(company_id)


class SqliteEventSink(EventSink):
    """Persist events to ``engine_events`` in ``db_path``."""

    def __init__(self, db_path: str, wal_mode: bool = True, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    def emit(self, event: EngineEvent) -> None:
        with get_connection(self.db_path, self.wal_mode, self.busy_timeout_ms) as conn:
            event_id = EngineEventRepository(conn).insert(event)
        logger.debug(
            "Recorded %s/%s event %d for '%s'.",
            event.category, event.event_type, event_id, event.subject_id,
        )
