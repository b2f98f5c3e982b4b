"""
Read-only data accessor contract consumed by the engine.

The engine never talks to a database directly. It is handed a
``StepDataSource`` and calls only the read operations declared here. The
SQLite binding lives in ``journey_recommender.db.adapters``; tests use a
dict-backed fake.

Error contract
--------------
Implementations raise ``DataAccessError`` (or a subclass) for upstream
failures. ``StepNotFoundError`` / ``CompanyNotFoundError`` signal that the
queried entity does not exist. The engine treats every accessor failure as
recoverable: it logs, emits an analytics event, and degrades.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

from journey_recommender.models.analytics import (
    IndustryComparison,
    PhaseCompletionStat,
    StepCompletionTimeStat,
)
from journey_recommender.models.assistant import KnowledgeEntry, StepResource
from journey_recommender.models.lookup import (
    DependentStep,
    IndustryPopularity,
    RelatedStep,
    SequenceFrequency,
    SimilarCompanyPattern,
    StepRef,
)
from journey_recommender.models.step import CompanyProfile, CompanyProgressRecord, Step
from journey_recommender.taxonomy.journey_taxonomy import ProgressStatus


class DataAccessError(Exception):
    """An accessor call failed against the underlying store."""


class StepNotFoundError(DataAccessError, LookupError):
    """The requested step id does not exist."""

    def __init__(self, step_id: str):
        super().__init__(f"Step not found: {step_id!r}")
        self.step_id = step_id


class CompanyNotFoundError(DataAccessError, LookupError):
    """The requested company id does not exist."""

    def __init__(self, company_id: str):
        super().__init__(f"Company not found: {company_id!r}")
        self.company_id = company_id


class StepDataSource(ABC):
    """Abstract read accessor over the journey store.

    Every method is a pure query. Implementations must not cache across calls
    and must return results in a stable order so that engine output is
    repeatable for unchanged data.
    """

    # ── Company-scoped reads ──────────────────────────────────────────────────

    @abstractmethod
    def fetch_progress(
        self,
        company_id: str,
        statuses: Optional[Iterable[ProgressStatus]] = None,
    ) -> list[CompanyProgressRecord]:
        """Progress records for a company, optionally restricted to ``statuses``."""

    @abstractmethod
    def fetch_company_profile(self, company_id: str) -> CompanyProfile:
        """Profile attributes. Raises ``CompanyNotFoundError`` if unknown."""

    # ── Step catalog reads ────────────────────────────────────────────────────

    @abstractmethod
    def fetch_candidate_steps(
        self,
        exclude_ids: Iterable[str],
        phase_ids: Optional[Sequence[str]] = None,
    ) -> list[Step]:
        """Steps not in ``exclude_ids``, optionally phase-filtered, in catalog order."""

    @abstractmethod
    def fetch_step(self, step_id: str) -> Step:
        """A single step. Raises ``StepNotFoundError`` if unknown."""

    @abstractmethod
    def fetch_prerequisite_ids(self, step_id: str) -> list[str]:
        """The step's own prerequisite ids. Raises ``StepNotFoundError`` if unknown."""

    @abstractmethod
    def fetch_steps_by_id(self, ids: Iterable[str]) -> list[StepRef]:
        """Id + name for each known id; unknown ids are omitted."""

    @abstractmethod
    def fetch_dependents(self, step_id: str) -> list[DependentStep]:
        """Steps whose prerequisite list contains ``step_id``."""

    @abstractmethod
    def fetch_related_steps(self, step_id: str, min_similarity: float) -> list[RelatedStep]:
        """Steps co-completed with ``step_id`` at or above ``min_similarity``."""

    # ── Scoring lookups ───────────────────────────────────────────────────────

    @abstractmethod
    def fetch_industry_popularity(self, industry_id: Optional[str]) -> list[IndustryPopularity]:
        """Per-step popularity percentiles within an industry."""

    @abstractmethod
    def fetch_common_sequences(self, completed_step_ids: Sequence[str]) -> list[SequenceFrequency]:
        """Frequency with which each step follows the completed set."""

    @abstractmethod
    def fetch_similar_company_patterns(
        self,
        recent_step_ids: Sequence[str],
        industry_id: Optional[str],
        stage: Optional[str],
    ) -> list[SimilarCompanyPattern]:
        """Steps chosen by peer companies after the same recent completions."""

    # ── Assistant / analytics reads ───────────────────────────────────────────

    @abstractmethod
    def fetch_step_resources(self, step_id: str) -> list[StepResource]:
        """Resources attached to a step, most relevant first."""

    @abstractmethod
    def fetch_knowledge_entries(self, step_id: str) -> list[KnowledgeEntry]:
        """Knowledge-base passages attached to a step."""

    @abstractmethod
    def fetch_phase_completion_stats(self, company_id: str) -> list[PhaseCompletionStat]:
        """Per-phase total vs. completed step counts for a company."""

    @abstractmethod
    def fetch_industry_comparison(self, company_id: str) -> IndustryComparison:
        """Completed-step count for the company vs. its industry peers."""

    @abstractmethod
    def fetch_step_completion_time_stats(self, company_id: str) -> list[StepCompletionTimeStat]:
        """Per-step measured completion times vs. estimates, across companies."""
