"""
Shared pytest fixtures for the Journey Recommender test suite.

Provides:
  - ``in_memory_db``: a fresh in-memory SQLite connection with the schema
    applied.
  - ``seeded_db``: ``in_memory_db`` loaded with ``SAMPLE_CATALOG``.
  - ``sample_steps``: a small acyclic step graph (a -> b, c -> d -> e).
  - ``FakeDataSource`` / ``fake_source``: a dict-backed ``StepDataSource``
    whose accessors can be made to fail by name.
  - ``RecordingEventSink`` / ``recording_sink``: keeps emitted events in a list.
"""

from __future__ import annotations

import copy
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Generator, Iterable, Optional, Sequence

import pytest

from journey_recommender.catalog.seed_loader import parse_catalog, upsert_catalog
from journey_recommender.db.connection import configure_connection
from journey_recommender.db.schema import apply_schema
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
from journey_recommender.taxonomy.event_taxonomy import EventCategory, EventType
from journey_recommender.taxonomy.journey_taxonomy import ProgressStatus

T0 = datetime(2026, 9, 1, 12, 0, tzinfo=timezone.utc)


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Fresh in-memory SQLite connection with the schema applied."""
    conn = configure_connection(sqlite3.connect(":memory:"), wal_mode=False)
    apply_schema(conn)
    yield conn
    conn.close()


SAMPLE_CATALOG: dict = {
    "phases": [
        {"id": "p1", "name": "Ideation", "order_index": 1},
        {"id": "p2", "name": "Validation", "order_index": 2},
        {"id": "p3", "name": "Development", "order_index": 3},
    ],
    "steps": [
        {"id": "s1", "name": "Define Problem", "phase_id": "p1", "difficulty_level": 1,
         "estimated_time_min": 60, "estimated_time_max": 120, "order_index": 1,
         "categories": ["strategy"]},
        {"id": "s2", "name": "Market Research", "phase_id": "p1", "difficulty_level": 2,
         "estimated_time_min": 240, "estimated_time_max": 480, "order_index": 2,
         "prerequisite_steps": ["s1"], "categories": ["research", "marketing"]},
        {"id": "s3", "name": "Customer Interviews", "phase_id": "p2", "difficulty_level": 2,
         "estimated_time_min": 480, "estimated_time_max": 960, "order_index": 1,
         "prerequisite_steps": ["s1"], "tags": ["customer"]},
        {"id": "s4", "name": "Subscription Pricing",
         "description": "Model recurring revenue and churn.",
         "phase_id": "p2", "difficulty_level": 3,
         "estimated_time_min": 240, "estimated_time_max": 480, "order_index": 2,
         "prerequisite_steps": ["s2", "s3"]},
        {"id": "s5", "name": "Build MVP", "phase_id": "p3", "difficulty_level": 4,
         "estimated_time_min": 2400, "estimated_time_max": 4800, "order_index": 1,
         "prerequisite_steps": ["s3"]},
    ],
    "companies": [
        {"company_id": "acme", "name": "Acme", "industry_id": "software", "stage": "seed",
         "business_model": "saas", "focus_areas": ["marketing"]},
        {"company_id": "peer", "name": "Peer Co", "industry_id": "software", "stage": "seed"},
        {"company_id": "loner", "name": "Loner"},
    ],
    "progress": [
        {"company_id": "acme", "step_id": "s1", "status": "completed",
         "updated_at": "2026-08-01T09:00:00Z"},
        {"company_id": "acme", "step_id": "s3", "status": "in_progress",
         "updated_at": "2026-08-05T09:00:00Z"},
        {"company_id": "peer", "step_id": "s1", "status": "completed"},
        {"company_id": "peer", "step_id": "s2", "status": "completed"},
        {"company_id": "peer", "step_id": "s3", "status": "completed"},
    ],
    "industry_popularity": [
        {"industry_id": "software", "step_id": "s2", "percentile": 80},
        {"industry_id": "software", "step_id": "s5", "percentile": 30},
    ],
    "step_sequences": [
        {"prior_step_id": "s1", "next_step_id": "s2", "frequency": 20},
        {"prior_step_id": "s1", "next_step_id": "s3", "frequency": 5},
        {"prior_step_id": "s2", "next_step_id": "s3", "frequency": 4},
    ],
    "similar_company_patterns": [
        {"industry_id": "software", "stage": "seed", "prior_step_id": "s1",
         "step_id": "s2", "similarity_score": 0.6},
        {"industry_id": "software", "stage": "seed", "prior_step_id": "s1",
         "step_id": "s3", "similarity_score": 0.9},
    ],
    "step_similarity": [
        {"step_a": "s2", "step_b": "s3", "similarity": 0.7},
        {"step_a": "s4", "step_b": "s2", "similarity": 0.2},
    ],
    "resources": [
        {"step_id": "s2", "title": "Sizing video", "url": "https://example.com/v",
         "resource_type": "youtube", "relevance_score": 0.4},
        {"step_id": "s2", "title": "Sizing guide", "url": "https://example.com/g",
         "resource_type": "guide", "relevance_score": 0.9},
    ],
    "knowledge_base": [
        {"step_id": "s2", "content": "Estimate bottom-up.", "source": "Handbook"},
        {"step_id": "s2", "content": "Check competitor filings.", "source": "Analyst Notes"},
        {"step_id": "s2", "content": "Talk to distributors.", "source": "Field Guide"},
    ],
}


@pytest.fixture
def sample_catalog() -> dict:
    """A deep copy of ``SAMPLE_CATALOG`` that tests may mutate."""
    return copy.deepcopy(SAMPLE_CATALOG)


@pytest.fixture
def seeded_db(in_memory_db: sqlite3.Connection, sample_catalog: dict) -> sqlite3.Connection:
    upsert_catalog(in_memory_db, parse_catalog(sample_catalog))
    return in_memory_db


# ── Domain fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def sample_steps() -> list[Step]:
    """Acyclic graph: a -> b, a -> c, (b, c) -> d, d -> e."""
    return [
        Step(id="a", name="Define Problem", phase_id="p1", phase_name="Ideation",
             difficulty_level=1, estimated_time_min=60, estimated_time_max=120,
             order_index=1),
        Step(id="b", name="Market Research", phase_id="p2", phase_name="Validation",
             difficulty_level=2, estimated_time_min=240, estimated_time_max=480,
             prerequisite_steps=("a",), categories=("marketing",), order_index=2),
        Step(id="c", name="Customer Interviews", phase_id="p2", phase_name="Validation",
             difficulty_level=3, estimated_time_min=480, estimated_time_max=960,
             prerequisite_steps=("a",), order_index=3),
        Step(id="d", name="Build MVP", phase_id="p3", phase_name="Development",
             difficulty_level=4, estimated_time_min=2400, estimated_time_max=4800,
             prerequisite_steps=("b", "c"), order_index=4),
        Step(id="e", name="Launch", phase_id="p4", phase_name="Growth",
             difficulty_level=2, estimated_time_min=120, estimated_time_max=240,
             prerequisite_steps=("d",), order_index=5),
    ]


def progress(company_id: str, *entries: tuple[str, str], start: datetime = T0) -> list[CompanyProgressRecord]:
    """Build progress records from ``(step_id, status)`` pairs, one hour apart."""
    return [
        CompanyProgressRecord(
            company_id=company_id,
            step_id=step_id,
            status=ProgressStatus(status),
            updated_at=start + timedelta(hours=i),
        )
        for i, (step_id, status) in enumerate(entries)
    ]


# ── Fake data source ──────────────────────────────────────────────────────────

class FakeDataSource(StepDataSource):
    """Dict-backed ``StepDataSource``.

    Accessor names listed in ``fail_on`` raise ``DataAccessError``; ``calls``
    counts every accessor invocation by name.
    """

    def __init__(
        self,
        steps: Sequence[Step] = (),
        profiles: Iterable[CompanyProfile] = (),
        progress: Iterable[CompanyProgressRecord] = (),
        popularity: Optional[dict[str, dict[str, float]]] = None,
        sequences: Optional[dict[tuple[str, str], float]] = None,
        patterns: Sequence[tuple[str, str, str, str, float]] = (),
        similarity: Optional[dict[tuple[str, str], float]] = None,
        resources: Sequence[StepResource] = (),
        knowledge: Optional[dict[str, list[KnowledgeEntry]]] = None,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.steps = list(steps)
        self.profiles = {p.company_id: p for p in profiles}
        self.progress = list(progress)
        self.popularity = popularity or {}
        self.sequences = sequences or {}
        self.patterns = list(patterns)
        self.similarity = similarity or {}
        self.resources = list(resources)
        self.knowledge = knowledge or {}
        self.fail_on = set(fail_on)
        self.calls: dict[str, int] = {}

    def _enter(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.fail_on:
            raise DataAccessError(f"{name} unavailable")

    def _by_id(self) -> dict[str, Step]:
        return {s.id: s for s in self.steps}

    def fetch_progress(self, company_id, statuses=None):
        self._enter("fetch_progress")
        wanted = set(statuses) if statuses is not None else None
        return [
            p for p in self.progress
            if p.company_id == company_id and (wanted is None or p.status in wanted)
        ]

    def fetch_company_profile(self, company_id):
        self._enter("fetch_company_profile")
        if company_id not in self.profiles:
            raise CompanyNotFoundError(company_id)
        return self.profiles[company_id]

    def fetch_candidate_steps(self, exclude_ids, phase_ids=None):
        self._enter("fetch_candidate_steps")
        excluded = set(exclude_ids)
        return [
            s for s in self.steps
            if s.id not in excluded and (not phase_ids or s.phase_id in phase_ids)
        ]

    def fetch_step(self, step_id):
        self._enter("fetch_step")
        step = self._by_id().get(step_id)
        if step is None:
            raise StepNotFoundError(step_id)
        return step

    def fetch_prerequisite_ids(self, step_id):
        self._enter("fetch_prerequisite_ids")
        step = self._by_id().get(step_id)
        if step is None:
            raise StepNotFoundError(step_id)
        return list(step.prerequisite_steps)

    def fetch_steps_by_id(self, ids):
        self._enter("fetch_steps_by_id")
        wanted = set(ids)
        return [StepRef(id=s.id, name=s.name) for s in self.steps if s.id in wanted]

    def fetch_dependents(self, step_id):
        self._enter("fetch_dependents")
        return [
            DependentStep(id=s.id, name=s.name, prerequisite_steps=s.prerequisite_steps)
            for s in self.steps if step_id in s.prerequisite_steps
        ]

    def fetch_related_steps(self, step_id, min_similarity):
        self._enter("fetch_related_steps")
        names = {s.id: s.name for s in self.steps}
        found: dict[str, float] = {}
        for (a, b), sim in self.similarity.items():
            if sim < min_similarity:
                continue
            if a == step_id:
                found[b] = max(sim, found.get(b, 0.0))
            elif b == step_id:
                found[a] = max(sim, found.get(a, 0.0))
        ordered = sorted(found.items(), key=lambda kv: (-kv[1], kv[0]))
        return [RelatedStep(step_id=k, step_name=names.get(k), similarity=v) for k, v in ordered]

    def fetch_industry_popularity(self, industry_id):
        self._enter("fetch_industry_popularity")
        table = self.popularity.get(industry_id or "", {})
        return [IndustryPopularity(step_id=k, percentile=v) for k, v in table.items()]

    def fetch_common_sequences(self, completed_step_ids):
        self._enter("fetch_common_sequences")
        completed = set(completed_step_ids)
        totals: dict[str, float] = {}
        for (prior, nxt), freq in self.sequences.items():
            if prior in completed:
                totals[nxt] = totals.get(nxt, 0.0) + freq
        return [SequenceFrequency(next_step_id=k, frequency=v) for k, v in totals.items()]

    def fetch_similar_company_patterns(self, recent_step_ids, industry_id, stage):
        self._enter("fetch_similar_company_patterns")
        recent = set(recent_step_ids)
        best: dict[str, float] = {}
        for ind, stg, prior, step_id, score in self.patterns:
            if ind == industry_id and stg == stage and prior in recent:
                best[step_id] = max(score, best.get(step_id, 0.0))
        return [SimilarCompanyPattern(step_id=k, similarity_score=v) for k, v in best.items()]

    def fetch_step_resources(self, step_id):
        self._enter("fetch_step_resources")
        rows = [r for r in self.resources if r.step_id == step_id]
        return sorted(rows, key=lambda r: -r.relevance_score)

    def fetch_knowledge_entries(self, step_id):
        self._enter("fetch_knowledge_entries")
        return list(self.knowledge.get(step_id, []))

    def fetch_phase_completion_stats(self, company_id):
        self._enter("fetch_phase_completion_stats")
        done = {
            p.step_id for p in self.progress
            if p.company_id == company_id and p.status == ProgressStatus.COMPLETED
        }
        stats: dict[str, list] = {}
        for s in self.steps:
            if s.phase_id is None:
                continue
            entry = stats.setdefault(s.phase_id, [s.phase_name or s.phase_id, 0, 0])
            entry[1] += 1
            entry[2] += int(s.id in done)
        return [
            PhaseCompletionStat(phase_id=k, phase_name=v[0], total_steps=v[1], completed_steps=v[2])
            for k, v in stats.items()
        ]

    def fetch_industry_comparison(self, company_id):
        self._enter("fetch_industry_comparison")
        profile = self.fetch_company_profile(company_id)
        completed = sum(
            1 for p in self.progress
            if p.company_id == company_id and p.status == ProgressStatus.COMPLETED
        )
        return IndustryComparison(industry_id=profile.industry_id, company_completed=completed)

    def fetch_step_completion_time_stats(self, company_id):
        self._enter("fetch_step_completion_time_stats")
        by_company: dict[str, list[CompanyProgressRecord]] = {}
        for p in self.progress:
            if p.status == ProgressStatus.COMPLETED and p.updated_at is not None:
                by_company.setdefault(p.company_id, []).append(p)
        samples: dict[str, list[tuple[str, float]]] = {}
        for owner, rows in by_company.items():
            rows.sort(key=lambda p: (p.updated_at, p.step_id))
            for prev, cur in zip(rows, rows[1:]):
                minutes = (cur.updated_at - prev.updated_at).total_seconds() / 60
                samples.setdefault(cur.step_id, []).append((owner, minutes))
        steps = self._by_id()
        stats = []
        for step_id in sorted(samples):
            values = [m for _, m in samples[step_id]]
            own = [m for owner, m in samples[step_id] if owner == company_id]
            step = steps.get(step_id)
            stats.append(StepCompletionTimeStat(
                step_id=step_id,
                step_name=step.name if step else None,
                estimated_minutes=step.average_minutes if step else None,
                sample_count=len(values),
                avg_actual_minutes=sum(values) / len(values),
                company_actual_minutes=max(own) if own else None,
            ))
        return stats


@pytest.fixture
def fake_source(sample_steps: list[Step]) -> FakeDataSource:
    """Sample steps plus one seed-stage SaaS company that completed ``a``."""
    return FakeDataSource(
        steps=sample_steps,
        profiles=[
            CompanyProfile(company_id="acme", industry_id="software", stage="seed",
                           business_model="saas", focus_areas=("marketing",)),
        ],
        progress=progress("acme", ("a", "completed")),
        popularity={"software": {"b": 90.0, "d": 40.0}},
        sequences={("a", "b"): 30.0, ("a", "c"): 8.0},
        patterns=[("software", "seed", "a", "c", 0.8)],
        similarity={("b", "c"): 0.6, ("c", "e"): 0.1},
    )


# ── Event sink ────────────────────────────────────────────────────────────────

class RecordingEventSink(EventSink):
    """Keeps every emitted event in ``events``."""

    def __init__(self) -> None:
        self.events: list[EngineEvent] = []
        self.closed = False

    def emit(self, event: EngineEvent) -> None:
        self.events.append(event)

    def close(self) -> None:
        self.closed = True

    def of(self, category: EventCategory, event_type: EventType) -> list[EngineEvent]:
        return [
            e for e in self.events
            if e.category == category and e.event_type == event_type
        ]


@pytest.fixture
def recording_sink() -> RecordingEventSink:
    return RecordingEventSink()
