"""
Journey catalog loader: JSON -> validated models -> SQLite upserts.

Catalog document
----------------
A single JSON object. Every key is optional except ``steps``::

    {
      "phases":    [{"id", "name", "description", "order_index"}],
      "steps":     [{"id", "name", "description", "phase_id", "difficulty_level",
                     "estimated_time_min", "estimated_time_max",
                     "prerequisite_steps", "categories", "tags", "order_index"}],
      "companies": [{"company_id", "name", "industry_id", "stage", "size",
                     "business_model", "focus_areas", "maturity_score"}],
      "progress":  [{"company_id", "step_id", "status", "updated_at"}],
      "industry_popularity":      [{"industry_id", "step_id", "percentile"}],
      "step_sequences":           [{"prior_step_id", "next_step_id", "frequency"}],
      "similar_company_patterns": [{"industry_id", "stage", "prior_step_id",
                                    "step_id", "similarity_score"}],
      "step_similarity":          [{"step_a", "step_b", "similarity"}],
      "resources":      [{"step_id", "title", "description", "url",
                          "resource_type", "relevance_score"}],
      "knowledge_base": [{"step_id", "content", "source"}]
    }

Records carrying a key that starts with ``_`` (e.g. ``"_comment"``) are skipped.

Validation rules
----------------
- Duplicate phase ids, step ids or company ids are rejected.
- A step's ``phase_id`` must name a phase in the document.
- Progress, statistics, resources and knowledge entries must reference known
  steps (and companies, for progress).
- Step difficulty must be 1 to 5. The model itself only rejects negative
  levels, so this range is checked here.
- Other field-level rules come from the pydantic models (time range, status
  values, percentile range).
- Self-referencing or unknown prerequisites are only warned about: the engine
  tolerates them (forced path placement, unresolved edge names).

Every violation raises ``ValueError`` naming the section and index. Loading
is idempotent: rows are upserted by natural key.

Usage
-----
    from journey_recommender.catalog.seed_loader import load_catalog

    summary = load_catalog(conn, Path("config/catalog/journey_catalog.json"))
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

from pydantic import ValidationError

from journey_recommender.db.repositories.assistant_repo import AssistantContentRepository
from journey_recommender.db.repositories.company_repo import CompanyRepository
from journey_recommender.db.repositories.stats_repo import StatsRepository
from journey_recommender.db.repositories.step_repo import StepRepository
from journey_recommender.models.assistant import KnowledgeEntry, StepResource
from journey_recommender.models.lookup import IndustryPopularity
from journey_recommender.models.step import (
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    CompanyProfile,
    CompanyProgressRecord,
    JourneyPhase,
    Step,
)

log = logging.getLogger(__name__)

M = TypeVar("M")


@dataclass
class CatalogSummary:
    """Row counts upserted per section, plus prerequisite warnings."""

    counts: dict[str, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass
class Catalog:
    """A validated catalog document, ready to upsert."""

    phases: list[JourneyPhase]
    steps: list[Step]
    companies: list[CompanyProfile]
    progress: list[CompanyProgressRecord]
    popularity: list[tuple[str, IndustryPopularity]]
    sequences: list[dict[str, Any]]
    patterns: list[dict[str, Any]]
    similarity: list[dict[str, Any]]
    resources: list[StepResource]
    knowledge: list[tuple[str, KnowledgeEntry]]
    warnings: list[str] = field(default_factory=list)


# ── Parsing / validation ──────────────────────────────────────────────────────

def _records(doc: dict[str, Any], key: str) -> list[dict[str, Any]]:
    raw = doc.get(key, [])
    if not isinstance(raw, list):
        raise ValueError(f"Catalog section '{key}' must be a list.")
    return [r for r in raw if isinstance(r, dict) and not any(k.startswith("_") for k in r)]


def _build(section: str, index: int, factory: Callable[..., M], **fields: Any) -> M:
    try:
        return factory(**fields)
    except ValidationError as exc:
        raise ValueError(f"Invalid {section} record at index {index}: {exc}") from exc


def _require_step(section: str, index: int, step_id: Any, known: set[str]) -> None:
    if step_id not in known:
        raise ValueError(f"{section} record at index {index} references unknown step '{step_id}'.")


def _unique(section: str, ids: list[str]) -> set[str]:
    seen: set[str] = set()
    for i, item_id in enumerate(ids):
        if not item_id:
            raise ValueError(f"{section} record at index {i} is missing its id.")
        if item_id in seen:
            raise ValueError(f"Duplicate {section} id '{item_id}' at index {i}.")
        seen.add(item_id)
    return seen


def parse_catalog(doc: dict[str, Any]) -> Catalog:
    """Validate a catalog document and build its models.

    Raises:
        ValueError: On any structural or field-level violation.
    """
    if not isinstance(doc, dict):
        raise ValueError("Catalog document must be a JSON object.")
    if not _records(doc, "steps"):
        raise ValueError("Catalog has no steps.")

    phase_recs = _records(doc, "phases")
    phase_ids = _unique("phase", [r.get("id") for r in phase_recs])
    phases = [
        _build("phase", i, JourneyPhase, order_index=r.get("order_index", i),
               **{k: v for k, v in r.items() if k != "order_index"})
        for i, r in enumerate(phase_recs)
    ]
    phase_names = {p.id: p.name for p in phases}

    step_recs = _records(doc, "steps")
    step_ids = _unique("step", [r.get("id") for r in step_recs])
    steps: list[Step] = []
    for i, r in enumerate(step_recs):
        phase_id = r.get("phase_id")
        if phase_id is not None and phase_id not in phase_ids:
            raise ValueError(f"Step '{r['id']}' references unknown phase '{phase_id}'.")
        fields = {k: v for k, v in r.items() if k not in ("order_index", "phase_name")}
        steps.append(_build(
            "step", i, Step,
            order_index=r.get("order_index", i),
            phase_name=phase_names.get(phase_id),
            **fields,
        ))
        level = steps[-1].difficulty_level
        if not MIN_DIFFICULTY <= level <= MAX_DIFFICULTY:
            raise ValueError(
                f"Invalid step record at index {i}: difficulty_level must be in "
                f"[{MIN_DIFFICULTY}, {MAX_DIFFICULTY}], got {level}."
            )

    warnings: list[str] = []
    for step in steps:
        for prereq in step.prerequisite_steps:
            if prereq == step.id:
                warnings.append(f"Step '{step.id}' lists itself as a prerequisite.")
            elif prereq not in step_ids:
                warnings.append(f"Step '{step.id}' has unknown prerequisite '{prereq}'.")

    company_recs = _records(doc, "companies")
    company_ids = _unique("company", [r.get("company_id") for r in company_recs])
    companies = [_build("company", i, CompanyProfile, **r) for i, r in enumerate(company_recs)]

    progress: list[CompanyProgressRecord] = []
    for i, r in enumerate(_records(doc, "progress")):
        if r.get("company_id") not in company_ids:
            raise ValueError(
                f"progress record at index {i} references unknown company '{r.get('company_id')}'."
            )
        _require_step("progress", i, r.get("step_id"), step_ids)
        progress.append(_build("progress", i, CompanyProgressRecord, **r))

    popularity: list[tuple[str, IndustryPopularity]] = []
    for i, r in enumerate(_records(doc, "industry_popularity")):
        _require_step("industry_popularity", i, r.get("step_id"), step_ids)
        if not r.get("industry_id"):
            raise ValueError(f"industry_popularity record at index {i} is missing 'industry_id'.")
        row = _build("industry_popularity", i, IndustryPopularity,
                     step_id=r["step_id"], percentile=r.get("percentile"))
        popularity.append((r["industry_id"], row))

    sequences = _records(doc, "step_sequences")
    for i, r in enumerate(sequences):
        _require_step("step_sequences", i, r.get("prior_step_id"), step_ids)
        _require_step("step_sequences", i, r.get("next_step_id"), step_ids)

    patterns = _records(doc, "similar_company_patterns")
    for i, r in enumerate(patterns):
        _require_step("similar_company_patterns", i, r.get("prior_step_id"), step_ids)
        _require_step("similar_company_patterns", i, r.get("step_id"), step_ids)
        if not r.get("industry_id") or not r.get("stage"):
            raise ValueError(
                f"similar_company_patterns record at index {i} needs 'industry_id' and 'stage'."
            )

    similarity = _records(doc, "step_similarity")
    for i, r in enumerate(similarity):
        _require_step("step_similarity", i, r.get("step_a"), step_ids)
        _require_step("step_similarity", i, r.get("step_b"), step_ids)
        if r["step_a"] == r["step_b"]:
            raise ValueError(f"step_similarity record at index {i} pairs a step with itself.")

    resources: list[StepResource] = []
    for i, r in enumerate(_records(doc, "resources")):
        _require_step("resources", i, r.get("step_id"), step_ids)
        resources.append(_build("resources", i, StepResource, **r))

    knowledge: list[tuple[str, KnowledgeEntry]] = []
    for i, r in enumerate(_records(doc, "knowledge_base")):
        _require_step("knowledge_base", i, r.get("step_id"), step_ids)
        entry = _build("knowledge_base", i, KnowledgeEntry,
                       content=r.get("content"), source=r.get("source"))
        knowledge.append((r["step_id"], entry))

    return Catalog(
        phases=phases,
        steps=steps,
        companies=companies,
        progress=progress,
        popularity=popularity,
        sequences=sequences,
        patterns=patterns,
        similarity=similarity,
        resources=resources,
        knowledge=knowledge,
        warnings=warnings,
    )


# ── DB upsert ─────────────────────────────────────────────────────────────────

def upsert_catalog(conn: sqlite3.Connection, catalog: Catalog) -> CatalogSummary:
    """Upsert every section of a parsed catalog and commit."""
    steps = StepRepository(conn)
    companies = CompanyRepository(conn)
    stats = StatsRepository(conn)
    content = AssistantContentRepository(conn)

    for phase in catalog.phases:
        steps.upsert_phase(phase)
    for step in catalog.steps:
        steps.upsert_step(step)
    for profile in catalog.companies:
        companies.upsert_company(profile)
    for record in catalog.progress:
        companies.upsert_progress(record)
    for industry_id, row in catalog.popularity:
        stats.upsert_popularity(industry_id, row.step_id, row.percentile)
    for r in catalog.sequences:
        stats.upsert_sequence(r["prior_step_id"], r["next_step_id"], float(r.get("frequency", 0)))
    for r in catalog.patterns:
        stats.upsert_pattern(
            r["industry_id"], r["stage"], r["prior_step_id"], r["step_id"],
            float(r.get("similarity_score", 0)),
        )
    for r in catalog.similarity:
        stats.upsert_similarity(r["step_a"], r["step_b"], float(r.get("similarity", 0)))
    for resource in catalog.resources:
        content.upsert_resource(resource)
    for step_id, entry in catalog.knowledge:
        content.upsert_knowledge(step_id, entry)
    conn.commit()

    summary = CatalogSummary(
        counts={
            "phases": len(catalog.phases),
            "steps": len(catalog.steps),
            "companies": len(catalog.companies),
            "progress": len(catalog.progress),
            "industry_popularity": len(catalog.popularity),
            "step_sequences": len(catalog.sequences),
            "similar_company_patterns": len(catalog.patterns),
            "step_similarity": len(catalog.similarity),
            "resources": len(catalog.resources),
            "knowledge_base": len(catalog.knowledge),
        },
        warnings=list(catalog.warnings),
    )
    log.info("Upserted catalog: %d rows across %d sections.", summary.total, len(summary.counts))
    return summary


def load_catalog(conn: sqlite3.Connection, catalog_path: Path) -> CatalogSummary:
    """Read, validate and upsert a catalog JSON file.

    Raises:
        FileNotFoundError: If ``catalog_path`` does not exist.
        ValueError: If the document fails validation (nothing is written).
    """
    log.info("Loading journey catalog from %s", catalog_path)
    doc = json.loads(Path(catalog_path).read_text(encoding="utf-8"))
    catalog = parse_catalog(doc)
    for warning in catalog.warnings:
        log.warning("%s", warning)
    return upsert_catalog(conn, catalog)
