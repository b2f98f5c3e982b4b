"""
File export of engine results for spreadsheets and downstream tools.

Writers take generic ``list[dict]`` rows and return the written ``Path``.
The ``*_rows`` adapters flatten result models into one flat row each, so CSV
output has no nested values.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Sequence

from journey_recommender.models.recommendation import StepRecommendation, StepRelationship

RECOMMENDATION_FIELDS = [
    "rank",
    "step_id",
    "name",
    "phase_id",
    "phase_name",
    "difficulty_level",
    "estimated_time_min",
    "estimated_time_max",
    "relevance_score",
    "reasoning",
]

RELATIONSHIP_FIELDS = [
    "relationship_type",
    "source_id",
    "source_name",
    "target_id",
    "target_name",
]


def export_to_csv(records: list[dict], path: Path, fieldnames: list[str] | None = None) -> Path:
    """Write ``records`` as UTF-8 CSV; an empty list writes an empty file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(
            f, fieldnames=fieldnames or list(records[0]), extrasaction="ignore"
        )
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` as indented JSON (datetimes and enums via ``str``)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def recommendation_rows(recommendations: Sequence[StepRecommendation]) -> list[dict]:
    """One flat row per recommendation; reasons joined with ``"; "``."""
    return [
        {
            "rank": i,
            "step_id": rec.id,
            "name": rec.name,
            "phase_id": rec.phase_id,
            "phase_name": rec.phase_name,
            "difficulty_level": rec.difficulty_level,
            "estimated_time_min": rec.estimated_time_min,
            "estimated_time_max": rec.estimated_time_max,
            "relevance_score": round(rec.relevance_score, 4),
            "reasoning": "; ".join(rec.reasoning),
        }
        for i, rec in enumerate(recommendations, start=1)
    ]


def relationship_rows(relationships: Sequence[StepRelationship]) -> list[dict]:
    return [
        {
            "relationship_type": str(rel.relationship_type),
            "source_id": rel.source_id,
            "source_name": rel.source_name,
            "target_id": rel.target_id,
            "target_name": rel.target_name,
        }
        for rel in relationships
    ]


def export_results(rows: list[dict], path: Path, fieldnames: list[str] | None = None) -> Path:
    """Write ``rows`` as CSV or JSON depending on ``path``'s suffix.

    Raises:
        ValueError: For suffixes other than ``.csv`` and ``.json``.
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return export_to_csv(rows, path, fieldnames)
    if suffix == ".json":
        return export_to_json(rows, path)
    raise ValueError(f"Unsupported export format '{suffix}' (use .csv or .json).")
