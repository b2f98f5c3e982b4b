"""
Tests for journey_recommender/catalog/seed_loader.py.

What we test
------------
parse_catalog():
  - Builds models; phase names are attached to steps; order_index defaults
    to the record position.
  - Records carrying "_"-prefixed keys are skipped.
  - Structural violations raise ValueError (no steps, duplicates, unknown
    phase / step / company, self-paired similarity, incomplete patterns).
  - Field-level violations raise ValueError naming section and index.
  - Self and unknown prerequisites only produce warnings.

upsert_catalog() / load_catalog():
  - Row counts per section; loading twice is idempotent.
  - The bundled config/catalog/journey_catalog.json validates and loads.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from journey_recommender.catalog.seed_loader import load_catalog, parse_catalog, upsert_catalog
from journey_recommender.db.repositories.step_repo import StepRepository

BUNDLED_CATALOG = Path(__file__).parents[2] / "config" / "catalog" / "journey_catalog.json"


class TestParseCatalog:
    def test_builds_models(self, sample_catalog):
        catalog = parse_catalog(sample_catalog)
        assert [s.id for s in catalog.steps] == ["s1", "s2", "s3", "s4", "s5"]
        assert catalog.steps[3].phase_name == "Validation"
        assert len(catalog.companies) == 3
        assert catalog.warnings == []

    def test_order_index_defaults_to_position(self):
        catalog = parse_catalog({"steps": [{"id": "x", "name": "X"}, {"id": "y", "name": "Y"}]})
        assert [s.order_index for s in catalog.steps] == [0, 1]

    def test_comment_records_skipped(self, sample_catalog):
        sample_catalog["steps"].append({"_comment": "placeholder", "id": "tmp", "name": "Tmp"})
        assert "tmp" not in [s.id for s in parse_catalog(sample_catalog).steps]

    def test_prerequisite_warnings(self, sample_catalog):
        sample_catalog["steps"][0]["prerequisite_steps"] = ["s1", "ghost"]
        warnings = parse_catalog(sample_catalog).warnings
        assert warnings == [
            "Step 's1' lists itself as a prerequisite.",
            "Step 's1' has unknown prerequisite 'ghost'.",
        ]

    @pytest.mark.parametrize("mutate, message", [
        (lambda d: d.update(steps=[]), "no steps"),
        (lambda d: d["steps"].append(dict(d["steps"][0])), "Duplicate step id 's1'"),
        (lambda d: d["phases"].append(dict(d["phases"][0])), "Duplicate phase id 'p1'"),
        (lambda d: d["companies"].append({"company_id": "acme"}), "Duplicate company id 'acme'"),
        (lambda d: d["steps"][0].update(phase_id="p9"), "unknown phase 'p9'"),
        (lambda d: d["progress"].append({"company_id": "ghost", "step_id": "s1",
                                         "status": "completed"}), "unknown company 'ghost'"),
        (lambda d: d["progress"].append({"company_id": "acme", "step_id": "s9",
                                         "status": "completed"}), "unknown step 's9'"),
        (lambda d: d["step_similarity"].append({"step_a": "s1", "step_b": "s1",
                                                "similarity": 0.5}), "with itself"),
        (lambda d: d["similar_company_patterns"].append(
            {"industry_id": "software", "prior_step_id": "s1", "step_id": "s2",
             "similarity_score": 0.5}), "needs 'industry_id' and 'stage'"),
        (lambda d: d["industry_popularity"].append({"step_id": "s1", "percentile": 10}),
         "missing 'industry_id'"),
    ])
    def test_structural_violations(self, sample_catalog, mutate, message):
        mutate(sample_catalog)
        with pytest.raises(ValueError, match=message):
            parse_catalog(sample_catalog)

    @pytest.mark.parametrize("section, index, patch", [
        ("steps", 0, {"difficulty_level": 7}),
        ("steps", 1, {"estimated_time_min": 900, "estimated_time_max": 10}),
        ("progress", 0, {"status": "abandoned"}),
        ("industry_popularity", 0, {"percentile": 140}),
    ])
    def test_field_violations(self, sample_catalog, section, index, patch):
        sample_catalog[section][index].update(patch)
        with pytest.raises(ValueError, match=f"at index {index}"):
            parse_catalog(sample_catalog)

    def test_non_object_document(self):
        with pytest.raises(ValueError):
            parse_catalog([])


class TestUpsertCatalog:
    def test_counts(self, in_memory_db, sample_catalog):
        summary = upsert_catalog(in_memory_db, parse_catalog(sample_catalog))
        assert summary.counts["steps"] == 5
        assert summary.counts["progress"] == 5
        assert summary.counts["knowledge_base"] == 3
        assert summary.total == sum(summary.counts.values())

    def test_idempotent(self, in_memory_db, sample_catalog):
        catalog = parse_catalog(sample_catalog)
        upsert_catalog(in_memory_db, catalog)
        upsert_catalog(in_memory_db, catalog)
        assert StepRepository(in_memory_db).count() == 5
        assert in_memory_db.execute("SELECT COUNT(*) FROM knowledge_base;").fetchone()[0] == 3

    def test_load_catalog_from_file(self, in_memory_db, sample_catalog, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(sample_catalog), encoding="utf-8")
        assert load_catalog(in_memory_db, path).counts["phases"] == 3

    def test_load_missing_file(self, in_memory_db, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(in_memory_db, tmp_path / "missing.json")

    def test_bundled_catalog_loads(self, in_memory_db):
        summary = load_catalog(in_memory_db, BUNDLED_CATALOG)
        assert summary.warnings == []
        assert summary.counts["steps"] == 11
        assert summary.counts["companies"] == 3
