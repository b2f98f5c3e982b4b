"""
SQLite schema DDL for the journey store.

Every statement uses ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.
List-valued columns (prerequisites, categories, tags, focus areas, event
payloads) hold JSON text.

Creation order follows foreign keys:
  1. journey_phases
  2. journey_steps             (-> journey_phases)
  3. companies
  4. company_progress          (-> companies, journey_steps)
  5. industry_step_popularity  (-> journey_steps)
  6. step_sequences            (-> journey_steps x 2)
  7. similar_company_patterns  (-> journey_steps x 2)
  8. step_similarity           (-> journey_steps x 2)
  9. step_resources            (-> journey_steps)
  10. knowledge_base           (-> journey_steps)
  11. engine_events
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_NOW = "(strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))"

# ── Catalog ───────────────────────────────────────────────────────────────────

_DDL_JOURNEY_PHASES = f"""
CREATE TABLE IF NOT EXISTS journey_phases (
    phase_id     TEXT    PRIMARY KEY,
    name         TEXT    NOT NULL,
    description  TEXT    NOT NULL DEFAULT '',
    order_index  INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT    NOT NULL DEFAULT {_NOW}
);
"""

_DDL_JOURNEY_STEPS = f"""
CREATE TABLE IF NOT EXISTS journey_steps (
    step_id             TEXT    PRIMARY KEY,
    name                TEXT    NOT NULL,
    description         TEXT    NOT NULL DEFAULT '',
    phase_id            TEXT    REFERENCES journey_phases(phase_id),
    difficulty_level    INTEGER NOT NULL DEFAULT 1
                                CHECK (difficulty_level >= 0),
    estimated_time_min  INTEGER NOT NULL DEFAULT 0,
    estimated_time_max  INTEGER NOT NULL DEFAULT 0,
    prerequisite_steps  TEXT    NOT NULL DEFAULT '[]',
    categories          TEXT    NOT NULL DEFAULT '[]',
    tags                TEXT    NOT NULL DEFAULT '[]',
    order_index         INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT    NOT NULL DEFAULT {_NOW},
    updated_at          TEXT    NOT NULL DEFAULT {_NOW}
);
CREATE INDEX IF NOT EXISTS idx_steps_phase ON journey_steps (phase_id, order_index);
"""

# ── Companies ─────────────────────────────────────────────────────────────────

_DDL_COMPANIES = f"""
CREATE TABLE IF NOT EXISTS companies (
    company_id      TEXT PRIMARY KEY,
    name            TEXT,
    industry_id     TEXT,
    stage           TEXT,
    size            TEXT,
    business_model  TEXT,
    focus_areas     TEXT NOT NULL DEFAULT '[]',
    maturity_score  REAL,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);
CREATE INDEX IF NOT EXISTS idx_companies_industry ON companies (industry_id);
"""

_DDL_COMPANY_PROGRESS = """
CREATE TABLE IF NOT EXISTS company_progress (
    company_id  TEXT NOT NULL REFERENCES companies(company_id),
    step_id     TEXT NOT NULL REFERENCES journey_steps(step_id),
    status      TEXT NOT NULL
                CHECK (status IN ('not_started', 'in_progress', 'completed', 'skipped')),
    updated_at  TEXT,
    PRIMARY KEY (company_id, step_id)
);
CREATE INDEX IF NOT EXISTS idx_progress_status ON company_progress (company_id, status);
"""

# ── Scoring statistics ────────────────────────────────────────────────────────

_DDL_INDUSTRY_STEP_POPULARITY = """
CREATE TABLE IF NOT EXISTS industry_step_popularity (
    industry_id  TEXT NOT NULL,
    step_id      TEXT NOT NULL REFERENCES journey_steps(step_id),
    percentile   REAL NOT NULL CHECK (percentile BETWEEN 0 AND 100),
    PRIMARY KEY (industry_id, step_id)
);
"""

_DDL_STEP_SEQUENCES = """
CREATE TABLE IF NOT EXISTS step_sequences (
    prior_step_id  TEXT NOT NULL REFERENCES journey_steps(step_id),
    next_step_id   TEXT NOT NULL REFERENCES journey_steps(step_id),
    frequency      REAL NOT NULL DEFAULT 0,
    PRIMARY KEY (prior_step_id, next_step_id)
);
"""

_DDL_SIMILAR_COMPANY_PATTERNS = """
CREATE TABLE IF NOT EXISTS similar_company_patterns (
    industry_id       TEXT NOT NULL,
    stage             TEXT NOT NULL,
    prior_step_id     TEXT NOT NULL REFERENCES journey_steps(step_id),
    step_id           TEXT NOT NULL REFERENCES journey_steps(step_id),
    similarity_score  REAL NOT NULL CHECK (similarity_score BETWEEN 0 AND 1),
    PRIMARY KEY (industry_id, stage, prior_step_id, step_id)
);
"""

_DDL_STEP_SIMILARITY = """
CREATE TABLE IF NOT EXISTS step_similarity (
    step_a      TEXT NOT NULL REFERENCES journey_steps(step_id),
    step_b      TEXT NOT NULL REFERENCES journey_steps(step_id),
    similarity  REAL NOT NULL CHECK (similarity BETWEEN 0 AND 1),
    PRIMARY KEY (step_a, step_b)
);
CREATE INDEX IF NOT EXISTS idx_similarity_b ON step_similarity (step_b);
"""

# ── Assistant content ─────────────────────────────────────────────────────────

_DDL_STEP_RESOURCES = """
CREATE TABLE IF NOT EXISTS step_resources (
    resource_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    step_id          TEXT    NOT NULL REFERENCES journey_steps(step_id),
    title            TEXT    NOT NULL,
    description      TEXT    NOT NULL DEFAULT '',
    url              TEXT    NOT NULL,
    resource_type    TEXT    NOT NULL DEFAULT 'tool',
    relevance_score  REAL    NOT NULL DEFAULT 0,
    UNIQUE (step_id, url)
);
"""

_DDL_KNOWLEDGE_BASE = """
CREATE TABLE IF NOT EXISTS knowledge_base (
    entry_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    step_id   TEXT    NOT NULL REFERENCES journey_steps(step_id),
    content   TEXT    NOT NULL,
    source    TEXT    NOT NULL,
    UNIQUE (step_id, source)
);
"""

# ── Analytics events ──────────────────────────────────────────────────────────

_DDL_ENGINE_EVENTS = f"""
CREATE TABLE IF NOT EXISTS engine_events (
    event_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    category    TEXT NOT NULL,
    event_type  TEXT NOT NULL,
    subject_id  TEXT NOT NULL,
    company_id  TEXT,
    payload     TEXT NOT NULL DEFAULT '{{}}',
    created_at  TEXT NOT NULL DEFAULT {_NOW}
);
CREATE INDEX IF NOT EXISTS idx_events_category ON engine_events (category, event_type);
"""

_ALL_DDL: list[str] = [
    _DDL_JOURNEY_PHASES,
    _DDL_JOURNEY_STEPS,
    _DDL_COMPANIES,
    _DDL_COMPANY_PROGRESS,
    _DDL_INDUSTRY_STEP_POPULARITY,
    _DDL_STEP_SEQUENCES,
    _DDL_SIMILAR_COMPANY_PATTERNS,
    _DDL_STEP_SIMILARITY,
    _DDL_STEP_RESOURCES,
    _DDL_KNOWLEDGE_BASE,
    _DDL_ENGINE_EVENTS,
]

ALL_TABLE_NAMES = [
    "journey_phases",
    "journey_steps",
    "companies",
    "company_progress",
    "industry_step_popularity",
    "step_sequences",
    "similar_company_patterns",
    "step_similarity",
    "step_resources",
    "knowledge_base",
    "engine_events",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create every table and index that does not exist yet, then commit."""
    for block in _ALL_DDL:
        for statement in _statements(block):
            conn.execute(statement)
    conn.commit()
    logger.info("Schema applied: %d tables verified.", len(ALL_TABLE_NAMES))


def _statements(block: str) -> list[str]:
    return [s.strip() for s in block.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' "
        "AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row[0] for row in rows]
