"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      : committed static defaults
  2. ``config/local.toml``        : optional local overrides (gitignored)
  3. ``.env``                     : local secrets and env overrides (gitignored)
  4. Environment variables        : ``JOURNEY_RECOMMENDER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The engine, the SQLite adapters and every CLI command receive an ``AppConfig``
instance (or one of its sections), never raw dicts or env lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/journey.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class DataConfig(BaseModel):
    """Filesystem paths for the journey catalog and result exports."""

    model_config = ConfigDict(frozen=True)

    catalog_seed_file: str = "config/catalog/journey_catalog.json"
    export_dir: str = "data/exports"


class ScoringConfig(BaseModel):
    """Relevance scoring parameters.

    ``reason_threshold_ratio`` is the materiality threshold: a factor adds a
    reasoning string only when its contribution exceeds this fraction of the
    factor's maximum.
    """

    model_config = ConfigDict(frozen=True)

    base_score: float = 1.0
    reason_threshold_ratio: float = 0.5
    recent_completion_window: int = 5

    @field_validator("reason_threshold_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"reason_threshold_ratio must be in [0.0, 1.0), got {v}.")
        return v

    @field_validator("recent_completion_window")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"recent_completion_window must be >= 1, got {v}.")
        return v


class RecommendationConfig(BaseModel):
    """Defaults for ``get_recommendations``."""

    model_config = ConfigDict(frozen=True)

    default_limit: int = 5


class RelationshipConfig(BaseModel):
    """Relationship graph traversal settings."""

    model_config = ConfigDict(frozen=True)

    default_depth: int = 1
    min_similarity: float = 0.3
    visited_guard: bool = True

    @field_validator("min_similarity")
    @classmethod
    def validate_similarity(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"min_similarity must be in [0.0, 1.0], got {v}.")
        return v


class PathConfig(BaseModel):
    """Optimized path settings."""

    model_config = ConfigDict(frozen=True)

    workday_hours: float = 8.0
    default_max_steps: int = 10

    @field_validator("workday_hours")
    @classmethod
    def validate_workday(cls, v: float) -> float:
        if not 0.0 < v <= 24.0:
            raise ValueError(f"workday_hours must be in (0, 24], got {v}.")
        return v


class EventsConfig(BaseModel):
    """Analytics event sink settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    background: bool = False
    max_workers: int = 1


class AssistantConfig(BaseModel):
    """Step assistant settings."""

    model_config = ConfigDict(frozen=True)

    max_suggestions: int = 5
    max_sources: int = 2
    default_confidence: float = 0.85


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/journey_recommender.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    Constructed by ``load_config()`` which merges TOML + .env. Tests build it
    directly (``AppConfig()``) to get the committed defaults.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    data: DataConfig = DataConfig()
    scoring: ScoringConfig = ScoringConfig()
    recommendations: RecommendationConfig = RecommendationConfig()
    relationships: RelationshipConfig = RelationshipConfig()
    path: PathConfig = PathConfig()
    events: EventsConfig = EventsConfig()
    assistant: AssistantConfig = AssistantConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent

ENV_PREFIX = "JOURNEY_RECOMMENDER_"


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply JOURNEY_RECOMMENDER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply JOURNEY_RECOMMENDER_* env vars to the raw config dict.

    Supported overrides:
      JOURNEY_RECOMMENDER_DB_PATH    → raw["database"]["db_path"]
      JOURNEY_RECOMMENDER_LOG_LEVEL  → raw["logging"]["level"]
      JOURNEY_RECOMMENDER_DEBUG      → raw["debug"]
    """
    if db_path := os.environ.get(f"{ENV_PREFIX}DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get(f"{ENV_PREFIX}DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        data=DataConfig(**raw.get("data", {})),
        scoring=ScoringConfig(**raw.get("scoring", {})),
        recommendations=RecommendationConfig(**raw.get("recommendations", {})),
        relationships=RelationshipConfig(**raw.get("relationships", {})),
        path=PathConfig(**raw.get("path", {})),
        events=EventsConfig(**raw.get("events", {})),
        assistant=AssistantConfig(**raw.get("assistant", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
