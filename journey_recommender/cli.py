"""
Journey Recommender CLI entry point.

Every command:
  1. loads ``AppConfig`` via ``load_config()``;
  2. configures logging;
  3. opens the SQLite store;
  4. runs one engine operation and prints an ASCII report.

Install and run::

    pip install -e .
    journey-recommender init-db
    journey-recommender seed-catalog
    journey-recommender recommend acme --limit 5 --focus marketing
    journey-recommender relationships market-research --depth 2
    journey-recommender path acme --days 10
    journey-recommender analytics acme
    journey-recommender assistant market-research --company acme
    journey-recommender ask market-research "How long does this take?" --company acme
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer

app = typer.Typer(
    name="journey-recommender",
    help="Step recommendation and path optimization for guided company journeys.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from journey_recommender.config import load_config

    try:
        return load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config) -> None:
    from journey_recommender.utils.logging import configure_logging
    configure_logging(config.logging)


def _require_db(db_path: str) -> None:
    if not Path(db_path).exists():
        typer.echo(
            f"[ERROR] Database not found: {db_path} (run 'init-db' and 'seed-catalog' first)",
            err=True,
        )
        raise typer.Exit(code=1)


@contextmanager
def _open_services(config, db_path: Optional[str]) -> Iterator[tuple]:
    """Yield ``(engine, assistant)`` bound to the SQLite store."""
    from journey_recommender.db.adapters import SqliteEventSink, SqliteStepDataSource
    from journey_recommender.db.connection import get_connection
    from journey_recommender.recommendations.assistant import StepAssistant
    from journey_recommender.recommendations.engine import RecommendationEngine
    from journey_recommender.recommendations.events import make_event_sink

    target = db_path or config.database.db_path
    _require_db(target)

    sink = make_event_sink(
        SqliteEventSink(target, config.database.wal_mode, config.database.busy_timeout_ms),
        enabled=config.events.enabled,
        background=config.events.background,
        max_workers=config.events.max_workers,
    )
    with get_connection(
        target,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        source = SqliteStepDataSource(conn)
        engine = RecommendationEngine(source, events=sink, config=config)
        assistant = StepAssistant(source, events=sink, config=config.assistant)
        try:
            yield engine, assistant
        finally:
            sink.close()


def _maybe_export(rows: list[dict], export_path: Optional[str], fieldnames=None) -> None:
    if not export_path:
        return
    from journey_recommender.reporting.export import export_results

    try:
        written = export_results(rows, Path(export_path), fieldnames)
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"[OK] Exported {len(rows)} rows to {written}")


_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")
_DB_OPTION = typer.Option(None, "--db-path", help="Override DB path from config.")


# ── Setup commands ────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Create the SQLite database and apply the schema (idempotent)."""
    from journey_recommender.db.connection import get_connection
    from journey_recommender.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target}")
    with get_connection(
        target,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPTION,
    show_full: bool = typer.Option(False, "--full", help="Print the full config as JSON."),
) -> None:
    """Validate the configuration and print the key settings."""
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:      {config.database.db_path}")
    typer.echo(f"  Catalog seed file:  {config.data.catalog_seed_file}")
    typer.echo(f"  Default limit:      {config.recommendations.default_limit}")
    typer.echo(f"  Workday hours:      {config.path.workday_hours:g}")
    typer.echo(f"  Visited guard:      {config.relationships.visited_guard}")
    typer.echo(f"  Events:             {'on' if config.events.enabled else 'off'}"
               f"{' (background)' if config.events.background else ''}")
    typer.echo(f"  Log level:          {config.logging.level}")
    typer.echo(f"  Debug mode:         {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))


@app.command("seed-catalog")
def seed_catalog(
    catalog_file: Optional[str] = typer.Option(
        None, "--file", "-f",
        help="Catalog JSON file. Defaults to config.data.catalog_seed_file.",
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate only; write nothing."),
) -> None:
    """Validate a journey catalog and upsert it into the database."""
    from journey_recommender.catalog.seed_loader import parse_catalog, upsert_catalog
    from journey_recommender.db.connection import get_connection
    from journey_recommender.db.schema import apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(catalog_file or config.data.catalog_seed_file)
    if not path.exists():
        typer.echo(f"[ERROR] Catalog file not found: {path}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Loading catalog from: {path}")
    try:
        catalog = parse_catalog(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        typer.echo(f"[ERROR] Invalid catalog: {exc}", err=True)
        raise typer.Exit(code=1)

    for warning in catalog.warnings:
        typer.echo(f"  [WARN] {warning}")

    if dry_run:
        typer.echo(f"[OK] Catalog valid: {len(catalog.steps)} steps (dry run, nothing written).")
        return

    target = db_path or config.database.db_path
    with get_connection(
        target,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        summary = upsert_catalog(conn, catalog)

    for section, count in summary.counts.items():
        if count:
            typer.echo(f"  {section:<26} {count:>5}")
    typer.echo(f"[OK] Seeded {summary.total} rows into {target}.")


# ── Engine commands ───────────────────────────────────────────────────────────

@app.command("recommend")
def recommend(
    company_id: str = typer.Argument(..., help="Company id."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum results."),
    phases: Optional[list[str]] = typer.Option(None, "--phase", help="Restrict to phase id (repeatable)."),
    focus: Optional[list[str]] = typer.Option(None, "--focus", help="Extra focus area (repeatable)."),
    days: Optional[float] = typer.Option(None, "--days", help="Time budget in workdays."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write results to .csv or .json."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Recommend the next steps for a company."""
    from journey_recommender.models.recommendation import RecommendationContext
    from journey_recommender.reporting.export import RECOMMENDATION_FIELDS, recommendation_rows
    from journey_recommender.reporting.formatters import format_recommendations_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        context = RecommendationContext(
            selected_phases=tuple(phases or ()),
            focus_areas=tuple(focus or ()),
            time_constraint_days=days,
        )
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    with _open_services(config, db_path) as (engine, _):
        results = engine.get_recommendations(company_id, limit=limit, context=context)

    typer.echo(format_recommendations_table(results, company_id))
    _maybe_export(recommendation_rows(results), export_path, RECOMMENDATION_FIELDS)


@app.command("relationships")
def relationships(
    step_id: str = typer.Argument(..., help="Step id."),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Expansion depth."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write edges to .csv or .json."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show prerequisite, dependent and related steps."""
    from journey_recommender.reporting.export import RELATIONSHIP_FIELDS, relationship_rows
    from journey_recommender.reporting.formatters import format_relationships

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_services(config, db_path) as (engine, _):
        edges = engine.get_step_relationships(step_id, depth=depth)

    typer.echo(format_relationships(edges, step_id))
    _maybe_export(relationship_rows(edges), export_path, RELATIONSHIP_FIELDS)


@app.command("path")
def optimized_path(
    company_id: str = typer.Argument(..., help="Company id."),
    days: Optional[float] = typer.Option(None, "--days", help="Time budget in workdays."),
    max_steps: Optional[int] = typer.Option(None, "--max-steps", help="Maximum path length."),
    export_path: Optional[str] = typer.Option(None, "--export", help="Write the path to .csv or .json."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Plan a dependency-respecting path of upcoming steps."""
    from journey_recommender.reporting.export import RECOMMENDATION_FIELDS, recommendation_rows
    from journey_recommender.reporting.formatters import format_path

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_services(config, db_path) as (engine, _):
        path = engine.get_optimized_path(
            company_id, time_constraint_days=days, max_steps=max_steps
        )

    typer.echo(format_path(path, company_id, days, config.path.workday_hours))
    _maybe_export(recommendation_rows(path), export_path, RECOMMENDATION_FIELDS)


@app.command("analytics")
def analytics(
    company_id: str = typer.Argument(..., help="Company id."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show phase completion and industry comparison for a company."""
    from journey_recommender.reporting.formatters import format_journey_analytics

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_services(config, db_path) as (engine, _):
        result = engine.get_journey_analytics(company_id)

    typer.echo(format_journey_analytics(result, company_id))


@app.command("assistant")
def assistant(
    step_id: str = typer.Argument(..., help="Step id."),
    company_id: str = typer.Option(..., "--company", "-c", help="Company id."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show suggested questions and resources for a step."""
    from journey_recommender.reporting.formatters import format_assistant_data

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_services(config, db_path) as (_, helper):
        data = helper.get_step_assistant_data(step_id, company_id)

    typer.echo(format_assistant_data(data, step_id))


@app.command("ask")
def ask(
    step_id: str = typer.Argument(..., help="Step id."),
    question: str = typer.Argument(..., help="Question about the step."),
    company_id: str = typer.Option(..., "--company", "-c", help="Company id."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Ask the step assistant a question."""
    from journey_recommender.reporting.formatters import format_assistant_answer

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_services(config, db_path) as (_, helper):
        response = helper.ask_step_assistant(step_id, question, company_id)

    typer.echo(format_assistant_answer(response))


if __name__ == "__main__":
    app()
