"""
ASCII terminal formatters for the CLI.

Each formatter takes engine results (pydantic models) and returns a plain
multi-line string for ``typer.echo()``. No colour and no third-party table
library, so output pastes cleanly into tickets and logs.
"""

from __future__ import annotations

from typing import Optional, Sequence

from journey_recommender.models.analytics import JourneyAnalytics
from journey_recommender.models.assistant import StepAssistantData, StepAssistantResponse
from journey_recommender.models.recommendation import StepRecommendation, StepRelationship


def _hours_range(rec: StepRecommendation) -> str:
    return f"{rec.estimated_time_min / 60:.1f}-{rec.estimated_time_max / 60:.1f}h"


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 2] + ".."


def _hours(minutes: Optional[float]) -> str:
    return f"{minutes / 60:.1f}" if minutes is not None else "-"


# ── Recommendations / path ────────────────────────────────────────────────────


def format_recommendations_table(
    recommendations: Sequence[StepRecommendation],
    company_id: str,
    title: str = "Recommended Next Steps",
    show_reasoning: bool = True,
) -> str:
    """Ranked steps with score, difficulty, effort and reasons.

    Args:
        recommendations: Results in display order.
        company_id:      Company the results are for (header line).
        title:           Block heading.
        show_reasoning:  Print each step's reasons under its row.
    """
    lines: list[str] = ["", f"=== {title} ===", f"  Company: {company_id}"]

    if not recommendations:
        lines.append("")
        lines.append("  (no steps to show -- check the company id or run 'seed-catalog')")
        return "\n".join(lines)

    lines.append("")
    header = (
        f"    {'#':>3}  {'Step':<36}  {'Phase':<12}  "
        f"{'Diff':>4}  {'Effort':>11}  {'Score':>6}"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for i, rec in enumerate(recommendations, start=1):
        lines.append(
            f"    {i:>3}  {_truncate(rec.name, 36):<36}  "
            f"{_truncate(rec.phase_name or '-', 12):<12}  "
            f"{rec.difficulty_level:>4}  {_hours_range(rec):>11}  "
            f"{rec.relevance_score:>6.2f}"
        )
        if show_reasoning and rec.reasoning:
            lines.append(f"         - {'; '.join(rec.reasoning)}")
    return "\n".join(lines)


def format_path(
    path: Sequence[StepRecommendation],
    company_id: str,
    time_constraint_days: float | None = None,
    workday_hours: float = 8.0,
) -> str:
    """An optimized path with running effort totals in workdays."""
    title = "Optimized Path"
    if time_constraint_days:
        title += f" (budget {time_constraint_days:g} workdays)"
    text = format_recommendations_table(path, company_id, title=title, show_reasoning=False)
    if not path:
        return text

    total_minutes = sum((r.estimated_time_min + r.estimated_time_max) / 2 for r in path)
    days = total_minutes / (workday_hours * 60)
    return text + f"\n\n  Total estimated effort: {total_minutes / 60:.1f}h ({days:.1f} workdays)"


# ── Relationships ─────────────────────────────────────────────────────────────


def format_relationships(relationships: Sequence[StepRelationship], step_id: str) -> str:
    """Edges grouped by relationship type, one ``source -> target`` per line."""
    lines: list[str] = ["", "=== Step Relationships ===", f"  Step: {step_id}"]
    if not relationships:
        lines.append("")
        lines.append("  (no relationships found)")
        return "\n".join(lines)

    by_type: dict[str, list[StepRelationship]] = {}
    for rel in relationships:
        by_type.setdefault(str(rel.relationship_type), []).append(rel)

    for rel_type in sorted(by_type):
        lines.append("")
        lines.append(f"  [{rel_type.upper()}]")
        for rel in by_type[rel_type]:
            source = rel.source_name or rel.source_id
            target = rel.target_name or rel.target_id
            lines.append(f"    {source} -> {target}")
    return "\n".join(lines)


# ── Analytics ─────────────────────────────────────────────────────────────────


def format_journey_analytics(analytics: JourneyAnalytics, company_id: str) -> str:
    """Per-phase completion bars, status counts, completion times and peer comparison."""
    lines: list[str] = ["", "=== Journey Analytics ===", f"  Company: {company_id}"]

    if not analytics.phase_statistics and not analytics.status_counts:
        lines.append("")
        lines.append("  (no analytics available)")
        return "\n".join(lines)

    lines.append("")
    lines.append(f"    {'Phase':<20}  {'Done':>9}  {'Pct':>5}  Progress")
    for stat in analytics.phase_statistics:
        filled = round(stat.completion_pct * 20)
        bar = "#" * filled + "." * (20 - filled)
        lines.append(
            f"    {_truncate(stat.phase_name, 20):<20}  "
            f"{stat.completed_steps:>4}/{stat.total_steps:<4}  "
            f"{stat.completion_pct:>5.0%}  [{bar}]"
        )

    if analytics.status_counts:
        lines.append("")
        counts = ", ".join(f"{k}={v}" for k, v in analytics.status_counts.items())
        lines.append(f"  Status counts: {counts}")

    if analytics.completion_time_statistics:
        lines.append("")
        lines.append(f"    {'Step':<24}  {'Est(h)':>6}  {'Avg(h)':>6}  {'You(h)':>6}  {'n':>3}")
        for t in analytics.completion_time_statistics:
            lines.append(
                f"    {_truncate(t.step_name or t.step_id, 24):<24}  "
                f"{_hours(t.estimated_minutes):>6}  {_hours(t.avg_actual_minutes):>6}  "
                f"{_hours(t.company_actual_minutes):>6}  {t.sample_count:>3}"
            )

    cmp = analytics.industry_comparison
    if cmp is not None:
        lines.append("")
        if cmp.industry_id is None or cmp.peer_count == 0:
            lines.append(f"  Industry comparison: no peers (completed {cmp.company_completed})")
        else:
            lines.append(
                f"  Industry '{cmp.industry_id}': you completed {cmp.company_completed} steps, "
                f"{cmp.peer_count} peers average {cmp.peer_avg_completed:.1f}"
            )
    return "\n".join(lines)


# ── Assistant ─────────────────────────────────────────────────────────────────


def format_assistant_data(data: StepAssistantData, step_id: str) -> str:
    lines: list[str] = ["", "=== Step Assistant ===", f"  Step: {step_id}"]
    if not data.suggestions and not data.resources:
        lines.append("")
        lines.append("  (no assistant data available)")
        return "\n".join(lines)

    if data.suggestions:
        lines.append("")
        lines.append("  Suggested questions:")
        for s in data.suggestions:
            lines.append(f"    [{s.priority}] {s.text}")
    if data.resources:
        lines.append("")
        lines.append("  Resources:")
        for r in data.resources:
            lines.append(f"    ({r.type}) {r.title} <{r.url}>")
    return "\n".join(lines)


def format_assistant_answer(response: StepAssistantResponse) -> str:
    lines = ["", response.answer, "", f"  Confidence: {response.confidence:.0%}"]
    if response.sources:
        lines.append(f"  Sources: {', '.join(response.sources)}")
    return "\n".join(lines)
