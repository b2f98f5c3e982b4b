"""
Journey taxonomy: progress statuses, relationship types, and the static
lookup tables behind the stage and business-model relevance factors.

Dimensions:
  - ``ProgressStatus``:    where a company stands on a step.
  - ``RelationshipType``:  how two steps are connected in the step graph.
  - ``ResourceType``:      how a step resource is presented by the assistant.

``PHASE_STAGE_MAP`` and ``BUSINESS_MODEL_KEYWORDS`` are hand-authored
heuristics. Keys are lowercase; lookups must lowercase their input first.

This module has NO imports from any other ``journey_recommender`` package.
"""

from enum import StrEnum


class ProgressStatus(StrEnum):
    """Status of a step for one company."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


# Statuses that take a step out of the recommendation candidate pool.
ENGAGED_STATUSES: tuple[ProgressStatus, ...] = (
    ProgressStatus.COMPLETED,
    ProgressStatus.IN_PROGRESS,
    ProgressStatus.SKIPPED,
)


class RelationshipType(StrEnum):
    """Edge type in the step relationship graph.

    Direction is always explicit relative to the queried step:
    prerequisite edges point *into* it, dependent edges point *out of* it,
    related edges are symmetric and materialized with the queried step as
    source.
    """

    PREREQUISITE = "prerequisite"
    DEPENDENT = "dependent"
    RELATED = "related"


class ResourceType(StrEnum):
    """Presentation type of a step assistant resource."""

    VIDEO = "video"
    DOCUMENT = "document"
    ARTICLE = "article"
    TOOL = "tool"


# Raw resource_type values from the catalog → presentation type.
# Anything not listed here is presented as a tool.
RESOURCE_TYPE_ALIASES: dict[str, ResourceType] = {
    "video":        ResourceType.VIDEO,
    "youtube":      ResourceType.VIDEO,
    "vimeo":        ResourceType.VIDEO,
    "pdf":          ResourceType.DOCUMENT,
    "doc":          ResourceType.DOCUMENT,
    "presentation": ResourceType.DOCUMENT,
    "blog":         ResourceType.ARTICLE,
    "article":      ResourceType.ARTICLE,
    "guide":        ResourceType.ARTICLE,
}


# Phase name → company stages for which that phase is relevant.
PHASE_STAGE_MAP: dict[str, frozenset[str]] = {
    "ideation":    frozenset({"pre-seed", "concept"}),
    "validation":  frozenset({"pre-seed", "seed"}),
    "development": frozenset({"seed", "early"}),
    "growth":      frozenset({"early", "growth"}),
    "scaling":     frozenset({"growth", "expansion"}),
}


# Business model → keywords searched for in a step's name + description.
BUSINESS_MODEL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "saas":        ("subscription", "recurring", "customer", "retention", "churn"),
    "ecommerce":   ("inventory", "fulfillment", "product", "shipping"),
    "marketplace": ("platform", "two-sided", "marketplace", "commission"),
    "service":     ("service", "consulting", "hourly", "project"),
    "hardware":    ("manufacturing", "supply chain", "hardware", "production"),
}
