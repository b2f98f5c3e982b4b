"""
Step assistant result models.

The assistant is a convenience layer next to the engine: it suggests
questions for a step, lists the step's resources, and answers free-text
questions through a pluggable answer generator.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from journey_recommender.taxonomy.journey_taxonomy import ResourceType


class AssistantSuggestion(BaseModel):
    """A suggested question; higher ``priority`` is shown first."""

    model_config = ConfigDict(frozen=True)

    text: str
    priority: int


class StepResource(BaseModel):
    """A catalog resource row attached to a step (raw ``resource_type``)."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    title: str
    description: str = ""
    url: str
    resource_type: str = "tool"
    relevance_score: float = 0.0


class AssistantResource(BaseModel):
    """A resource as presented by the assistant."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    url: str
    type: ResourceType


class KnowledgeEntry(BaseModel):
    """A knowledge-base passage attached to a step."""

    model_config = ConfigDict(frozen=True)

    content: str
    source: str


class StepAssistantData(BaseModel):
    """Suggested questions and resources for one step."""

    model_config = ConfigDict(frozen=True)

    suggestions: tuple[AssistantSuggestion, ...] = ()
    resources: tuple[AssistantResource, ...] = ()


class StepAssistantResponse(BaseModel):
    """Answer to a step assistant question.

    ``confidence`` is 0 for the fallback apology returned on failure.
    """

    model_config = ConfigDict(frozen=True)

    answer: str
    confidence: float
    sources: tuple[str, ...] = ()

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {v}.")
        return v
