"""
Step assistant: suggested questions, step resources, and question answering.

  get_step_assistant_data(step_id, company_id) -> StepAssistantData
  ask_step_assistant(step_id, question, company_id) -> StepAssistantResponse

Answers come from an injectable ``AnswerGenerator``. The default
``TemplateAnswerGenerator`` picks a canned answer by question keywords and
fills it from the step's attributes and knowledge-base entries. A real
text-generation backend plugs in by subclassing ``AnswerGenerator``.

Both operations emit ``assistant`` events (``view`` / ``question``) and never
raise: data failures return empty data, answer failures return a
zero-confidence apology.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from journey_recommender.config import AssistantConfig
from journey_recommender.models.assistant import (
    AssistantResource,
    AssistantSuggestion,
    KnowledgeEntry,
    StepAssistantData,
    StepAssistantResponse,
)
from journey_recommender.models.step import CompanyProfile, Step
from journey_recommender.recommendations.events import EventSink, NullEventSink, emit_event
from journey_recommender.recommendations.sources import StepDataSource
from journey_recommender.taxonomy.event_taxonomy import EventCategory, EventType
from journey_recommender.taxonomy.journey_taxonomy import RESOURCE_TYPE_ALIASES, ResourceType

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = (
    "I'm sorry, I couldn't process your question at this time. "
    "Please try again later."
)

_LONG_STEP_MINUTES = 480        # more than one 8-hour workday
_CHALLENGING_DIFFICULTY = 3


def map_resource_type(raw: Optional[str]) -> ResourceType:
    """Map a stored resource type (``youtube``, ``pdf``, ``blog``...) onto the four
    presented types. Unknown or missing types become ``tool``."""
    if not raw:
        return ResourceType.TOOL
    return RESOURCE_TYPE_ALIASES.get(raw.strip().lower(), ResourceType.TOOL)


def generate_suggested_questions(
    step: Step,
    profile: CompanyProfile,
    max_suggestions: int = 5,
) -> list[AssistantSuggestion]:
    """Suggested questions for a step, highest priority first.

    Rules add questions for every step, for hard steps (difficulty >= 3), for
    long steps (max estimate over a workday), for steps with prerequisites,
    and for companies with a known industry or business model.
    """
    questions: list[AssistantSuggestion] = [
        AssistantSuggestion(text=f"What are the best practices for {step.name}?", priority=5),
        AssistantSuggestion(text="What tools do I need for this step?", priority=4),
    ]

    if step.difficulty_level >= _CHALLENGING_DIFFICULTY:
        questions.append(AssistantSuggestion(text="What makes this step challenging?", priority=4))
        questions.append(AssistantSuggestion(text="How can I simplify this step?", priority=3))

    if step.estimated_time_max > _LONG_STEP_MINUTES:
        questions.append(
            AssistantSuggestion(text="Can I break this step into smaller tasks?", priority=3)
        )
        questions.append(
            AssistantSuggestion(text="What's the minimum viable outcome for this step?", priority=2)
        )

    if step.prerequisite_steps:
        questions.append(
            AssistantSuggestion(text="How do the prerequisites affect this step?", priority=3)
        )

    if profile.industry_id:
        questions.append(
            AssistantSuggestion(
                text="How do companies in my industry typically handle this step?",
                priority=4,
            )
        )

    if profile.business_model:
        questions.append(
            AssistantSuggestion(
                text=f"How does this step apply to my {profile.business_model} business model?",
                priority=3,
            )
        )

    # Stable sort: equal priorities keep rule order.
    questions.sort(key=lambda q: q.priority, reverse=True)
    return questions[:max(max_suggestions, 0)]


# ── Answer generation ─────────────────────────────────────────────────────────


class AnswerGenerator(ABC):
    """Produces the free-text answer for a step question."""

    @abstractmethod
    def generate(self, question: str, step: Step, knowledge: Sequence[KnowledgeEntry]) -> str:
        """Return the answer text. May raise; the assistant falls back on failure."""


_PHASE_TOOLS = {
    "ideation":    "Brainstorming and idea mapping tools",
    "validation":  "Survey and user testing platforms",
    "development": "Development and testing environments",
    "growth":      "Analytics and tracking systems",
    "scaling":     "Automation and integration tools",
}


class TemplateAnswerGenerator(AnswerGenerator):
    """Keyword-routed canned answers, filled from the step record.

    Routes, checked in order: best practices, tools, time, difficulty,
    then a generic answer. When knowledge-base entries exist, the first one
    is appended as further reading.
    """

    def generate(self, question: str, step: Step, knowledge: Sequence[KnowledgeEntry]) -> str:
        q = question.lower()
        if _mentions(q, "best practice", "tips"):
            answer = self._best_practices(step)
        elif _mentions(q, "tool", "resource", "software"):
            answer = self._tools(step)
        elif _mentions(q, "how long", "time", "duration"):
            answer = self._duration(step)
        elif _mentions(q, "difficult", "challenging", "hard"):
            answer = self._difficulty(step)
        else:
            answer = self._generic(question, step)

        if knowledge:
            answer += f"\n\nFrom {knowledge[0].source}: {knowledge[0].content}"
        return answer

    def _best_practices(self, step: Step) -> str:
        return (
            f"When approaching {step.name}, successful companies typically:\n"
            "1. Define the goals and success metrics for the step up front\n"
            "2. Bring key stakeholders in early\n"
            "3. Look at how similar companies handled it\n"
            "4. Split the work into small sub-tasks\n"
            "5. Plan realistic timeframes with buffer for setbacks"
        )

    def _tools(self, step: Step) -> str:
        lines = [
            f"For {step.name} you will likely need:",
            "1. Project management software to track tasks and deadlines",
            "2. Documentation tools for decisions and processes",
            "3. Communication tools for team collaboration",
        ]
        phase_tool = _PHASE_TOOLS.get((step.phase_name or "").lower())
        if phase_tool:
            lines.append(f"4. {phase_tool}")
        return "\n".join(lines)

    def _duration(self, step: Step) -> str:
        days = round(step.average_minutes / 60)
        return (
            f"{step.name} typically takes between {_hours(step.estimated_time_min)} and "
            f"{_hours(step.estimated_time_max)} hours, depending on team size and experience. "
            f"Companies with similar profiles often finish it in about {days} days.\n"
            "To save time, ship the minimum viable deliverable first, run tasks in "
            "parallel where possible and reuse existing templates."
        )

    def _difficulty(self, step: Step) -> str:
        level = step.difficulty_level
        if level >= _CHALLENGING_DIFFICULTY:
            why = "it requires specialized knowledge and careful planning"
        else:
            why = "it can be completed with general business knowledge and moderate effort"
        return f"{step.name} is rated {level}/5 in difficulty because {why}."

    def _generic(self, question: str, step: Step) -> str:
        phase = step.phase_name or "current"
        return (
            f'To address "{question}" for {step.name}: this step belongs to the {phase} '
            f"phase, is rated {step.difficulty_level}/5 in difficulty and typically takes "
            f"{_hours(step.estimated_time_min)} to {_hours(step.estimated_time_max)} hours. "
            "Start with a clear plan, involve the right people and document progress."
        )


def _mentions(text: str, *keywords: str) -> bool:
    return any(k in text for k in keywords)


def _hours(minutes: float) -> str:
    return f"{minutes / 60:g}"


# ── Assistant service ─────────────────────────────────────────────────────────


class StepAssistant:
    """Step assistant operations over a ``StepDataSource``."""

    def __init__(
        self,
        source: StepDataSource,
        events: Optional[EventSink] = None,
        config: Optional[AssistantConfig] = None,
        generator: Optional[AnswerGenerator] = None,
    ) -> None:
        self.source = source
        self.events = events or NullEventSink()
        self.config = config or AssistantConfig()
        self.generator = generator or TemplateAnswerGenerator()

    def get_step_assistant_data(self, step_id: str, company_id: str) -> StepAssistantData:
        """Suggested questions and resources for a step; empty data on failure."""
        try:
            step = self.source.fetch_step(step_id)
            profile = self.source.fetch_company_profile(company_id)
            suggestions = generate_suggested_questions(
                step, profile, self.config.max_suggestions
            )
            resources = [
                AssistantResource(
                    title=r.title,
                    description=r.description,
                    url=r.url,
                    type=map_resource_type(r.resource_type),
                )
                for r in self.source.fetch_step_resources(step_id)
            ]
        except Exception as exc:
            logger.error("Step assistant data FAILED for step '%s': %s", step_id, exc)
            return StepAssistantData()

        emit_event(
            self.events, EventCategory.ASSISTANT, EventType.VIEW, step_id,
            {"suggestions": len(suggestions), "resources": len(resources)},
            company_id=company_id,
        )
        return StepAssistantData(suggestions=tuple(suggestions), resources=tuple(resources))

    def ask_step_assistant(
        self,
        step_id: str,
        question: str,
        company_id: str,
    ) -> StepAssistantResponse:
        """Answer a question about a step; a zero-confidence apology on failure."""
        try:
            step = self.source.fetch_step(step_id)
            knowledge = self.source.fetch_knowledge_entries(step_id)
            answer = self.generator.generate(question, step, knowledge)
        except Exception as exc:
            logger.error("Step assistant question FAILED for step '%s': %s", step_id, exc)
            return StepAssistantResponse(answer=FALLBACK_ANSWER, confidence=0.0)

        emit_event(
            self.events, EventCategory.ASSISTANT, EventType.QUESTION, step_id,
            {"question": question, "answer_length": len(answer)},
            company_id=company_id,
        )
        return StepAssistantResponse(
            answer=answer,
            confidence=self.config.default_confidence,
            sources=tuple(k.source for k in knowledge[: self.config.max_sources]),
        )
