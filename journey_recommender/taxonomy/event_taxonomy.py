"""
Analytics event taxonomy.

Every engine event is classified along two dimensions:
  - ``EventCategory``: which public operation emitted it.
  - ``EventType``:     where in that operation's lifecycle it was emitted.

This module has NO imports from any other ``journey_recommender`` package.
"""

from enum import StrEnum


class EventCategory(StrEnum):
    """Public operation that emitted the event."""

    RECOMMENDATION = "recommendation"
    RELATIONSHIP = "relationship"
    PATH = "path"
    ASSISTANT = "assistant"


class EventType(StrEnum):
    """Lifecycle point at which the event was emitted."""

    REQUEST = "request"
    """Operation started; payload carries the request parameters."""

    SUCCESS = "success"
    """Operation finished; payload carries result ids / counts."""

    ERROR = "error"
    """Operation failed and returned an empty result; payload has ``error``."""

    LOOKUP_ERROR = "lookup_error"
    """An auxiliary scoring lookup failed; its factor degraded to zero."""

    VIEW = "view"
    """Step assistant data was shown for a step."""

    QUESTION = "question"
    """A question was put to the step assistant."""
