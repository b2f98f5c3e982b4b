"""
Analytics event sinks.

Emission is fire-and-forget. ``emit_event()`` is the only way the engine
emits: it builds the ``EngineEvent``, hands it to the sink, and logs (never
raises) if the sink fails. A broken analytics store therefore cannot change
an operation's result.

Sinks
-----
  NullEventSink        drops every event (events disabled).
  BackgroundEventSink  wraps another sink and emits on a worker thread, so a
                       slow store never delays the caller. ``close()`` waits
                       for queued events.
  SqliteEventSink      persists to ``engine_events`` (see ``db/adapters.py``).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from journey_recommender.models.event import EngineEvent
from journey_recommender.taxonomy.event_taxonomy import EventCategory, EventType

logger = logging.getLogger(__name__)


class EventSink(ABC):
    """Destination for ``EngineEvent`` records."""

    @abstractmethod
    def emit(self, event: EngineEvent) -> None:
        """Record one event. May raise; callers go through ``emit_event()``."""

    def close(self) -> None:
        """Release resources. No-op by default."""


class NullEventSink(EventSink):
    def emit(self, event: EngineEvent) -> None:
        return None


class BackgroundEventSink(EventSink):
    """Emit to ``inner`` on a thread pool.

    Failures inside the worker are logged. After ``close()`` further events
    are dropped with a debug log.
    """

    def __init__(self, inner: EventSink, max_workers: int = 1) -> None:
        self.inner = inner
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="journey-events"
        )
        self._closed = False

    def emit(self, event: EngineEvent) -> None:
        if self._closed:
            logger.debug("Event sink closed; dropping %s/%s event.", event.category, event.event_type)
            return
        future = self._executor.submit(self.inner.emit, event)
        future.add_done_callback(_log_failure)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self.inner.close()


def _log_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.warning("Background event emission failed: %s", exc)


def emit_event(
    sink:       Optional[EventSink],
    category:   EventCategory,
    event_type: EventType,
    subject_id: str,
    payload:    Optional[dict[str, Any]] = None,
    company_id: Optional[str] = None,
) -> None:
    """Build and emit one event; sink failures are logged and swallowed."""
    if sink is None:
        return
    try:
        event = EngineEvent(
            category=category,
            event_type=event_type,
            subject_id=subject_id,
            company_id=company_id,
            payload=payload or {},
        )
        sink.emit(event)
    except Exception as exc:
        logger.warning(
            "Failed to emit %s/%s event for '%s': %s",
            category, event_type, subject_id, exc,
        )


def make_event_sink(inner: EventSink, enabled: bool = True, background: bool = False,
                    max_workers: int = 1) -> EventSink:
    """Wrap ``inner`` according to the ``[events]`` config section."""
    if not enabled:
        return NullEventSink()
    if background:
        return BackgroundEventSink(inner, max_workers=max_workers)
    return inner
