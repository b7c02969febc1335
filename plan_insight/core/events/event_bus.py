"""
Synchronous plan event bus.

Sinks receive plan events in registration order, on the caller's thread.
A closed bus drops further events; ``NullEventBus`` has no sinks at all.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Protocol, Union

from plan_insight.core.events.events import (
    MetricsInvalidatedEvent,
    NodeFlaggedEvent,
    PlanLoadedEvent,
)

LOGGER = logging.getLogger(__name__)

PlanEvent = Union[PlanLoadedEvent, NodeFlaggedEvent, MetricsInvalidatedEvent]


class EventSink(Protocol):
    def on_event(self, event: PlanEvent) -> None:
        """Consume a plan event."""


class EventBus:
    """Fans plan events out to registered sinks."""

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._emitted: Counter[str] = Counter()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def emitted(self) -> dict[str, int]:
        """Events delivered so far, by event class name."""
        return dict(self._emitted)

    def register(self, sink: EventSink) -> None:
        if self._closed:
            raise RuntimeError("cannot register a sink on a closed event bus")
        self._sinks.append(sink)

    def emit(self, event: PlanEvent) -> None:
        if self._closed:
            return
        self._emitted[type(event).__name__] += 1
        for sink in self._sinks:
            sink.on_event(event)

    def close(self) -> None:
        """
        Close every sink that has a close() method. Later emits are dropped.
        """
        if self._closed:
            return

        for sink in self._sinks:
            close_fn = getattr(sink, "close", None)
            if callable(close_fn):
                close_fn()

        self._closed = True
        LOGGER.debug("Event bus closed", extra={"emitted": dict(self._emitted)})


class NullEventBus(EventBus):
    """Bus without sinks; the engine's default when no bus is given."""

    def __init__(self) -> None:
        super().__init__(sinks=())
