"""
Logging event sink.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import Any


class LoggingEventSink:
    """Writes plan events to a logger, one record per event."""

    def __init__(self, logger: logging.Logger, level: int = logging.INFO) -> None:
        self._logger = logger
        self._level = level

    def on_event(self, event: Any) -> None:
        payload = asdict(event) if is_dataclass(event) else {"event": str(event)}
        self._logger.log(
            self._level,
            "plan_event %s",
            type(event).__name__,
            extra={"event": payload},
        )


class RecordingEventSink:
    """Keeps every plan event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]
