"""
Domain event models.

Facts observed while deriving metrics for a loaded plan. They are consumed
by loggers and by whatever monitoring the hosting viewer wires in.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class PlanLoadedEvent:
    node_count: int

    execution_time: float | None
    planning_time: float | None

    max_duration: float | None
    max_rows: float | None
    max_total_cost: float | None


@dataclass(slots=True)
class NodeFlaggedEvent:
    node_id: int
    node_type: str | None

    metric: str
    tier: str
    value: float | None


@dataclass(slots=True)
class MetricsInvalidatedEvent:
    cached_metrics: int
    cached_highlights: int
