"""Metrics engine facade used by the rendering layer.

One engine per loaded plan. Derived metrics are computed on first request
and cached per node; highlights are cached per (node, dimension). Callers
invalidate explicitly when they need a recomputation.
"""

# pylint: disable=too-many-instance-attributes
from __future__ import annotations

import logging
from typing import Any

from plan_insight.core.domain.properties import HighlightType, SeverityMetric, Tier
from plan_insight.core.domain.types import PlanDocument, PlanNode, PlanTree
from plan_insight.core.events.event_bus import EventBus, NullEventBus
from plan_insight.core.events.events import (
    MetricsInvalidatedEvent,
    NodeFlaggedEvent,
    PlanLoadedEvent,
)
from plan_insight.core.formatting.formatter import format_value
from plan_insight.core.metrics.aggregator import build_plan_tree
from plan_insight.core.metrics.calculator import DerivedMetrics, get_derived_metrics
from plan_insight.core.metrics.highlight import Highlight, encode_highlight
from plan_insight.core.metrics.metrics_config import MetricsConfig
from plan_insight.core.metrics.severity import classify_metric, metric_value

LOGGER = logging.getLogger(__name__)


class PlanMetricsEngine:
    """Derived metrics, severity tiers, highlights and display strings for one plan."""

    def __init__(
        self,
        tree: PlanTree,
        config: MetricsConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.tree = tree
        self.config = config if config is not None else MetricsConfig()
        self._event_bus = event_bus if event_bus is not None else NullEventBus()

        self._metrics: dict[int, DerivedMetrics] = {}
        self._tiers: dict[tuple[int, SeverityMetric], Tier] = {}
        self._highlights: dict[tuple[int, HighlightType], Highlight] = {}

        stats = tree.stats
        self._event_bus.emit(
            PlanLoadedEvent(
                node_count=stats.node_count,
                execution_time=stats.execution_time,
                planning_time=stats.planning_time,
                max_duration=stats.max_duration,
                max_rows=stats.max_rows,
                max_total_cost=stats.max_total_cost,
            )
        )

    @classmethod
    def from_json_obj(
        cls,
        obj: Any,
        config: MetricsConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> PlanMetricsEngine:
        """Build an engine from an already-parsed JSON plan document."""
        document = PlanDocument.from_json_obj(obj)
        return cls(build_plan_tree(document), config=config, event_bus=event_bus)

    # ------------------------------------------------------------------
    # Rendering-layer API
    # ------------------------------------------------------------------

    def get_derived_metrics(self, node: PlanNode) -> DerivedMetrics:
        cached = self._metrics.get(node.node_id)
        if cached is None:
            cached = get_derived_metrics(node, self.tree.stats, root=self.tree.root)
            self._metrics[node.node_id] = cached
        return cached

    def classify(self, metric: SeverityMetric | str, node: PlanNode) -> Tier:
        metric = SeverityMetric(metric)
        key = (node.node_id, metric)
        tier = self._tiers.get(key)
        if tier is not None:
            return tier

        metrics = self.get_derived_metrics(node)
        tier = classify_metric(metric, metrics, self.config)
        self._tiers[key] = tier

        if tier >= self.config.flag_tier:
            self._event_bus.emit(
                NodeFlaggedEvent(
                    node_id=node.node_id,
                    node_type=node.node_type,
                    metric=metric.value,
                    tier=tier.label,
                    value=metric_value(metric, metrics),
                )
            )
        return tier

    def classify_all(self, node: PlanNode) -> dict[SeverityMetric, Tier]:
        return {metric: self.classify(metric, node) for metric in SeverityMetric}

    def encode_highlight(self, dimension: HighlightType | str, node: PlanNode) -> Highlight:
        dimension = HighlightType(dimension)
        key = (node.node_id, dimension)
        cached = self._highlights.get(key)
        if cached is None:
            cached = encode_highlight(dimension, node, self.tree.stats)
            self._highlights[key] = cached
        return cached

    def format(self, key: str, value: Any) -> str:
        return format_value(key, value, block_size=self.config.block_size_bytes)

    # ------------------------------------------------------------------
    # Cache control
    # ------------------------------------------------------------------

    def invalidate(self, node_id: int | None = None) -> None:
        """Drop cached results for one node, or for every node."""
        if node_id is None:
            cached_metrics = len(self._metrics)
            cached_highlights = len(self._highlights)
            self._metrics.clear()
            self._tiers.clear()
            self._highlights.clear()
        else:
            cached_metrics = 1 if self._metrics.pop(node_id, None) is not None else 0
            self._tiers = {k: v for k, v in self._tiers.items() if k[0] != node_id}
            before = len(self._highlights)
            self._highlights = {k: v for k, v in self._highlights.items() if k[0] != node_id}
            cached_highlights = before - len(self._highlights)

        LOGGER.debug(
            "Metrics cache invalidated",
            extra={"node_id": node_id, "metrics": cached_metrics, "highlights": cached_highlights},
        )
        self._event_bus.emit(
            MetricsInvalidatedEvent(
                cached_metrics=cached_metrics,
                cached_highlights=cached_highlights,
            )
        )
