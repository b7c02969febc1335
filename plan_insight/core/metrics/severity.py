"""Severity classification.

Each metric maps to a tier through its own threshold table. Checks are
strictly-greater-than and run from the most severe tier down; the first
match wins. Undefined inputs always classify as ``Tier.NONE``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from plan_insight.core.domain.properties import SeverityMetric, Tier
from plan_insight.core.metrics.metrics_config import MetricsConfig

if TYPE_CHECKING:
    from plan_insight.core.metrics.calculator import DerivedMetrics
    from plan_insight.core.metrics.metrics_config import ThresholdTable


_DEFAULT_CONFIG = MetricsConfig()


def classify_value(value: float | None, table: ThresholdTable) -> Tier:
    """Map a single value onto ``table``."""
    if value is None:
        return Tier.NONE
    for tier, bound in table.ladder():
        if value > bound:
            return tier
    return Tier.NONE


def rows_removed_score(metrics: DerivedMetrics) -> float | None:
    """Rows-removed percent weighted by duration percent.

    Heavy filtering only matters when the node also takes a meaningful share
    of the execution time.
    """
    if metrics.rows_removed_percent is None or metrics.duration_percent is None:
        return None
    return metrics.rows_removed_percent * metrics.duration_percent


def metric_value(metric: SeverityMetric, metrics: DerivedMetrics) -> float | None:
    """The derived value a given severity metric is classified on."""
    metric = SeverityMetric(metric)
    if metric is SeverityMetric.DURATION:
        return metrics.duration_percent
    if metric is SeverityMetric.COST:
        return metrics.cost_percent
    if metric is SeverityMetric.ESTIMATION:
        return metrics.estimation_factor
    if metric is SeverityMetric.HEAP_FETCHES:
        return metrics.heap_fetches_percent
    return rows_removed_score(metrics)


def classify_metric(
    metric: SeverityMetric | str,
    metrics: DerivedMetrics,
    config: MetricsConfig | None = None,
) -> Tier:
    """Tier of ``metric`` for a node's derived metrics."""
    cfg = config if config is not None else _DEFAULT_CONFIG
    metric = SeverityMetric(metric)
    return classify_value(metric_value(metric, metrics), cfg.table_for(metric))


def classify_all(
    metrics: DerivedMetrics,
    config: MetricsConfig | None = None,
) -> dict[SeverityMetric, Tier]:
    return {metric: classify_metric(metric, metrics, config) for metric in SeverityMetric}
