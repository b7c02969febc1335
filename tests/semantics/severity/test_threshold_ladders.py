"""
Semantic test: severity tiers from threshold tables.

Invariant:
Checks are strictly greater-than from the most severe tier down; a value
exactly on a bound stays in the lower tier and undefined values are NONE.
"""

from __future__ import annotations

import pytest

from plan_insight.core.domain.properties import SeverityMetric, Tier
from plan_insight.core.metrics.calculator import DerivedMetrics, get_derived_metrics
from plan_insight.core.metrics.metrics_config import MetricsConfig, ThresholdTable
from plan_insight.core.metrics.severity import classify_metric, classify_value, rows_removed_score


def _metrics(**overrides) -> DerivedMetrics:
    values = {
        "node_id": 1,
        "duration_percent": None,
        "cost_percent": None,
        "rows_removed": None,
        "rows_removed_key": None,
        "rows_removed_percent": None,
        "rows_removed_percent_display": None,
        "heap_fetches_percent": None,
        "estimation_factor": None,
        "estimation_direction": None,
        "workers_planned": None,
        "workers_launched": None,
        "never_executed": False,
        "has_several_loops": False,
    }
    values.update(overrides)
    return DerivedMetrics(**values)


@pytest.mark.parametrize(
    ("value", "tier"),
    [
        (None, Tier.NONE),
        (0, Tier.NONE),
        (10, Tier.NONE),
        (10.5, Tier.LOW),
        (40, Tier.LOW),
        (41, Tier.MEDIUM),
        (90, Tier.MEDIUM),
        (91, Tier.HIGH),
        (100, Tier.HIGH),
    ],
)
def test_duration_ladder(value, tier) -> None:
    assert classify_metric(SeverityMetric.DURATION, _metrics(duration_percent=value)) == tier


def test_classification_is_monotonic() -> None:
    table = MetricsConfig().estimation
    tiers = [classify_value(v, table) for v in (1, 5, 11, 50, 101, 999, 1001, 10**6)]
    assert tiers == sorted(tiers)
    assert tiers[-1] == Tier.HIGH


def test_estimation_tiers() -> None:
    table = MetricsConfig().estimation
    assert [classify_value(v, table) for v in (5, 50, 500, 5000)] == [
        Tier.NONE,
        Tier.LOW,
        Tier.MEDIUM,
        Tier.HIGH,
    ]
    assert classify_metric("estimation", _metrics(estimation_factor=10.0)) == Tier.NONE
    assert classify_metric("estimation", _metrics(estimation_factor=150.0)) == Tier.MEDIUM


def test_rows_removed_weights_by_duration() -> None:
    heavy_but_fast = _metrics(rows_removed_percent=99, duration_percent=1)
    heavy_and_slow = _metrics(rows_removed_percent=75, duration_percent=57)

    assert rows_removed_score(heavy_but_fast) == 99
    assert classify_metric(SeverityMetric.ROWS_REMOVED, heavy_but_fast) == Tier.NONE
    assert classify_metric(SeverityMetric.ROWS_REMOVED, heavy_and_slow) == Tier.HIGH


def test_rows_removed_undefined_without_duration() -> None:
    metrics = _metrics(rows_removed_percent=99)
    assert rows_removed_score(metrics) is None
    assert classify_metric(SeverityMetric.ROWS_REMOVED, metrics) == Tier.NONE


def test_critical_tier_only_when_configured() -> None:
    metrics = _metrics(duration_percent=99)
    config = MetricsConfig(duration=ThresholdTable(low=10, medium=40, high=90, critical=95))

    assert classify_metric(SeverityMetric.DURATION, metrics) == Tier.HIGH
    assert classify_metric(SeverityMetric.DURATION, metrics, config) == Tier.CRITICAL


def test_plan_tiers(hash_join_tree) -> None:
    tiers = {
        node.node_id: classify_metric(
            SeverityMetric.DURATION,
            get_derived_metrics(node, hash_join_tree.stats, root=hash_join_tree.root),
        )
        for node in hash_join_tree.nodes()
    }
    assert tiers == {1: Tier.LOW, 2: Tier.MEDIUM, 3: Tier.NONE, 4: Tier.NONE}
