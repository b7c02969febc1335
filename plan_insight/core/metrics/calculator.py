"""Per-node derived metrics.

Every metric is either a number or None. None means the source telemetry was
absent; zero means it was measured and found to be zero. The two are never
conflated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from plan_insight.core.domain.properties import EstimateDirection, NodeProp
from plan_insight.core.domain.types import PlanNode, PlanStats
from plan_insight.core.metrics.aggregator import estimate_factor

ROWS_REMOVED_KEYS: tuple[tuple[NodeProp, NodeProp], ...] = (
    # (removed key, matching actual-rows key); revised keys first.
    (NodeProp.ROWS_REMOVED_BY_FILTER_REVISED, NodeProp.ACTUAL_ROWS_REVISED),
    (NodeProp.ROWS_REMOVED_BY_JOIN_FILTER_REVISED, NodeProp.ACTUAL_ROWS_REVISED),
    (NodeProp.ROWS_REMOVED_BY_FILTER, NodeProp.ACTUAL_ROWS),
    (NodeProp.ROWS_REMOVED_BY_JOIN_FILTER, NodeProp.ACTUAL_ROWS),
)


@dataclass(frozen=True, slots=True)
class DerivedMetrics:
    """Derived numbers for one node, relative to the whole plan."""

    node_id: int

    duration_percent: int | None
    cost_percent: int | None

    rows_removed: float | None
    rows_removed_key: str | None
    rows_removed_percent: int | None
    rows_removed_percent_display: str | None

    heap_fetches_percent: float | None

    estimation_factor: float | None
    estimation_direction: EstimateDirection | None

    workers_planned: int | None
    workers_launched: int | None

    never_executed: bool
    has_several_loops: bool

    @property
    def all_workers_launched(self) -> bool:
        return self.workers_planned == self.workers_launched or not self.workers_launched


# ---------------------------------------------------------------------------
# Individual metrics
# ---------------------------------------------------------------------------


def _percent_of(value: float | None, whole: float | None) -> int | None:
    if value is None or whole is None:
        return None
    if whole == 0:
        return 0
    return round(value / whole * 100)


def effective_execution_time(stats: PlanStats, root: PlanNode | None = None) -> float | None:
    """Plan execution time, falling back to the root node's total time."""
    if stats.execution_time is not None:
        return stats.execution_time
    if root is None:
        return None
    return root.number(NodeProp.ACTUAL_TOTAL_TIME)


def duration_percent(node: PlanNode, execution_time: float | None) -> int | None:
    return _percent_of(node.number(NodeProp.EXCLUSIVE_DURATION), execution_time)


def cost_percent(node: PlanNode, stats: PlanStats) -> int | None:
    return _percent_of(node.number(NodeProp.EXCLUSIVE_COST), stats.max_total_cost)


def rows_removed(node: PlanNode) -> tuple[str, float, float | None] | None:
    """(key, removed rows, matching actual rows) for the filter present on the node.

    A node carries at most one of the filter / join-filter counters.
    """
    for removed_key, actual_key in ROWS_REMOVED_KEYS:
        removed = node.number(removed_key)
        if removed is None:
            continue
        actual = node.number(actual_key)
        if actual is None and actual_key == NodeProp.ACTUAL_ROWS_REVISED:
            actual = node.number(NodeProp.ACTUAL_ROWS)
        return removed_key.value, removed, actual
    return None


def rows_removed_percent(removed: float | None, actual: float | None) -> int | None:
    """Floor of the removed share; undefined unless both counts are usable."""
    if removed is None or actual is None:
        return None
    total = removed + actual
    if total <= 0:
        return None
    return math.floor(removed / total * 100)


def rows_removed_display(percent: int | None) -> str | None:
    """Avoid claiming a perfect 0% or 100% filter."""
    if percent is None:
        return None
    if percent == 0:
        return "<1"
    if percent == 100:
        return ">99"
    return str(percent)


def heap_fetches_percent(node: PlanNode) -> float | None:
    fetches = node.number(NodeProp.HEAP_FETCHES)
    if fetches is None:
        return None
    rows = node.number(NodeProp.ACTUAL_ROWS_REVISED)
    if rows is None:
        actual = node.number(NodeProp.ACTUAL_ROWS)
        if actual is None:
            return None
        rows = actual * (node.number(NodeProp.ACTUAL_LOOPS) or 1)
    if rows <= 0:
        return None
    return fetches / rows * 100


def estimation(node: PlanNode) -> tuple[float | None, EstimateDirection | None]:
    """Planner row-estimate error factor and direction."""
    factor = node.number(NodeProp.PLANNER_ESTIMATE_FACTOR)
    raw_direction = node.get(NodeProp.PLANNER_ESTIMATE_DIRECTION)
    direction: EstimateDirection | None = None
    if raw_direction is not None:
        try:
            direction = EstimateDirection(raw_direction)
        except ValueError:
            direction = None
    if factor is not None:
        return factor, direction

    actual = node.number(NodeProp.ACTUAL_ROWS_REVISED)
    planned = node.number(NodeProp.PLAN_ROWS_REVISED)
    if actual is None or planned is None:
        actual = node.number(NodeProp.ACTUAL_ROWS)
        planned = node.number(NodeProp.PLAN_ROWS)
    estimate = estimate_factor(actual, planned)
    if estimate is None:
        return None, None
    return estimate


def workers_planned(node: PlanNode) -> int | None:
    value = node.number(NodeProp.WORKERS_PLANNED_BY_GATHER)
    if value is None:
        value = node.number(NodeProp.WORKERS_PLANNED)
    return None if value is None else int(value)


def workers_launched(node: PlanNode) -> int | None:
    """Number of worker records; None when the plan has no worker telemetry."""
    if node.workers is None:
        return None
    return len(node.workers)


def never_executed(node: PlanNode, stats: PlanStats) -> bool:
    """Node present in an analyzed plan but never run (e.g. a pruned branch)."""
    if stats.execution_time is None:
        return False
    return not node.number(NodeProp.ACTUAL_LOOPS)


def has_several_loops(node: PlanNode) -> bool:
    loops = node.number(NodeProp.ACTUAL_LOOPS)
    return loops is not None and loops > 1


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


def get_derived_metrics(
    node: PlanNode,
    stats: PlanStats,
    *,
    root: PlanNode | None = None,
) -> DerivedMetrics:
    """Compute the DerivedMetrics record for ``node``.

    ``root`` supplies the execution-time fallback when the plan itself does
    not report one.
    """
    removed = rows_removed(node)
    if removed is None:
        removed_key, removed_rows, removed_percent = None, None, None
    else:
        removed_key, removed_rows, actual = removed
        removed_percent = rows_removed_percent(removed_rows, actual)

    factor, direction = estimation(node)

    return DerivedMetrics(
        node_id=node.node_id,
        duration_percent=duration_percent(node, effective_execution_time(stats, root)),
        cost_percent=cost_percent(node, stats),
        rows_removed=removed_rows,
        rows_removed_key=removed_key,
        rows_removed_percent=removed_percent,
        rows_removed_percent_display=rows_removed_display(removed_percent),
        heap_fetches_percent=heap_fetches_percent(node),
        estimation_factor=factor,
        estimation_direction=direction,
        workers_planned=workers_planned(node),
        workers_launched=workers_launched(node),
        never_executed=never_executed(node, stats),
        has_several_loops=has_several_loops(node),
    )
