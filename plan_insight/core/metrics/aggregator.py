"""Tree aggregation: node annotation and plan-wide maxima.

Runs once per loaded plan, before any per-node metric is computed.
``annotate_tree`` fills in the derived ``*`` keys that the engine does not
report (values already present are kept), and ``compute_plan_stats`` walks
the tree once to collect plan-wide maxima.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from plan_insight.core.domain.errors import PlanStructureError
from plan_insight.core.domain.properties import EstimateDirection, NodeProp
from plan_insight.core.domain.types import PlanDocument, PlanNode, PlanStats, PlanTree

LOGGER = logging.getLogger(__name__)

GATHER_NODE_TYPES: frozenset[str] = frozenset({"Gather", "Gather Merge"})


def iter_nodes(root: PlanNode) -> Iterator[PlanNode]:
    """Depth-first pre-order traversal; usable without any plan stats."""
    return root.walk()


# ---------------------------------------------------------------------------
# Annotation
# ---------------------------------------------------------------------------


def estimate_factor(actual: float | None, planned: float | None) -> tuple[float, EstimateDirection] | None:
    """Planner misestimate factor (always >= 1) and its direction."""
    if actual is None or planned is None:
        return None
    if actual == planned:
        return 1.0, EstimateDirection.NONE
    if actual > planned:
        # Engines never plan fewer than one row; a zero here is a rounding artefact.
        return actual / max(planned, 1.0), EstimateDirection.UNDER
    return planned / max(actual, 1.0), EstimateDirection.OVER


def _revised(node: PlanNode, prop: NodeProp, loops: float) -> float | None:
    value = node.number(prop)
    return None if value is None else value * loops


def _wall_time(node: PlanNode, workers_planned_by_gather: float | None) -> float | None:
    """Total time across loops, divided among the leader and its parallel workers."""
    total_time = node.number(NodeProp.ACTUAL_TOTAL_TIME)
    if total_time is None:
        return None
    loops = node.number(NodeProp.ACTUAL_LOOPS) or 1
    return total_time * loops / ((workers_planned_by_gather or 0) + 1)


def _derived_properties(
    node: PlanNode,
    workers_planned_by_gather: float | None,
    children_workers_planned: float | None,
) -> dict[str, Any]:
    """Derived keys for ``node`` that the engine did not report.

    ``workers_planned_by_gather`` is inherited from the nearest Gather above
    ``node``; ``children_workers_planned`` is what its children inherit.
    """
    derived: dict[str, Any] = {}
    raw_loops = node.number(NodeProp.ACTUAL_LOOPS)
    loops = raw_loops if raw_loops else 1

    pairs = (
        (NodeProp.ACTUAL_ROWS_REVISED, NodeProp.ACTUAL_ROWS),
        (NodeProp.PLAN_ROWS_REVISED, NodeProp.PLAN_ROWS),
        (NodeProp.ROWS_REMOVED_BY_FILTER_REVISED, NodeProp.ROWS_REMOVED_BY_FILTER),
        (NodeProp.ROWS_REMOVED_BY_JOIN_FILTER_REVISED, NodeProp.ROWS_REMOVED_BY_JOIN_FILTER),
    )
    for revised_key, raw_key in pairs:
        value = _revised(node, raw_key, loops)
        if value is not None:
            derived[revised_key] = value

    exclusive = _wall_time(node, workers_planned_by_gather)
    if exclusive is not None:
        for child in node.plans:
            child_time = _wall_time(child, children_workers_planned)
            if child_time is not None:
                exclusive -= child_time
        derived[NodeProp.EXCLUSIVE_DURATION] = max(exclusive, 0.0)

    total_cost = node.number(NodeProp.TOTAL_COST)
    if total_cost is not None:
        exclusive_cost = total_cost
        for child in node.plans:
            child_cost = child.number(NodeProp.TOTAL_COST)
            if child_cost is not None:
                exclusive_cost -= child_cost
        derived[NodeProp.EXCLUSIVE_COST] = max(exclusive_cost, 0.0)

    actual = derived.get(NodeProp.ACTUAL_ROWS_REVISED, node.number(NodeProp.ACTUAL_ROWS_REVISED))
    planned = derived.get(NodeProp.PLAN_ROWS_REVISED, node.number(NodeProp.PLAN_ROWS_REVISED))
    estimate = estimate_factor(actual, planned)
    if estimate is not None:
        derived[NodeProp.PLANNER_ESTIMATE_FACTOR] = estimate[0]
        derived[NodeProp.PLANNER_ESTIMATE_DIRECTION] = estimate[1].value

    if children_workers_planned is not None:
        derived[NodeProp.WORKERS_PLANNED_BY_GATHER] = children_workers_planned

    # Keys the engine (or an earlier pass) already reported win.
    return {str(key): value for key, value in derived.items() if not node.has(key)}


def _annotate(node: PlanNode, workers_planned_by_gather: float | None) -> PlanNode:
    # A Gather runs in the leader only; its workers are planned for its subtree.
    children_workers_planned = workers_planned_by_gather
    if node.node_type in GATHER_NODE_TYPES:
        planned = node.number(NodeProp.WORKERS_PLANNED)
        if planned is not None:
            children_workers_planned = planned

    # Children need their own original values for the exclusive subtraction,
    # so the derivation runs on the unannotated children.
    derived = _derived_properties(node, workers_planned_by_gather, children_workers_planned)
    children = tuple(_annotate(child, children_workers_planned) for child in node.plans)
    return node.with_properties(derived, plans=children)


def annotate_tree(root: PlanNode) -> PlanNode:
    """Return a copy of the tree with derived keys filled in."""
    return _annotate(root, None)


# ---------------------------------------------------------------------------
# Plan-wide maxima
# ---------------------------------------------------------------------------


def _max(current: float | None, value: float | None) -> float | None:
    if value is None:
        return current
    if current is None or value > current:
        return value
    return current


def compute_plan_stats(
    root: PlanNode,
    *,
    execution_time: float | None = None,
    planning_time: float | None = None,
) -> PlanStats:
    """Single pass over the tree collecting plan-wide maxima."""
    max_duration: float | None = None
    max_rows: float | None = None
    max_cost: float | None = None
    max_total_cost: float | None = None
    max_estimate_factor: float | None = None
    count = 0

    for node in iter_nodes(root):
        count += 1
        max_duration = _max(max_duration, node.number(NodeProp.EXCLUSIVE_DURATION))
        rows = node.number(NodeProp.ACTUAL_ROWS_REVISED)
        if rows is None:
            rows = node.number(NodeProp.ACTUAL_ROWS)
        max_rows = _max(max_rows, rows)
        max_cost = _max(max_cost, node.number(NodeProp.EXCLUSIVE_COST))
        max_total_cost = _max(max_total_cost, node.number(NodeProp.TOTAL_COST))
        max_estimate_factor = _max(max_estimate_factor, node.number(NodeProp.PLANNER_ESTIMATE_FACTOR))

    return PlanStats(
        max_duration=max_duration,
        max_rows=max_rows,
        max_cost=max_cost,
        max_total_cost=max_total_cost,
        max_estimate_factor=max_estimate_factor,
        execution_time=execution_time,
        planning_time=planning_time,
        node_count=count,
    )


def _check_node_ids(root: PlanNode) -> None:
    seen: set[int] = set()
    for node in iter_nodes(root):
        if node.node_id in seen:
            raise PlanStructureError(
                f"duplicate nodeId {node.node_id}",
                hint="node ids are assigned by the plan parser and must be unique per tree",
            )
        seen.add(node.node_id)


def build_plan_tree(
    plan: PlanNode | PlanDocument,
    *,
    execution_time: float | None = None,
    planning_time: float | None = None,
    annotate: bool = True,
) -> PlanTree:
    """Build the immutable PlanTree for a loaded plan.

    Timing arguments override the document's own values when given.
    """
    if isinstance(plan, PlanDocument):
        root = plan.plan
        if execution_time is None:
            execution_time = plan.execution_time
        if planning_time is None:
            planning_time = plan.planning_time
    else:
        root = plan

    _check_node_ids(root)
    if annotate:
        root = annotate_tree(root)

    stats = compute_plan_stats(
        root,
        execution_time=execution_time,
        planning_time=planning_time,
    )
    LOGGER.debug(
        "Plan aggregated",
        extra={
            "node_count": stats.node_count,
            "max_duration": stats.max_duration,
            "max_total_cost": stats.max_total_cost,
        },
    )
    return PlanTree(root=root, stats=stats)
