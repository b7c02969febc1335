from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from plan_insight.core.domain.properties import HighlightType, SeverityMetric, Tier
from plan_insight.core.formatting.formatter import approximate, duration

if TYPE_CHECKING:
    from plan_insight.viewer.engine import PlanMetricsEngine


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class NodeSummary:
    node_id: int
    depth: int
    node_type: str
    bar_fraction: int
    label: str | None
    duration_percent: int | None
    rows_removed_percent: str | None
    never_executed: bool
    tiers: dict[str, str]


@dataclass(frozen=True, slots=True)
class PlanSummary:
    node_count: int
    execution_time: float | None
    planning_time: float | None
    highlight: str
    nodes: List[NodeSummary]
    warnings: List[str]


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def _depths(engine: PlanMetricsEngine) -> dict[int, int]:
    depths: dict[int, int] = {}
    stack = [(engine.tree.root, 0)]
    while stack:
        node, depth = stack.pop()
        depths[node.node_id] = depth
        stack.extend((child, depth + 1) for child in node.plans)
    return depths


def summarize_plan(
    *,
    engine: PlanMetricsEngine,
    highlight: HighlightType = HighlightType.DURATION,
) -> PlanSummary:
    highlight = HighlightType(highlight)
    warnings: list[str] = []
    nodes: list[NodeSummary] = []
    depths = _depths(engine)
    stats = engine.tree.stats

    if stats.execution_time is None and engine.tree.root_total_time is None:
        warnings.append("Plan has no timing (plan-only EXPLAIN); duration metrics unavailable")

    for node in engine.tree.nodes():
        metrics = engine.get_derived_metrics(node)
        tiers = engine.classify_all(node)
        bar = engine.encode_highlight(highlight, node)
        node_type = node.node_type or "?"

        if metrics.never_executed:
            warnings.append(f"#{node.node_id} {node_type} was never executed")
        if not metrics.all_workers_launched:
            warnings.append(
                f"#{node.node_id} {node_type} launched {metrics.workers_launched} "
                f"of {metrics.workers_planned} planned workers"
            )
        for metric, tier in tiers.items():
            if tier >= engine.config.flag_tier:
                warnings.append(f"#{node.node_id} {node_type}: {metric.value} is {tier.label}")

        label = bar.label
        if label is not None and highlight is HighlightType.DURATION:
            label = approximate(label, metrics.has_several_loops)

        nodes.append(
            NodeSummary(
                node_id=node.node_id,
                depth=depths[node.node_id],
                node_type=node_type,
                bar_fraction=bar.bar_fraction,
                label=label,
                duration_percent=metrics.duration_percent,
                rows_removed_percent=metrics.rows_removed_percent_display,
                never_executed=metrics.never_executed,
                tiers={m.value: t.label for m, t in tiers.items() if t > Tier.NONE},
            )
        )

    return PlanSummary(
        node_count=stats.node_count,
        execution_time=stats.execution_time,
        planning_time=stats.planning_time,
        highlight=highlight.value,
        nodes=nodes,
        warnings=warnings,
    )


def worst_nodes(
    engine: PlanMetricsEngine,
    metric: SeverityMetric = SeverityMetric.DURATION,
    limit: int = 5,
) -> list[tuple[int, Tier]]:
    """Node ids with the highest tier for ``metric``, most severe first."""
    ranked = [
        (node.node_id, engine.classify(metric, node))
        for node in engine.tree.nodes()
    ]
    ranked = [item for item in ranked if item[1] > Tier.NONE]
    ranked.sort(key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

_BAR_WIDTH = 20


def print_plan_summary(summary: PlanSummary) -> None:
    print(f"Nodes: {summary.node_count}")
    print(f"Execution time: {duration(summary.execution_time) or 'n/a'}")
    print(f"Planning time: {duration(summary.planning_time) or 'n/a'}")
    print(f"Highlight: {summary.highlight}")
    print()

    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f"  - {w}")
        print()

    print("Nodes:")
    for n in summary.nodes:
        indent = "  " * (n.depth + 1)
        filled = round(n.bar_fraction / 100 * _BAR_WIDTH)
        bar = "#" * filled + "." * (_BAR_WIDTH - filled) if n.label is not None else " " * _BAR_WIDTH
        parts = [f"{indent}#{n.node_id} {n.node_type}", f"[{bar}] {n.label or ''}".rstrip()]
        if n.rows_removed_percent is not None:
            parts.append(f"removed {n.rows_removed_percent}%")
        if n.never_executed:
            parts.append("never executed")
        if n.tiers:
            parts.append(", ".join(f"{m}={t}" for m, t in sorted(n.tiers.items())))
        print(" | ".join(parts))


__all__ = [
    "NodeSummary",
    "PlanSummary",
    "summarize_plan",
    "worst_nodes",
    "print_plan_summary",
]
