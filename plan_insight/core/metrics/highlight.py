"""Highlight bar encoding for the selected dimension."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from plan_insight.core.domain.properties import HighlightType, NodeProp
from plan_insight.core.domain.types import PlanNode, PlanStats
from plan_insight.core.formatting import formatter


@dataclass(frozen=True, slots=True)
class Highlight:
    """Bar fill (0-100) and label for one node.

    ``label`` is None when the node lacks the raw metric; callers omit the
    bar in that case.
    """

    bar_fraction: int
    label: str | None


NO_HIGHLIGHT = Highlight(bar_fraction=0, label=None)


def bar_fraction(value: float, maximum: float | None) -> int:
    """Share of ``maximum``, rounded and clamped to [0, 100]."""
    if not maximum or maximum <= 0:
        return 0
    fraction = round(value / maximum * 100)
    return max(0, min(100, fraction))


def _rows(node: PlanNode) -> float | None:
    value = node.number(NodeProp.ACTUAL_ROWS_REVISED)
    if value is None:
        value = node.number(NodeProp.ACTUAL_ROWS)
    return value


def _cost_maximum(stats: PlanStats) -> float | None:
    return stats.max_cost if stats.max_cost is not None else stats.max_total_cost


_DIMENSIONS: dict[
    HighlightType,
    tuple[
        Callable[[PlanNode], float | None],
        Callable[[PlanStats], float | None],
        Callable[[float], str],
    ],
] = {
    HighlightType.DURATION: (
        lambda node: node.number(NodeProp.EXCLUSIVE_DURATION),
        lambda stats: stats.max_duration,
        formatter.duration,
    ),
    HighlightType.ROWS: (
        _rows,
        lambda stats: stats.max_rows,
        formatter.rows,
    ),
    HighlightType.COST: (
        lambda node: node.number(NodeProp.EXCLUSIVE_COST),
        _cost_maximum,
        formatter.cost,
    ),
}


def encode_highlight(
    dimension: HighlightType | str,
    node: PlanNode,
    stats: PlanStats,
) -> Highlight:
    """Bar fraction and label of ``node`` for ``dimension``."""
    dimension = HighlightType(dimension)
    if dimension is HighlightType.NONE:
        return NO_HIGHLIGHT

    value_of, maximum_of, label_of = _DIMENSIONS[dimension]
    value = value_of(node)
    if value is None:
        return NO_HIGHLIGHT
    return Highlight(
        bar_fraction=bar_fraction(value, maximum_of(stats)),
        label=label_of(value),
    )
