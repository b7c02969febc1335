"""Public API for the plan_insight package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Property model
# ----------------------------------------------------------------------
from plan_insight.core.domain.errors import FormatError, PlanInsightError, PlanStructureError
from plan_insight.core.domain.properties import (
    EstimateDirection,
    HighlightType,
    NodeProp,
    PropType,
    SeverityMetric,
    Tier,
    type_of,
)

# ----------------------------------------------------------------------
# Plan data model
# ----------------------------------------------------------------------
from plan_insight.core.domain.types import (
    PlanDocument,
    PlanNode,
    PlanStats,
    PlanTree,
    Worker,
)

# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------
from plan_insight.core.events.event_bus import EventBus
from plan_insight.core.events.events import (
    MetricsInvalidatedEvent,
    NodeFlaggedEvent,
    PlanLoadedEvent,
)

# ----------------------------------------------------------------------
# Metrics core
# ----------------------------------------------------------------------
from plan_insight.core.formatting.formatter import EMPTY_MARKER, format_value
from plan_insight.core.metrics.aggregator import (
    annotate_tree,
    build_plan_tree,
    compute_plan_stats,
    iter_nodes,
)
from plan_insight.core.metrics.calculator import DerivedMetrics, get_derived_metrics
from plan_insight.core.metrics.highlight import Highlight, encode_highlight
from plan_insight.core.metrics.metrics_config import MetricsConfig, ThresholdTable
from plan_insight.core.metrics.severity import classify_metric, classify_value

# ----------------------------------------------------------------------
# Viewer facade
# ----------------------------------------------------------------------
from plan_insight.viewer.engine import PlanMetricsEngine

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Engine
    "PlanMetricsEngine",
    "MetricsConfig",
    "ThresholdTable",

    # Plan model
    "PlanDocument",
    "PlanNode",
    "PlanStats",
    "PlanTree",
    "Worker",
    "NodeProp",
    "PropType",
    "EstimateDirection",
    "HighlightType",
    "SeverityMetric",
    "Tier",
    "type_of",

    # Metrics
    "annotate_tree",
    "build_plan_tree",
    "compute_plan_stats",
    "iter_nodes",
    "DerivedMetrics",
    "get_derived_metrics",
    "classify_metric",
    "classify_value",
    "Highlight",
    "encode_highlight",
    "format_value",
    "EMPTY_MARKER",

    # Events
    "EventBus",
    "PlanLoadedEvent",
    "NodeFlaggedEvent",
    "MetricsInvalidatedEvent",

    # Errors
    "PlanInsightError",
    "FormatError",
    "PlanStructureError",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("plan-insight")
except PackageNotFoundError:
    __version__ = "0.0.0"
