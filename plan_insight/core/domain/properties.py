"""Node property model.

Closed set of recognised plan node property keys, the display type of each
key, and the small enumerations shared by the metrics and formatting layers.

Keys prefixed with ``*`` are derived by the tree annotation pass; every other
key is reported verbatim by the database engine.
"""

# pylint: disable=line-too-long
from __future__ import annotations

import re
from enum import IntEnum, StrEnum


class NodeProp(StrEnum):
    # ------------------------------------------------------------------
    # Engine-reported keys
    # ------------------------------------------------------------------
    NODE_ID = "nodeId"
    NODE_TYPE = "Node Type"
    PARENT_RELATIONSHIP = "Parent Relationship"
    SUBPLAN_NAME = "Subplan Name"
    PLANS = "Plans"
    WORKERS = "Workers"

    RELATION_NAME = "Relation Name"
    SCHEMA = "Schema"
    ALIAS = "Alias"
    CTE_NAME = "CTE Name"
    FUNCTION_NAME = "Function Name"
    INDEX_NAME = "Index Name"
    JOIN_TYPE = "Join Type"
    STRATEGY = "Strategy"
    PARTIAL_MODE = "Partial Mode"
    SCAN_DIRECTION = "Scan Direction"
    OPERATION = "Operation"
    SORT_METHOD = "Sort Method"
    SORT_SPACE_TYPE = "Sort Space Type"

    FILTER = "Filter"
    JOIN_FILTER = "Join Filter"
    HASH_CONDITION = "Hash Cond"
    MERGE_CONDITION = "Merge Cond"
    INDEX_CONDITION = "Index Cond"
    RECHECK_CONDITION = "Recheck Cond"
    OUTPUT = "Output"

    GROUP_KEY = "Group Key"
    SORT_KEY = "Sort Key"
    PRESORTED_KEY = "Presorted Key"
    HASH_KEY = "Hash Key"
    GROUPING_SETS = "Grouping Sets"

    PARALLEL_AWARE = "Parallel Aware"
    ASYNC_CAPABLE = "Async Capable"
    INNER_UNIQUE = "Inner Unique"
    SINGLE_COPY = "Single Copy"

    STARTUP_COST = "Startup Cost"
    TOTAL_COST = "Total Cost"
    PLAN_ROWS = "Plan Rows"
    PLAN_WIDTH = "Plan Width"

    ACTUAL_STARTUP_TIME = "Actual Startup Time"
    ACTUAL_TOTAL_TIME = "Actual Total Time"
    ACTUAL_ROWS = "Actual Rows"
    ACTUAL_LOOPS = "Actual Loops"

    ROWS_REMOVED_BY_FILTER = "Rows Removed by Filter"
    ROWS_REMOVED_BY_JOIN_FILTER = "Rows Removed by Join Filter"
    ROWS_REMOVED_BY_INDEX_RECHECK = "Rows Removed by Index Recheck"
    HEAP_FETCHES = "Heap Fetches"
    EXACT_HEAP_BLOCKS = "Exact Heap Blocks"
    LOSSY_HEAP_BLOCKS = "Lossy Heap Blocks"

    WORKER_NUMBER = "Worker Number"
    WORKERS_PLANNED = "Workers Planned"
    WORKERS_LAUNCHED = "Workers Launched"

    SHARED_HIT_BLOCKS = "Shared Hit Blocks"
    SHARED_READ_BLOCKS = "Shared Read Blocks"
    SHARED_DIRTIED_BLOCKS = "Shared Dirtied Blocks"
    SHARED_WRITTEN_BLOCKS = "Shared Written Blocks"
    LOCAL_HIT_BLOCKS = "Local Hit Blocks"
    LOCAL_READ_BLOCKS = "Local Read Blocks"
    LOCAL_DIRTIED_BLOCKS = "Local Dirtied Blocks"
    LOCAL_WRITTEN_BLOCKS = "Local Written Blocks"
    TEMP_READ_BLOCKS = "Temp Read Blocks"
    TEMP_WRITTEN_BLOCKS = "Temp Written Blocks"
    IO_READ_TIME = "I/O Read Time"
    IO_WRITE_TIME = "I/O Write Time"

    SORT_SPACE_USED = "Sort Space Used"
    PEAK_MEMORY_USAGE = "Peak Memory Usage"
    HASH_BUCKETS = "Hash Buckets"
    ORIGINAL_HASH_BUCKETS = "Original Hash Buckets"
    HASH_BATCHES = "Hash Batches"
    ORIGINAL_HASH_BATCHES = "Original Hash Batches"
    DISK_USAGE = "Disk Usage"
    CACHE_HITS = "Cache Hits"
    CACHE_MISSES = "Cache Misses"
    CACHE_EVICTIONS = "Cache Evictions"

    # ------------------------------------------------------------------
    # Derived keys (tree annotation pass)
    # ------------------------------------------------------------------
    EXCLUSIVE_DURATION = "*Duration (exclusive)"
    EXCLUSIVE_COST = "*Cost (exclusive)"
    ACTUAL_ROWS_REVISED = "*Actual Rows Revised"
    PLAN_ROWS_REVISED = "*Plan Rows Revised"
    ROWS_REMOVED_BY_FILTER_REVISED = "*Rows Removed by Filter"
    ROWS_REMOVED_BY_JOIN_FILTER_REVISED = "*Rows Removed by Join Filter"
    PLANNER_ESTIMATE_FACTOR = "*Planner Row Estimate Factor"
    PLANNER_ESTIMATE_DIRECTION = "*Planner Row Estimate Direction"
    WORKERS_PLANNED_BY_GATHER = "*Workers Planned By Gather"


class PropType(StrEnum):
    DURATION = "duration"
    COST = "cost"
    ROWS = "rows"
    BYTES = "bytes"
    KILOBYTES = "kilobytes"
    FACTOR = "factor"
    PERCENTAGE = "percentage"
    LIST = "list"
    KEYS = "keys"
    BLOCKS = "blocks"
    BOOLEAN = "boolean"
    INCREMENT = "increment"
    LOOPS = "loops"
    DIRECTION = "direction"
    TEXT = "text"


class EstimateDirection(StrEnum):
    OVER = "over"
    UNDER = "under"
    NONE = "none"


class HighlightType(StrEnum):
    NONE = "none"
    DURATION = "duration"
    ROWS = "rows"
    COST = "cost"


class Tier(IntEnum):
    """Severity tier. Ordering follows severity."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.lower()


class SeverityMetric(StrEnum):
    DURATION = "duration"
    COST = "cost"
    ESTIMATION = "estimation"
    HEAP_FETCHES = "heap_fetches"
    ROWS_REMOVED = "rows_removed"


# Keys whose type is not TEXT. Anything missing here is displayed verbatim.
PROPERTY_TYPES: dict[NodeProp, PropType] = {
    NodeProp.NODE_ID: PropType.INCREMENT,
    NodeProp.PLANS: PropType.LIST,
    NodeProp.WORKERS: PropType.LIST,
    NodeProp.OUTPUT: PropType.LIST,

    NodeProp.GROUP_KEY: PropType.KEYS,
    NodeProp.SORT_KEY: PropType.KEYS,
    NodeProp.PRESORTED_KEY: PropType.KEYS,
    NodeProp.HASH_KEY: PropType.KEYS,
    NodeProp.GROUPING_SETS: PropType.KEYS,

    NodeProp.PARALLEL_AWARE: PropType.BOOLEAN,
    NodeProp.ASYNC_CAPABLE: PropType.BOOLEAN,
    NodeProp.INNER_UNIQUE: PropType.BOOLEAN,
    NodeProp.SINGLE_COPY: PropType.BOOLEAN,

    NodeProp.STARTUP_COST: PropType.COST,
    NodeProp.TOTAL_COST: PropType.COST,
    NodeProp.EXCLUSIVE_COST: PropType.COST,
    NodeProp.PLAN_ROWS: PropType.ROWS,
    NodeProp.PLAN_WIDTH: PropType.BYTES,

    NodeProp.ACTUAL_STARTUP_TIME: PropType.DURATION,
    NodeProp.ACTUAL_TOTAL_TIME: PropType.DURATION,
    NodeProp.EXCLUSIVE_DURATION: PropType.DURATION,
    NodeProp.IO_READ_TIME: PropType.DURATION,
    NodeProp.IO_WRITE_TIME: PropType.DURATION,

    NodeProp.ACTUAL_ROWS: PropType.ROWS,
    NodeProp.ACTUAL_ROWS_REVISED: PropType.ROWS,
    NodeProp.PLAN_ROWS_REVISED: PropType.ROWS,
    NodeProp.ACTUAL_LOOPS: PropType.LOOPS,
    NodeProp.ROWS_REMOVED_BY_FILTER: PropType.ROWS,
    NodeProp.ROWS_REMOVED_BY_JOIN_FILTER: PropType.ROWS,
    NodeProp.ROWS_REMOVED_BY_INDEX_RECHECK: PropType.ROWS,
    NodeProp.ROWS_REMOVED_BY_FILTER_REVISED: PropType.ROWS,
    NodeProp.ROWS_REMOVED_BY_JOIN_FILTER_REVISED: PropType.ROWS,
    NodeProp.HEAP_FETCHES: PropType.ROWS,

    NodeProp.PLANNER_ESTIMATE_FACTOR: PropType.FACTOR,
    NodeProp.PLANNER_ESTIMATE_DIRECTION: PropType.DIRECTION,

    NodeProp.WORKER_NUMBER: PropType.INCREMENT,
    NodeProp.WORKERS_PLANNED: PropType.INCREMENT,
    NodeProp.WORKERS_LAUNCHED: PropType.INCREMENT,
    NodeProp.WORKERS_PLANNED_BY_GATHER: PropType.INCREMENT,

    NodeProp.EXACT_HEAP_BLOCKS: PropType.BLOCKS,
    NodeProp.LOSSY_HEAP_BLOCKS: PropType.BLOCKS,
    NodeProp.SHARED_HIT_BLOCKS: PropType.BLOCKS,
    NodeProp.SHARED_READ_BLOCKS: PropType.BLOCKS,
    NodeProp.SHARED_DIRTIED_BLOCKS: PropType.BLOCKS,
    NodeProp.SHARED_WRITTEN_BLOCKS: PropType.BLOCKS,
    NodeProp.LOCAL_HIT_BLOCKS: PropType.BLOCKS,
    NodeProp.LOCAL_READ_BLOCKS: PropType.BLOCKS,
    NodeProp.LOCAL_DIRTIED_BLOCKS: PropType.BLOCKS,
    NodeProp.LOCAL_WRITTEN_BLOCKS: PropType.BLOCKS,
    NodeProp.TEMP_READ_BLOCKS: PropType.BLOCKS,
    NodeProp.TEMP_WRITTEN_BLOCKS: PropType.BLOCKS,

    NodeProp.SORT_SPACE_USED: PropType.KILOBYTES,
    NodeProp.PEAK_MEMORY_USAGE: PropType.KILOBYTES,
    NodeProp.DISK_USAGE: PropType.KILOBYTES,
    NodeProp.HASH_BUCKETS: PropType.INCREMENT,
    NodeProp.ORIGINAL_HASH_BUCKETS: PropType.INCREMENT,
    NodeProp.HASH_BATCHES: PropType.INCREMENT,
    NodeProp.ORIGINAL_HASH_BATCHES: PropType.INCREMENT,
    NodeProp.CACHE_HITS: PropType.INCREMENT,
    NodeProp.CACHE_MISSES: PropType.INCREMENT,
    NodeProp.CACHE_EVICTIONS: PropType.INCREMENT,
}

# Named keys inside a grouping-set style mapping, in display order.
GROUPING_KEYS: tuple[str, ...] = (
    "Group Keys",
    "Hash Keys",
    "Sort Keys",
    "Presorted Key",
)

# Engine keys: words, digits, spaces and a little punctuation, optionally
# carrying the "*" derived-key prefix.
_PLAUSIBLE_KEY = re.compile(r"^\*?[A-Za-z][A-Za-z0-9 _/().:%#'-]*$")


def _lookup(key: str) -> NodeProp | None:
    try:
        return NodeProp(key)
    except ValueError:
        return None


def is_known_key(key: object) -> bool:
    return isinstance(key, str) and _lookup(key) is not None


def is_plausible_key(key: object) -> bool:
    """Return True for keys the engine could plausibly emit but we don't model."""
    if not isinstance(key, str):
        return False
    if key != key.strip() or len(key) > 128:
        return False
    return _PLAUSIBLE_KEY.match(key) is not None


def type_of(key: str) -> PropType:
    """Return the display type for ``key``; unknown keys are TEXT."""
    prop = _lookup(key) if isinstance(key, str) else None
    if prop is None:
        return PropType.TEXT
    return PROPERTY_TYPES.get(prop, PropType.TEXT)
