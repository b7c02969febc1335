"""Core plan data models.

A plan node is a mapping from engine property keys to values. The models in
this module keep that mapping intact (``properties``) and lift out only the
structural keys: the node id, the child plans and the worker records.
Absent values are ``None``; nothing here coerces ``None`` to zero.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from plan_insight.core.domain.properties import NodeProp

LOGGER = logging.getLogger(__name__)


def as_number(value: Any, *, key: str | None = None) -> float | int | None:
    """Return ``value`` as a number, or None when it is absent or not numeric."""
    if value is None:
        return None
    if isinstance(value, bool):
        LOGGER.debug("Boolean in numeric field ignored", extra={"key": key})
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            LOGGER.debug("Non-numeric value in numeric field", extra={"key": key, "value": value})
            return None
        return parsed if math.isfinite(parsed) else None
    LOGGER.debug("Unsupported value type in numeric field", extra={"key": key})
    return None


def _collect_into_properties(data: Any, reserved: dict[str, str]) -> Any:
    """Move every non-structural key of a raw engine mapping into ``properties``.

    ``reserved`` maps accepted input names (field names and engine aliases)
    to field names.
    """
    if not isinstance(data, dict):
        return data

    d = dict(data)
    explicit = d.pop("properties", None)

    collected: dict[str, Any] = {}
    if isinstance(explicit, dict):
        collected.update(explicit)

    out: dict[str, Any] = {}
    for key, value in d.items():
        if key in reserved:
            out[reserved[key]] = value
        else:
            collected[str(key)] = value

    out["properties"] = collected
    return out


# ---------------------------------------------------------------------------
# Plan models
# ---------------------------------------------------------------------------


class Worker(BaseModel):
    """Counters reported by one parallel worker of a node."""

    properties: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _collect_properties(cls, data: Any) -> Any:
        return _collect_into_properties(data, reserved={})

    @property
    def worker_number(self) -> int | None:
        value = as_number(self.properties.get(NodeProp.WORKER_NUMBER), key=NodeProp.WORKER_NUMBER)
        return None if value is None else int(value)

    def get(self, prop: str) -> Any:
        return self.properties.get(prop)

    def number(self, prop: str) -> float | int | None:
        return as_number(self.properties.get(prop), key=prop)

    def to_raw(self) -> dict[str, Any]:
        return dict(self.properties)


class PlanNode(BaseModel):
    """One operator of a query execution plan.

    Built from the raw engine mapping::

        PlanNode.model_validate({
            "nodeId": 1,
            "Node Type": "Seq Scan",
            "Actual Total Time": 12.5,
            "Plans": [...],
        })

    ``properties`` keeps every key other than ``nodeId``, ``Plans`` and
    ``Workers`` exactly as reported.
    """

    node_id: int = Field(..., alias="nodeId", ge=0)
    plans: tuple[PlanNode, ...] = Field(default=(), alias="Plans")
    workers: tuple[Worker, ...] | None = Field(default=None, alias="Workers")
    properties: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _collect_properties(cls, data: Any) -> Any:
        return _collect_into_properties(
            data,
            reserved={
                "nodeId": "node_id",
                "node_id": "node_id",
                "Plans": "plans",
                "plans": "plans",
                "Workers": "workers",
                "workers": "workers",
            },
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def node_type(self) -> str | None:
        value = self.properties.get(NodeProp.NODE_TYPE)
        return None if value is None else str(value)

    def has(self, prop: str) -> bool:
        return prop in self.properties

    def get(self, prop: str) -> Any:
        if prop == NodeProp.NODE_ID:
            return self.node_id
        if prop == NodeProp.PLANS:
            return list(self.plans)
        if prop == NodeProp.WORKERS:
            return None if self.workers is None else list(self.workers)
        return self.properties.get(prop)

    def number(self, prop: str) -> float | int | None:
        """Numeric value of ``prop``; None when absent or not numeric."""
        return as_number(self.properties.get(prop), key=prop)

    def walk(self) -> Iterator[PlanNode]:
        """Depth-first pre-order traversal of this node and its descendants."""
        stack: list[PlanNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.plans))

    def with_properties(
        self,
        updates: dict[str, Any],
        plans: tuple[PlanNode, ...] | None = None,
    ) -> PlanNode:
        """Return a copy with ``updates`` merged into the properties."""
        merged = dict(self.properties)
        merged.update(updates)
        changes: dict[str, Any] = {"properties": merged}
        if plans is not None:
            changes["plans"] = plans
        return self.model_copy(update=changes)

    def to_raw(self) -> dict[str, Any]:
        """Flatten back into the engine mapping shape."""
        raw: dict[str, Any] = {NodeProp.NODE_ID.value: self.node_id}
        raw.update(self.properties)
        if self.plans:
            raw[NodeProp.PLANS.value] = [child.to_raw() for child in self.plans]
        if self.workers is not None:
            raw[NodeProp.WORKERS.value] = [worker.to_raw() for worker in self.workers]
        return raw


class PlanDocument(BaseModel):
    """A parsed plan as handed over by the plan parser.

    Accepts the ``EXPLAIN (FORMAT JSON)`` shape, including the single-element
    list wrapper emitted by the engine.
    """

    plan: PlanNode = Field(..., alias="Plan")
    execution_time: float | None = Field(default=None, alias="Execution Time")
    planning_time: float | None = Field(default=None, alias="Planning Time")
    query_text: str | None = Field(default=None, alias="Query Text")

    # Triggers, JIT, Settings and friends are not used by the metrics core.
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            if len(data) != 1:
                raise ValueError("plan document list must contain exactly one plan")
            return data[0]
        return data

    @field_validator("execution_time", "planning_time", mode="before")
    @classmethod
    def _lenient_timing(cls, value: Any, info: ValidationInfo) -> float | None:
        number = as_number(value, key=info.field_name)
        if number is not None and number < 0:
            LOGGER.debug("Negative timing ignored", extra={"key": info.field_name, "value": number})
            return None
        return number

    @classmethod
    def from_json_obj(cls, obj: Any) -> PlanDocument:
        """Create a PlanDocument from a JSON-compatible object."""
        return cls.model_validate(obj)


# ---------------------------------------------------------------------------
# Plan-wide aggregates (internal, not part of the JSON schema)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PlanStats:
    """Plan-wide statistics computed once per loaded plan.

    Every ``max_*`` value is the largest value seen on any node, or None when
    no node reports that metric.
    """

    max_duration: float | None = None
    max_rows: float | None = None
    max_cost: float | None = None
    max_total_cost: float | None = None
    max_estimate_factor: float | None = None
    execution_time: float | None = None
    planning_time: float | None = None
    node_count: int = 0


@dataclass(frozen=True, slots=True)
class PlanTree:
    """Root node plus plan-wide statistics. Read-only once built."""

    root: PlanNode
    stats: PlanStats
    _index: dict[int, PlanNode] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {node.node_id: node for node in self.root.walk()})

    def nodes(self) -> Iterator[PlanNode]:
        return self.root.walk()

    def node(self, node_id: int) -> PlanNode | None:
        return self._index.get(node_id)

    @property
    def root_total_time(self) -> float | None:
        return self.root.number(NodeProp.ACTUAL_TOTAL_TIME)
