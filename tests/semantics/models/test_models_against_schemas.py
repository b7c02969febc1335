"""Schema conformance tests for the plan Pydantic models.

Validates that the plan models accept documents their JSON Schemas accept,
and reject the documents their JSON Schemas reject. Tests are intentionally
explicit and repetitive so each failure names the broken contract.
"""

# pylint: disable=line-too-long,missing-function-docstring
# pylint: disable=redefined-outer-name,global-statement
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate as jsonschema_validate
from pydantic import ValidationError as PydanticValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from plan_insight.core.domain.types import PlanDocument, PlanNode
from plan_insight.core.metrics.aggregator import annotate_tree, build_plan_tree
from plan_insight.core.metrics.calculator import get_derived_metrics

SCHEMA_REGISTRY = Registry()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load_schema(name: str) -> dict:
    """
    Load a JSON schema bundled with the package.
    """
    global SCHEMA_REGISTRY

    root = Path(__file__).parent.parent.parent.parent
    schema_path = root / "plan_insight" / "core" / "schemas" / name

    with schema_path.open("r", encoding="utf-8") as f:
        schema = json.load(f)

    schema_id = schema.get("$id")
    if isinstance(schema_id, str) and schema_id:
        resource = Resource.from_contents(schema, default_specification=DRAFT202012)
        SCHEMA_REGISTRY = SCHEMA_REGISTRY.with_resource(schema_id, resource)

    return schema


def assert_pydantic_then_schema_ok(data: dict[str, Any], schema: dict[str, Any]) -> dict:
    """
    Validate with Pydantic first, then validate the flattened node with JSON Schema.
    """
    node = PlanNode.model_validate(data)
    instance = node.to_raw()
    jsonschema_validate(instance=instance, schema=schema, registry=SCHEMA_REGISTRY)
    return instance


def assert_schema_invalid_but_pydantic_rejects(model_type: Any, data: Any, schema: dict[str, Any]) -> None:
    """
    If the schema rejects a document, the model must reject it too.
    """
    with pytest.raises(JsonSchemaValidationError):
        jsonschema_validate(instance=data, schema=schema, registry=SCHEMA_REGISTRY)

    with pytest.raises(PydanticValidationError):
        model_type.model_validate(data)


def mk_node(node_id: int = 1, **props: Any) -> dict[str, Any]:
    node: dict[str, Any] = {"nodeId": node_id, "Node Type": "Seq Scan"}
    node.update(props)
    return node


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def plan_node_schema() -> dict:
    return load_schema("plan_node.schema.json")


@pytest.fixture(scope="module")
def plan_document_schema(plan_node_schema) -> dict:
    del plan_node_schema
    return load_schema("plan_document.schema.json")


# ---------------------------------------------------------------------------
# PlanNode
# ---------------------------------------------------------------------------

def test_plan_node_valid_minimal(plan_node_schema):
    instance = assert_pydantic_then_schema_ok({"nodeId": 0}, plan_node_schema)
    assert instance == {"nodeId": 0}


def test_plan_node_keeps_engine_keys_verbatim(plan_node_schema):
    data = mk_node(
        **{
            "Relation Name": "orders",
            "Actual Total Time": 12.5,
            "Rows Removed by Filter": 10,
            "Some Future Key": {"nested": True},
        }
    )
    instance = assert_pydantic_then_schema_ok(data, plan_node_schema)
    assert instance == data


def test_plan_node_with_children_and_workers(plan_node_schema):
    data = mk_node(
        1,
        **{
            "Node Type": "Gather",
            "Workers Planned": 2,
            "Plans": [
                mk_node(2, Workers=[{"Worker Number": 0, "Actual Rows": 10}]),
            ],
        }
    )
    instance = assert_pydantic_then_schema_ok(data, plan_node_schema)
    assert instance["Plans"][0]["Workers"] == [{"Worker Number": 0, "Actual Rows": 10}]


def test_annotated_plan_node_still_conforms(plan_node_schema):
    node = PlanNode.model_validate(
        mk_node(1, **{"Actual Total Time": 3.0, "Actual Loops": 1, "Plans": [mk_node(2, **{"Actual Total Time": 1.0})]})
    )
    instance = annotate_tree(node).to_raw()
    jsonschema_validate(instance=instance, schema=plan_node_schema, registry=SCHEMA_REGISTRY)
    assert instance["*Duration (exclusive)"] == 2.0


def test_plan_node_missing_node_id_rejected(plan_node_schema):
    assert_schema_invalid_but_pydantic_rejects(PlanNode, {"Node Type": "Seq Scan"}, plan_node_schema)


def test_plan_node_negative_node_id_rejected(plan_node_schema):
    assert_schema_invalid_but_pydantic_rejects(PlanNode, mk_node(-1), plan_node_schema)


def test_plan_node_plans_must_be_array(plan_node_schema):
    assert_schema_invalid_but_pydantic_rejects(PlanNode, mk_node(1, Plans="not a list"), plan_node_schema)


def test_plan_node_child_without_node_id_rejected(plan_node_schema):
    bad = mk_node(1, Plans=[{"Node Type": "Seq Scan"}])
    assert_schema_invalid_but_pydantic_rejects(PlanNode, bad, plan_node_schema)


def test_plan_node_workers_must_be_objects(plan_node_schema):
    assert_schema_invalid_but_pydantic_rejects(PlanNode, mk_node(1, Workers=[1, 2]), plan_node_schema)


# ---------------------------------------------------------------------------
# PlanDocument
# ---------------------------------------------------------------------------

def test_plan_document_valid(plan_document_schema):
    data = {"Plan": mk_node(1), "Execution Time": 1.25, "Planning Time": 0.1, "Triggers": []}
    jsonschema_validate(instance=data, schema=plan_document_schema, registry=SCHEMA_REGISTRY)

    document = PlanDocument.from_json_obj(data)
    assert document.execution_time == 1.25
    assert document.planning_time == 0.1
    assert document.plan.node_id == 1


def test_plan_document_list_wrapper_accepted():
    document = PlanDocument.from_json_obj([{"Plan": mk_node(7)}])
    assert document.plan.node_id == 7
    assert document.execution_time is None


def test_plan_document_list_wrapper_must_hold_one_plan():
    with pytest.raises(PydanticValidationError):
        PlanDocument.from_json_obj([{"Plan": mk_node(1)}, {"Plan": mk_node(2)}])


def test_plan_document_requires_plan(plan_document_schema):
    assert_schema_invalid_but_pydantic_rejects(PlanDocument, {"Execution Time": 1.0}, plan_document_schema)


def test_plan_document_malformed_timing_degrades(plan_document_schema):
    data = {
        "Plan": mk_node(1, **{"Actual Total Time": 4.0, "Plans": [mk_node(2, **{"Actual Total Time": 1.0})]}),
        "Execution Time": "n/a",
        "Planning Time": -0.5,
    }
    jsonschema_validate(instance=data, schema=plan_document_schema, registry=SCHEMA_REGISTRY)

    document = PlanDocument.from_json_obj(data)
    assert document.execution_time is None
    assert document.planning_time is None

    tree = build_plan_tree(document)
    assert tree.stats.execution_time is None
    assert get_derived_metrics(tree.node(2), tree.stats, root=tree.root).duration_percent == 25


def test_plan_document_numeric_string_timing():
    document = PlanDocument.from_json_obj({"Plan": mk_node(1), "Execution Time": "12.5"})
    assert document.execution_time == 12.5
