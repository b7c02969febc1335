"""Shared plan fixtures.

``hash_join_document`` is a four-node analyzed plan whose derived numbers
are easy to check by hand:

    #1 Hash Join   total 10.0 ms  cost 100  rows 1000 (planned 100)
      #2 Seq Scan  total  6.0 ms  cost  60  rows  500, 1500 removed by filter
      #3 Hash      total  1.5 ms  cost  20  rows  200
        #4 Seq Scan total 1.0 ms  cost  15  rows  200 (planned 400)

Execution time is 10.5 ms, so exclusive durations 2.5 / 6 / 0.5 / 1 ms are
24% / 57% / 5% / 10% of it.
"""

from __future__ import annotations

from typing import Any

import pytest

from plan_insight.core.domain.types import PlanDocument, PlanTree
from plan_insight.core.metrics.aggregator import build_plan_tree


def _scan(node_id: int, **props: Any) -> dict[str, Any]:
    node: dict[str, Any] = {"nodeId": node_id, "Node Type": "Seq Scan", "Actual Loops": 1}
    node.update(props)
    return node


@pytest.fixture()
def hash_join_document() -> dict[str, Any]:
    return {
        "Plan": {
            "nodeId": 1,
            "Node Type": "Hash Join",
            "Total Cost": 100.0,
            "Plan Rows": 100,
            "Actual Rows": 1000,
            "Actual Total Time": 10.0,
            "Actual Loops": 1,
            "Plans": [
                _scan(
                    2,
                    **{
                        "Relation Name": "orders",
                        "Total Cost": 60.0,
                        "Plan Rows": 500,
                        "Actual Rows": 500,
                        "Actual Total Time": 6.0,
                        "Rows Removed by Filter": 1500,
                    },
                ),
                {
                    "nodeId": 3,
                    "Node Type": "Hash",
                    "Total Cost": 20.0,
                    "Plan Rows": 200,
                    "Actual Rows": 200,
                    "Actual Total Time": 1.5,
                    "Actual Loops": 1,
                    "Plans": [
                        _scan(
                            4,
                            **{
                                "Relation Name": "customers",
                                "Total Cost": 15.0,
                                "Plan Rows": 400,
                                "Actual Rows": 200,
                                "Actual Total Time": 1.0,
                            },
                        ),
                    ],
                },
            ],
        },
        "Planning Time": 0.25,
        "Execution Time": 10.5,
    }


@pytest.fixture()
def hash_join_tree(hash_join_document) -> PlanTree:
    return build_plan_tree(PlanDocument.from_json_obj(hash_join_document))
