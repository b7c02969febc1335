from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from plan_insight.core.domain.errors import PlanInsightError
from plan_insight.core.domain.properties import HighlightType
from plan_insight.core.events.event_bus import EventBus
from plan_insight.core.events.sinks.sink_logging import LoggingEventSink
from plan_insight.core.metrics.metrics_config import MetricsConfig
from plan_insight.viewer.engine import PlanMetricsEngine
from plan_insight.viewer.summary import print_plan_summary, summarize_plan

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(path)
    return json.loads(path.read_text(encoding="utf-8"))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarize an already-parsed JSON query plan (metrics and outliers)"
    )

    parser.add_argument(
        "--plan",
        type=Path,
        required=True,
        help="Path to the JSON plan document (EXPLAIN (FORMAT JSON) shape, with nodeId on every node).",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional metrics config JSON (threshold tables, block size, flag tier).",
    )

    parser.add_argument(
        "--highlight",
        choices=[h.value for h in HighlightType],
        default=HighlightType.DURATION.value,
        help="Dimension used for the node bars.",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level for plan events (DEBUG, INFO, WARNING, ...).",
    )

    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    event_bus = EventBus(sinks=[LoggingEventSink(logging.getLogger("plan_insight.events"))])

    try:
        return _run(args, event_bus)
    finally:
        event_bus.close()


def _run(args: argparse.Namespace, event_bus: EventBus) -> int:
    try:
        config = (
            MetricsConfig.from_json_obj(_load_json(args.config))
            if args.config is not None
            else MetricsConfig()
        )
        engine = PlanMetricsEngine.from_json_obj(
            _load_json(args.plan),
            config=config,
            event_bus=event_bus,
        )
    except FileNotFoundError as exc:
        print(f"Error: file not found: {exc}", file=sys.stderr)
        return 2
    except (json.JSONDecodeError, ValidationError) as exc:
        print(f"Error: invalid input: {exc}", file=sys.stderr)
        return 2
    except PlanInsightError as exc:
        hint = f" (hint: {exc.hint})" if exc.hint else ""
        print(f"Error: {exc}{hint}", file=sys.stderr)
        return 3

    summary = summarize_plan(engine=engine, highlight=HighlightType(args.highlight))
    print_plan_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
