"""
Semantic test: byte, block and counter formatting.

Invariant:
Sizes use binary prefixes; blocks are scaled by the configured block size;
counters show a measured zero as "0".
"""

from __future__ import annotations

from plan_insight.core.domain.properties import NodeProp
from plan_insight.core.formatting.formatter import (
    EMPTY_MARKER,
    bytes_,
    factor,
    format_value,
    percentage,
)


def test_bytes_use_binary_prefixes() -> None:
    assert bytes_(0) == "0 B"
    assert bytes_(512) == "512 B"
    assert bytes_(2048) == "2.00 KiB"
    assert bytes_(3 * 1024**3) == "3.00 GiB"


def test_kilobytes_are_scaled() -> None:
    assert format_value(NodeProp.PEAK_MEMORY_USAGE, 1024) == "1.00 MiB"


def test_blocks_use_block_size() -> None:
    assert format_value(NodeProp.SHARED_HIT_BLOCKS, 10) == "80.00 KiB"
    assert format_value(NodeProp.SHARED_HIT_BLOCKS, 10, block_size=1024) == "10.00 KiB"
    assert format_value(NodeProp.TEMP_WRITTEN_BLOCKS, 0) == "0 B"


def test_counters_show_zero() -> None:
    assert format_value(NodeProp.HASH_BATCHES, 0) == "0"
    assert format_value(NodeProp.WORKERS_LAUNCHED, 3) == "3"


def test_rows_and_cost() -> None:
    assert format_value(NodeProp.ACTUAL_ROWS, 1_234_567) == "1,234,567"
    assert format_value(NodeProp.TOTAL_COST, 1234.5) == "1,234.50"


def test_factor_uses_two_significant_digits() -> None:
    assert factor(1234.0) == "×1,200"
    assert factor(12.34) == "×12"
    assert factor(1.0) == "×1"


def test_percentage() -> None:
    assert percentage(None) == EMPTY_MARKER
    assert percentage(0) == "0%"
    assert percentage(0.2) == "<1%"
    assert percentage(42.0) == "42%"


def test_booleans() -> None:
    assert format_value(NodeProp.PARALLEL_AWARE, True) == "true"
    assert format_value(NodeProp.PARALLEL_AWARE, False) == "false"
    assert format_value(NodeProp.PARALLEL_AWARE, None) == EMPTY_MARKER
