"""
Semantic test: only malformed keys fail formatting.

Invariant:
format_value raises FormatError for structurally invalid keys and returns
some string for every well-formed key, known or not.
"""

from __future__ import annotations

import pytest

from plan_insight.core.domain.errors import FormatError
from plan_insight.core.formatting.formatter import EMPTY_MARKER, format_value


@pytest.mark.parametrize("key", [42, None, "", "   ", "bad\nkey", " padded"])
def test_malformed_keys_raise(key) -> None:
    with pytest.raises(FormatError):
        format_value(key, 1)


def test_unknown_plausible_key_is_displayed_verbatim() -> None:
    assert format_value("Some Future Counter", 42) == "42"
    assert format_value("Some Future Counter", "abc") == "abc"
    assert format_value("Some Future Counter", None) == EMPTY_MARKER


def test_structured_text_values_do_not_crash() -> None:
    assert format_value("Settings", {"work_mem": "64MB"}) == '{"work_mem": "64MB"}'


def test_format_error_is_a_value_error_with_hint() -> None:
    with pytest.raises(ValueError) as excinfo:
        format_value(3.5, 1)
    assert excinfo.value.hint is not None


def test_non_finite_numbers_render_as_empty_marker() -> None:
    assert format_value("Actual Total Time", float("nan")) == EMPTY_MARKER
    assert format_value("Total Cost", float("inf")) == EMPTY_MARKER
    assert format_value("Some Future Counter", float("-inf")) == EMPTY_MARKER
