"""Display formatting for plan node property values.

``format_value`` is lenient: any value of a well-formed key yields some
string. Values that do not fit the declared type of their key are shown
verbatim rather than rejected, since the detail view must render partial
plan data.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Set
from typing import Any, Callable, Iterable

from plan_insight.core.domain.errors import FormatError
from plan_insight.core.domain.properties import (
    GROUPING_KEYS,
    PropType,
    is_known_key,
    is_plausible_key,
    type_of,
)
from plan_insight.core.domain.types import as_number

EMPTY_MARKER: str = ""
APPROXIMATION_MARKER: str = "~"
DEFAULT_BLOCK_SIZE: int = 8192

_BINARY_UNITS: tuple[str, ...] = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")

_MS_PER_SECOND = 1000.0
_MS_PER_MINUTE = 60 * _MS_PER_SECOND
_MS_PER_HOUR = 60 * _MS_PER_MINUTE


# ---------------------------------------------------------------------------
# Per-type formatters
# ---------------------------------------------------------------------------


def duration(value: float | None) -> str:
    """Milliseconds with adaptive units: ms, s, min, h."""
    if value is None:
        return EMPTY_MARKER
    if value < _MS_PER_SECOND:
        return f"{value:,.3f} ms"
    if value < _MS_PER_MINUTE:
        return f"{value / _MS_PER_SECOND:,.3f} s"
    if value < _MS_PER_HOUR:
        minutes, remainder = divmod(value, _MS_PER_MINUTE)
        return f"{int(minutes)} min {remainder / _MS_PER_SECOND:.3f} s"
    hours, remainder = divmod(value, _MS_PER_HOUR)
    return f"{int(hours)} h {int(remainder // _MS_PER_MINUTE)} min"


def cost(value: float | None) -> str:
    if value is None:
        return EMPTY_MARKER
    return f"{value:,.2f}"


def rows(value: float | None) -> str:
    if value is None:
        return EMPTY_MARKER
    return f"{round(value):,}"


def increment(value: float | None) -> str:
    """Counters where zero is a meaningful reading."""
    if value is None:
        return EMPTY_MARKER
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def loops(value: float | None) -> str:
    if value is None:
        return EMPTY_MARKER
    return f"{round(value):,}"


def bytes_(value: float | None) -> str:
    """Byte count with binary prefixes."""
    if value is None:
        return EMPTY_MARKER
    size = float(value)
    negative = size < 0
    size = abs(size)
    unit = _BINARY_UNITS[0]
    for unit in _BINARY_UNITS:
        if size < 1024 or unit == _BINARY_UNITS[-1]:
            break
        size /= 1024
    sign = "-" if negative else ""
    if unit == "B":
        return f"{sign}{int(size)} B"
    return f"{sign}{size:.2f} {unit}"


def kilobytes(value: float | None) -> str:
    if value is None:
        return EMPTY_MARKER
    return bytes_(value * 1024)


def blocks(value: float | None, block_size: int = DEFAULT_BLOCK_SIZE) -> str:
    if value is None:
        return EMPTY_MARKER
    return bytes_(value * block_size)


def factor(value: float | None) -> str:
    """Two significant digits, e.g. ``"×1,200"``."""
    if value is None:
        return EMPTY_MARKER
    if value == 0:
        return "×0"
    magnitude = math.floor(math.log10(abs(value)))
    rounded = round(value, 1 - magnitude)
    if float(rounded).is_integer():
        return f"×{int(rounded):,}"
    return f"×{rounded:,}"


def percentage(value: float | None) -> str:
    if value is None:
        return EMPTY_MARKER
    if 0 < value < 1:
        return "<1%"
    return f"{round(value)}%"


def boolean(value: Any) -> str:
    if value is None:
        return EMPTY_MARKER
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def order_keys(keys: Iterable[str], declared: Iterable[str] = GROUPING_KEYS) -> list[str]:
    """Declared keys first (in declared order), then the rest alphabetically."""
    present = list(dict.fromkeys(str(k) for k in keys))
    declared_order = [k for k in declared if k in present]
    remaining = sorted(k for k in present if k not in declared_order)
    return declared_order + remaining


def keys_to_string(value: Any) -> str:
    """Render a key list, key set or mapping of named key lists."""
    if value is None:
        return EMPTY_MARKER
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        parts = []
        for name in order_keys(value.keys()):
            parts.append(f"{name}: {keys_to_string(value[name])}")
        return "; ".join(parts)
    if isinstance(value, Set):
        return ", ".join(sorted(str(item) for item in value))
    if isinstance(value, (list, tuple)):
        return ", ".join(keys_to_string(item) for item in value)
    return str(value)


def list_to_string(value: Any) -> str:
    if value is None:
        return EMPTY_MARKER
    if isinstance(value, str):
        return value
    if isinstance(value, Set):
        return ", ".join(sorted(str(item) for item in value))
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(item) for item in value)
    return _text(value)


def _text(value: Any) -> str:
    if value is None:
        return EMPTY_MARKER
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, sort_keys=True, default=str)
    if hasattr(value, "to_raw"):
        return json.dumps(value.to_raw(), sort_keys=True, default=str)
    return str(value)


def approximate(text: str, several_loops: bool) -> str:
    """Mark averaged per-loop values."""
    if not several_loops or text == EMPTY_MARKER:
        return text
    return f"{APPROXIMATION_MARKER}{text}"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

_NUMERIC_FORMATTERS: dict[PropType, Callable[[float], str]] = {
    PropType.DURATION: duration,
    PropType.COST: cost,
    PropType.ROWS: rows,
    PropType.INCREMENT: increment,
    PropType.LOOPS: loops,
    PropType.BYTES: bytes_,
    PropType.KILOBYTES: kilobytes,
    PropType.FACTOR: factor,
    PropType.PERCENTAGE: percentage,
}


def validate_key(key: Any) -> str:
    """Raise FormatError unless ``key`` is a modelled or plausible property key."""
    if not isinstance(key, str):
        raise FormatError(
            f"property key must be a string, got {type(key).__name__}",
            hint="pass a NodeProp member or an engine property name",
        )
    if is_known_key(key) or is_plausible_key(key):
        return key
    raise FormatError(f"malformed property key: {key!r}")


def format_value(key: str, value: Any, *, block_size: int = DEFAULT_BLOCK_SIZE) -> str:
    """Turn a raw property value into its display string."""
    validate_key(key)
    if value is None:
        return EMPTY_MARKER
    if isinstance(value, float) and not math.isfinite(value):
        return EMPTY_MARKER

    prop_type = type_of(key)

    if prop_type in _NUMERIC_FORMATTERS:
        number = as_number(value, key=key)
        if number is None:
            return _text(value)
        return _NUMERIC_FORMATTERS[prop_type](number)

    if prop_type is PropType.BLOCKS:
        number = as_number(value, key=key)
        if number is None:
            return _text(value)
        return blocks(number, block_size)

    if prop_type is PropType.BOOLEAN:
        return boolean(value)
    if prop_type is PropType.KEYS:
        return keys_to_string(value)
    if prop_type is PropType.LIST:
        return list_to_string(value)
    if prop_type is PropType.DIRECTION:
        return str(getattr(value, "value", value))

    return _text(value)
