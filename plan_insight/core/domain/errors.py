"""Hard failures raised by the plan metrics core.

Missing or malformed telemetry never raises; it degrades the affected metric
to ``None``. The errors below signal caller mistakes only.
"""

from __future__ import annotations


class PlanInsightError(ValueError):
    """Base error that carries an optional hint for the caller."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class FormatError(PlanInsightError):
    """Raised when a property key is structurally malformed."""


class PlanStructureError(PlanInsightError):
    """Raised when a plan tree breaks its structural invariants (node ids)."""


__all__ = [
    "PlanInsightError",
    "FormatError",
    "PlanStructureError",
]
