"""Metrics configuration model: severity threshold tables and display settings."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from plan_insight.core.domain.properties import SeverityMetric, Tier


class ThresholdTable(BaseModel):
    """Lower bounds (exclusive) for each severity tier of one metric.

    A tier whose bound is None is never assigned.
    """

    low: float | None = None
    medium: float | None = None
    high: float | None = None
    critical: float | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_ascending(self) -> ThresholdTable:
        """Bounds that are set must increase with severity."""
        bounds = [b for b in (self.low, self.medium, self.high, self.critical) if b is not None]
        if any(later <= earlier for earlier, later in zip(bounds, bounds[1:])):
            raise ValueError(f"threshold bounds must be strictly ascending: {bounds}")
        return self

    def ladder(self) -> tuple[tuple[Tier, float], ...]:
        """(tier, bound) pairs from most to least severe, unset tiers omitted."""
        pairs = (
            (Tier.CRITICAL, self.critical),
            (Tier.HIGH, self.high),
            (Tier.MEDIUM, self.medium),
            (Tier.LOW, self.low),
        )
        return tuple((tier, bound) for tier, bound in pairs if bound is not None)


def _percent_table() -> ThresholdTable:
    return ThresholdTable(low=10, medium=40, high=90)


class MetricsConfig(BaseModel):
    """Structured configuration for the metrics engine."""

    duration: ThresholdTable = Field(default_factory=_percent_table)
    cost: ThresholdTable = Field(default_factory=_percent_table)
    estimation: ThresholdTable = Field(
        default_factory=lambda: ThresholdTable(low=10, medium=100, high=1000)
    )
    heap_fetches: ThresholdTable = Field(default_factory=_percent_table)
    # Product of rows-removed percent and duration percent.
    rows_removed: ThresholdTable = Field(
        default_factory=lambda: ThresholdTable(medium=500, high=2000)
    )

    block_size_bytes: int = Field(default=8192, gt=0)

    # Lowest tier reported as a NodeFlaggedEvent.
    flag_tier: Tier = Tier.MEDIUM

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> MetricsConfig:
        """Create a MetricsConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)

    @field_validator("flag_tier", mode="before")
    @classmethod
    def _tier_from_label(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.isdigit():
            try:
                return Tier[value.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"unknown tier: {value}") from exc
        return value

    @model_validator(mode="after")
    def validate_consistency(self) -> MetricsConfig:
        """A flag tier of NONE would report every node."""
        if self.flag_tier == Tier.NONE:
            raise ValueError("flag_tier must be above none")
        return self

    def table_for(self, metric: SeverityMetric) -> ThresholdTable:
        return getattr(self, SeverityMetric(metric).value)
