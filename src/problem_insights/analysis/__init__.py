"""Per-entity aggregation of problem data."""

from .aggregator import aggregate
from .views import (
    apply_filters,
    duration_chart,
    entity_names,
    entity_types,
    filter_summaries,
    format_duration,
    hourly_trend,
    total_incidents,
)

__all__ = [
    "aggregate",
    "apply_filters",
    "duration_chart",
    "entity_names",
    "entity_types",
    "filter_summaries",
    "format_duration",
    "hourly_trend",
    "total_incidents",
]
