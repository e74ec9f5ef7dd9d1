"""Derive filter options, chart series and table values from entity summaries."""

from datetime import datetime, timezone

from ..models import ChartDataPoint, EntitySummary, FilterOptions, TrendBucket

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000

CHART_NAME_LENGTH = 15


def filter_summaries(
    summaries: list[EntitySummary],
    entity_type: str = "all",
    entity_name: str = "all",
) -> list[EntitySummary]:
    """Apply the entity type and entity name filters, keeping order."""
    filtered = list(summaries)

    if entity_type != "all":
        filtered = [s for s in filtered if s.entity_type == entity_type]

    if entity_name != "all":
        filtered = [s for s in filtered if s.entity_name == entity_name]

    return filtered


def apply_filters(
    summaries: list[EntitySummary], filters: FilterOptions
) -> list[EntitySummary]:
    """Filter summaries using a FilterOptions selection."""
    return filter_summaries(summaries, filters.entity_type, filters.entity_name)


def entity_types(summaries: list[EntitySummary]) -> list[str]:
    """Distinct entity types in first-seen order."""
    return list(dict.fromkeys(s.entity_type for s in summaries))


def entity_names(summaries: list[EntitySummary]) -> list[str]:
    """Distinct entity names, sorted."""
    return sorted({s.entity_name for s in summaries})


def total_incidents(summaries: list[EntitySummary]) -> int:
    """Sum of per-entity problem counts."""
    return sum(s.total_incidents for s in summaries)


def format_duration(milliseconds: float) -> str:
    """Format a duration as "2h 5m" or "45m"."""
    hours = int(milliseconds // HOUR_MS)
    minutes = int((milliseconds % HOUR_MS) // MINUTE_MS)

    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def duration_chart(
    summaries: list[EntitySummary], limit: int = 10
) -> list[ChartDataPoint]:
    """
    Build the cumulative duration bar chart series.

    Args:
        summaries: Summaries already sorted by cumulative duration
        limit: Number of entities to chart

    Returns:
        Chart points for the top entities
    """
    points = []
    for summary in summaries[:limit]:
        name = summary.entity_name
        if len(name) > CHART_NAME_LENGTH:
            name = name[:CHART_NAME_LENGTH] + "..."
        points.append(
            ChartDataPoint(
                name=name,
                full_name=summary.entity_name,
                value=summary.cumulative_duration_ms,
                incidents=summary.total_incidents,
                entity_type=summary.entity_type,
            )
        )
    return points


def hourly_trend(
    summaries: list[EntitySummary], now_ms: int, hours: int = 24
) -> list[TrendBucket]:
    """
    Count problem starts per hour over the trailing window.

    The window is always the last ``hours`` hours ending at ``now_ms``,
    regardless of the look-back filter used to fetch the problems. A problem
    affecting several entities is counted once per entity.

    Args:
        summaries: Entity summaries to bucket
        now_ms: Current time in epoch milliseconds
        hours: Number of one-hour slots

    Returns:
        Buckets ordered oldest first
    """
    buckets = []
    for i in range(hours - 1, -1, -1):
        start = now_ms - i * HOUR_MS
        label = datetime.fromtimestamp(start / 1000, tz=timezone.utc).strftime("%H:%M")
        buckets.append(TrendBucket(start_ms=start, label=label))

    for summary in summaries:
        for ref in summary.incidents:
            for bucket in buckets:
                if bucket.start_ms <= ref.start_time < bucket.start_ms + HOUR_MS:
                    bucket.incidents += 1
                    bucket.entities += 1
                    break

    return buckets
