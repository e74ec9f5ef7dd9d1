"""Tests for dashboard view helpers."""

from conftest import HOUR_MS, MINUTE_MS, NOW_MS, entity, make_incident, make_summary

from problem_insights.analysis import (
    aggregate,
    duration_chart,
    entity_names,
    entity_types,
    filter_summaries,
    format_duration,
    hourly_trend,
    total_incidents,
)
from problem_insights.analysis.views import apply_filters
from problem_insights.models import FilterOptions


def _summaries():
    return [
        make_summary("SERVICE-1", 2, 5 * HOUR_MS),
        make_summary("HOST-1", 3, 4 * HOUR_MS, entity_type="HOST"),
        make_summary("SERVICE-2", 1, HOUR_MS),
    ]


def test_format_duration_hours_and_minutes():
    assert format_duration(2 * HOUR_MS + 5 * MINUTE_MS) == "2h 5m"


def test_format_duration_minutes_only():
    assert format_duration(45 * MINUTE_MS + 30_000) == "45m"
    assert format_duration(0) == "0m"


def test_filter_summaries_all():
    """"all" leaves the list unchanged"""
    summaries = _summaries()

    assert filter_summaries(summaries) == summaries


def test_filter_summaries_by_type_and_name():
    """Type and name filters combine"""
    summaries = _summaries()

    by_type = filter_summaries(summaries, entity_type="SERVICE")
    assert [s.entity_id for s in by_type] == ["SERVICE-1", "SERVICE-2"]

    by_name = filter_summaries(summaries, entity_type="SERVICE", entity_name="name-SERVICE-2")
    assert [s.entity_id for s in by_name] == ["SERVICE-2"]

    assert filter_summaries(summaries, entity_type="HOST", entity_name="name-SERVICE-2") == []


def test_apply_filters_uses_filter_options():
    summaries = _summaries()

    filtered = apply_filters(summaries, FilterOptions(entity_type="HOST"))

    assert [s.entity_id for s in filtered] == ["HOST-1"]


def test_filter_options_and_totals():
    summaries = _summaries()

    assert entity_types(summaries) == ["SERVICE", "HOST"]
    assert entity_names(summaries) == ["name-HOST-1", "name-SERVICE-1", "name-SERVICE-2"]
    assert total_incidents(summaries) == 6


def test_duration_chart_top_entities_and_truncation():
    """Chart keeps the top N and shortens long names"""
    incidents = [
        make_incident(str(n), (20 - n) * MINUTE_MS, [entity(f"SERVICE-{n}", f"very-long-service-name-{n}")])
        for n in range(12)
    ]

    chart = duration_chart(aggregate(incidents))

    assert len(chart) == 10
    assert chart[0].name == "very-long-servi..."
    assert chart[0].full_name == "very-long-service-name-0"
    assert chart[0].value == 20 * MINUTE_MS
    assert chart[0].incidents == 1
    assert chart[-1].full_name == "very-long-service-name-9"


def test_duration_chart_short_names_unchanged():
    chart = duration_chart([make_summary("HOST-1", 1, HOUR_MS, entity_type="HOST")], limit=5)

    assert chart[0].name == "name-HOST-1"
    assert chart[0].entity_type == "HOST"


def test_hourly_trend_buckets():
    """24 hourly buckets ending at now, oldest first"""
    trend = hourly_trend([], NOW_MS)

    assert len(trend) == 24
    assert trend[-1].start_ms == NOW_MS
    assert trend[0].start_ms == NOW_MS - 23 * HOUR_MS
    assert trend[0].label == "23:13"
    assert all(b.incidents == 0 for b in trend)


def test_hourly_trend_counts_problem_starts():
    """Each entity reference counts in the bucket holding its start time"""
    x, y = entity("SERVICE-X"), entity("HOST-Y")
    incidents = [
        make_incident("A", MINUTE_MS, [x, y], start_time=NOW_MS - HOUR_MS + 1),
        make_incident("B", MINUTE_MS, [x], start_time=NOW_MS),
        # Outside the trailing 24 hours
        make_incident("C", MINUTE_MS, [x], start_time=NOW_MS - 30 * HOUR_MS),
    ]

    trend = hourly_trend(aggregate(incidents), NOW_MS)

    assert trend[-2].incidents == 2
    assert trend[-2].entities == 2
    assert trend[-1].incidents == 1
    assert sum(b.incidents for b in trend) == 3
