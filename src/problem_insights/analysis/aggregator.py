"""Aggregate problems into per-entity impact summaries."""

import logging

from ..models import EntitySummary, Incident, IncidentRef

logger = logging.getLogger(__name__)


def aggregate(incidents: list[Incident]) -> list[EntitySummary]:
    """
    Group problems by affected entity.

    Each problem counts once for every entity it references. The result is
    sorted by cumulative duration, longest first; ties keep the order in
    which entities were first seen.

    Args:
        incidents: Problems to aggregate

    Returns:
        One EntitySummary per distinct entity id
    """
    by_entity: dict[str, EntitySummary] = {}

    for incident in incidents:
        duration = incident.duration_ms

        for entity in incident.affected_entities:
            summary = by_entity.get(entity.entity_id)
            if summary is None:
                summary = EntitySummary(
                    entity_id=entity.entity_id,
                    entity_name=entity.name,
                    entity_type=entity.entity_type,
                )
                by_entity[entity.entity_id] = summary

            summary.total_incidents += 1
            summary.cumulative_duration_ms += duration
            summary.incidents.append(
                IncidentRef(
                    incident_id=incident.id,
                    title=incident.title,
                    duration_ms=duration,
                    start_time=incident.start_time,
                    end_time=(
                        incident.end_time
                        if incident.end_time is not None
                        else incident.start_time
                    ),
                    severity_level=incident.severity_level,
                )
            )

    for summary in by_entity.values():
        summary.average_duration_ms = (
            summary.cumulative_duration_ms / summary.total_incidents
            if summary.total_incidents > 0
            else 0.0
        )

    # sorted() is stable, so equal durations keep encounter order
    summaries = sorted(
        by_entity.values(), key=lambda s: s.cumulative_duration_ms, reverse=True
    )
    logger.debug(f"Aggregated {len(incidents)} problems into {len(summaries)} entities")
    return summaries
