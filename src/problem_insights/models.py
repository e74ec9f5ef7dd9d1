"""Data models for the problem insights dashboard."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field


class EntityRef(BaseModel):
    """Monitored entity referenced by a problem."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    name: str
    entity_type: str  # APPLICATION, SERVICE, HOST, PROCESS_GROUP, PROCESS_GROUP_INSTANCE


class Incident(BaseModel):
    """A problem record fetched from the monitoring platform.

    Times are epoch milliseconds, as Dynatrace reports them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_id: str | None = None
    title: str
    impact_level: str  # APPLICATION, SERVICE, INFRASTRUCTURE
    severity_level: str  # AVAILABILITY, ERROR, PERFORMANCE, RESOURCE, CUSTOM
    status: str  # OPEN, RESOLVED, CLOSED
    start_time: int
    end_time: int | None = None
    affected_entities: tuple[EntityRef, ...] = ()

    @computed_field
    @property
    def duration_ms(self) -> int:
        """Problem duration; open problems count as zero."""
        if self.end_time is not None:
            return self.end_time - self.start_time
        return 0

    @computed_field
    @property
    def is_open(self) -> bool:
        """Check if the problem has no end time yet."""
        return self.end_time is None


class IncidentRef(BaseModel):
    """Per-entity view of one problem."""

    incident_id: str
    title: str
    duration_ms: int
    start_time: int
    end_time: int
    severity_level: str


class EntitySummary(BaseModel):
    """Aggregated impact statistics for one entity across a batch of problems."""

    entity_id: str
    entity_name: str
    entity_type: str
    total_incidents: int = 0
    cumulative_duration_ms: int = 0
    average_duration_ms: float = 0.0
    incidents: list[IncidentRef] = Field(default_factory=list)


InsightType = Literal["pattern", "recommendation", "prediction", "summary"]
Severity = Literal["low", "medium", "high"]


class Insight(BaseModel):
    """One observation or recommendation in an analysis report."""

    type: InsightType
    title: str
    description: str
    severity: Severity
    confidence: float = Field(ge=0.0, le=1.0)


class InsightReport(BaseModel):
    """Analysis result in the JSON shape requested from the LLM."""

    model_config = ConfigDict(populate_by_name=True)

    insights: list[Insight] = Field(default_factory=list)
    summary: str
    recommendations: list[str] = Field(default_factory=list)
    risk_score: float = Field(alias="riskScore", ge=0.0, le=100.0)

    # Not part of the LLM contract; set by the generator
    source: Literal["ai", "fallback"] = "ai"


class TimeRange(BaseModel):
    """Look-back window offered by the dashboard filters."""

    label: str
    value: str
    hours: int


TIME_RANGES: list[TimeRange] = [
    TimeRange(label="Last 24 hours", value="24h", hours=24),
    TimeRange(label="Last 7 days", value="7d", hours=168),
    TimeRange(label="Last 30 days", value="30d", hours=720),
    TimeRange(label="Last 90 days", value="90d", hours=2160),
]

DEFAULT_TIME_RANGE = TIME_RANGES[0]


def get_time_range(value: str | None) -> TimeRange:
    """Look up a time range by its value, defaulting to the last 24 hours."""
    for time_range in TIME_RANGES:
        if time_range.value == value:
            return time_range
    return DEFAULT_TIME_RANGE


class FilterOptions(BaseModel):
    """Dashboard filter selection; "all" disables a filter."""

    time_range: TimeRange = DEFAULT_TIME_RANGE
    entity_type: str = "all"
    entity_name: str = "all"


class TrendBucket(BaseModel):
    """One hourly slot of the trend chart."""

    start_ms: int
    label: str
    incidents: int = 0
    entities: int = 0


class ChartDataPoint(BaseModel):
    """One bar of the cumulative duration chart."""

    name: str
    full_name: str
    value: int
    incidents: int
    entity_type: str
