"""Generate risk scores, narratives and recommendations from entity summaries."""

import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
from openai import OpenAIError
from pydantic import ValidationError

from ..errors import ConfigurationError, DataUnavailable, ExternalServiceError
from ..models import EntitySummary, Insight, InsightReport
from .ai_client import AIClient, OpenAIClient
from .prompts import INSIGHTS_SYSTEM, INSIGHTS_USER

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
SLOW_RESOLUTION_MS = 30 * 60 * 1000

HIGH_FREQUENCY_THRESHOLD = 3
HOST_SHARE_THRESHOLD = 0.6

FALLBACK_RECOMMENDATIONS = [
    "Implement automated monitoring for top affected entities",
    "Review incident response procedures for faster resolution",
    "Consider redundancy for frequently affected services",
]


def _iso(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


def build_payload(summaries: list[EntitySummary]) -> dict:
    """
    Build the data block sent to the LLM.

    Args:
        summaries: Entity summaries, sorted by cumulative duration

    Returns:
        JSON-serializable dict
    """
    return {
        "totalEntities": len(summaries),
        "entities": [
            {
                "name": s.entity_name,
                "type": s.entity_type,
                "totalProblems": s.total_incidents,
                "cumulativeDuration": s.cumulative_duration_ms,
                "averageDuration": s.average_duration_ms,
                "problems": [
                    {
                        "title": ref.title,
                        "duration": ref.duration_ms,
                        "severity": ref.severity_level,
                        "startTime": _iso(ref.start_time),
                    }
                    for ref in s.incidents
                ],
            }
            for s in summaries
        ],
        "summary": {
            "totalProblems": sum(s.total_incidents for s in summaries),
            "totalDuration": sum(s.cumulative_duration_ms for s in summaries),
            "topAffectedEntity": summaries[0].entity_name if summaries else "None",
            "entityTypes": list(dict.fromkeys(s.entity_type for s in summaries)),
        },
    }


def generate_fallback_insights(summaries: list[EntitySummary]) -> InsightReport:
    """
    Score entity summaries with local heuristics, without calling any service.

    Args:
        summaries: Entity summaries, sorted by cumulative duration

    Returns:
        InsightReport marked as a fallback report
    """
    total_incidents = sum(s.total_incidents for s in summaries)
    total_duration = sum(s.cumulative_duration_ms for s in summaries)
    entity_count = len(summaries)
    top = summaries[0] if summaries else None

    insights = []

    if top and top.total_incidents > HIGH_FREQUENCY_THRESHOLD:
        insights.append(
            Insight(
                type="pattern",
                title="High Problem Frequency Detected",
                description=(
                    f"{top.entity_name} has experienced {top.total_incidents} problems, "
                    "indicating potential instability."
                ),
                severity="high",
                confidence=0.9,
            )
        )

    host_count = sum(1 for s in summaries if s.entity_type == "HOST")
    if host_count > entity_count * HOST_SHARE_THRESHOLD:
        insights.append(
            Insight(
                type="recommendation",
                title="Infrastructure Focus Required",
                description=(
                    "Most problems are affecting HOST entities. Consider infrastructure "
                    "monitoring and capacity planning."
                ),
                severity="medium",
                confidence=0.8,
            )
        )

    avg_duration = total_duration / total_incidents if total_incidents else None
    if avg_duration is not None and avg_duration > SLOW_RESOLUTION_MS:
        insights.append(
            Insight(
                type="prediction",
                title="Long Problem Resolution Times",
                description=(
                    "Average problem duration suggests slow incident response. "
                    "Consider automation improvements."
                ),
                severity="medium",
                confidence=0.7,
            )
        )

    if top:
        attention = f"{top.entity_name} requires immediate attention."
    else:
        attention = "No critical issues identified."

    risk_score = 0.0
    if entity_count:
        risk_score = (total_incidents / entity_count) * 20
        if avg_duration is not None:
            risk_score += (avg_duration / HOUR_MS) * 10
        risk_score = min(100.0, risk_score)

    return InsightReport(
        insights=insights,
        summary=(
            f"Analyzed {entity_count} entities with {total_incidents} total problems. "
            f"{attention}"
        ),
        recommendations=list(FALLBACK_RECOMMENDATIONS),
        risk_score=risk_score,
        source="fallback",
    )


class InsightGenerator:
    """Produce insight reports, via the LLM when possible."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4-turbo-preview",
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client_factory: Optional[Callable[[str], AIClient]] = None,
    ):
        """
        Initialize the generator.

        Args:
            api_key: LLM credential; analysis is refused without it
            model: Chat model name
            base_url: Override for OpenAI-compatible endpoints
            timeout: Request timeout in seconds (transport default when None)
            client_factory: Builds an AIClient from the API key (used by tests)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.client_factory = client_factory
        self._client: AIClient | None = None

    @property
    def is_configured(self) -> bool:
        """Check if an LLM credential is available."""
        return bool(self.api_key)

    def _get_client(self) -> AIClient:
        """Get or create the AI client."""
        if not self.api_key:
            raise ConfigurationError(
                "OpenAI API key not found. Please add OPENAI_API_KEY to your .env file."
            )
        if self._client is None:
            if self.client_factory:
                self._client = self.client_factory(self.api_key)
            else:
                self._client = OpenAIClient(
                    self.api_key,
                    model=self.model,
                    base_url=self.base_url,
                    timeout=self.timeout,
                )
        return self._client

    async def close(self) -> None:
        """Close the AI client if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def analyze(self, summaries: list[EntitySummary]) -> InsightReport:
        """
        Analyze entity summaries.

        Failures of the LLM call are logged and answered with the local
        fallback report.

        Args:
            summaries: Entity summaries, sorted by cumulative duration

        Returns:
            InsightReport from the LLM, or the fallback report

        Raises:
            DataUnavailable: If there are no summaries to analyze
            ConfigurationError: If no API key is configured
        """
        if not summaries:
            raise DataUnavailable("No problem data available for analysis.")

        client = self._get_client()

        try:
            return await self._request_report(client, summaries)
        except ExternalServiceError as e:
            logger.warning(f"Error analyzing data with AI, using fallback: {e}")
            return generate_fallback_insights(summaries)

    async def _request_report(
        self, client: AIClient, summaries: list[EntitySummary]
    ) -> InsightReport:
        """Send one chat-completion request and validate the reply."""
        payload = build_payload(summaries)
        prompt = INSIGHTS_USER.format(payload=json.dumps(payload))

        try:
            result = await client.generate_json(
                system_prompt=INSIGHTS_SYSTEM,
                user_prompt=prompt,
                temperature=0.3,
                max_tokens=2000,
            )
            report = InsightReport.model_validate(result)
        except (OpenAIError, httpx.HTTPError, ValidationError, ValueError) as e:
            raise ExternalServiceError(str(e)) from e

        logger.info(
            f"AI analysis produced {len(report.insights)} insights "
            f"(risk score {report.risk_score:.0f})"
        )
        return report.model_copy(update={"source": "ai"})
