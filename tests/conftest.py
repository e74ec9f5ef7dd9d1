"""Shared fixtures and factories for problem insights tests."""

import json

import httpx
import pytest

from problem_insights.fetchers import MockProblemSource
from problem_insights.insights import InsightGenerator, OpenAIClient
from problem_insights.models import EntityRef, EntitySummary, Incident, IncidentRef

NOW_MS = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


def entity(entity_id, name=None, entity_type=None):
    """Build an EntityRef, deriving the type from the id prefix."""
    return EntityRef(
        entity_id=entity_id,
        name=name or entity_id.lower(),
        entity_type=entity_type or entity_id.split("-")[0],
    )


def make_incident(problem_id, duration_ms, entities, start_time=NOW_MS - HOUR_MS, open_=False):
    """Build an Incident lasting duration_ms, or an open one."""
    return Incident(
        id=problem_id,
        title=f"Problem {problem_id}",
        impact_level="SERVICE",
        severity_level="PERFORMANCE",
        status="OPEN" if open_ else "RESOLVED",
        start_time=start_time,
        end_time=None if open_ else start_time + duration_ms,
        affected_entities=tuple(entities),
    )


def make_summary(entity_id, total_incidents, cumulative_duration_ms, entity_type="SERVICE"):
    """Build an EntitySummary with placeholder incident refs."""
    per_incident = cumulative_duration_ms // max(total_incidents, 1)
    return EntitySummary(
        entity_id=entity_id,
        entity_name=f"name-{entity_id}",
        entity_type=entity_type,
        total_incidents=total_incidents,
        cumulative_duration_ms=cumulative_duration_ms,
        average_duration_ms=cumulative_duration_ms / total_incidents if total_incidents else 0.0,
        incidents=[
            IncidentRef(
                incident_id=f"{entity_id}-P{i}",
                title=f"Problem {i}",
                duration_ms=per_incident,
                start_time=NOW_MS - 2 * HOUR_MS,
                end_time=NOW_MS - 2 * HOUR_MS + per_incident,
                severity_level="ERROR",
            )
            for i in range(total_incidents)
        ],
    )


def chat_completion(content):
    """Chat completion response body with a single choice."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4-turbo-preview",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 10, "total_tokens": 20},
    }


AI_REPORT = {
    "insights": [
        {
            "type": "pattern",
            "title": "Checkout instability",
            "description": "Checkout Service is involved in most problems.",
            "severity": "high",
            "confidence": 0.85,
        }
    ],
    "summary": "Checkout Service dominates problem duration.",
    "recommendations": ["Add tracing to checkout"],
    "riskScore": 72,
}


class RecordingTransport:
    """Mock transport that records requests and replies with a handler."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request):
        self.requests.append(request)
        return self.handler(request)


def openai_generator(handler, api_key="sk-test"):
    """InsightGenerator whose OpenAI client talks to a recording mock transport."""
    recorder = RecordingTransport(handler)

    def factory(key):
        return OpenAIClient(
            key, http_client=httpx.AsyncClient(transport=recorder.transport)
        )

    return InsightGenerator(api_key=api_key, client_factory=factory), recorder


def json_reply(content, status_code=200):
    """Handler returning a chat completion whose message content is given."""

    def handler(request):
        if status_code != 200:
            return httpx.Response(status_code, json={"error": {"message": "boom"}})
        if not isinstance(content, str):
            return httpx.Response(200, json=chat_completion(json.dumps(content)))
        return httpx.Response(200, json=chat_completion(content))

    return handler


@pytest.fixture
def mock_source():
    """Mock source pinned to a fixed clock."""
    return MockProblemSource(clock=lambda: NOW_MS)
