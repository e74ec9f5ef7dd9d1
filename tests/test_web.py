"""Tests for the FastAPI dashboard."""

import asyncio
import json

import pytest
from conftest import AI_REPORT, NOW_MS, json_reply, make_summary, openai_generator
from fastapi.testclient import TestClient

from problem_insights.config import Settings
from problem_insights.errors import AnalysisInProgress, ProblemSourceError
from problem_insights.fetchers import BaseProblemSource, MockProblemSource
from problem_insights.insights import AIClient, InsightGenerator
from problem_insights.models import FilterOptions, get_time_range
from problem_insights.web import create_app
from problem_insights.web.state import DashboardState


class FlakySource(BaseProblemSource):
    """Returns sample problems until told to fail."""

    def __init__(self):
        self.inner = MockProblemSource(clock=lambda: NOW_MS)
        self.fail = False
        self.calls = 0

    async def fetch_closed_incidents(self, lookback_hours):
        self.calls += 1
        if self.fail:
            raise ProblemSourceError("Dynatrace API returned 503")
        return await self.inner.fetch_closed_incidents(lookback_hours)


def _client(generator=None, source=None):
    app = create_app(
        app_settings=Settings(problem_source="mock"),
        source=source or MockProblemSource(clock=lambda: NOW_MS),
        generator=generator or InsightGenerator(api_key=None),
    )
    return TestClient(app)


def test_dashboard_renders():
    client = _client()

    response = client.get("/")

    assert response.status_code == 200
    assert "Checkout Service" in response.text
    assert "Entity Impact Analysis" in response.text
    assert "OPENAI_API_KEY" in response.text


def test_dashboard_entity_type_filter():
    client = _client()

    response = client.get("/", params={"entity_type": "HOST"})

    assert response.status_code == 200
    assert "db-server-01" in response.text
    assert "API Gateway</div>" not in response.text


def test_entities_api():
    client = _client()

    data = client.get("/api/entities", params={"range": "7d"}).json()

    assert data["time_range"]["value"] == "7d"
    assert data["total_incidents"] == 10
    assert len(data["entities"]) == 5
    assert set(data["entity_types"]) == {"SERVICE", "HOST", "APPLICATION"}
    assert data["error"] is None


def test_entities_api_filters():
    client = _client()

    data = client.get("/api/entities", params={"entity_name": "API Gateway"}).json()

    assert [e["entity_name"] for e in data["entities"]] == ["API Gateway"]
    assert data["total_incidents"] == 1


def test_unknown_range_defaults_to_24h():
    client = _client()

    data = client.get("/api/entities", params={"range": "1y"}).json()

    assert data["time_range"]["value"] == "24h"


def test_refresh_failure_keeps_previous_data():
    """A failed fetch keeps prior entities and reports the error"""
    source = FlakySource()
    client = _client(source=source)
    client.post("/api/refresh", params={"range": "24h"})

    source.fail = True
    response = client.post("/api/refresh", params={"range": "24h"})

    assert response.status_code == 502
    assert "503" in response.json()["detail"]

    data = client.get("/api/entities").json()
    assert len(data["entities"]) == 5
    assert "503" in data["error"]

    page = client.get("/")
    assert "Error Loading Data" in page.text
    assert "Checkout Service" in page.text


def test_insights_without_key_is_configuration_error():
    client = _client()
    client.get("/api/entities")

    response = client.post("/api/insights")

    assert response.status_code == 400
    assert "OPENAI_API_KEY" in response.json()["detail"]


def test_insights_without_data():
    """Filtering everything out leaves nothing to analyze"""
    generator, recorder = openai_generator(json_reply(AI_REPORT))
    client = _client(generator=generator)
    client.get("/api/entities")

    response = client.post("/api/insights", params={"entity_type": "PROCESS_GROUP"})

    assert response.status_code == 422
    assert recorder.requests == []


def test_insights_ai_report():
    generator, recorder = openai_generator(json_reply(AI_REPORT))
    client = _client(generator=generator)
    client.get("/api/entities")

    response = client.post("/api/insights")

    assert response.status_code == 200
    assert response.json()["riskScore"] == 72
    assert response.json()["source"] == "ai"
    assert client.get("/api/insights").json()["riskScore"] == 72

    payload = json.loads(recorder.requests[0].content)
    assert "Checkout Service" in payload["messages"][1]["content"]


def test_insights_fallback_on_service_error():
    generator, _ = openai_generator(json_reply(AI_REPORT, status_code=503))
    client = _client(generator=generator)
    client.get("/api/entities")

    report = client.post("/api/insights").json()

    assert report["source"] == "fallback"
    assert report["riskScore"] > 0


def test_latest_insights_before_analysis():
    client = _client()

    assert client.get("/api/insights").status_code == 404


def test_analyze_form_redirects_and_shows_report():
    generator, _ = openai_generator(json_reply(AI_REPORT))
    client = _client(generator=generator)

    response = client.post("/analyze", params={"range": "7d"}, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"].startswith("/?range=7d")

    page = client.get(response.headers["location"])
    assert "Checkout instability" in page.text
    assert "Add tracing to checkout" in page.text


def test_status_endpoint():
    client = _client()
    client.get("/api/entities")

    data = client.get("/api/status").json()

    assert data["problem_source"] == "mock"
    assert data["ai_configured"] is False
    assert data["time_range"] == "24h"
    assert data["loaded_at"] is not None
    assert data["analyzing"] is False


class BlockingClient(AIClient):
    """AIClient that waits until released."""

    def __init__(self):
        self.release = asyncio.Event()
        self.started = asyncio.Event()

    async def generate(self, system_prompt, user_prompt, temperature=0.3, max_tokens=2000):
        self.started.set()
        await self.release.wait()
        return json.dumps(AI_REPORT)


async def test_concurrent_analysis_rejected():
    """A second analysis while one is running is refused"""
    blocking = BlockingClient()
    generator = InsightGenerator(api_key="key", client_factory=lambda key: blocking)
    state = DashboardState(MockProblemSource(clock=lambda: NOW_MS), generator)
    summaries = [make_summary("SERVICE-1", 1, 1000)]

    first = asyncio.create_task(state.analyze(summaries))
    await blocking.started.wait()
    assert state.is_analyzing

    with pytest.raises(AnalysisInProgress):
        await state.analyze(summaries)

    blocking.release.set()
    report = await first
    assert report.risk_score == 72
    assert state.report is report
    assert not state.is_analyzing


def test_report_hidden_when_filters_change():
    """A report is only shown next to the entities it was computed for"""
    generator, _ = openai_generator(json_reply(AI_REPORT))
    client = _client(generator=generator)

    client.post("/analyze", params={"range": "24h"})
    assert "Checkout instability" in client.get("/", params={"range": "24h"}).text

    page = client.get("/", params={"range": "24h", "entity_type": "APPLICATION"})
    assert "Payment App" in page.text
    assert "Checkout instability" not in page.text

    page = client.get("/", params={"range": "7d"})
    assert "Checkout instability" not in page.text


async def test_refresh_clears_report():
    """New problem data drops the report computed for the old data"""
    generator, _ = openai_generator(json_reply(AI_REPORT))
    state = DashboardState(MockProblemSource(clock=lambda: NOW_MS), generator)
    await state.refresh(get_time_range("24h"))
    filters = FilterOptions(time_range=get_time_range("24h"))

    await state.analyze(state.summaries, filters)
    assert state.report_for(filters) is state.report
    assert state.report_for(FilterOptions(time_range=get_time_range("7d"))) is None

    await state.refresh(get_time_range("7d"))

    assert state.report is None
    assert state.report_for(filters) is None
