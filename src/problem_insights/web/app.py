"""FastAPI web application for the problem insights dashboard."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from ..analysis import (
    apply_filters,
    duration_chart,
    entity_names,
    entity_types,
    format_duration,
    hourly_trend,
    total_incidents,
)
from ..config import Settings, settings as default_settings
from ..errors import (
    AnalysisInProgress,
    ConfigurationError,
    DataUnavailable,
    ProblemSourceError,
)
from ..fetchers import BaseProblemSource, create_problem_source
from ..insights import InsightGenerator
from ..models import TIME_RANGES, FilterOptions, get_time_range
from .state import DashboardState

logger = logging.getLogger(__name__)

# Base paths
BASE_DIR = Path(__file__).parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"


def _filters(
    time_range: Optional[str], entity_type: Optional[str], entity_name: Optional[str]
) -> FilterOptions:
    return FilterOptions(
        time_range=get_time_range(time_range),
        entity_type=entity_type or "all",
        entity_name=entity_name or "all",
    )


def create_app(
    app_settings: Optional[Settings] = None,
    source: Optional[BaseProblemSource] = None,
    generator: Optional[InsightGenerator] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to build services from (defaults to environment)
        source: Problem source override
        generator: Insight generator override

    Returns:
        Configured FastAPI app
    """
    app_settings = app_settings or default_settings
    if source is None:
        source = create_problem_source(app_settings)
    if generator is None:
        generator = InsightGenerator(
            api_key=app_settings.openai_api_key,
            model=app_settings.openai_model,
            base_url=app_settings.openai_base_url,
        )

    state = DashboardState(source, generator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await state.close()

    app = FastAPI(
        title="Problem Insights Dashboard",
        description="Entity impact analysis and AI insights for Dynatrace problems",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.dashboard = state

    # Mount static files
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    # Setup templates
    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["duration"] = format_duration

    @app.get("/", response_class=HTMLResponse)
    async def dashboard(
        request: Request,
        time_range: Optional[str] = Query(None, alias="range"),
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
    ):
        """Render the dashboard."""
        filters = _filters(time_range, entity_type, entity_name)
        await state.ensure_loaded(filters.time_range)

        filtered = apply_filters(state.summaries, filters)
        chart = duration_chart(filtered)
        max_duration = max((p.value for p in chart), default=0)
        trend = hourly_trend(filtered, state.clock())
        max_trend = max((b.incidents for b in trend), default=0)

        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "title": "Problem Insights Dashboard",
                "filters": filters,
                "time_ranges": TIME_RANGES,
                "entity_types": entity_types(state.summaries),
                "entity_names": entity_names(state.summaries),
                "summaries": filtered,
                "total_incidents": total_incidents(filtered),
                "chart": chart,
                "max_duration": max_duration,
                "trend": trend,
                "max_trend": max_trend,
                "state": state,
                "report": state.report_for(filters),
                "ai_configured": state.generator.is_configured,
            },
        )

    @app.post("/analyze")
    async def analyze_form(
        time_range: Optional[str] = Query(None, alias="range"),
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
    ):
        """Run the analysis from the dashboard button and redirect back."""
        filters = _filters(time_range, entity_type, entity_name)
        await state.ensure_loaded(filters.time_range)
        filtered = apply_filters(state.summaries, filters)

        try:
            await state.analyze(filtered, filters)
        except (ConfigurationError, DataUnavailable, AnalysisInProgress) as e:
            logger.info(f"Analysis not run: {e}")

        query = urlencode(
            {
                "range": filters.time_range.value,
                "entity_type": filters.entity_type,
                "entity_name": filters.entity_name,
            }
        )
        return RedirectResponse(url=f"/?{query}", status_code=303)

    @app.post("/api/refresh")
    async def refresh(time_range: Optional[str] = Query(None, alias="range")):
        """Fetch closed problems for the time range."""
        selected = get_time_range(time_range)
        try:
            summaries = await state.refresh(selected)
        except ProblemSourceError as e:
            raise HTTPException(status_code=502, detail=state.last_error or str(e))

        return {
            "time_range": selected.model_dump(),
            "incident_count": len(state.incidents),
            "entity_count": len(summaries),
        }

    @app.get("/api/entities")
    async def list_entities(
        time_range: Optional[str] = Query(None, alias="range"),
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
    ):
        """List entity summaries for the current filters."""
        filters = _filters(time_range, entity_type, entity_name)
        await state.ensure_loaded(filters.time_range)
        filtered = apply_filters(state.summaries, filters)

        return {
            "time_range": state.time_range.model_dump(),
            "total_incidents": total_incidents(filtered),
            "entity_types": entity_types(state.summaries),
            "entity_names": entity_names(state.summaries),
            "entities": [s.model_dump() for s in filtered],
            "error": state.last_error,
        }

    @app.post("/api/insights")
    async def generate_insights(
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
    ):
        """Analyze the currently loaded entities."""
        filters = FilterOptions(
            time_range=state.time_range,
            entity_type=entity_type or "all",
            entity_name=entity_name or "all",
        )
        filtered = apply_filters(state.summaries, filters)
        try:
            report = await state.analyze(filtered, filters)
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except DataUnavailable as e:
            raise HTTPException(status_code=422, detail=str(e))
        except AnalysisInProgress as e:
            raise HTTPException(status_code=409, detail=str(e))

        return report.model_dump(by_alias=True)

    @app.get("/api/insights")
    async def latest_insights():
        """Return the latest insight report."""
        if state.report is None:
            raise HTTPException(status_code=404, detail="No analysis has been run yet")
        return state.report.model_dump(by_alias=True)

    @app.get("/api/status")
    async def status():
        """Report data source and AI configuration status."""
        return {
            "problem_source": app_settings.problem_source,
            "ai_configured": state.generator.is_configured,
            "model": state.generator.model,
            "time_range": state.time_range.value,
            "loaded_at": state.loaded_at.isoformat() if state.loaded_at else None,
            "analyzing": state.is_analyzing,
            "last_error": state.last_error,
        }

    return app
