"""Dashboard state shared by the web routes."""

import asyncio
import logging
from datetime import datetime
from typing import Callable

from ..analysis import aggregate
from ..errors import AnalysisInProgress, ProblemSourceError
from ..fetchers import BaseProblemSource
from ..fetchers.base import now_ms
from ..insights import InsightGenerator
from ..models import (
    DEFAULT_TIME_RANGE,
    EntitySummary,
    FilterOptions,
    Incident,
    InsightReport,
    TimeRange,
)

logger = logging.getLogger(__name__)


class DashboardState:
    """Latest fetched problems, their aggregation and the latest insight report.

    Each refresh or analysis replaces the previous value wholesale. A failed
    refresh leaves the previous data in place and records the error.
    """

    def __init__(
        self,
        source: BaseProblemSource,
        generator: InsightGenerator,
        clock: Callable[[], int] = now_ms,
    ):
        self.source = source
        self.generator = generator
        self.clock = clock

        self.time_range: TimeRange = DEFAULT_TIME_RANGE
        self.incidents: list[Incident] = []
        self.summaries: list[EntitySummary] = []
        self.loaded_at: datetime | None = None
        self.last_error: str | None = None

        self.report: InsightReport | None = None
        self.report_filters: FilterOptions | None = None
        self.analysis_error: str | None = None
        self._analysis_lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self.loaded_at is not None

    @property
    def is_analyzing(self) -> bool:
        return self._analysis_lock.locked()

    async def refresh(self, time_range: TimeRange) -> list[EntitySummary]:
        """
        Fetch closed problems for the time range and re-aggregate.

        Raises:
            ProblemSourceError: If the fetch fails; previous data is kept
        """
        try:
            incidents = await self.source.fetch_closed_incidents(time_range.hours)
        except ProblemSourceError as e:
            self.last_error = f"Failed to fetch problem data: {e}"
            logger.error(self.last_error)
            raise

        self.incidents = incidents
        self.summaries = aggregate(incidents)
        self.time_range = time_range
        self.loaded_at = datetime.now()
        self.last_error = None

        # The previous report describes data that is no longer shown
        self.report = None
        self.report_filters = None
        self.analysis_error = None

        logger.info(
            f"Loaded {len(incidents)} closed problems affecting "
            f"{len(self.summaries)} entities"
        )
        return self.summaries

    async def ensure_loaded(self, time_range: TimeRange) -> None:
        """Refresh if nothing is loaded yet or the time range changed.

        Fetch failures are recorded in ``last_error`` instead of raised.
        """
        if self.is_loaded and self.time_range.value == time_range.value:
            return
        try:
            await self.refresh(time_range)
        except ProblemSourceError:
            # refresh() already stored the message in last_error
            return

    def report_for(self, filters: FilterOptions) -> InsightReport | None:
        """The latest report, if it was computed for this filter selection."""
        if self.report is None or self.report_filters != filters:
            return None
        return self.report

    async def analyze(
        self, summaries: list[EntitySummary], filters: FilterOptions | None = None
    ) -> InsightReport:
        """
        Run the insight generator, one request at a time.

        Args:
            summaries: Entities to analyze
            filters: Selection the summaries were filtered with

        Raises:
            AnalysisInProgress: If another analysis is still running
            DataUnavailable: If there is nothing to analyze
            ConfigurationError: If no LLM credential is configured
        """
        if self._analysis_lock.locked():
            raise AnalysisInProgress("An analysis is already running.")

        async with self._analysis_lock:
            try:
                report = await self.generator.analyze(summaries)
            except Exception as e:
                self.analysis_error = str(e)
                raise
            self.report = report
            self.report_filters = filters
            self.analysis_error = None
            return report

    async def close(self) -> None:
        await self.source.close()
        await self.generator.close()
