"""Fixed sample problems for demos and local development."""

import asyncio
import logging
from typing import Callable

from ..models import EntityRef, Incident
from .base import BaseProblemSource, now_ms

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000

CHECKOUT_SERVICE = EntityRef(
    entity_id="SERVICE-123", name="Checkout Service", entity_type="SERVICE"
)
API_GATEWAY = EntityRef(entity_id="SERVICE-456", name="API Gateway", entity_type="SERVICE")
PAYMENT_APP = EntityRef(
    entity_id="APPLICATION-789", name="Payment App", entity_type="APPLICATION"
)
WEB_SERVER = EntityRef(entity_id="HOST-456", name="web-server-01", entity_type="HOST")
DB_SERVER = EntityRef(entity_id="HOST-789", name="db-server-01", entity_type="HOST")

# (id, display id, title, impact, severity, start fraction, end fraction, entities)
# Fractions are of the look-back window, measured back from now.
SAMPLE_PROBLEMS = [
    (
        "PROBLEM-1",
        "P-12345",
        "High response time on checkout service",
        "SERVICE",
        "PERFORMANCE",
        0.8,
        0.7,
        (CHECKOUT_SERVICE, WEB_SERVER),
    ),
    (
        "PROBLEM-2",
        "P-12346",
        "Memory leak in payment processor",
        "APPLICATION",
        "RESOURCE",
        0.6,
        0.4,
        (PAYMENT_APP, CHECKOUT_SERVICE),
    ),
    (
        "PROBLEM-3",
        "P-12347",
        "Database connection timeout",
        "INFRASTRUCTURE",
        "AVAILABILITY",
        0.3,
        0.1,
        (WEB_SERVER, DB_SERVER),
    ),
    (
        "PROBLEM-4",
        "P-12348",
        "API rate limit exceeded",
        "SERVICE",
        "ERROR",
        0.9,
        0.85,
        (API_GATEWAY,),
    ),
    (
        "PROBLEM-5",
        "P-12349",
        "High CPU usage on web servers",
        "INFRASTRUCTURE",
        "RESOURCE",
        0.5,
        0.2,
        (WEB_SERVER, DB_SERVER, CHECKOUT_SERVICE),
    ),
]


class MockProblemSource(BaseProblemSource):
    """Problem source returning five resolved sample problems."""

    def __init__(self, delay: float = 0.0, clock: Callable[[], int] = now_ms):
        """
        Initialize the mock source.

        Args:
            delay: Simulated API latency in seconds
            clock: Returns the current time in epoch milliseconds
        """
        self.delay = delay
        self.clock = clock

    async def fetch_closed_incidents(self, lookback_hours: int) -> list[Incident]:
        """Return the sample problems placed inside the look-back window."""
        if self.delay:
            await asyncio.sleep(self.delay)

        now = self.clock()
        window_ms = lookback_hours * HOUR_MS

        incidents = [
            Incident(
                id=problem_id,
                display_id=display_id,
                title=title,
                impact_level=impact,
                severity_level=severity,
                status="RESOLVED",
                start_time=int(now - window_ms * start_fraction),
                end_time=int(now - window_ms * end_fraction),
                affected_entities=entities,
            )
            for (
                problem_id,
                display_id,
                title,
                impact,
                severity,
                start_fraction,
                end_fraction,
                entities,
            ) in SAMPLE_PROBLEMS
        ]

        logger.info(f"Loaded {len(incidents)} sample problems for the last {lookback_hours}h")
        return incidents
