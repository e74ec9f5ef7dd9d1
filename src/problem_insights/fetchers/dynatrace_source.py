"""Dynatrace Problems API v2 source."""

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import ProblemSourceError
from ..models import EntityRef, Incident
from .base import BaseProblemSource, RateLimiter

logger = logging.getLogger(__name__)

PROBLEMS_ENDPOINT = "/api/v2/problems"
CLOSED_SELECTOR = 'status("closed")'
PAGE_SIZE = 500


class DynatraceProblemSource(BaseProblemSource):
    """Fetch closed problems from a Dynatrace environment."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        rate_limit: float = 1.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Dynatrace source.

        Args:
            base_url: Environment URL (e.g., https://abc12345.live.dynatrace.com)
            api_token: API token with the problems.read scope
            rate_limit: Maximum requests per second
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.rate_limiter = RateLimiter(rate_limit)
        self.timeout = timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
                headers={
                    "User-Agent": "ProblemInsights/1.0",
                    "Accept": "application/json",
                    "Authorization": f"Api-Token {self.api_token}",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _fetch_page(self, params: dict) -> dict:
        """
        Fetch one page of problems with rate limiting and retries.

        Args:
            params: Query parameters for the problems endpoint

        Returns:
            Parsed JSON response
        """
        await self.rate_limiter.acquire()
        client = await self._get_client()

        logger.debug(f"Fetching: {PROBLEMS_ENDPOINT} {params}")
        response = await client.get(PROBLEMS_ENDPOINT, params=params)
        response.raise_for_status()

        return response.json()

    def _parse_entity(self, data: dict) -> EntityRef:
        """
        Parse an affected entity.

        Handles both the v2 shape ``{"entityId": {"id", "type"}, "name"}``
        and a flat ``{"entityId", "entityType", "name"}`` shape.
        """
        entity_id = data.get("entityId", "")
        entity_type = data.get("entityType", "")
        if isinstance(entity_id, dict):
            entity_type = entity_id.get("type", entity_type)
            entity_id = entity_id.get("id", "")

        return EntityRef(
            entity_id=entity_id,
            name=data.get("name") or entity_id,
            entity_type=entity_type or "UNKNOWN",
        )

    def _parse_problem(self, data: dict) -> Incident:
        """Parse a problem from the API response."""
        end_time = data.get("endTime")
        # Dynatrace reports -1 for problems that are still open
        if end_time is not None and end_time < 0:
            end_time = None

        return Incident(
            id=data.get("problemId", ""),
            display_id=data.get("displayId"),
            title=data.get("title", "Unknown Problem"),
            impact_level=data.get("impactLevel", "UNKNOWN"),
            severity_level=data.get("severityLevel", "CUSTOM"),
            status=data.get("status", "CLOSED"),
            start_time=data.get("startTime", 0),
            end_time=end_time,
            affected_entities=tuple(
                self._parse_entity(entity) for entity in data.get("affectedEntities", [])
            ),
        )

    async def fetch_closed_incidents(self, lookback_hours: int) -> list[Incident]:
        """
        Fetch closed problems from the last ``lookback_hours`` hours.

        Follows ``nextPageKey`` until every page has been read.

        Args:
            lookback_hours: Size of the window ending now, in hours

        Returns:
            List of Incident objects

        Raises:
            ProblemSourceError: On HTTP errors or unreachable environment
        """
        params: dict = {
            "from": f"now-{lookback_hours}h",
            "problemSelector": CLOSED_SELECTOR,
            "pageSize": PAGE_SIZE,
        }

        incidents: list[Incident] = []
        try:
            while True:
                data = await self._fetch_page(params)
                for problem_data in data.get("problems", []):
                    incidents.append(self._parse_problem(problem_data))

                next_page_key = data.get("nextPageKey")
                if not next_page_key:
                    break
                # Dynatrace rejects other parameters alongside nextPageKey
                params = {"nextPageKey": next_page_key}
        except httpx.HTTPStatusError as e:
            logger.error(f"Dynatrace problems request failed: {e}")
            raise ProblemSourceError(
                f"Dynatrace API returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Error fetching problems from Dynatrace: {e}")
            raise ProblemSourceError(f"Could not reach Dynatrace: {e}") from e
        except ValueError as e:
            logger.error(f"Unexpected problems payload from Dynatrace: {e}")
            raise ProblemSourceError("Dynatrace returned an unreadable response") from e

        logger.info(f"Fetched {len(incidents)} closed problems from Dynatrace")
        return incidents
