"""Base problem source interface."""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from ..models import Incident


def now_ms() -> int:
    """Current UTC time in epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class RateLimiter:
    """Token bucket rate limiter for API requests."""

    def __init__(self, rate: float = 1.0):
        """
        Initialize rate limiter.

        Args:
            rate: Maximum requests per second
        """
        self.rate = rate
        self.tokens = rate
        self.last_update = time.monotonic()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until a request token is available."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_update
            self.tokens = min(self.rate, self.tokens + elapsed * self.rate)
            self.last_update = now

            if self.tokens < 1:
                wait_time = (1 - self.tokens) / self.rate
                await asyncio.sleep(wait_time)
                self.tokens = 0
            else:
                self.tokens -= 1


class BaseProblemSource(ABC):
    """Abstract base class for closed-problem sources."""

    @abstractmethod
    async def fetch_closed_incidents(self, lookback_hours: int) -> list[Incident]:
        """
        Fetch closed problems that started within the look-back window.

        Args:
            lookback_hours: Size of the window ending now, in hours

        Returns:
            List of Incident objects

        Raises:
            ProblemSourceError: If the monitoring platform cannot be queried
        """
        pass

    async def close(self) -> None:
        """Close any resources (override if needed)."""
        pass
