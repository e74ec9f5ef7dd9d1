"""Problem sources for the monitoring platform."""

from ..config import Settings
from .base import BaseProblemSource, RateLimiter
from .dynatrace_source import DynatraceProblemSource
from .mock_source import MockProblemSource


def create_problem_source(settings: Settings) -> BaseProblemSource:
    """
    Factory function to create the configured problem source.

    Args:
        settings: Application settings

    Returns:
        Mock or Dynatrace-backed problem source

    Raises:
        ConfigurationError: If Dynatrace is selected without credentials
    """
    if settings.problem_source == "dynatrace":
        base_url, api_token = settings.get_dynatrace_credentials()
        return DynatraceProblemSource(
            base_url,
            api_token,
            rate_limit=settings.rate_limit_requests_per_second,
            timeout=settings.request_timeout_seconds,
        )
    return MockProblemSource(delay=settings.mock_delay_seconds)


__all__ = [
    "BaseProblemSource",
    "DynatraceProblemSource",
    "MockProblemSource",
    "RateLimiter",
    "create_problem_source",
]
