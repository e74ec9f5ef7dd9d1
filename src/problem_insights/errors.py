"""Error types surfaced by the problem insights services."""


class ProblemInsightsError(Exception):
    """Base class for all problem insights errors."""


class ConfigurationError(ProblemInsightsError):
    """A required credential or setting is missing."""


class ExternalServiceError(ProblemInsightsError):
    """The LLM service call failed (network, HTTP status or response parsing)."""


class DataUnavailable(ProblemInsightsError):
    """There is no problem data to analyze."""


class ProblemSourceError(ProblemInsightsError):
    """Fetching problems from the monitoring platform failed."""


class AnalysisInProgress(ProblemInsightsError):
    """An analysis request is already running."""
