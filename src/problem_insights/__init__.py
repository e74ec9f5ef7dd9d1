"""Entity impact analysis and AI insights for Dynatrace problems."""

__version__ = "0.1.0"
