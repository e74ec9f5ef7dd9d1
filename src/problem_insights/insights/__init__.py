"""AI-powered insight generation with a local fallback."""

from .ai_client import AIClient, OpenAIClient
from .generator import InsightGenerator, build_payload, generate_fallback_insights

__all__ = [
    "AIClient",
    "OpenAIClient",
    "InsightGenerator",
    "build_payload",
    "generate_fallback_insights",
]
