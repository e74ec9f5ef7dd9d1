#!/usr/bin/env python3
"""
Basic usage example for the problem insights library.

This script demonstrates how to use the library programmatically.
"""

import asyncio
import os
from pathlib import Path

from problem_insights.analysis import aggregate, format_duration
from problem_insights.errors import ConfigurationError
from problem_insights.fetchers import MockProblemSource
from problem_insights.insights import InsightGenerator, generate_fallback_insights
from problem_insights.models import get_time_range
from problem_insights.reporters import MarkdownReporter


async def main():
    """Fetch sample problems, aggregate them and produce insights."""

    time_range = get_time_range("7d")
    output_path = Path("./reports/problem_impact.md")

    # Swap in DynatraceProblemSource(base_url, api_token) for real data
    source = MockProblemSource()
    generator = InsightGenerator(api_key=os.environ.get("OPENAI_API_KEY"))

    try:
        # Step 1: Fetch closed problems
        print(f"Fetching problems for: {time_range.label}...")
        incidents = await source.fetch_closed_incidents(time_range.hours)
        print(f"Found {len(incidents)} problems")

        # Step 2: Aggregate per entity
        summaries = aggregate(incidents)
        for summary in summaries:
            print(
                f"  {summary.entity_name:<20} {summary.entity_type:<12} "
                f"{summary.total_incidents} problems, "
                f"{format_duration(summary.cumulative_duration_ms)} total"
            )

        # Step 3: Insights (falls back to local heuristics without a key)
        try:
            report = await generator.analyze(summaries)
        except ConfigurationError as e:
            print(f"AI analysis skipped: {e}")
            report = generate_fallback_insights(summaries)

        print(f"\nRisk score: {report.risk_score:.0f}/100")
        print(report.summary)

        # Step 4: Save a markdown report
        path = MarkdownReporter().save(summaries, report, time_range, output_path)
        print(f"\nReport saved to {path}")

    finally:
        await source.close()
        await generator.close()


if __name__ == "__main__":
    asyncio.run(main())
