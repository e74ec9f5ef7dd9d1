"""Generate markdown problem impact reports."""

import logging
from datetime import datetime
from pathlib import Path

from ..analysis.views import format_duration, total_incidents
from ..models import EntitySummary, InsightReport, TimeRange

logger = logging.getLogger(__name__)

SEVERITY_MARKERS = {"high": "🔴", "medium": "🟠", "low": "🟢"}


class MarkdownReporter:
    """Generate markdown format problem impact reports."""

    def generate(
        self,
        summaries: list[EntitySummary],
        report: InsightReport | None,
        time_range: TimeRange,
        generated_at: datetime | None = None,
    ) -> str:
        """
        Generate a markdown report.

        Args:
            summaries: Entity summaries, sorted by cumulative duration
            report: Insight report, or None when analysis was skipped
            time_range: Look-back window the problems were fetched for
            generated_at: Report timestamp (defaults to now)

        Returns:
            Markdown formatted string
        """
        generated_at = generated_at or datetime.now()
        sections = [
            self._generate_header(summaries, time_range, generated_at),
            self._generate_entity_table(summaries),
            self._generate_insights(report) if report else None,
            self._generate_recommendations(report) if report else None,
        ]

        return "\n\n".join(filter(None, sections)) + "\n"

    def _generate_header(
        self,
        summaries: list[EntitySummary],
        time_range: TimeRange,
        generated_at: datetime,
    ) -> str:
        """Generate report header."""
        return f"""# Problem Impact Report

**Time Range:** {time_range.label}

**Generated:** {generated_at.strftime('%Y-%m-%d %H:%M:%S')}

**Affected Entities:** {len(summaries)} | **Total Problems:** {total_incidents(summaries)}

---"""

    def _generate_entity_table(self, summaries: list[EntitySummary]) -> str:
        """Generate the entity impact table."""
        lines = [
            "## Entity Impact Analysis",
            "",
        ]
        if not summaries:
            lines.append("_No closed problems in this time range._")
            return "\n".join(lines)

        lines.extend(
            [
                "| Entity | Type | Problems | Cumulative Duration | Average Duration |",
                "|--------|------|----------|---------------------|------------------|",
            ]
        )
        for s in summaries:
            name = s.entity_name.replace("|", "\\|")
            lines.append(
                f"| {name} | {s.entity_type} | {s.total_incidents} | "
                f"{format_duration(s.cumulative_duration_ms)} | "
                f"{format_duration(s.average_duration_ms)} |"
            )
        return "\n".join(lines)

    def _generate_insights(self, report: InsightReport) -> str:
        """Generate the insights section."""
        source = "AI analysis" if report.source == "ai" else "local heuristics"
        lines = [
            "## Insights",
            "",
            f"**Risk Score:** {round(report.risk_score)}/100 ({source})",
            "",
            report.summary,
        ]

        for insight in report.insights:
            marker = SEVERITY_MARKERS.get(insight.severity, "")
            lines.extend(
                [
                    "",
                    f"### {marker} {insight.title}",
                    "",
                    f"*{insight.type} | severity: {insight.severity} | "
                    f"confidence: {insight.confidence:.0%}*",
                    "",
                    insight.description,
                ]
            )
        return "\n".join(lines)

    def _generate_recommendations(self, report: InsightReport) -> str | None:
        """Generate the recommendations list."""
        if not report.recommendations:
            return None
        lines = ["## Recommendations", ""]
        for i, recommendation in enumerate(report.recommendations, 1):
            lines.append(f"{i}. {recommendation}")
        return "\n".join(lines)

    def save(
        self,
        summaries: list[EntitySummary],
        report: InsightReport | None,
        time_range: TimeRange,
        output_path: Path,
    ) -> Path:
        """
        Generate and save markdown report to file.

        Returns:
            Path to saved file
        """
        content = self.generate(summaries, report, time_range)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")

        logger.info(f"Saved markdown report to {output_path}")
        return output_path
