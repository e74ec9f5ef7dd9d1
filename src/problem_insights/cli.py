"""CLI interface for the problem insights dashboard."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .analysis import aggregate, filter_summaries, format_duration, total_incidents
from .config import settings
from .errors import ConfigurationError, DataUnavailable, ProblemSourceError
from .fetchers import BaseProblemSource, create_problem_source
from .insights import InsightGenerator
from .models import TIME_RANGES, EntitySummary, InsightReport, TimeRange, get_time_range
from .reporters import MarkdownReporter

console = Console()
# Notices and logs stay off stdout so --json output can be parsed
err_console = Console(stderr=True)

logger = logging.getLogger("problem_insights")

SEVERITY_STYLES = {"high": "red", "medium": "yellow", "low": "green"}


def setup_logging(verbose: bool, quiet: bool = False) -> None:
    """Configure logging based on verbosity."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=err_console)],
    )
    logging.getLogger("problem_insights").setLevel(level)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """Entity impact analysis and AI insights for Dynatrace problems."""
    pass


@cli.command()
@click.option(
    "--range",
    "-r",
    "time_range",
    type=click.Choice([tr.value for tr in TIME_RANGES]),
    default="24h",
    help="Look-back window",
)
@click.option("--entity-type", "-t", default="all", help="Only show this entity type")
@click.option("--entity-name", "-n", default="all", help="Only show this entity")
@click.option(
    "--insights/--no-insights",
    default=False,
    help="Generate AI insights (requires OPENAI_API_KEY)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    help="Write a markdown report to this file",
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def analyze(
    time_range: str,
    entity_type: str,
    entity_name: str,
    insights: bool,
    output: Optional[str],
    as_json: bool,
    verbose: bool,
):
    """Fetch closed problems and show their impact per entity."""
    setup_logging(verbose, quiet=as_json)
    selected = get_time_range(time_range)

    try:
        source = create_problem_source(settings)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print(
            "[yellow]Set DYNATRACE_BASE_URL and DYNATRACE_API_TOKEN "
            "or use PROBLEM_SOURCE=mock[/yellow]"
        )
        sys.exit(1)

    try:
        summaries, report = asyncio.run(
            _analyze(source, selected, entity_type, entity_name, insights)
        )
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("[yellow]Set OPENAI_API_KEY or run with --no-insights[/yellow]")
        sys.exit(1)
    except ProblemSourceError as e:
        console.print(f"[red]Error loading data: {e}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(1)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "time_range": selected.model_dump(),
                    "entities": [s.model_dump() for s in summaries],
                    "insights": report.model_dump(by_alias=True) if report else None,
                },
                indent=2,
            )
        )
    else:
        _print_summaries(summaries, selected)
        if report:
            _print_report(report)

    if output:
        path = MarkdownReporter().save(summaries, report, selected, Path(output))
        err_console.print(f"[green]Markdown report written to {path}[/green]")


async def _analyze(
    source: BaseProblemSource,
    time_range: TimeRange,
    entity_type: str,
    entity_name: str,
    with_insights: bool,
) -> tuple[list[EntitySummary], Optional[InsightReport]]:
    """Async implementation of the analyze command."""
    generator = InsightGenerator(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
    )

    try:
        incidents = await source.fetch_closed_incidents(time_range.hours)
        summaries = filter_summaries(aggregate(incidents), entity_type, entity_name)
        logger.info(
            f"Loaded {len(incidents)} closed problems affecting {len(summaries)} entities"
        )

        report = None
        if with_insights:
            try:
                report = await generator.analyze(summaries)
            except DataUnavailable as e:
                err_console.print(f"[yellow]{e}[/yellow]")

        return summaries, report
    finally:
        await source.close()
        await generator.close()


def _print_summaries(summaries: list[EntitySummary], time_range: TimeRange) -> None:
    """Print the entity impact table."""
    console.print(
        f"\n[bold]{time_range.label}:[/bold] {total_incidents(summaries)} problems "
        f"across {len(summaries)} entities\n"
    )
    if not summaries:
        console.print("[yellow]No closed problems found[/yellow]")
        return

    table = Table(title="Entity Impact Analysis")
    table.add_column("Entity")
    table.add_column("Type")
    table.add_column("Problems", justify="right")
    table.add_column("Cumulative", justify="right")
    table.add_column("Average", justify="right")

    for s in summaries:
        table.add_row(
            s.entity_name,
            s.entity_type,
            str(s.total_incidents),
            format_duration(s.cumulative_duration_ms),
            format_duration(s.average_duration_ms),
        )
    console.print(table)


def _print_report(report: InsightReport) -> None:
    """Print an insight report."""
    source = "AI" if report.source == "ai" else "local heuristics"
    console.print(
        f"\n[bold]Risk score:[/bold] {round(report.risk_score)}/100 [dim]({source})[/dim]"
    )
    console.print(report.summary)

    for insight in report.insights:
        style = SEVERITY_STYLES.get(insight.severity, "white")
        console.print(
            f"  [{style}]●[/{style}] [bold]{insight.title}[/bold] "
            f"[dim]{insight.type}, {insight.confidence:.0%}[/dim]"
        )
        console.print(f"    {insight.description}")

    if report.recommendations:
        console.print("\n[bold]Recommendations:[/bold]")
        for recommendation in report.recommendations:
            console.print(f"  - {recommendation}")


@cli.command()
def status():
    """Show problem source and AI configuration."""
    console.print(f"[bold]Problem source:[/bold] {settings.problem_source}")
    if settings.problem_source == "dynatrace":
        console.print(f"  URL: {settings.dynatrace_base_url or '[red]not set[/red]'}")
        token_status = "set" if settings.dynatrace_api_token else "[red]not set[/red]"
        console.print(f"  Token: {token_status}")

    ai_status = "configured" if settings.openai_api_key else "[red]not configured[/red]"
    console.print(f"[bold]AI insights:[/bold] {ai_status}")
    console.print(f"  Model: {settings.openai_model}")


@cli.command()
@click.option("--host", "-h", default="127.0.0.1", help="Host to bind to")
@click.option("--port", "-p", default=8000, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str, port: int, reload: bool):
    """Start the web dashboard."""
    import uvicorn

    console.print(f"[bold]Starting dashboard at http://{host}:{port}[/bold]")
    uvicorn.run(
        "problem_insights.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    cli()
