"""
CLI interface for Claude usage analysis.

Provides command-line access to the usage reports and the model advisor.
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from claude_usage.advisor.model_advisor import ModelAdvisor
from claude_usage.config.loader import ConfigurationError, UsageConfig, load_config
from claude_usage.core.aggregator import current_week_usage
from claude_usage.core.insights import calculate_batch_api_savings, get_efficiency_insights
from claude_usage.core.models import RateLimitInfo
from claude_usage.core.pricing import PricingTable
from claude_usage.core.rate_limits import get_rate_limit_info
from claude_usage.ingest.pipeline import PipelineOptions, PipelineResult, run_pipeline

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

ENV_MODE = "CLAUDE_USAGE_ENV"
ENV_STREAMING = "CLAUDE_USAGE_STREAMING"

LIMIT_WARNING_RATIO = 0.8
LIMIT_NOTICE_RATIO = 0.5


def is_production() -> bool:
    return os.environ.get(ENV_MODE, "").lower() == "production"


def should_use_streaming() -> bool:
    """Streaming is used when explicitly enabled or in production."""
    return os.environ.get(ENV_STREAMING, "").lower() == "true" or is_production()


def pipeline_options(batch_size: int) -> PipelineOptions:
    return PipelineOptions(
        diagnostics=not is_production(),
        streaming=should_use_streaming(),
        batch_size=batch_size,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if is_production() and not verbose:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(config_path: Optional[str]) -> UsageConfig:
    try:
        return load_config(config_path)
    except (FileNotFoundError, yaml.YAMLError, ConfigurationError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


def _run(config: UsageConfig, paths: Optional[List[Path]], batch_size: int) -> PipelineResult:
    try:
        return run_pipeline(config, roots=paths or None, options=pipeline_options(batch_size))
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


ConfigOption = typer.Option(None, "--config", "-c", help="Path to a YAML configuration file")
PathOption = typer.Option(None, "--path", "-p", help="Log root to scan (repeatable)")
BatchOption = typer.Option(10, "--batch-size", help="Files processed concurrently")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Show per-file diagnostics")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Claude usage analysis CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Claude Usage - Use --help to see available commands")


@app.command()
def daily(
    days: int = typer.Option(7, "--days", "-d", min=1, help="Number of most recent days to show"),
    config: Optional[str] = ConfigOption,
    path: Optional[List[Path]] = PathOption,
    batch_size: int = BatchOption,
    verbose: bool = VerboseOption,
):
    """Show token usage and cost per day."""
    _setup_logging(verbose)
    result = _run(_load(config), path, batch_size)

    if not result.summary.daily:
        console.print("\n[bold yellow]No usage data found[/]")
        _print_report(result)
        sys.exit(EXIT_CODE_PASS)

    recent = sorted(result.summary.daily)[-days:]

    table = Table(title=f"Daily Usage (Last {days} days)")
    table.add_column("Date")
    table.add_column("Tokens", justify="right")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Conversations", justify="right")
    table.add_column("Models")

    for day in recent:
        usage = result.summary.daily[day]
        table.add_row(
            day.isoformat(),
            f"{usage.total_tokens:,}",
            f"{usage.prompt_tokens:,}",
            f"{usage.completion_tokens:,}",
            _format_currency(usage.cost),
            str(usage.conversation_count),
            ", ".join(sorted(usage.models)),
        )

    console.print(table)
    total_cost = sum(result.summary.daily[day].cost for day in recent)
    console.print(f"Total cost: {_format_currency(total_cost)}")
    _print_report(result)


@app.command()
def weekly(
    plan: str = typer.Option("Pro", "--plan", help="Subscription plan to compare against"),
    config: Optional[str] = ConfigOption,
    path: Optional[List[Path]] = PathOption,
    batch_size: int = BatchOption,
    verbose: bool = VerboseOption,
):
    """Show this week's usage against the plan's rate limits."""
    _setup_logging(verbose)
    usage_config = _load(config)
    result = _run(usage_config, path, batch_size)

    week = current_week_usage(result.summary)
    try:
        info = get_rate_limit_info(week, plan, usage_config)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"\n[bold]Week {week.start_date} - {week.end_date}[/bold] ({info.plan})")
    console.print(f"Tokens: {week.total_tokens:,}  Cost: {_format_currency(week.cost)}")
    console.print(_rate_limit_table(info, "Rate Limits"))

    warning = _limit_warning(info)
    if warning:
        console.print(warning)
    _print_report(result)


@app.command("check-limits")
def check_limits(
    config: Optional[str] = ConfigOption,
    path: Optional[List[Path]] = PathOption,
    batch_size: int = BatchOption,
    verbose: bool = VerboseOption,
):
    """Show this week's rate-limit status for every configured plan."""
    _setup_logging(verbose)
    usage_config = _load(config)
    result = _run(usage_config, path, batch_size)

    if not result.entries:
        console.print("\n[bold yellow]No usage data found[/]")
        _print_report(result)
        sys.exit(EXIT_CODE_PASS)

    week = current_week_usage(result.summary)
    console.print(f"\n[bold]Week {week.start_date} - {week.end_date}[/bold]")
    for plan in usage_config.rate_limits:
        info = get_rate_limit_info(week, plan, usage_config)
        console.print(_rate_limit_table(info, f"Rate Limits - {plan} Plan"))

    _print_report(result)


@app.command()
def insights(
    config: Optional[str] = ConfigOption,
    path: Optional[List[Path]] = PathOption,
    batch_size: int = BatchOption,
    verbose: bool = VerboseOption,
):
    """Show peak hours, model efficiency and batch API savings."""
    _setup_logging(verbose)
    usage_config = _load(config)
    result = _run(usage_config, path, batch_size)

    pricing = PricingTable(usage_config.models)
    discount = usage_config.batch_api_discount
    report = get_efficiency_insights(result.entries, pricing, discount)

    table = Table(title="Model Efficiency")
    table.add_column("Model")
    table.add_column("Conversations", justify="right")
    table.add_column("Tokens/conv", justify="right")
    table.add_column("Cost/conv", justify="right")
    table.add_column("Total cost", justify="right")
    for model in report.model_efficiency:
        table.add_row(
            model.model,
            str(model.total_conversations),
            f"{model.avg_tokens_per_conversation:,.0f}",
            _format_currency(model.avg_cost_per_conversation),
            _format_currency(model.total_cost),
        )
    console.print(table)

    peak = ", ".join(f"{hour:02d}:00" for hour in report.peak_hours)
    console.print(f"Peak hours (UTC): {peak or '-'}")
    savings = calculate_batch_api_savings(result.entries, pricing, discount)
    console.print(f"Batch API savings available: {_format_currency(savings)}")
    console.print(report.recommendation)


@app.command()
def recommend(
    prompt: str = typer.Argument(..., help="Description of the task"),
    config: Optional[str] = ConfigOption,
):
    """Recommend a model for a task description."""
    advisor = ModelAdvisor(_load(config))
    classification, recommendation = advisor.recommend(prompt)

    console.print("\n[bold]Model Recommendation[/bold]")
    console.print("-" * 40)
    console.print(
        f"Task type: {classification.task_type.replace('_', ' ')} "
        f"({classification.confidence * 100:.0f}% confidence)"
    )
    console.print(f"[dim]Reasoning: {classification.reasoning}[/]")
    console.print(f"\n[green]Recommended:[/] {recommendation.recommended_model}")
    console.print(f"Confidence: {recommendation.confidence * 100:.0f}%")
    if recommendation.cost_savings:
        console.print(
            f"Estimated savings: ${recommendation.cost_savings:.4f} per conversation"
        )
    console.print(recommendation.reasoning)
    if recommendation.alternative_model:
        console.print(f"\nAlternative: {recommendation.alternative_model.model}")
        console.print(f"[dim]{recommendation.alternative_model.tradeoffs}[/]")


def _rate_limit_table(info: RateLimitInfo, title: str) -> Table:
    week = info.current_usage
    table = Table(title=title)
    table.add_column("Family")
    table.add_column("Tokens", justify="right")
    table.add_column("Est. hours", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Used", justify="right")

    for family, limit in info.weekly_limits.items():
        used = info.percent_used[family]
        hours = week.estimated_hours.get(family)
        table.add_row(
            family,
            f"{week.family_tokens.get(family, 0):,}",
            f"{hours.min:.1f}-{hours.max:.1f}" if hours else "-",
            f"{limit.min:,.0f}-{limit.max:,.0f}",
            _format_percent_range(used.max, used.min),
        )
    return table


def _limit_warning(info: RateLimitInfo) -> Optional[str]:
    """Warn when any family has used most of even the largest allowance."""
    highest = max((used.max for used in info.percent_used.values()), default=0.0)
    if highest > LIMIT_WARNING_RATIO:
        return "[bold red]WARNING: You are approaching your weekly rate limits![/]"
    if highest > LIMIT_NOTICE_RATIO:
        return "[bold yellow]NOTICE: You have used over 50% of your weekly limits.[/]"
    return None


def _print_report(result: PipelineResult) -> None:
    report = result.report
    console.print(
        f"[dim]{report.entries:,} entries from {report.files_processed} files; "
        f"{report.lines_skipped:,} lines skipped, {len(report.files_failed)} files failed[/]"
    )


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.2f}"


def _format_percent_range(low: float, high: float) -> str:
    """Format an unclamped ratio range as percentages."""
    text = f"{low * 100:,.1f}%-{high * 100:,.1f}%"
    if high > 1:
        return f"[red]{text}[/]"
    return text


if __name__ == "__main__":
    app()
