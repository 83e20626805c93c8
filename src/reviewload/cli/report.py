"""Rich rendering of a finished run: trends, rates, checks, thresholds."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from reviewload.metrics.models import RunResult


def _trend_table(result: RunResult) -> Table:
    table = Table(title="Durations", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    for column in ("count", "avg", "min", "med", "max", "p(90)", "p(95)", "p(99)", "p(99.9)"):
        table.add_column(column, justify="right")
    for trend in result.summary.trends.values():
        table.add_row(
            trend.name,
            str(trend.count),
            *(
                f"{value:.1f}ms"
                for value in (
                    trend.avg,
                    trend.min,
                    trend.med,
                    trend.max,
                    trend.p90,
                    trend.p95,
                    trend.p99,
                    trend.p999,
                )
            ),
        )
    return table


def _rate_table(result: RunResult) -> Table:
    table = Table(title="Rates", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Rate", justify="right")
    table.add_column("True", justify="right")
    table.add_column("False", justify="right")
    for rate in result.summary.rates.values():
        table.add_row(rate.name, f"{rate.rate * 100:.2f}%", str(rate.passes), str(rate.fails))
    return table


def _check_table(result: RunResult) -> Table:
    table = Table(title="Checks", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Check", style="bold")
    table.add_column("Passed", justify="right")
    table.add_column("Failed", justify="right")
    for check in result.summary.checks.values():
        mark = "[green]✓[/green]" if check.fails == 0 else "[red]✗[/red]"
        table.add_row(f"{mark} {check.name}", str(check.passes), str(check.fails))
    return table


def _threshold_table(result: RunResult) -> Table:
    table = Table(title="Thresholds", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Expression")
    table.add_column("Actual", justify="right")
    table.add_column("Status", justify="right")
    for threshold in result.thresholds:
        status = "[green]PASS[/green]" if threshold.passed else "[red]FAIL[/red]"
        table.add_row(threshold.metric, threshold.expression, f"{threshold.actual:.4f}", status)
    return table


def print_report(console: Console, result: RunResult) -> None:
    """Print the end-of-run report for *result*.

    Args:
        console: Rich console to print to.
        result: Completed run.
    """
    overview = Table(title="Run Complete", show_header=False, expand=True)
    overview.add_column("Field", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Run id", result.run_id)
    overview.add_row("Base URL", result.base_url)
    overview.add_row("Profile", result.pattern_description)
    overview.add_row("Duration", f"{result.duration_seconds:.1f}s")
    if result.fixtures is not None:
        overview.add_row("Teams", str(len(result.fixtures.teams)))
        overview.add_row("Pull requests", str(len(result.fixtures.pull_requests)))
    console.print(overview)

    if result.setup_failed:
        console.print(f"[red]Setup failed:[/red] {result.setup_error}")
        return

    console.print(_trend_table(result))
    console.print(_rate_table(result))
    if result.summary.checks:
        console.print(_check_table(result))
    if result.thresholds:
        console.print(_threshold_table(result))
