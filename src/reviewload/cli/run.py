"""``reviewload run``: execute the staged load test with live terminal output."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from reviewload._internal.config import load_config
from reviewload._internal.errors import ReviewLoadError
from reviewload.cli.report import print_report
from reviewload.engine.runner import LoadTestRunner
from reviewload.fixtures import FixturePlan
from reviewload.metrics.thresholds import DEFAULT_THRESHOLDS, Threshold, merge_thresholds
from reviewload.patterns.staged import DEFAULT_STAGES, Stage

if TYPE_CHECKING:
    from reviewload.metrics.models import ProgressSnapshot

console = Console(stderr=True)


def _make_live_table(snapshot: ProgressSnapshot | None) -> Table:
    """Build a Rich table summarising load-phase progress."""
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Status", "Waiting for service / provisioning...")
        return table

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Target Callers", str(snapshot.target_callers))
    table.add_row("Active Callers", str(snapshot.active_callers))
    table.add_row("Iterations", str(snapshot.iterations))
    table.add_row("Workflow Calls", str(snapshot.workflow_calls))
    table.add_row("Real Errors", str(snapshot.real_errors))
    return table


def run_cmd(
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (default: $REVIEWLOAD_BASE_URL or http://localhost:8080).",
    ),
    teams: int = typer.Option(10, "--teams", help="Teams to provision.", min=1),
    users: int = typer.Option(
        200,
        "--users",
        "-u",
        help="Total users, split evenly between teams.",
        min=1,
    ),
    prs: int = typer.Option(10, "--prs", help="Pull requests to provision.", min=0),
    stage: list[str] | None = typer.Option(
        None,
        "--stage",
        "-s",
        help="Stage as <duration>:<target>, e.g. 30s:5. Repeatable; replaces the default profile.",
    ),
    threshold: list[str] | None = typer.Option(
        None,
        "--threshold",
        "-t",
        help="Threshold as metric=expression, e.g. real_errors=rate<0.01. "
        "Repeatable; replaces the defaults of that metric.",
    ),
    pause: float | None = typer.Option(
        None,
        "--pause",
        help="Seconds a caller pauses after each workflow call.",
        min=0.0,
    ),
    tick_interval: float = typer.Option(
        1.0,
        "--tick-interval",
        help="Seconds between concurrency adjustments.",
        min=0.01,
    ),
    health_retries: int = typer.Option(
        30,
        "--health-retries",
        help="Health polls before giving up.",
        min=1,
    ),
    health_delay: float = typer.Option(
        1.0,
        "--health-delay",
        help="Seconds between health polls.",
        min=0.0,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON logs.",
    ),
) -> None:
    """Provision fixtures, run the staged load and evaluate thresholds."""
    try:
        config = load_config()
        overrides: dict[str, object] = {
            "health_retries": health_retries,
            "health_retry_delay": health_delay,
        }
        if base_url:
            overrides["base_url"] = base_url
        if pause is not None:
            overrides["pause_seconds"] = pause
        config = dataclasses.replace(config, **overrides)

        stages = [Stage.parse(s) for s in stage] if stage else list(DEFAULT_STAGES)
        thresholds = merge_thresholds(
            DEFAULT_THRESHOLDS,
            [Threshold.from_spec(t) for t in threshold or []],
        )
        runner = LoadTestRunner(
            config,
            plan=FixturePlan(teams=teams, total_users=users, pull_requests=prs),
            stages=stages,
            thresholds=thresholds,
            tick_interval=tick_interval,
            log_level=logging.DEBUG if verbose else logging.INFO,
            json_logs=json_logs,
        )
    except ReviewLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Service:[/bold] {config.base_url}\n"
            f"[bold]Profile:[/bold] {runner.pattern.describe()}\n"
            f"[bold]Fixtures:[/bold] {teams} teams x {runner.plan.users_per_team} users, "
            f"{prs} PRs\n"
            f"[bold]Run id:[/bold]  {runner.run_id}",
            title="reviewload",
            border_style="cyan",
        )
    )

    try:
        with Live(
            _make_live_table(None),
            console=console,
            refresh_per_second=2,
            transient=True,
        ) as live:

            def _live_snapshot(snapshot: ProgressSnapshot) -> None:
                live.update(_make_live_table(snapshot))

            runner.on_snapshot = _live_snapshot
            result = runner.run()
    except ReviewLoadError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    print_report(console, result)

    if result.setup_failed:
        console.print("[red]FAIL:[/red] setup failed, no load was generated.")
        raise typer.Exit(code=1)

    failed = [t for t in result.thresholds if not t.passed]
    if failed:
        for t in failed:
            console.print(
                f"[red]FAIL:[/red] {t.metric} {t.expression} (actual {t.actual:.4f})"
            )
        raise typer.Exit(code=1)

    console.print("[green]All thresholds passed.[/green]")
