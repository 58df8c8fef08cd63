"""
buildretry check - Decide whether a finished build is retried.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from buildretry.cli.common import load_policy
from buildretry.core.diagnostics import RecordingSink
from buildretry.core.results import BuildResult
from buildretry.utils.logging import get_logger

logger = get_logger("buildretry.cli.check")

console = Console()


def check(
    result: str = typer.Argument(..., help="Build result: success, unstable, failure, aborted, other"),
    log: Path | None = typer.Option(None, "--log", "-l", help="Build log to scan for the gating pattern"),
    attempt: int = typer.Option(0, "--attempt", "-a", min=0, help="Retries already scheduled"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Retry configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    pattern: str | None = typer.Option(None, "--pattern", "-p", help="Gating pattern (overrides config)"),
    max_retries: int | None = typer.Option(None, "--max-retries", "-m", help="Retry budget, <=0 unlimited"),
    unstable: bool | None = typer.Option(None, "--unstable/--no-unstable", help="Retry unstable builds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Decide whether a finished build is retried and after what delay.

    Exits 0 when a retry would be scheduled, 1 when not.
    """
    policy = load_policy(
        config,
        env,
        verbose,
        overrides={"regexp_for_rerun": pattern, "max_retries": max_retries, "rerun_if_unstable": unstable},
    )
    build_result = BuildResult.parse(result)
    logger.debug(f"Checking {build_result.value} build against {policy}")
    sink = RecordingSink()

    scheduled = policy.should_schedule(build_result, log, attempt, sink=sink)

    for diagnostic in sink.records:
        console.print(f"[yellow]warning:[/yellow] {diagnostic.message} ({escape(diagnostic.exception_message or '')})")

    if scheduled:
        delay = policy.delay_for(attempt)
        console.print(f"[green]retry[/green] {build_result.value} build: retry {attempt + 1} in {delay}s")
        raise typer.Exit(0)

    console.print(f"[red]no retry[/red] for {build_result.value} build after {attempt} retries")
    raise typer.Exit(1)
