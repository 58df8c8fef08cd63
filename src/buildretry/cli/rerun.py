"""
buildretry rerun - Show which fan-out combinations would be rerun.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from buildretry.cli.common import load_policy
from buildretry.core.results import BuildRecord, BuildResult, Combination, FanoutResult
from buildretry.core.selector import RerunSelector
from buildretry.exceptions import ExpressionError

console = Console()


def _parse_member(text: str) -> tuple[Combination, BuildResult]:
    coordinates, sep, result = text.rpartition(":")
    if not sep:
        raise typer.BadParameter(f"{text!r}: expected 'axis=value,...:RESULT'")
    try:
        return Combination.parse(coordinates), BuildResult.parse(result)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def rerun(
    members: list[str] = typer.Argument(..., help="Member results as 'axis1=a,axis2=b:FAILURE'"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Retry configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    combination_filter: str | None = typer.Option(
        None, "--filter", "-f", help="Combination filter, e.g. \"axis1 == 'a'\" (overrides config)"
    ),
    unstable: bool | None = typer.Option(None, "--unstable/--no-unstable", help="Rerun unstable combinations"),
    whole: bool | None = typer.Option(None, "--whole/--standalone", help="Rerun inside a resubmitted fan-out"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Show which combinations of a finished fan-out would be rerun.
    """
    policy = load_policy(
        config,
        env,
        verbose,
        overrides={
            "combination_filter": combination_filter,
            "rerun_if_unstable": unstable,
            "rerun_matrix_part": whole,
        },
    )

    results = dict(_parse_member(m) for m in members)
    fanout = FanoutResult(parent=BuildRecord(record_id="cli", result=BuildResult.FAILURE), members=results)

    try:
        plan = RerunSelector().select(fanout, policy)
    except ExpressionError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from e

    table = Table(title="Rerun plan", show_header=True)
    table.add_column("Combination", style="cyan")
    table.add_column("Result")
    table.add_column("Action")
    for combination, result in results.items():
        action = "[green]rerun[/green]" if combination in plan.combinations else "[dim]skip[/dim]"
        table.add_row(escape(str(combination)), result.value, action)
    console.print(table)

    if plan.fallback_applied:
        console.print("[yellow]Filter matched no failing combination; rerunning all failing combinations[/yellow]")
    scope = "inside a resubmitted fan-out" if plan.whole_fanout else "as standalone builds"
    console.print(f"{len(plan.combinations)} combination(s) to rerun {scope}")
