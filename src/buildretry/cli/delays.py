"""
buildretry delays - Show the delay schedule of a retry configuration.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from buildretry.cli.common import load_policy

console = Console()


def delays(
    config: Path | None = typer.Option(None, "--config", "-c", help="Retry configuration file"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    count: int = typer.Option(10, "--count", "-n", min=1, help="Number of retries to show"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """
    Show how long each retry waits before being resubmitted.

    Without --config the default progressive delay (5 min steps, 3 h cap) is shown.
    """
    policy = load_policy(config, env, verbose)

    if not policy.unlimited:
        count = min(count, policy.max_retries)

    table = Table(title=f"Delay schedule ({policy.delay.name})", show_header=True)
    table.add_column("Retry", style="cyan", justify="right")
    table.add_column("Delay (s)", style="green", justify="right")

    for attempt in range(count):
        table.add_row(str(attempt + 1), str(policy.delay_for(attempt)))

    console.print(table)
    if policy.unlimited:
        console.print("[dim]Retry budget: unlimited[/dim]")
    else:
        console.print(f"[dim]Retry budget: {policy.max_retries}[/dim]")
