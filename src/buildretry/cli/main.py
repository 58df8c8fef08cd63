"""
Main CLI entry point.
"""

import typer

from buildretry import __version__
from buildretry.cli import check, delays, rerun


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"buildretry version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="buildretry",
    help="buildretry - decide whether, when and what to rebuild after a failed build",
    add_completion=False,
)

# Register subcommands
app.command(name="check")(check.check)
app.command(name="delays")(delays.delays)
app.command(name="rerun")(rerun.rerun)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    buildretry - retry decisions for finished builds.

    Run 'buildretry <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
