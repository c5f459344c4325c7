# src/clustercost/cli/main.py
"""
Entry point of the clustercost CLI.
"""

import logging

import typer

from .. import __version__
from ..core.config import config
from . import nodes

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)

app = typer.Typer(
    name="clustercost",
    help="Assemble per-node cost and utilization records from cluster metric query results.",
    add_completion=False,
)


def show_version(show: bool = True):
    """Prints the clustercost version and stops; backs both `--version` and `version`."""
    if show:
        typer.echo(f"clustercost version: {__version__}")
        raise typer.Exit()


app.command(name="version", help="Show the version of clustercost.")(lambda: show_version())
app.command(name="nodes")(nodes.nodes)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=show_version,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    """Assemble cluster node costs from metric query results."""


if __name__ == "__main__":
    app()
