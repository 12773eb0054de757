# src/nodekeeper/cli/main.py
"""
Console entry point: logging setup and the `start` and `version` commands.
"""

import logging

import typer

from .. import __version__
from ..core.config import config
from . import start

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)

app = typer.Typer(
    name="nodekeeper",
    help="Keep NodePools, NodeClaims and Nodes consistent in an elastic-compute cluster.",
    add_completion=False,
)

app.command(name="start")(start.start)


@app.command()
def version():
    """Show the version of nodekeeper."""
    typer.echo(f"nodekeeper version: {__version__}")


if __name__ == "__main__":
    app()
