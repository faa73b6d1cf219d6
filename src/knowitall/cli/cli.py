"""CLI entrypoint: Typer app definition and command registration"""

from typing import Annotated

import typer
from loguru import logger

from knowitall.cli.commands import export_cmd, init_cmd, list_cmd, publish_cmd
from knowitall.config import load_config


LOG_FORMAT = "{time:HH:mm:ss} | {level: <8} | {message}"

app = typer.Typer(name="knowitall", no_args_is_help=True, help="Know It All blog editor: publish Markdown drafts as posts")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level")] = False,
    ):
    """Route loguru output to stderr at the configured level."""
    try:
        level = load_config().log_level
    except ValueError:
        level = "INFO"  # the command itself reports the bad config
    logger.remove()
    logger.add(lambda msg: typer.echo(msg, err=True, nl=False), level="DEBUG" if verbose else level, format=LOG_FORMAT)


app.command(name="init")(init_cmd)
app.command(name="publish")(publish_cmd)
app.command(name="list")(list_cmd)
app.command(name="export")(export_cmd)
