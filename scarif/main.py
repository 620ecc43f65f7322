import logging
from typing import Annotated

from rich.logging import RichHandler
from typer import Context, Option, Typer

from . import __version__
from .cli.commands import convert, generate, translate


def _show_version(ctx: Context, value: bool):
    if value:
        print(__version__)
        ctx.exit()


def _setup(
    verbose: Annotated[
        bool,
        Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    _version: Annotated[
        bool,
        Option("--version", is_eager=True, hidden=True, callback=_show_version),
    ] = False,
):
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(show_path=False)],
        )


app = Typer(add_completion=False, no_args_is_help=True)
app.callback()(_setup)
app.command(no_args_is_help=True)(generate)
app.command(no_args_is_help=True)(translate)
app.command(no_args_is_help=True)(convert)


def main():
    app()
