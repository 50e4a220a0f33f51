from __future__ import annotations

from pathlib import Path

import typer

from gsub import __version__
from gsub.cli.commands.log import log
from gsub.cli.commands.ls_files import ls_files
from gsub.cli.commands.status import status
from gsub.cli.context import GlobalOptions
from gsub.core.config import ColorMode
from gsub.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Status, log and ls-files across a repository and all its submodules.",
)


# Commands
app.command()(status)
app.command()(log)
app.command("ls-files")(ls_files)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    cwd: Path | None = typer.Option(
        None,
        "--cwd",
        "-C",
        help="Run as if started in this directory",
    ),
    force_color: bool = typer.Option(
        False, "--force-color", "-c", help="Force colors even when piping"
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colors"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug diagnostics"),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if force_color and no_color:
        typer.echo("error: --force-color and --no-color are mutually exclusive", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if cwd is not None and not cwd.expanduser().is_dir():
        typer.echo(f"error: --cwd '{cwd}' is not a directory", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    color: ColorMode | None = None
    if force_color:
        color = "always"
    elif no_color:
        color = "never"

    ctx.obj = GlobalOptions(cwd=cwd, color=color, verbose=verbose)


def main() -> None:
    app()
