"""ls-files command - tracked files of every repository as one tree."""

from __future__ import annotations

import typer

from gsub.cli.commands._helpers import exit_on_aggregate_error, exit_on_error
from gsub.cli.context import build_context, global_options, make_console
from gsub.engine.filters import LsFilesOptions
from gsub.output.errors import print_failures
from gsub.output.render import render_files


def ls_files(
    ctx: typer.Context,
    pathspec: list[str] | None = typer.Argument(None, help="Limit to these paths (root-relative)"),
    staged: bool = typer.Option(False, "--staged", "-s", help="List files in the index"),
    rev: str | None = typer.Option(
        None,
        "--rev",
        "-r",
        help="List files at this revision of the root repository",
    ),
) -> None:
    """List tracked files of every repository."""
    options = global_options(ctx)
    ls_options = LsFilesOptions(pathspecs=tuple(pathspec or ()), staged=staged, revision=rev)
    exit_on_error(ls_options.validate(), make_console(options))

    cli = build_context(options)
    result = exit_on_aggregate_error(cli.service.ls_files(ls_options), cli.console)

    for line in render_files(result.entries):
        cli.console.line(line)
    print_failures(result.failures, cli.console)
