"""Log command - one history across all repositories, newest first."""

from __future__ import annotations

import typer

from gsub.cli.commands._helpers import exit_on_aggregate_error, exit_on_error
from gsub.cli.context import build_context, global_options, make_console
from gsub.engine.filters import LogOptions
from gsub.output.errors import print_failures
from gsub.output.render import render_log


def log(
    ctx: typer.Context,
    pathspec: list[str] | None = typer.Argument(None, help="Limit to commits touching these paths"),
    all_refs: bool = typer.Option(False, "--all", "-a", help="Search commits on all branches"),
    author: str | None = typer.Option(None, "--author", help="Filter by author (regex)"),
    revision: str | None = typer.Option(
        None,
        "--revision",
        "-r",
        help="Only show commits made after this revision of the root repository",
    ),
    grep: str | None = typer.Option(None, "--grep", help="Filter by commit message (regex)"),
    list_files: bool = typer.Option(False, "--list", "-l", help="List files of each commit"),
    full: bool = typer.Option(False, "--full", "-f", help="Show the long format"),
    patch: bool = typer.Option(False, "--patch", "-p", help="Show the patch of each commit"),
    num: int | None = typer.Option(None, "--num", "-n", help="Number of commits to show"),
    start: int = typer.Option(0, "--start", "-s", help="Number of commits to skip"),
) -> None:
    """Show commit logs of every repository, merged by commit time."""
    options = global_options(ctx)
    log_options = LogOptions(
        pathspecs=tuple(pathspec or ()),
        all_refs=all_refs,
        author=author,
        grep=grep,
        revision=revision,
        list_files=list_files,
        full=full,
        patch=patch,
        num=num,
        start=start,
    )
    exit_on_error(log_options.validate(), make_console(options))

    cli = build_context(options)
    result = exit_on_aggregate_error(cli.service.log(log_options), cli.console)

    for line in render_log(result.entries, full=full):
        cli.console.line(line)
    print_failures(result.failures, cli.console)
