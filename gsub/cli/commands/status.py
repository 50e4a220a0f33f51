"""Status command - changes across the root repository and its submodules."""

from __future__ import annotations

import typer

from gsub.cli.commands._helpers import exit_on_aggregate_error, exit_on_error
from gsub.cli.context import build_context, global_options, make_console
from gsub.core.result import Err
from gsub.engine.filters import DiffFilter, StatusOptions, StatusScope
from gsub.git.errors import InvalidFilterError
from gsub.output.errors import print_failures
from gsub.output.render import render_status


def status(
    ctx: typer.Context,
    pathspec: list[str] | None = typer.Argument(None, help="Limit to these paths (root-relative)"),
    staged: bool = typer.Option(False, "--staged", "-S", help="Only show staged changes"),
    work_tree: bool = typer.Option(
        False, "--work-tree", "-w", help="Only show working tree changes (unstaged)"
    ),
    ignored: bool = typer.Option(False, "--ignored", "-i", help="Include ignored files"),
    diff_filter: str | None = typer.Option(
        None,
        "--diff-filter",
        "-f",
        help="Filter by change kind: A D M R T U. Lowercase letters exclude.",
    ),
    short: bool = typer.Option(False, "--short", "-s", help="Only show a summary per repository"),
    patch: bool = typer.Option(False, "--patch", "-p", help="Show patches"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show clean repositories too"),
) -> None:
    """Show working tree status of every repository."""
    options = global_options(ctx)
    console = make_console(options)

    # Bad flags fail before any git process runs.
    if staged and work_tree:
        exit_on_error(Err(InvalidFilterError("--staged and --work-tree are mutually exclusive")), console)
    parsed_filter = exit_on_error(DiffFilter.parse(diff_filter), console)

    scope = StatusScope.BOTH
    if staged:
        scope = StatusScope.INDEX
    elif work_tree:
        scope = StatusScope.WORKTREE

    status_options = StatusOptions(
        pathspecs=tuple(pathspec or ()),
        scope=scope,
        ignored=ignored,
        diff_filter=parsed_filter,
        patch=patch,
    )
    cli = build_context(options)
    result = exit_on_aggregate_error(cli.service.status(status_options, show_all=show_all), cli.console)

    for line in render_status(result.reports, short=short, patch=patch):
        cli.console.line(line)
    print_failures(result.failures, cli.console)
