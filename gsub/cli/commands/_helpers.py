"""Error exits shared by the commands."""

from __future__ import annotations

import typer

from gsub.core.errors import ErrorCode
from gsub.core.result import Err, Ok, Result
from gsub.output.console import ConsoleProtocol, Style
from gsub.output.errors import print_failures
from gsub.services.aggregate import AggregateError


def exit_on_error[T, E](
    result: Result[T, E],
    console: ConsoleProtocol,
    error_code: ErrorCode = ErrorCode.USER_ERROR,
) -> T:
    """Unwrap ``result``, or print its error (and hint) and exit with ``error_code``."""
    match result:
        case Ok(value):
            return value
        case Err(error):
            console.error(getattr(error, "message", str(error)))
            hint = getattr(error, "hint", None)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
            raise typer.Exit(code=int(error_code))


def exit_on_aggregate_error[T](result: Result[T, AggregateError], console: ConsoleProtocol) -> T:
    """Like ``exit_on_error``; submodule failures behind a fatal error are listed first."""
    match result:
        case Ok(value):
            return value
        case Err(error):
            print_failures([f for f in error.failures if not f.is_root], console)
            return exit_on_error(result, console, error.code)
