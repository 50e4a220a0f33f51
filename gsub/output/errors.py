"""Failure presentation.

Partial failures are reported after the results, one line each, on the
diagnostic stream.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from gsub.git.errors import (
    NotInitialized,
    ParseError,
    QueryError,
    RevisionResolutionError,
    SubmoduleFailure,
)
from gsub.output.render import display_path

if TYPE_CHECKING:
    from gsub.output.console import ConsoleProtocol

__all__ = ["failure_line", "print_failures"]


def failure_line(failure: SubmoduleFailure) -> str:
    """One-line description of a failure, without the "error:" prefix."""
    path = display_path(failure.submodule)
    match failure.cause:
        case NotInitialized():
            return f"{path} (not initialized)"
        case QueryError(command=command, timed_out=True):
            return f"{path}: git {command} timed out"
        case QueryError(cancelled=True):
            return f"{path}: cancelled (deadline exceeded)"
        case QueryError(command=command, message=message, returncode=rc):
            detail = message.splitlines()[0] if message else f"exit {rc}"
            return f"{path}: git {command} failed: {detail}"
        case ParseError() | RevisionResolutionError():
            return f"{path}: {failure.cause.message}"
    return f"{path}: {failure.message}"


def print_failures(failures: Sequence[SubmoduleFailure], console: ConsoleProtocol) -> None:
    """Print the trailing diagnostic summary."""
    for failure in failures:
        if failure.skipped:
            console.warning(f"skipped: {failure_line(failure)}")
        else:
            console.error(failure_line(failure))
