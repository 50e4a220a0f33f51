"""Errors as values.

Git calls, parsers and config loading return ``Ok(value)`` or ``Err(error)``
instead of raising. The caller decides whether an ``Err`` aborts the command
(the root repository, bad user input) or is collected as one submodule's
failure while the others go on.

Usage:
    match parse_status(output, path):
        case Ok(report):
            reports.append(report)
        case Err(error):
            failures.append(SubmoduleFailure(submodule=path, cause=error))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn

__all__ = ["Err", "Ok", "Result"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def unwrap(self) -> T:
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def unwrap(self) -> NoReturn:
        """Raises ValueError; only meant for tests and invariants."""
        raise ValueError(f"unwrap on Err({self.error!r})")

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
