"""Error values for the aggregation engine.

Errors are data: they travel inside ``Err`` results and are never raised.

Fatal (abort the command, no partial output):
    DiscoveryError, InvalidFilterError, and a RevisionResolutionError on the
    root repository.

Partial (collected as SubmoduleFailure, rendered after the output):
    QueryError, ParseError, RevisionResolutionError, NotInitialized.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from gsub.git.models import ROOT_PATH

__all__ = [
    "DiscoveryError",
    "FailureCause",
    "InvalidFilterError",
    "NotInitialized",
    "ParseError",
    "QueryError",
    "RevisionResolutionError",
    "SubmoduleFailure",
]


@dataclass(frozen=True, slots=True)
class DiscoveryError:
    """The starting directory is not inside a git work tree."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class InvalidFilterError:
    """User-supplied filter rejected before any query was issued."""

    message: str
    value: str = ""


@dataclass(frozen=True, slots=True)
class QueryError:
    """A git command failed, timed out or was cancelled.

    Attributes:
        command: The git subcommand line that failed
        message: Error message (stderr, or a synthesized reason)
        returncode: Process return code, -1 when killed or not started
        timed_out: The per-query timeout expired
        cancelled: The invocation deadline expired
    """

    command: str
    message: str
    returncode: int = 1
    timed_out: bool = False
    cancelled: bool = False


@dataclass(frozen=True, slots=True)
class ParseError:
    """Malformed git output.

    Attributes:
        submodule: Repository path the output came from
        offset: Character offset of the offending line in the output
        reason: What was wrong
    """

    submodule: str
    offset: int
    reason: str

    @property
    def message(self) -> str:
        return f"cannot parse git output at offset {self.offset}: {self.reason}"


@dataclass(frozen=True, slots=True)
class RevisionResolutionError:
    """A root revision could not be mapped onto a repository."""

    submodule: str
    revision: str
    reason: str
    commit: str | None = None

    @property
    def message(self) -> str:
        if self.commit:
            return f"{self.reason} (revision {self.revision}, pinned {self.commit[:7]})"
        return f"{self.reason} (revision {self.revision})"


@dataclass(frozen=True, slots=True)
class NotInitialized:
    """The submodule has not been checked out, so it was skipped."""

    submodule: str

    @property
    def message(self) -> str:
        return "not initialized"


type FailureCause = QueryError | ParseError | RevisionResolutionError | NotInitialized


@dataclass(frozen=True, slots=True)
class SubmoduleFailure:
    """A failure isolated to one repository.

    Attributes:
        submodule: Repository path
        cause: What went wrong
    """

    submodule: str
    cause: FailureCause

    @property
    def skipped(self) -> bool:
        """True for submodules that were never queried (not initialized)."""
        return isinstance(self.cause, NotInitialized)

    @property
    def is_root(self) -> bool:
        return self.submodule == ROOT_PATH

    @property
    def message(self) -> str:
        return self.cause.message
