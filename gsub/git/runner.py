"""Running git against one repository.

All git access goes through a ``GitRunner`` so the engine can be exercised
with a fake runner in tests. ``run_git`` is the production implementation.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from gsub.core.result import Err, Ok, Result
from gsub.git.errors import QueryError
from gsub.platform.process import run as run_process

__all__ = ["GitRunner", "run_git"]

# Keep output machine-stable whatever the user's git config says.
_GIT_CONFIG_ARGS = (
    "-c",
    "core.quotePath=false",
    "-c",
    "color.ui=never",
    "-c",
    "log.showSignature=false",
)

# Reads only: never take the index lock, never prompt.
_GIT_ENV = {
    "GIT_OPTIONAL_LOCKS": "0",
    "GIT_TERMINAL_PROMPT": "0",
}


class GitRunner(Protocol):
    def __call__(
        self,
        repo: Path,
        args: Sequence[str],
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        ok_returncodes: frozenset[int] = frozenset({0}),
    ) -> Result[str, QueryError]: ...


def run_git(
    repo: Path,
    args: Sequence[str],
    *,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
    ok_returncodes: frozenset[int] = frozenset({0}),
) -> Result[str, QueryError]:
    """Run ``git -C <repo> <args>`` and return stdout.

    Returns:
        Ok(stdout) on success
        Err(QueryError) on non-zero exit, timeout, cancellation or spawn failure
    """
    cmd = ["git", *_GIT_CONFIG_ARGS, "-C", str(repo), *args]
    match run_process(
        cmd,
        cwd=repo,
        env=_GIT_ENV,
        timeout=timeout,
        cancel=cancel,
        ok_returncodes=ok_returncodes,
    ):
        case Ok(stdout):
            return Ok(stdout)
        case Err(e):
            return Err(
                QueryError(
                    command=" ".join(args[:1]),
                    message=e.stderr.strip() or e.stdout.strip() or str(e),
                    returncode=e.returncode,
                    timed_out=e.timed_out,
                    cancelled=e.cancelled,
                )
            )
