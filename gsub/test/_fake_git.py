"""In-memory git runner for engine tests.

Responses are registered per repository path and argument prefix; the last
matching registration wins. Every call is recorded.

Usage:
    git = FakeGit(tmp_path)
    git.on(".", "log", stdout=log_output([...]))
    orchestrator = Orchestrator(tmp_path, git)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Sequence
from pathlib import Path

from gsub.core.result import Err, Ok, Result
from gsub.git.errors import QueryError
from gsub.git.models import ROOT_PATH, Submodule
from gsub.git.registry import Registry
from gsub.parse.log import FIELD_SEP, RECORD_SEP


class FakeGit:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self._responses: list[tuple[str, tuple[str, ...], Result[str, QueryError], float]] = []
        self._lock = threading.Lock()

    def on(
        self,
        repo: str,
        *prefix: str,
        stdout: str = "",
        error: QueryError | None = None,
        delay: float = 0.0,
    ) -> FakeGit:
        result: Result[str, QueryError] = Err(error) if error is not None else Ok(stdout)
        self._responses.append((repo, tuple(prefix), result, delay))
        return self

    def fail(self, repo: str, *prefix: str, message: str = "fatal: boom") -> FakeGit:
        command = prefix[0] if prefix else ""
        return self.on(repo, *prefix, error=QueryError(command=command, message=message))

    def _rel(self, repo: Path) -> str:
        if repo == self.root:
            return ROOT_PATH
        return repo.relative_to(self.root).as_posix()

    def __call__(
        self,
        repo: Path,
        args: Sequence[str],
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        ok_returncodes: frozenset[int] = frozenset({0}),
    ) -> Result[str, QueryError]:
        rel = self._rel(repo)
        args = tuple(args)
        with self._lock:
            self.calls.append((rel, args))
        for r_repo, prefix, result, delay in reversed(self._responses):
            if r_repo == rel and args[: len(prefix)] == prefix:
                if delay:
                    time.sleep(delay)
                return result
        return Err(QueryError(command=args[0] if args else "", message=f"unexpected: git {' '.join(args)}"))

    def calls_for(self, repo: str) -> list[tuple[str, ...]]:
        return [args for r, args in self.calls if r == repo]


def make_registry(root: Path, *paths: str, uninitialized: Sequence[str] = ()) -> Registry:
    """Registry of a root repository plus the given submodule paths.

    Parents are inferred from path prefixes; paths must be given in
    canonical (depth-first, sorted) order.
    """
    subs = [Submodule(path=ROOT_PATH, name=root.name, commit="0" * 40)]
    for i, path in enumerate(paths):
        parent = ROOT_PATH
        for other in paths:
            if other != path and path.startswith(other + "/") and len(other) > len(parent):
                parent = other
        depth = 1 if parent == ROOT_PATH else next(s.depth for s in subs if s.path == parent) + 1
        initialized = path not in uninitialized
        subs.append(
            Submodule(
                path=path,
                name=path.rsplit("/", 1)[-1],
                initialized=initialized,
                parent=parent,
                commit=f"{i + 1:040d}" if initialized else None,
                depth=depth,
            )
        )
    return Registry(root=root, submodules=tuple(subs))


def log_record(
    commit: str,
    timestamp: int,
    subject: str = "change",
    author: str = "Dev",
    parents: str = "",
    tail: str = "",
    body: str = "",
) -> str:
    """One short-format log record as git prints it (%B ends with a newline)."""
    message = subject + (f"\n\n{body}" if body else "") + "\n"
    fields = [commit, parents, author, f"{author.lower()}@example.com", str(timestamp), message]
    return RECORD_SEP + FIELD_SEP.join(fields) + FIELD_SEP + "\n" + tail


def log_output(*records: str) -> str:
    return "".join(records)
