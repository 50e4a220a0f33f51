"""Concurrent dispatch of git queries across repositories.

One query per repository runs on a bounded thread pool. Every outcome is
collected as data: a repository that errors, times out or is cancelled
produces a ``SubmoduleFailure`` and never aborts the others.

The orchestrator owns the invocation deadline. It is armed when the
orchestrator is created and shared by every ``dispatch`` call (the submodule
walk, revision resolution and the main query all run through the same
instance). When it expires, the
shared cancel event kills running git processes, queued jobs are dropped,
and whatever already finished is still returned.

Usage:
    orchestrator = Orchestrator(root, run_git, timeout=30.0, deadline=120.0)
    dispatch = orchestrator.dispatch([(sub, GitQuery.of("status", "--porcelain=v1"))])
    for path, output in dispatch.outputs.items():
        ...
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from gsub.core.config import MAX_JOBS
from gsub.core.result import Err, Ok, Result
from gsub.git.errors import NotInitialized, QueryError, SubmoduleFailure
from gsub.git.models import Submodule
from gsub.git.query import GitQuery
from gsub.git.runner import GitRunner

__all__ = ["Dispatch", "Orchestrator", "QueryObserver"]

# Called once per finished query: (repository path, seconds, succeeded).
type QueryObserver = Callable[[str, float, bool], None]


@dataclass(frozen=True, slots=True)
class Dispatch:
    """Collected outcome of one fan-out.

    Attributes:
        outputs: Raw stdout per repository path, in job (registry) order
        failures: Per-repository failures, in job (registry) order
    """

    outputs: dict[str, str] = field(default_factory=dict)
    failures: tuple[SubmoduleFailure, ...] = ()

    @property
    def root_failed(self) -> bool:
        """True if the root repository's own query failed (fatal)."""
        return any(f.is_root and not f.skipped for f in self.failures)

    @property
    def all_failed(self) -> bool:
        """True if nothing succeeded and something other than a skip failed."""
        return not self.outputs and any(not f.skipped for f in self.failures)

    @property
    def cancelled(self) -> bool:
        return any(isinstance(f.cause, QueryError) and f.cause.cancelled for f in self.failures)

    def failure_for(self, path: str) -> SubmoduleFailure | None:
        for failure in self.failures:
            if failure.submodule == path:
                return failure
        return None


def _cancelled_error(query: GitQuery) -> QueryError:
    return QueryError(
        command=query.label,
        message="cancelled: invocation deadline exceeded",
        returncode=-1,
        cancelled=True,
    )


class Orchestrator:
    """Runs git queries against many repositories concurrently.

    Attributes:
        root: Absolute path of the root repository
        max_workers: Worker cap (None: one per job), never above MAX_JOBS
        timeout: Per-query timeout in seconds
    """

    def __init__(
        self,
        root: Path,
        runner: GitRunner,
        *,
        max_workers: int | None = None,
        timeout: float | None = 30.0,
        deadline: float | None = None,
        observer: QueryObserver | None = None,
    ) -> None:
        self.root = root
        self.max_workers = min(max_workers, MAX_JOBS) if max_workers else MAX_JOBS
        self.timeout = timeout
        self._runner = runner
        self._observer = observer
        self._cancel = threading.Event()
        self._expires_at = time.monotonic() + deadline if deadline else None

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Stop every running and future query of this invocation."""
        self._cancel.set()

    def _remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def _repo_dir(self, submodule: Submodule) -> Path:
        return self.root if submodule.is_root else self.root / submodule.path

    def _execute(self, submodule: Submodule, query: GitQuery) -> Result[str, QueryError]:
        started = time.monotonic()
        chunks: list[str] = []
        outcome: Result[str, QueryError] | None = None
        for args in query.steps:
            result = self._runner(
                self._repo_dir(submodule),
                args,
                timeout=self.timeout,
                cancel=self._cancel,
                ok_returncodes=query.ok_returncodes,
            )
            if isinstance(result, Err):
                outcome = result
                break
            chunk = result.value
            if chunk and not chunk.endswith("\n"):
                chunk += "\n"
            chunks.append(chunk)

        if outcome is None:
            outcome = Ok("".join(chunks))
        if self._observer is not None:
            self._observer(submodule.path, time.monotonic() - started, isinstance(outcome, Ok))
        return outcome

    def dispatch(self, jobs: Sequence[tuple[Submodule, GitQuery]]) -> Dispatch:
        """Run one query per repository and collect every outcome.

        Uninitialized submodules are not queried; they yield a
        ``NotInitialized`` failure so they can be reported as skipped.

        Args:
            jobs: (repository, query) pairs in registry order

        Returns:
            Dispatch whose outputs and failures follow the order of ``jobs``,
            whatever order the queries completed in
        """
        outcomes: dict[str, Result[str, QueryError] | SubmoduleFailure] = {}
        runnable: list[tuple[Submodule, GitQuery]] = []
        for submodule, query in jobs:
            if not submodule.initialized:
                outcomes[submodule.path] = SubmoduleFailure(
                    submodule=submodule.path, cause=NotInitialized(submodule.path)
                )
            elif self._cancel.is_set():
                outcomes[submodule.path] = Err(_cancelled_error(query))
            else:
                runnable.append((submodule, query))

        if runnable:
            self._run_all(runnable, outcomes)

        outputs: dict[str, str] = {}
        failures: list[SubmoduleFailure] = []
        for submodule, _ in jobs:
            outcome = outcomes[submodule.path]
            if isinstance(outcome, SubmoduleFailure):
                failures.append(outcome)
            elif isinstance(outcome, Err):
                failures.append(SubmoduleFailure(submodule=submodule.path, cause=outcome.error))
            else:
                outputs[submodule.path] = outcome.value

        return Dispatch(outputs=outputs, failures=tuple(failures))

    def _run_all(
        self,
        runnable: list[tuple[Submodule, GitQuery]],
        outcomes: dict[str, Result[str, QueryError] | SubmoduleFailure],
    ) -> None:
        workers = max(1, min(len(runnable), self.max_workers))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gsub-git")
        try:
            futures: dict[Future[Result[str, QueryError]], tuple[Submodule, GitQuery]] = {
                executor.submit(self._execute, sub, query): (sub, query) for sub, query in runnable
            }
            _, pending = wait(futures, timeout=self._remaining())
            if pending:
                self._cancel.set()
                for future in pending:
                    future.cancel()
                # Running workers notice the event within one poll interval.
                wait(pending)

            for future, (submodule, query) in futures.items():
                if future.cancelled():
                    outcomes[submodule.path] = Err(_cancelled_error(query))
                else:
                    outcomes[submodule.path] = future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
