"""Aggregation flows behind ``status``, ``log`` and ``ls-files``.

Each flow runs the same pipeline:

    scope pathspecs -> build one query per repository -> dispatch
    -> parse -> post-filter -> merge/group

Fatal problems (invalid filters, an unresolvable root revision, a failed
root query, every repository failing) come back as ``AggregateError``.
Anything isolated to one submodule is collected as a ``SubmoduleFailure``
and returned next to the results.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Literal

from gsub.core.errors import ErrorCode
from gsub.core.result import Err, Ok, Result
from gsub.engine.filters import (
    LogOptions,
    LsFilesOptions,
    StatusOptions,
    StatusScope,
    filter_files,
    filter_log_entries,
    filter_status,
    log_needs_files,
    log_query,
    ls_files_query,
    status_query,
)
from gsub.engine.merge import group_by_submodule, log_fetch_limit, merge_logs
from gsub.engine.pathspec import ScopedPathspec, scope_pathspecs
from gsub.git.errors import InvalidFilterError, RevisionResolutionError, SubmoduleFailure
from gsub.git.models import FileEntry, LogEntry, ResolvedStart, StatusReport, Submodule
from gsub.git.orchestrator import Dispatch, Orchestrator
from gsub.git.query import GitQuery
from gsub.git.registry import Registry
from gsub.git.state import read_state
from gsub.output.console import ConsoleProtocol
from gsub.parse import parse_file_list, parse_log, parse_status
from gsub.services.revisions import read_pins, resolve_starts

__all__ = [
    "AggregateError",
    "AggregateService",
    "FilesResult",
    "LogResult",
    "StatusResult",
]

# One step per untracked path; the path is appended.
_NEW_FILE_DIFF = ("diff", "--no-index", "--no-ext-diff", "--", "/dev/null")


# -----------------------------------------------------------------------------
# Error Types
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AggregateError:
    """Fatal error of one aggregation flow.

    Attributes:
        kind: What failed
        message: Human-readable description
        hint: Optional suggestion for the user
        failures: Per-repository failures that led to it
    """

    kind: Literal["invalid_filter", "unresolved_revision", "query_failed"]
    message: str
    hint: str | None = None
    failures: tuple[SubmoduleFailure, ...] = ()

    @property
    def code(self) -> ErrorCode:
        if self.kind == "invalid_filter":
            return ErrorCode.USER_ERROR
        return ErrorCode.QUERY_ERROR

    @classmethod
    def from_filter(cls, error: InvalidFilterError) -> AggregateError:
        return cls(kind="invalid_filter", message=error.message)

    @classmethod
    def from_revision(cls, error: RevisionResolutionError) -> AggregateError:
        return cls(
            kind="unresolved_revision",
            message=f"cannot resolve {error.revision!r} in the root repository: {error.reason}",
            hint="pass a commit, branch or tag of the root repository",
        )


# -----------------------------------------------------------------------------
# Result Types
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StatusResult:
    """Repositories to show, in registry order, with their filtered status."""

    reports: list[tuple[Submodule, StatusReport]]
    failures: tuple[SubmoduleFailure, ...] = ()


@dataclass(frozen=True, slots=True)
class LogResult:
    """One page of the merged, time-descending log."""

    entries: list[LogEntry]
    failures: tuple[SubmoduleFailure, ...] = ()


@dataclass(frozen=True, slots=True)
class FilesResult:
    """Tracked files grouped per repository, in registry order."""

    groups: list[tuple[Submodule, list[FileEntry]]]
    failures: tuple[SubmoduleFailure, ...] = ()

    @property
    def entries(self) -> list[FileEntry]:
        return [entry for _, entries in self.groups for entry in entries]


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class AggregateService:
    """Runs status/log/ls-files across the whole submodule tree.

    Usage:
        service = AggregateService(registry=registry, orchestrator=orchestrator, console=console)
        match service.log(LogOptions(num=20)):
            case Ok(result):
                ...
            case Err(error):
                ...
    """

    def __init__(
        self,
        *,
        registry: Registry,
        orchestrator: Orchestrator,
        console: ConsoleProtocol,
    ) -> None:
        self._registry = registry
        self._orchestrator = orchestrator
        self._console = console

    # -- status ----------------------------------------------------------------

    def status(self, options: StatusOptions, *, show_all: bool = False) -> Result[StatusResult, AggregateError]:
        """Working-tree status of every repository in scope.

        Only repositories with changes, with an operation in progress, or
        whose checked-out commit differs from the recorded one are returned,
        unless ``show_all``. In patch mode untracked files get a new-file
        patch.
        """
        scopes = self._scopes(options.pathspecs)
        jobs = [(sub, status_query(options, scopes[sub.path])) for sub in self._registry if sub.path in scopes]

        dispatch = self._dispatch("status", jobs)
        fatal = self._check_fatal(dispatch)
        if fatal is not None:
            return Err(fatal)

        failures = list(dispatch.failures)
        reports: list[tuple[Submodule, StatusReport]] = []
        for sub, _ in jobs:
            output = dispatch.outputs.get(sub.path)
            if output is None:
                continue
            match parse_status(output, sub.path):
                case Err(e):
                    failures.append(SubmoduleFailure(submodule=sub.path, cause=e))
                case Ok(report):
                    report = filter_status(report, options, scopes[sub.path])
                    report = replace(report, state=read_state(self._registry.root / sub.path))
                    if show_all or not report.is_clean or report.state is not None or sub.out_of_sync:
                        reports.append((sub, report))

        if options.patch and options.scope is not StatusScope.INDEX:
            reports = self._with_untracked_patches(reports, failures)

        return Ok(StatusResult(reports=reports, failures=self._collect(failures)))

    def _with_untracked_patches(
        self,
        reports: list[tuple[Submodule, StatusReport]],
        failures: list[SubmoduleFailure],
    ) -> list[tuple[Submodule, StatusReport]]:
        """Append a new-file patch per untracked entry to each report."""
        jobs: list[tuple[Submodule, GitQuery]] = []
        for sub, report in reports:
            steps = tuple(
                (*_NEW_FILE_DIFF, entry.path)
                for entry in report.entries
                if entry.is_untracked and not entry.is_ignored
            )
            if steps:
                # diff --no-index exits 1 when the files differ.
                jobs.append((sub, GitQuery(steps=steps, ok_returncodes=frozenset({0, 1}))))
        if not jobs:
            return reports

        dispatch = self._dispatch("untracked patches", jobs)
        failures.extend(dispatch.failures)
        patched: list[tuple[Submodule, StatusReport]] = []
        for sub, report in reports:
            extra = dispatch.outputs.get(sub.path)
            if extra:
                report = replace(report, patch=(report.patch or "") + extra)
            patched.append((sub, report))
        return patched

    # -- log -------------------------------------------------------------------

    def log(self, options: LogOptions) -> Result[LogResult, AggregateError]:
        """Merged history of every repository in scope.

        With ``options.revision`` each repository only shows commits made
        after the commit it was pinned to at that root revision.
        """
        match options.validate():
            case Err(e):
                return Err(AggregateError.from_filter(e))
            case Ok(_):
                pass

        failures: list[SubmoduleFailure] = []
        starts: dict[str, ResolvedStart] | None = None
        if options.revision is not None:
            match resolve_starts(options.revision, self._registry, self._orchestrator):
                case Err(e):
                    return Err(AggregateError.from_revision(e))
                case Ok((resolved, resolution_failures)):
                    starts = {s.submodule: s for s in resolved}
                    failures.extend(resolution_failures)
                    for s in resolved:
                        self._console.debug(f"start {s.submodule}: {s.commit_id or '(beginning)'}")

        scopes = self._scopes(options.pathspecs)
        limit = log_fetch_limit(options.start, options.num)
        jobs: list[tuple[Submodule, GitQuery]] = []
        for sub in self._registry:
            if sub.path not in scopes:
                continue
            if sub.initialized and sub.commit is None:
                # Unborn HEAD: no history yet.
                continue
            start: ResolvedStart | None = None
            if starts is not None:
                if sub.path not in starts:
                    continue
                start = starts[sub.path]
            jobs.append((sub, log_query(options, scopes[sub.path], start, limit)))

        dispatch = self._dispatch("log", jobs)
        fatal = self._check_fatal(dispatch)
        if fatal is not None:
            return Err(fatal)
        failures.extend(dispatch.failures)

        batches: list[list[LogEntry]] = []
        for sub, _ in jobs:
            output = dispatch.outputs.get(sub.path)
            if output is None:
                continue
            scoped = scopes[sub.path]
            parsed = parse_log(
                output,
                sub.path,
                full=options.full,
                with_files=log_needs_files(options, scoped),
                with_patch=options.patch,
            )
            match parsed:
                case Err(e):
                    failures.append(SubmoduleFailure(submodule=sub.path, cause=e))
                case Ok(entries):
                    batches.append(filter_log_entries(entries, options, scoped))

        entries = merge_logs(batches, options.start, options.num)
        return Ok(LogResult(entries=entries, failures=self._collect(failures)))

    # -- ls-files --------------------------------------------------------------

    def ls_files(self, options: LsFilesOptions) -> Result[FilesResult, AggregateError]:
        """Tracked files of every repository in scope.

        Lists the index with ``options.staged``, each repository's tree at
        the pinned commit with ``options.revision``, and each checked-out
        HEAD otherwise.
        """
        match options.validate():
            case Err(e):
                return Err(AggregateError.from_filter(e))
            case Ok(_):
                pass

        failures: list[SubmoduleFailure] = []
        trees: dict[str, str | None] | None = None
        if options.revision is not None:
            match read_pins(options.revision, self._registry, self._orchestrator):
                case Err(e):
                    return Err(AggregateError.from_revision(e))
                case Ok(pins):
                    trees = {p: c for p, c in pins.commits.items() if not pins.failed(p)}
                    failures.extend(pins.failures)

        scopes = self._scopes(options.pathspecs)
        if not options.staged:
            scopes = {path: scope.literal_only() for path, scope in scopes.items()}

        jobs: list[tuple[Submodule, GitQuery]] = []
        for sub in self._registry:
            if sub.path not in scopes:
                continue
            tree_ish: str | None = None
            if trees is not None:
                tree_ish = trees.get(sub.path)
                if sub.initialized and tree_ish is None:
                    # Absent at that revision, or its pin is unusable.
                    continue
            elif not options.staged and sub.initialized and sub.commit is None:
                continue
            jobs.append((sub, ls_files_query(options, scopes[sub.path], tree_ish)))

        dispatch = self._dispatch("ls-files", jobs)
        fatal = self._check_fatal(dispatch)
        if fatal is not None:
            return Err(fatal)
        failures.extend(dispatch.failures)

        results: dict[str, list[FileEntry]] = {}
        for sub, _ in jobs:
            output = dispatch.outputs.get(sub.path)
            if output is None:
                continue
            match parse_file_list(output, sub.path, staged=options.staged):
                case Err(e):
                    failures.append(SubmoduleFailure(submodule=sub.path, cause=e))
                case Ok(entries):
                    results[sub.path] = filter_files(entries, scopes[sub.path])

        groups = group_by_submodule(self._registry.submodules, results)
        return Ok(FilesResult(groups=groups, failures=self._collect(failures)))

    # -- helpers ---------------------------------------------------------------

    def _scopes(self, pathspecs: tuple[str, ...]) -> dict[str, ScopedPathspec]:
        paths = self._registry.paths
        scopes: dict[str, ScopedPathspec] = {}
        for path in paths:
            scoped = scope_pathspecs(pathspecs, path, paths)
            if scoped is None:
                self._console.debug(f"out of scope: {path}")
                continue
            scopes[path] = scoped
        return scopes

    def _dispatch(self, what: str, jobs: list[tuple[Submodule, GitQuery]]) -> Dispatch:
        self._console.debug(
            f"{what}: {len(jobs)} repositories, {self._orchestrator.max_workers} workers max"
        )
        return self._orchestrator.dispatch(jobs)

    def _check_fatal(self, dispatch: Dispatch) -> AggregateError | None:
        if dispatch.root_failed:
            root = dispatch.failure_for(".")
            assert root is not None
            return AggregateError(
                kind="query_failed",
                message=f"root repository: {root.message}",
                failures=dispatch.failures,
            )
        if dispatch.all_failed:
            return AggregateError(
                kind="query_failed",
                message="every repository failed",
                failures=dispatch.failures,
            )
        return None

    def _collect(self, failures: Iterable[SubmoduleFailure]) -> tuple[SubmoduleFailure, ...]:
        """Discovery failures plus ``failures``, in registry order, once each."""
        order = {path: i for i, path in enumerate(self._registry.paths)}
        unique: dict[tuple[str, str], SubmoduleFailure] = {}
        for failure in (*self._registry.failures, *failures):
            unique.setdefault((failure.submodule, failure.message), failure)
        return tuple(sorted(unique.values(), key=lambda f: order.get(f.submodule, len(order))))
