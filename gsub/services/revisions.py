"""Revision resolution.

Maps a revision of the root repository onto every submodule: the root
revision is resolved to a commit, then the gitlinks recorded in each
parent's tree at that commit give the pinned commit of each child, level by
level. Each level is one concurrent dispatch.

``log --revision`` uses the pins as exclusion points (``<heads> ^pin``),
``ls-files --rev`` lists each repository's tree at its pin.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from gsub.core.result import Err, Ok, Result
from gsub.git.errors import QueryError, RevisionResolutionError, SubmoduleFailure
from gsub.git.models import ROOT_PATH, ResolvedStart, Submodule
from gsub.git.orchestrator import Orchestrator
from gsub.git.query import GitQuery
from gsub.git.registry import Registry
from gsub.parse.files import parse_gitlinks

__all__ = ["Pins", "read_pins", "resolve_starts"]


@dataclass(frozen=True, slots=True)
class Pins:
    """Commits every repository was at for one root revision.

    Attributes:
        revision: The root revision as given by the user
        commits: Repository path -> commit id; None when the repository did
            not exist at the revision
        failures: Repositories whose pin could not be verified
    """

    revision: str
    commits: dict[str, str | None]
    failures: tuple[SubmoduleFailure, ...] = ()

    @property
    def root_commit(self) -> str:
        commit = self.commits[ROOT_PATH]
        assert commit is not None
        return commit

    def failed(self, path: str) -> bool:
        return any(f.submodule == path for f in self.failures)


def _relative(child: Submodule, parent: Submodule) -> str:
    if parent.is_root:
        return child.path
    return child.path[len(parent.path) + 1 :]


def _resolve_root(revision: str, registry: Registry, orchestrator: Orchestrator) -> Result[str, RevisionResolutionError]:
    root = registry.root_submodule
    query = GitQuery.of("rev-parse", "--verify", "-q", f"{revision}^{{commit}}")
    dispatch = orchestrator.dispatch([(root, query)])
    failure = dispatch.failure_for(ROOT_PATH)
    if failure is not None:
        reason = "unknown revision"
        if isinstance(failure.cause, QueryError) and (failure.cause.cancelled or failure.cause.timed_out):
            reason = failure.cause.message
        return Err(RevisionResolutionError(ROOT_PATH, revision, reason))

    commit = dispatch.outputs.get(ROOT_PATH, "").strip()
    if not commit:
        return Err(RevisionResolutionError(ROOT_PATH, revision, "unknown revision"))
    return Ok(commit)


def _level_query(pin: str, child_paths: Sequence[str], verify: bool) -> GitQuery | None:
    steps: list[tuple[str, ...]] = []
    if verify:
        steps.append(("cat-file", "-e", f"{pin}^{{commit}}"))
    if child_paths:
        steps.append(("ls-tree", "-r", "--full-tree", pin, "--", *child_paths))
    if not steps:
        return None
    return GitQuery(steps=tuple(steps))


def _failure_reason(cause: object) -> str:
    if isinstance(cause, QueryError):
        if cause.cancelled or cause.timed_out:
            return cause.message
        if cause.command == "cat-file":
            return "pinned commit not found"
        return f"cannot read tree: {cause.message}"
    return getattr(cause, "message", str(cause))


def read_pins(revision: str, registry: Registry, orchestrator: Orchestrator) -> Result[Pins, RevisionResolutionError]:
    """Find the commit each repository was pinned to at ``revision``.

    Args:
        revision: Revision of the root repository
        registry: Discovered submodules
        orchestrator: Dispatcher (its deadline covers resolution too)

    Returns:
        Ok(Pins), or Err(RevisionResolutionError) when the root revision
        itself cannot be resolved (fatal)
    """
    match _resolve_root(revision, registry, orchestrator):
        case Err(e):
            return Err(e)
        case Ok(root_commit):
            pass

    commits: dict[str, str | None] = {ROOT_PATH: root_commit}
    failures: list[SubmoduleFailure] = []

    def drop_subtree(sub: Submodule, failure_of: str | None) -> None:
        """Mark every descendant of ``sub`` absent, or failed with its parent."""
        for child in registry.children(sub.path):
            if failure_of is None:
                commits[child.path] = None
            else:
                failures.append(
                    SubmoduleFailure(
                        submodule=child.path,
                        cause=RevisionResolutionError(
                            child.path, revision, f"pin of {failure_of} unresolvable"
                        ),
                    )
                )
            drop_subtree(child, failure_of)

    level: list[Submodule] = [registry.root_submodule]
    verify = False
    while level:
        jobs: list[tuple[Submodule, GitQuery]] = []
        for sub in level:
            pin = commits[sub.path]
            assert pin is not None
            children = registry.children(sub.path)
            query = _level_query(pin, [_relative(c, sub) for c in children], verify)
            if query is not None:
                jobs.append((sub, query))

        dispatch = orchestrator.dispatch(jobs)

        next_level: list[Submodule] = []
        for sub, _ in jobs:
            pin = commits[sub.path]
            failure = dispatch.failure_for(sub.path)
            if failure is not None:
                failures.append(
                    SubmoduleFailure(
                        submodule=sub.path,
                        cause=RevisionResolutionError(
                            sub.path, revision, _failure_reason(failure.cause), commit=pin
                        ),
                    )
                )
                drop_subtree(sub, sub.path)
                continue

            children = registry.children(sub.path)
            if not children:
                continue
            match parse_gitlinks(dispatch.outputs[sub.path], sub.path):
                case Err(e):
                    failures.append(
                        SubmoduleFailure(
                            submodule=sub.path,
                            cause=RevisionResolutionError(sub.path, revision, e.message, commit=pin),
                        )
                    )
                    drop_subtree(sub, sub.path)
                    continue
                case Ok(links):
                    pass

            for child in children:
                child_pin = links.get(_relative(child, sub))
                commits[child.path] = child_pin
                if child_pin is None:
                    drop_subtree(child, None)
                elif child.initialized:
                    next_level.append(child)
                else:
                    # Never queried; the main dispatch reports it as skipped.
                    drop_subtree(child, None)

        level = next_level
        verify = True

    # Registry order for stable output.
    order = {path: i for i, path in enumerate(registry.paths)}
    failures.sort(key=lambda f: order.get(f.submodule, len(order)))
    return Ok(Pins(revision=revision, commits=commits, failures=tuple(failures)))


def resolve_starts(
    revision: str,
    registry: Registry,
    orchestrator: Orchestrator,
) -> Result[tuple[list[ResolvedStart], list[SubmoduleFailure]], RevisionResolutionError]:
    """Per-repository start points for ``log --revision``.

    The root starts at the revision's commit, each submodule at the commit
    its parent pinned at that revision. A submodule that did not exist at
    the revision starts from the beginning of its history
    (``commit_id=None``). Submodules whose pin cannot be verified are
    returned as failures and get no start.
    """
    match read_pins(revision, registry, orchestrator):
        case Err(e):
            return Err(e)
        case Ok(pins):
            pass

    starts = [
        ResolvedStart(submodule=sub.path, commit_id=pins.commits.get(sub.path))
        for sub in registry
        if not pins.failed(sub.path)
    ]
    return Ok((starts, list(pins.failures)))
