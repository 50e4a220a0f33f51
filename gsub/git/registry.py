"""Submodule discovery.

Walks the submodule tree once per invocation and produces the canonical,
ordered list of repositories every other component refers to by path.

Order is depth-first and path-lexicographic with the root first, so output
is stable across runs:

    .
    libs/a
    libs/a/vendor/x
    libs/b
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from pathlib import Path

from gsub.core.result import Err, Ok, Result
from gsub.git.errors import DiscoveryError, SubmoduleFailure
from gsub.git.models import ROOT_PATH, Submodule, join_path
from gsub.git.orchestrator import Orchestrator
from gsub.git.query import GitQuery
from gsub.git.runner import GitRunner

__all__ = [
    "Registry",
    "discover",
    "find_root",
    "parse_gitmodules_names",
    "parse_submodule_status",
    "walk_tree",
]

_DISCOVERY_TIMEOUT_SECONDS = 30.0

# " <sha> path (describe)", "-<sha> path", "+<sha> path (describe)", "U<sha> path"
_SUBMODULE_LINE = re.compile(r"^(?P<flag>[ +\-U])(?P<sha>[0-9a-f]+) (?P<path>.+?)(?: \((?P<describe>.*)\))?$")

_NAME_KEY_PREFIX = "submodule."
_NAME_KEY_SUFFIX = ".path"

_HEAD_QUERY = GitQuery.of("rev-parse", "--verify", "-q", "HEAD", ok_returncodes=frozenset({0, 1}))
_LIST_QUERY = GitQuery.of("submodule", "status")
# Exits 1 when .gitmodules is missing or names nothing.
_NAMES_QUERY = GitQuery.of(
    "config", "--file", ".gitmodules", "--get-regexp", r"^submodule\..*\.path$", ok_returncodes=frozenset({0, 1})
)


@dataclass(frozen=True, slots=True)
class _ChildRecord:
    path: str
    commit: str
    initialized: bool
    out_of_sync: bool


@dataclass(frozen=True, slots=True)
class Registry:
    """Snapshot of the submodule tree.

    Attributes:
        root: Absolute path of the root repository's work tree
        submodules: All repositories in canonical order, root first
        failures: Nested submodules whose own children could not be listed
    """

    root: Path
    submodules: tuple[Submodule, ...]
    failures: tuple[SubmoduleFailure, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Submodule]:
        return iter(self.submodules)

    def __len__(self) -> int:
        return len(self.submodules)

    @property
    def root_submodule(self) -> Submodule:
        return self.submodules[0]

    @property
    def paths(self) -> list[str]:
        return [s.path for s in self.submodules]

    def get(self, path: str) -> Submodule | None:
        for sub in self.submodules:
            if sub.path == path:
                return sub
        return None

    def children(self, path: str) -> list[Submodule]:
        """Direct submodules of the repository at ``path``."""
        return [s for s in self.submodules if s.parent == path]

    def abs_path(self, submodule: Submodule) -> Path:
        if submodule.is_root:
            return self.root
        return self.root / submodule.path


def parse_submodule_status(output: str) -> list[_ChildRecord]:
    """Parse ``git submodule status`` (non-recursive) output.

    Lines that don't match the expected shape are ignored; git prints
    nothing else on stdout for this command.
    """
    records: list[_ChildRecord] = []
    for line in output.splitlines():
        match = _SUBMODULE_LINE.match(line)
        if not match:
            continue
        flag = match.group("flag")
        records.append(
            _ChildRecord(
                path=match.group("path").rstrip("/"),
                commit=match.group("sha"),
                initialized=flag != "-",
                out_of_sync=flag == "+",
            )
        )
    return records


def parse_gitmodules_names(output: str) -> dict[str, str]:
    """Map submodule path -> name from ``git config --get-regexp`` output."""
    names: dict[str, str] = {}
    for line in output.splitlines():
        key, _, value = line.partition(" ")
        if not key.startswith(_NAME_KEY_PREFIX) or not key.endswith(_NAME_KEY_SUFFIX):
            continue
        name = key[len(_NAME_KEY_PREFIX) : -len(_NAME_KEY_SUFFIX)]
        if name and value:
            names[value.strip().rstrip("/")] = name
    return names


def find_root(start: Path, runner: GitRunner) -> Result[Path, DiscoveryError]:
    """Find the top level of the work tree containing ``start``."""
    if not start.is_dir():
        return Err(DiscoveryError(f"Not a directory: {start}", searched_from=start))

    result = runner(start, ["rev-parse", "--show-toplevel"], timeout=_DISCOVERY_TIMEOUT_SECONDS)
    match result:
        case Err(e):
            return Err(
                DiscoveryError(
                    f"Not a git repository (or any parent up to mount point): {start}"
                    + (f"\n{e.message}" if e.message else ""),
                    searched_from=start,
                )
            )
        case Ok(stdout):
            top = stdout.strip()
            if not top:
                return Err(DiscoveryError(f"Not inside a work tree: {start}", searched_from=start))
            return Ok(Path(top))


def _children(parent: Submodule, records: list[_ChildRecord], names: dict[str, str]) -> list[Submodule]:
    return [
        Submodule(
            path=join_path(parent.path, record.path),
            name=names.get(record.path, record.path),
            initialized=record.initialized,
            parent=parent.path,
            commit=record.commit if record.initialized else None,
            out_of_sync=record.out_of_sync,
            depth=parent.depth + 1,
        )
        for record in sorted(records, key=lambda r: r.path)
    ]


def walk_tree(orchestrator: Orchestrator) -> Result[Registry, DiscoveryError]:
    """Enumerate the repository at ``orchestrator.root`` and all its submodules.

    Each level of the tree is listed with one concurrent dispatch, so the
    walk shares the orchestrator's deadline and cancel event. Initialized
    submodules are recursed into; uninitialized ones are recorded with
    ``initialized=False`` so callers can report them as skipped. Only a
    failure on the root repository is fatal.
    """
    root = orchestrator.root
    root_sub = Submodule(path=ROOT_PATH, name=root.name)

    head = orchestrator.dispatch([(root_sub, _HEAD_QUERY)])
    root_sub = replace(root_sub, commit=head.outputs.get(ROOT_PATH, "").strip() or None)

    children_of: dict[str, list[Submodule]] = {}
    failures: list[SubmoduleFailure] = []
    level = [root_sub]
    while level:
        listing = orchestrator.dispatch([(sub, _LIST_QUERY) for sub in level])
        root_failure = listing.failure_for(ROOT_PATH)
        if root_failure is not None:
            reason = getattr(root_failure.cause, "message", str(root_failure.cause))
            return Err(DiscoveryError(f"Cannot list submodules of {root}: {reason}", searched_from=root))

        records = {path: parse_submodule_status(out) for path, out in listing.outputs.items()}
        named = orchestrator.dispatch([(sub, _NAMES_QUERY) for sub in level if records.get(sub.path)])

        next_level: list[Submodule] = []
        for sub in level:
            failure = listing.failure_for(sub.path)
            if failure is not None:
                failures.append(failure)
                continue
            names = parse_gitmodules_names(named.outputs.get(sub.path, ""))
            children = _children(sub, records[sub.path], names)
            children_of[sub.path] = children
            next_level.extend(c for c in children if c.initialized)
        level = next_level

    ordered: list[Submodule] = []

    def visit(sub: Submodule) -> None:
        ordered.append(sub)
        for child in children_of.get(sub.path, []):
            visit(child)

    visit(root_sub)

    order = {sub.path: i for i, sub in enumerate(ordered)}
    failures.sort(key=lambda f: order[f.submodule])
    return Ok(Registry(root=root, submodules=tuple(ordered), failures=tuple(failures)))


def discover(start: Path, runner: GitRunner) -> Result[Registry, DiscoveryError]:
    """Find the root repository containing ``start`` and walk its submodules.

    Args:
        start: Directory inside the root repository's work tree
        runner: Git runner

    Returns:
        Ok(Registry) in canonical order, Err(DiscoveryError) if ``start`` is
        not inside a work tree or the root's submodules can't be listed
    """
    match find_root(start, runner):
        case Err() as failed:
            return failed
        case Ok(root):
            return walk_tree(Orchestrator(root, runner, timeout=_DISCOVERY_TIMEOUT_SECONDS))
