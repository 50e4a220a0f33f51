"""Git-facing layer of the aggregation engine.

- models / errors: records and error values shared by every component
- registry: submodule discovery (walked through the orchestrator)
- orchestrator: concurrent per-repository dispatch
- state: operation in progress, read from the git directory

Usage:
    from gsub.git import Orchestrator, find_root, run_git, walk_tree

    root = find_root(Path.cwd(), run_git).unwrap()
    orchestrator = Orchestrator(root, run_git, timeout=30.0, deadline=120.0)
    registry = walk_tree(orchestrator).unwrap()
"""

from gsub.git.models import (
    ROOT_PATH,
    ChangedFile,
    FileEntry,
    LogEntry,
    RepoState,
    ResolvedStart,
    StatusEntry,
    StatusKind,
    StatusReport,
    Submodule,
    join_path,
)
from gsub.git.errors import (
    DiscoveryError,
    InvalidFilterError,
    NotInitialized,
    ParseError,
    QueryError,
    RevisionResolutionError,
    SubmoduleFailure,
)
from gsub.git.query import GitQuery
from gsub.git.state import git_dir, read_state
from gsub.git.runner import GitRunner, run_git
from gsub.git.registry import Registry, discover, find_root, walk_tree
from gsub.git.orchestrator import Dispatch, Orchestrator

__all__ = [
    # models
    "ROOT_PATH",
    "ChangedFile",
    "FileEntry",
    "LogEntry",
    "RepoState",
    "ResolvedStart",
    "StatusEntry",
    "StatusKind",
    "StatusReport",
    "Submodule",
    "join_path",
    # errors
    "DiscoveryError",
    "InvalidFilterError",
    "NotInitialized",
    "ParseError",
    "QueryError",
    "RevisionResolutionError",
    "SubmoduleFailure",
    # dispatch
    "Dispatch",
    "GitQuery",
    "GitRunner",
    "Orchestrator",
    "Registry",
    "discover",
    "git_dir",
    "read_state",
    "find_root",
    "run_git",
    "walk_tree",
]
