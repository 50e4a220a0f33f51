"""Records produced by one git-sub invocation.

Every record is immutable and refers to its repository by path only
(``"."`` for the root repository, otherwise the path relative to the root).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
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
]

ROOT_PATH = "."


def join_path(submodule: str, path: str) -> str:
    """Turn a submodule-relative path into a root-relative one."""
    if submodule == ROOT_PATH:
        return path
    return f"{submodule}/{path}"


@dataclass(frozen=True, slots=True)
class Submodule:
    """A repository in the submodule tree (the root included).

    Attributes:
        path: Root-relative path, "." for the root repository
        name: Name from .gitmodules (the path when unknown)
        initialized: False when the submodule has not been checked out
        parent: Parent repository path, None for the root
        commit: Checked-out HEAD, None when unknown (unborn or uninitialized)
        out_of_sync: Checked-out commit differs from the one the parent records
        depth: 0 for the root, 1 for its direct submodules, ...
    """

    path: str
    name: str
    initialized: bool = True
    parent: str | None = None
    commit: str | None = None
    out_of_sync: bool = False
    depth: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def display_path(self) -> str:
        """Path as shown to users: "." or "./sub/dir"."""
        return ROOT_PATH if self.is_root else f"./{self.path}"


class RepoState(Enum):
    """Operation left in progress in a repository. Values are display names."""

    MERGE = "Merge"
    REVERT = "Revert"
    REVERT_SEQUENCE = "Revert sequence"
    CHERRY_PICK = "Cherry-pick"
    CHERRY_PICK_SEQUENCE = "Cherry-pick sequence"
    BISECT = "Bisect"
    REBASE = "Rebase"
    REBASE_INTERACTIVE = "Interactive rebase"
    REBASE_MERGE = "Rebase merge"
    APPLY_MAILBOX = "Apply mailbox"
    APPLY_MAILBOX_OR_REBASE = "Apply mailbox or rebase"


class StatusKind(Enum):
    """Change states a path can be in. Values are porcelain letters."""

    ADDED = "A"
    DELETED = "D"
    MODIFIED = "M"
    RENAMED = "R"
    TYPE_CHANGED = "T"
    UNMERGED = "U"
    UNTRACKED = "?"
    IGNORED = "!"

    @property
    def filter_letter(self) -> str:
        """Letter used by --diff-filter.

        Untracked files count as added; unmerged and ignored paths are
        "unknown" (U).
        """
        if self is StatusKind.UNTRACKED:
            return "A"
        if self in (StatusKind.UNMERGED, StatusKind.IGNORED):
            return "U"
        return self.value


# Priority used to pick one kind for an entry changed on both sides.
_KIND_PRIORITY = (
    StatusKind.ADDED,
    StatusKind.UNTRACKED,
    StatusKind.MODIFIED,
    StatusKind.DELETED,
    StatusKind.RENAMED,
    StatusKind.TYPE_CHANGED,
    StatusKind.UNMERGED,
    StatusKind.IGNORED,
)


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """One path of a repository's working-tree status.

    Attributes:
        submodule: Repository path
        path: Path relative to that repository
        index_state: Staged change, None if the index matches HEAD
        worktree_state: Unstaged change, None if the working tree matches the index
        rename_source: Previous path for renames/copies
        is_ignored: Path is ignored (only reported with --ignored)
    """

    submodule: str
    path: str
    index_state: StatusKind | None = None
    worktree_state: StatusKind | None = None
    rename_source: str | None = None
    is_ignored: bool = False

    @property
    def is_untracked(self) -> bool:
        return self.worktree_state is StatusKind.UNTRACKED

    @property
    def is_staged(self) -> bool:
        """True if the index holds a change for this path."""
        return self.index_state is not None and self.index_state not in (
            StatusKind.UNTRACKED,
            StatusKind.IGNORED,
        )

    @property
    def is_unstaged(self) -> bool:
        return self.worktree_state is not None

    @property
    def states(self) -> tuple[StatusKind, ...]:
        return tuple(s for s in (self.index_state, self.worktree_state) if s is not None)

    @property
    def change_kind(self) -> StatusKind:
        """Single kind describing the entry, by fixed priority."""
        states = self.states
        for kind in _KIND_PRIORITY:
            if kind in states:
                return kind
        return StatusKind.UNMERGED

    @property
    def xy(self) -> str:
        """Two-character porcelain code rebuilt from the states."""
        if self.is_ignored:
            return "!!"
        if self.is_untracked:
            return "??"
        x = self.index_state.value if self.index_state else " "
        y = self.worktree_state.value if self.worktree_state else " "
        return x + y


@dataclass(frozen=True, slots=True)
class StatusReport:
    """Parsed status of one repository.

    Attributes:
        submodule: Repository path
        branch: Current branch, None when detached or unknown
        upstream: Upstream branch (e.g. "origin/main")
        ahead: Commits ahead of upstream
        behind: Commits behind upstream
        entries: Changed paths
        patch: Diff blob when patch mode was requested
        state: Operation in progress (merge, rebase, ...), None when idle
    """

    submodule: str
    branch: str | None = None
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    entries: tuple[StatusEntry, ...] = ()
    patch: str | None = None
    state: RepoState | None = None

    @property
    def is_clean(self) -> bool:
        return not self.entries

    @property
    def staged(self) -> list[StatusEntry]:
        return [e for e in self.entries if e.is_staged]

    @property
    def unstaged(self) -> list[StatusEntry]:
        return [e for e in self.entries if e.is_unstaged]


@dataclass(frozen=True, slots=True)
class ChangedFile:
    """A file touched by a commit (--name-status)."""

    kind: StatusKind
    path: str
    source: str | None = None


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One commit of one repository.

    Attributes:
        submodule: Repository path
        commit_id: Commit hash (abbreviated in short mode)
        parent_ids: Parent hashes
        author: Author name
        timestamp: Committer time in epoch seconds, the cross-repo sort key
        message: Full commit message, trailing newlines stripped
        changed_files: Files touched, None unless requested
        patch: Patch text, None unless requested
        author_timestamp: Author time (full mode only)
        committer: "Name <email>" of the committer (full mode only)
        author_email: Author email, None when git reported none
    """

    submodule: str
    commit_id: str
    parent_ids: tuple[str, ...]
    author: str
    timestamp: int
    message: str
    changed_files: tuple[ChangedFile, ...] | None = None
    patch: str | None = None
    author_timestamp: int | None = None
    committer: str | None = None
    author_email: str | None = None

    @property
    def author_identity(self) -> str:
        """"Name <email>", the text --author is matched against."""
        if self.author_email is None:
            return self.author
        return f"{self.author} <{self.author_email}>"

    @property
    def summary(self) -> str:
        return self.message.split("\n", 1)[0].strip()

    @property
    def short_id(self) -> str:
        return self.commit_id[:7]


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A tracked file.

    Attributes:
        submodule: Repository path
        path: Path relative to that repository
        staged: Listed from the index rather than from a commit tree
        object_id: Blob id when git reported one
    """

    submodule: str
    path: str
    staged: bool = False
    object_id: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedStart:
    """Where a repository's history starts for ``log --revision``.

    ``commit_id`` is excluded together with its ancestors; None means the
    whole history is included.
    """

    submodule: str
    commit_id: str | None = None
