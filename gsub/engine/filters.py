"""Filter pipeline.

Filters run in a fixed order:

1. Push-down, encoded into each repository's git query: pathspec (scoped
   per repository), revision bounds, untracked suppression for staged-only
   status, ignored files, and a per-repository max-count for paginated logs.
2. Post-parse, applied to parsed records: glob pathspec residue, author and
   message patterns (Python ``re``, the same engine that validated them),
   the staged/work-tree projection, then the diff-filter.

Everything the user typed is validated before any query is issued.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from gsub.core.result import Err, Ok, Result
from gsub.engine.pathspec import ScopedPathspec
from gsub.git.errors import InvalidFilterError
from gsub.git.models import (
    FileEntry,
    LogEntry,
    ResolvedStart,
    StatusEntry,
    StatusKind,
    StatusReport,
    join_path,
)
from gsub.git.query import GitQuery
from gsub.parse.log import log_format

__all__ = [
    "DIFF_FILTER_LETTERS",
    "DiffFilter",
    "LogOptions",
    "LsFilesOptions",
    "StatusOptions",
    "StatusScope",
    "filter_files",
    "filter_log_entries",
    "filter_status",
    "log_needs_files",
    "log_query",
    "ls_files_query",
    "status_query",
]

DIFF_FILTER_LETTERS = "ADMRTU"


class StatusScope(Enum):
    """Which side of the status to show."""

    BOTH = "both"
    INDEX = "index"
    WORKTREE = "worktree"


@dataclass(frozen=True, slots=True)
class DiffFilter:
    """Status-kind inclusion/exclusion (``--diff-filter``).

    Uppercase letters select only those kinds, lowercase letters drop them.
    A filter is one or the other, never both.

    Attributes:
        include: Letters to keep, None keeps every kind not excluded
        exclude: Letters to drop
    """

    include: frozenset[str] | None = None
    exclude: frozenset[str] = frozenset()

    @classmethod
    def parse(cls, spec: str | None) -> Result[DiffFilter, InvalidFilterError]:
        """Parse a ``--diff-filter`` value such as "AM" or "d".

        Returns:
            Ok(DiffFilter), or Err(InvalidFilterError) for an empty spec,
            an unknown letter, or mixed upper/lowercase letters
        """
        if spec is None:
            return Ok(cls())
        letters = spec.strip()
        if not letters:
            return Err(InvalidFilterError("empty --diff-filter", value=spec))

        unknown = sorted({c for c in letters if c.upper() not in DIFF_FILTER_LETTERS})
        if unknown:
            return Err(
                InvalidFilterError(
                    f"unknown --diff-filter letter(s) {''.join(unknown)!r}; "
                    f"expected some of {DIFF_FILTER_LETTERS}",
                    value=spec,
                )
            )

        upper = frozenset(c for c in letters if c.isupper())
        lower = frozenset(c.upper() for c in letters if c.islower())
        if upper and lower:
            return Err(
                InvalidFilterError(
                    "--diff-filter cannot mix uppercase (include) and lowercase (exclude) letters",
                    value=spec,
                )
            )
        if upper:
            return Ok(cls(include=upper))
        return Ok(cls(exclude=lower))

    @property
    def is_noop(self) -> bool:
        return self.include is None and not self.exclude

    def accepts(self, kind: StatusKind) -> bool:
        letter = kind.filter_letter
        if self.include is not None:
            return letter in self.include
        return letter not in self.exclude

    def select(self, entry: StatusEntry) -> StatusEntry | None:
        """Keep each side of ``entry`` whose kind is accepted.

        The staged and work-tree changes of a path are filtered separately,
        so an "AM" entry under "M" keeps only its work-tree side. Returns
        None when neither side is accepted.
        """
        if self.is_noop:
            return entry
        index = entry.index_state
        if index is not None and not self.accepts(index):
            index = None
        worktree = entry.worktree_state
        if worktree is not None and not self.accepts(worktree):
            worktree = None
        if index is None and worktree is None:
            return None
        if index is entry.index_state and worktree is entry.worktree_state:
            return entry
        # Renames and copies are index-side in porcelain v1.
        source = entry.rename_source if index is not None else None
        return dataclasses.replace(entry, index_state=index, worktree_state=worktree, rename_source=source)


def _validate_regex(pattern: str | None, option: str) -> Result[None, InvalidFilterError]:
    if pattern is None:
        return Ok(None)
    try:
        re.compile(pattern)
    except re.error as e:
        return Err(InvalidFilterError(f"invalid {option} pattern: {e}", value=pattern))
    return Ok(None)


@dataclass(frozen=True, slots=True)
class StatusOptions:
    pathspecs: tuple[str, ...] = ()
    scope: StatusScope = StatusScope.BOTH
    ignored: bool = False
    diff_filter: DiffFilter = DiffFilter()
    patch: bool = False


@dataclass(frozen=True, slots=True)
class LogOptions:
    """Options of ``git-sub log``.

    Attributes:
        pathspecs: Root-relative pathspecs
        all_refs: Walk every branch (local and remote) instead of HEAD
        author: Regular expression searched in "Name <email>"
        grep: Regular expression searched in the whole message
        revision: Root revision; show only what changed since then
        list_files: Populate changed files
        full: Full ids, identities and dates
        patch: Populate patches
        num: Page size, None for everything
        start: Entries to skip in the global order
    """

    pathspecs: tuple[str, ...] = ()
    all_refs: bool = False
    author: str | None = None
    grep: str | None = None
    revision: str | None = None
    list_files: bool = False
    full: bool = False
    patch: bool = False
    num: int | None = None
    start: int = 0

    def validate(self) -> Result[None, InvalidFilterError]:
        if self.num is not None and self.num < 0:
            return Err(InvalidFilterError("--num must be >= 0", value=str(self.num)))
        if self.start < 0:
            return Err(InvalidFilterError("--start must be >= 0", value=str(self.start)))
        author = _validate_regex(self.author, "--author")
        if isinstance(author, Err):
            return author
        return _validate_regex(self.grep, "--grep")

    @property
    def matches_text(self) -> bool:
        """Author or message patterns are set; they are matched on parsed records."""
        return self.author is not None or self.grep is not None


@dataclass(frozen=True, slots=True)
class LsFilesOptions:
    pathspecs: tuple[str, ...] = ()
    staged: bool = False
    revision: str | None = None

    def validate(self) -> Result[None, InvalidFilterError]:
        if self.staged and self.revision is not None:
            return Err(InvalidFilterError("--staged and --rev are mutually exclusive"))
        return Ok(None)


# -----------------------------------------------------------------------------
# Push-down
# -----------------------------------------------------------------------------


def status_query(options: StatusOptions, scoped: ScopedPathspec) -> GitQuery:
    """Status query for one repository, with diffs appended in patch mode."""
    args = ["status", "--porcelain=v1", "-b", "--ignore-submodules=all"]
    if options.scope is StatusScope.INDEX:
        args.append("--untracked-files=no")
    else:
        args.append("--untracked-files=all" if options.patch else "--untracked-files=normal")
    if options.ignored and options.scope is not StatusScope.INDEX:
        args.append("--ignored")
    args += ["--", *scoped.pathspecs]

    query = GitQuery.of(*args)
    if not options.patch:
        return query

    diff = ["--no-ext-diff", "--ignore-submodules=all", "--", *scoped.pathspecs]
    if options.scope in (StatusScope.BOTH, StatusScope.INDEX):
        query = query.then("diff", "--cached", *diff)
    if options.scope in (StatusScope.BOTH, StatusScope.WORKTREE):
        query = query.then("diff", *diff)
    return query


def log_needs_files(options: LogOptions, scoped: ScopedPathspec) -> bool:
    """Changed files are needed to list them or to match glob pathspecs."""
    return options.list_files or bool(scoped.patterns)


def log_query(
    options: LogOptions,
    scoped: ScopedPathspec,
    start: ResolvedStart | None = None,
    limit: int | None = None,
) -> GitQuery:
    """Log query for one repository.

    Args:
        options: Validated log options
        scoped: Pathspecs for this repository
        start: Resolved start; its commit and ancestors are excluded
        limit: Per-repository max-count (ignored when glob residue or
            author/message patterns are matched after parsing, since that
            can drop entries)
    """
    args = ["log", "--no-color", "--no-ext-diff", f"--format={log_format(options.full)}"]
    if log_needs_files(options, scoped):
        args.append("--name-status")
    if options.patch:
        args.append("--patch")
    if limit is not None and not scoped.patterns and not options.matches_text:
        args.append(f"--max-count={limit}")

    if options.all_refs:
        args += ["HEAD", "--branches", "--remotes"]
    else:
        args.append("HEAD")
    if start is not None and start.commit_id is not None:
        args.append(f"^{start.commit_id}")

    args += ["--", *scoped.pathspecs]
    return GitQuery.of(*args)


def ls_files_query(
    options: LsFilesOptions,
    scoped: ScopedPathspec,
    tree_ish: str | None = None,
) -> GitQuery:
    """File listing for one repository: the index, or a commit's tree."""
    if options.staged:
        return GitQuery.of("ls-files", "--stage", "--", *scoped.pathspecs)
    return GitQuery.of(
        "ls-tree",
        "-r",
        "--full-tree",
        tree_ish or "HEAD",
        "--",
        *scoped.literal_only().pathspecs,
    )


# -----------------------------------------------------------------------------
# Post-parse
# -----------------------------------------------------------------------------


def _project(entry: StatusEntry, scope: StatusScope) -> StatusEntry | None:
    if scope is StatusScope.BOTH:
        return entry
    if scope is StatusScope.INDEX:
        if not entry.is_staged:
            return None
        return dataclasses.replace(entry, worktree_state=None)
    if not entry.is_unstaged:
        return None
    return dataclasses.replace(entry, index_state=None)


def filter_status(
    report: StatusReport,
    options: StatusOptions,
    scoped: ScopedPathspec,
) -> StatusReport:
    """Apply post-parse filters to one repository's status."""
    kept: list[StatusEntry] = []
    for entry in report.entries:
        root_path = join_path(report.submodule, entry.path)
        source_path = (
            join_path(report.submodule, entry.rename_source) if entry.rename_source else None
        )
        if not scoped.matches(root_path) and not (source_path and scoped.matches(source_path)):
            continue
        if entry.is_ignored and not options.ignored:
            continue
        projected = _project(entry, options.scope)
        if projected is None:
            continue
        selected = options.diff_filter.select(projected)
        if selected is not None:
            kept.append(selected)
    return dataclasses.replace(report, entries=tuple(kept))


def filter_log_entries(
    entries: Sequence[LogEntry],
    options: LogOptions,
    scoped: ScopedPathspec,
) -> list[LogEntry]:
    """Apply glob pathspec residue and author/message patterns, and drop
    changed files nobody asked for.

    Patterns are searched (not anchored), the author one in "Name <email>".
    """
    author = re.compile(options.author) if options.author is not None else None
    grep = re.compile(options.grep) if options.grep is not None else None
    kept: list[LogEntry] = []
    for entry in entries:
        if author is not None and not author.search(entry.author_identity):
            continue
        if grep is not None and not grep.search(entry.message):
            continue
        if scoped.patterns:
            files = entry.changed_files or ()
            if not any(
                scoped.matches(join_path(entry.submodule, f.path))
                or (f.source is not None and scoped.matches(join_path(entry.submodule, f.source)))
                for f in files
            ):
                continue
        if not options.list_files and entry.changed_files is not None:
            entry = dataclasses.replace(entry, changed_files=None)
        kept.append(entry)
    return kept


def filter_files(entries: Sequence[FileEntry], scoped: ScopedPathspec) -> list[FileEntry]:
    return [e for e in entries if scoped.matches(join_path(e.submodule, e.path))]
