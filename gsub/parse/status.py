"""Parser for ``git status --porcelain=v1 -b`` output.

Grammar (one repository):

    ## main...origin/main [ahead 1, behind 2]
    XY path
    XY old -> new          (renames and copies)
    ?? untracked
    !! ignored
    diff --git a/... b/... (optional patch block, everything after it)
"""

from __future__ import annotations

import re

from gsub.core.result import Err, Ok, Result
from gsub.git.errors import ParseError
from gsub.git.models import StatusEntry, StatusKind, StatusReport
from gsub.parse.text import PATCH_START, iter_lines, read_path, split_at_patch

__all__ = ["parse_status", "split_patch"]

_UNMERGED = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

_CODE_TO_KIND: dict[str, StatusKind | None] = {
    " ": None,
    "M": StatusKind.MODIFIED,
    "T": StatusKind.TYPE_CHANGED,
    "A": StatusKind.ADDED,
    "D": StatusKind.DELETED,
    "R": StatusKind.RENAMED,
    # Copies only show up with status.renames=copies; the copy is a new path.
    "C": StatusKind.ADDED,
}

_RENAME_ARROW = " -> "

_NO_COMMITS_PREFIXES = ("No commits yet on ", "Initial commit on ")


def _parse_branch_line(line: str) -> tuple[str | None, str | None, int, int]:
    """Parse ``## branch...upstream [ahead N, behind M]``."""
    s = line[2:].strip()

    ahead = behind = 0
    bracket = re.search(r"\[([^\]]+)\]\s*$", s)
    if bracket:
        inside = bracket.group(1)
        ahead_match = re.search(r"ahead\s+(\d+)", inside)
        behind_match = re.search(r"behind\s+(\d+)", inside)
        if ahead_match:
            ahead = int(ahead_match.group(1))
        if behind_match:
            behind = int(behind_match.group(1))
        s = s[: bracket.start()].strip()

    for prefix in _NO_COMMITS_PREFIXES:
        if s.startswith(prefix):
            return s[len(prefix) :], None, ahead, behind

    if s.startswith("HEAD (no branch)"):
        return None, None, ahead, behind

    if "..." in s:
        left, right = s.split("...", 1)
        return left.strip() or None, right.strip() or None, ahead, behind

    return s or None, None, ahead, behind


def _parse_paths(rest: str, renamed: bool) -> tuple[str, str | None]:
    """Return (path, rename source) from the text after the XY code."""
    if not renamed:
        path, tail = read_path(rest)
        if tail:
            raise ValueError(f"unexpected text after path: {tail!r}")
        return path, None

    if rest.startswith('"'):
        source, tail = read_path(rest)
        if not tail.startswith(_RENAME_ARROW):
            raise ValueError("rename entry without '->'")
        target, tail = read_path(tail[len(_RENAME_ARROW) :])
        if tail:
            raise ValueError(f"unexpected text after path: {tail!r}")
        return target, source

    source, arrow, target = rest.partition(_RENAME_ARROW)
    if not arrow:
        raise ValueError("rename entry without '->'")
    target_path, tail = read_path(target)
    if tail:
        raise ValueError(f"unexpected text after path: {tail!r}")
    return target_path, source


def _parse_entry(line: str, submodule: str) -> StatusEntry:
    """Parse one ``XY path`` line.

    Raises:
        ValueError: On an unknown state code or malformed path.
    """
    xy = line[:2]
    rest = line[3:]

    if xy == "??":
        return StatusEntry(
            submodule=submodule,
            path=read_path(rest)[0],
            worktree_state=StatusKind.UNTRACKED,
        )
    if xy == "!!":
        return StatusEntry(
            submodule=submodule,
            path=read_path(rest)[0],
            worktree_state=StatusKind.IGNORED,
            is_ignored=True,
        )
    if xy in _UNMERGED:
        path, _ = _parse_paths(rest, renamed=False)
        return StatusEntry(
            submodule=submodule,
            path=path,
            index_state=StatusKind.UNMERGED,
            worktree_state=StatusKind.UNMERGED,
        )

    x, y = xy[0], xy[1]
    if x not in _CODE_TO_KIND or y not in _CODE_TO_KIND:
        raise ValueError(f"unknown status code {xy!r}")
    if x == " " and y == " ":
        raise ValueError("empty status code")

    path, source = _parse_paths(rest, renamed=x in "RC" or y in "RC")
    return StatusEntry(
        submodule=submodule,
        path=path,
        index_state=_CODE_TO_KIND[x],
        worktree_state=_CODE_TO_KIND[y],
        rename_source=source,
    )


def parse_status(output: str, submodule: str) -> Result[StatusReport, ParseError]:
    """Parse one repository's porcelain status, with its optional patch.

    Args:
        output: Raw stdout of the status query
        submodule: Repository path the output belongs to

    Returns:
        Ok(StatusReport) or Err(ParseError) on the first malformed line
    """
    body, patch = split_at_patch(output)

    branch: str | None = None
    upstream: str | None = None
    ahead = behind = 0
    entries: list[StatusEntry] = []

    for offset, line in iter_lines(body):
        if not line:
            continue
        if line.startswith("## "):
            branch, upstream, ahead, behind = _parse_branch_line(line)
            continue
        if len(line) < 4 or line[2] != " ":
            return Err(ParseError(submodule, offset, f"malformed status line {line!r}"))
        try:
            entries.append(_parse_entry(line, submodule))
        except ValueError as e:
            return Err(ParseError(submodule, offset, str(e)))

    return Ok(
        StatusReport(
            submodule=submodule,
            branch=branch,
            upstream=upstream,
            ahead=ahead,
            behind=behind,
            entries=tuple(entries),
            patch=patch,
        )
    )


def _chunk_path(chunk: str) -> str | None:
    """Best-effort path of one ``diff --git`` chunk."""
    header, _, body = chunk.partition("\n")
    minus: str | None = None
    for line in body.splitlines():
        if line.startswith("rename to "):
            return read_path(line[len("rename to ") :])[0]
        if line.startswith("+++ "):
            target = line[4:]
            if target != "/dev/null":
                path = read_path(target)[0]
                return path[2:] if path.startswith("b/") else path
        elif line.startswith("--- "):
            source = line[4:]
            if source != "/dev/null":
                path = read_path(source)[0]
                minus = path[2:] if path.startswith("a/") else path
        elif line.startswith("@@"):
            break
    if minus is not None:
        return minus

    # "diff --git a/P b/P": both halves name the same path.
    rest = header[len(PATCH_START) :]
    half = (len(rest) - 1) // 2
    left, right = rest[:half], rest[half + 1 :]
    if left.startswith("a/") and right.startswith("b/") and left[2:] == right[2:]:
        return right[2:]
    return None


def split_patch(patch: str) -> dict[str, str]:
    """Split a diff blob into chunks keyed by path.

    A path changed both in the index and in the working tree gets both
    chunks, in blob order.
    """
    chunks: dict[str, str] = {}
    current: list[str] = []

    def flush() -> None:
        if not current:
            return
        chunk = "".join(current)
        path = _chunk_path(chunk)
        if path is not None:
            chunks[path] = chunks.get(path, "") + chunk

    for line in patch.splitlines(keepends=True):
        if line.startswith(PATCH_START):
            flush()
            current = [line]
        elif current:
            current.append(line)
    flush()
    return chunks
