"""Parser for file listings.

Accepted line shapes:

    100644 e69de29... 0\tpath        git ls-files --stage
    100644 blob e69de29...\tpath     git ls-tree -r
    path                             plain newline-delimited list

Gitlinks (mode 160000) are dropped: a submodule's files are listed by its
own query.
"""

from __future__ import annotations

from gsub.core.result import Err, Ok, Result
from gsub.git.errors import ParseError
from gsub.git.models import FileEntry
from gsub.parse.text import iter_lines, unquote_path

__all__ = ["GITLINK_MODE", "parse_file_list", "parse_gitlinks"]

GITLINK_MODE = "160000"

_TREE_TYPES = frozenset({"blob", "tree", "commit"})


def parse_file_list(
    output: str,
    submodule: str,
    *,
    staged: bool = False,
) -> Result[list[FileEntry], ParseError]:
    """Parse one repository's file listing.

    Args:
        output: Raw stdout of ls-files/ls-tree
        submodule: Repository path the output belongs to
        staged: The listing comes from the index

    Returns:
        Ok(entries) in output order, or Err(ParseError)
    """
    entries: list[FileEntry] = []
    seen: set[str] = set()
    for offset, line in iter_lines(output):
        if not line:
            continue

        if "\t" not in line:
            try:
                path = unquote_path(line)
            except ValueError as e:
                return Err(ParseError(submodule, offset, str(e)))
            entries.append(FileEntry(submodule=submodule, path=path, staged=staged))
            continue

        meta, raw_path = line.split("\t", 1)
        fields = meta.split()
        if len(fields) != 3:
            return Err(ParseError(submodule, offset, f"malformed listing line {line!r}"))

        mode = fields[0]
        if fields[1] in _TREE_TYPES:
            object_type, object_id = fields[1], fields[2]
            if object_type != "blob":
                continue
        elif fields[2].isdigit():
            object_id = fields[1]
        else:
            return Err(ParseError(submodule, offset, f"unrecognized listing fields {meta!r}"))

        if mode == GITLINK_MODE:
            continue

        try:
            path = unquote_path(raw_path)
        except ValueError as e:
            return Err(ParseError(submodule, offset, str(e)))
        # Conflicted paths are listed once per stage; keep the first.
        if path in seen:
            continue
        seen.add(path)
        entries.append(
            FileEntry(submodule=submodule, path=path, staged=staged, object_id=object_id)
        )

    return Ok(entries)


def parse_gitlinks(output: str, submodule: str) -> Result[dict[str, str], ParseError]:
    """Pinned commits from ``git ls-tree`` output: path -> commit id.

    Only gitlink entries (mode 160000) are kept; paths stay relative to the
    repository that was listed.
    """
    pins: dict[str, str] = {}
    for offset, line in iter_lines(output):
        if not line:
            continue
        meta, sep, raw_path = line.partition("\t")
        fields = meta.split()
        if not sep or len(fields) != 3:
            return Err(ParseError(submodule, offset, f"malformed ls-tree line {line!r}"))
        if fields[0] != GITLINK_MODE:
            continue
        try:
            pins[unquote_path(raw_path)] = fields[2]
        except ValueError as e:
            return Err(ParseError(submodule, offset, str(e)))
    return Ok(pins)
