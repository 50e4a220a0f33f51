"""Parser for ``git log`` output in git-sub's record format.

Each commit is one record introduced by RECORD_SEP, its fields separated by
FIELD_SEP so that message content can never be mistaken for structure:

    \\x1e<id>\\x1f<parents>\\x1f<author>\\x1f<email>\\x1f<commit time>\\x1f<message>\\x1f
    \\x1e<id>\\x1f<parents>\\x1f<author>\\x1f<email>\\x1f<commit time>\\x1f<author time>\\x1f<committer <email>>\\x1f<message>\\x1f

The first form is short mode (abbreviated ids), the second full mode. Both
carry the whole message and the author email so --grep and --author can be
matched after parsing. Anything after the last separator is the optional
``--name-status`` section followed by the optional patch.
"""

from __future__ import annotations

import re

from gsub.core.result import Err, Ok, Result
from gsub.git.errors import ParseError
from gsub.git.models import ChangedFile, LogEntry, StatusKind
from gsub.parse.text import iter_lines, read_path, split_at_patch

__all__ = [
    "FIELD_SEP",
    "FULL_FORMAT",
    "RECORD_SEP",
    "SHORT_FORMAT",
    "log_format",
    "parse_log",
]

RECORD_SEP = "\x1e"
FIELD_SEP = "\x1f"

SHORT_FORMAT = "%x1e%h%x1f%p%x1f%an%x1f%ae%x1f%ct%x1f%B%x1f"
FULL_FORMAT = "%x1e%H%x1f%P%x1f%an%x1f%ae%x1f%ct%x1f%at%x1f%cn <%ce>%x1f%B%x1f"

_SHORT_FIELDS = 6
_FULL_FIELDS = 8

_NAME_STATUS = re.compile(r"^(?P<code>[A-Z])(?P<score>\d*)\t(?P<paths>.+)$")

_NAME_STATUS_KINDS: dict[str, StatusKind] = {
    "A": StatusKind.ADDED,
    "C": StatusKind.ADDED,
    "D": StatusKind.DELETED,
    "M": StatusKind.MODIFIED,
    "R": StatusKind.RENAMED,
    "T": StatusKind.TYPE_CHANGED,
    "U": StatusKind.UNMERGED,
}


def log_format(full: bool) -> str:
    """``--format`` argument matching ``parse_log(full=...)``."""
    return FULL_FORMAT if full else SHORT_FORMAT


def _parse_changed_file(line: str) -> ChangedFile:
    match = _NAME_STATUS.match(line)
    if not match:
        raise ValueError(f"malformed name-status line {line!r}")
    code = match.group("code")
    kind = _NAME_STATUS_KINDS.get(code)
    if kind is None:
        raise ValueError(f"unknown change code {code!r}")

    paths = match.group("paths")
    if code in "RC":
        source, _, target = paths.partition("\t")
        if not target:
            raise ValueError(f"{code} entry without target path: {line!r}")
        return ChangedFile(kind=kind, path=read_path(target)[0], source=read_path(source)[0])
    return ChangedFile(kind=kind, path=read_path(paths)[0])


def _parse_tail(tail: str, base: int, submodule: str) -> Result[tuple[tuple[ChangedFile, ...], str], ParseError]:
    files_part, patch = split_at_patch(tail)
    files: list[ChangedFile] = []
    for offset, line in iter_lines(files_part, base):
        if not line.strip():
            continue
        try:
            files.append(_parse_changed_file(line))
        except ValueError as e:
            return Err(ParseError(submodule, offset, str(e)))
    return Ok((tuple(files), patch or ""))


def _parse_int(value: str, what: str, offset: int, submodule: str) -> Result[int, ParseError]:
    try:
        return Ok(int(value.strip()))
    except ValueError:
        return Err(ParseError(submodule, offset, f"invalid {what} {value!r}"))


def parse_log(
    output: str,
    submodule: str,
    *,
    full: bool = False,
    with_files: bool = False,
    with_patch: bool = False,
) -> Result[list[LogEntry], ParseError]:
    """Parse one repository's log output.

    Args:
        output: Raw stdout produced with ``log_format(full)``
        submodule: Repository path the output belongs to
        full: Output uses the full-mode record layout
        with_files: Populate ``changed_files`` (``--name-status`` was passed)
        with_patch: Populate ``patch`` (``--patch`` was passed)

    Returns:
        Ok(entries) in git's output order, or Err(ParseError)
    """
    n_fields = _FULL_FIELDS if full else _SHORT_FIELDS
    records = output.split(RECORD_SEP)

    if records[0].strip():
        return Err(ParseError(submodule, 0, "output does not start with a record separator"))

    entries: list[LogEntry] = []
    offset = len(records[0])
    for record in records[1:]:
        record_offset = offset
        offset += len(RECORD_SEP) + len(record)

        parts = record.split(FIELD_SEP, n_fields)
        if len(parts) != n_fields + 1:
            return Err(
                ParseError(
                    submodule,
                    record_offset,
                    f"expected {n_fields} fields, got {len(parts) - 1}",
                )
            )

        commit_id = parts[0].strip()
        if not commit_id:
            return Err(ParseError(submodule, record_offset, "empty commit id"))

        timestamp = _parse_int(parts[4], "commit time", record_offset, submodule)
        if isinstance(timestamp, Err):
            return timestamp

        author_timestamp: int | None = None
        committer: str | None = None
        if full:
            parsed_author_time = _parse_int(parts[5], "author time", record_offset, submodule)
            if isinstance(parsed_author_time, Err):
                return parsed_author_time
            author_timestamp = parsed_author_time.value
            committer = parts[6]
        message = parts[n_fields - 1].rstrip("\n")

        changed_files: tuple[ChangedFile, ...] | None = None
        patch: str | None = None
        tail = parts[n_fields]
        if with_files or with_patch:
            tail_base = record_offset + len(RECORD_SEP) + len(record) - len(tail)
            parsed_tail = _parse_tail(tail, tail_base, submodule)
            if isinstance(parsed_tail, Err):
                return parsed_tail
            files, patch_text = parsed_tail.value
            changed_files = files if with_files else None
            patch = patch_text if with_patch else None
        elif tail.strip():
            return Err(ParseError(submodule, record_offset, "unexpected text after record"))

        entries.append(
            LogEntry(
                submodule=submodule,
                commit_id=commit_id,
                parent_ids=tuple(parts[1].split()),
                author=parts[2],
                author_email=parts[3] or None,
                timestamp=timestamp.value,
                message=message,
                changed_files=changed_files,
                patch=patch,
                author_timestamp=author_timestamp,
                committer=committer,
            )
        )

    return Ok(entries)
