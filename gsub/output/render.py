"""Render merged records as styled text lines.

The renderer neither filters nor reorders: it prints exactly what the
services returned, in the order they returned it.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import datetime

from rich.text import Text

from gsub.git.models import (
    ROOT_PATH,
    ChangedFile,
    FileEntry,
    LogEntry,
    StatusEntry,
    StatusKind,
    StatusReport,
    Submodule,
    join_path,
)
from gsub.parse.status import split_patch

__all__ = [
    "DATE_FORMAT",
    "display_path",
    "format_age",
    "format_date",
    "render_files",
    "render_log",
    "render_patch",
    "render_status",
]

DATE_FORMAT = "%a %b %d %H:%M:%S %Y %z"

_SUMMARY_WIDTH = 50

_KIND_STYLES: dict[StatusKind, str] = {
    StatusKind.ADDED: "green",
    StatusKind.UNTRACKED: "cyan",
    StatusKind.MODIFIED: "yellow",
    StatusKind.DELETED: "red",
    StatusKind.RENAMED: "green",
    StatusKind.TYPE_CHANGED: "green",
    StatusKind.UNMERGED: "red bold",
    StatusKind.IGNORED: "dim",
}


def display_path(submodule: str) -> str:
    """"." for the root repository, "./path" for submodules."""
    return ROOT_PATH if submodule == ROOT_PATH else f"./{submodule}"


def format_age(timestamp: int, now: float | None = None) -> str:
    """Relative age of a timestamp: "3 days ago", "2 months ago", "just now"."""
    if now is None:
        now = time.time()
    seconds = int(now - timestamp)
    days = seconds // 86400
    if days > 30:
        return f"{days // 30} months ago"
    if days > 0:
        return f"{days} days ago"
    if seconds >= 3600:
        return f"{seconds // 3600} hours ago"
    if seconds >= 60:
        return f"{seconds // 60} mins ago"
    if seconds > 0:
        return f"{seconds} secs ago"
    return "just now"


def format_date(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).astimezone().strftime(DATE_FORMAT)


def render_patch(patch: str) -> list[Text]:
    lines: list[Text] = []
    for raw in patch.splitlines():
        if raw.startswith(("diff --git", "index ", "--- ", "+++ ")):
            style = "bold"
        elif raw.startswith("@@"):
            style = "cyan"
        elif raw.startswith("+"):
            style = "green"
        elif raw.startswith("-"):
            style = "red"
        else:
            style = ""
        lines.append(Text(raw, style=style))
    return lines


# -----------------------------------------------------------------------------
# status
# -----------------------------------------------------------------------------


def _status_header(submodule: Submodule, report: StatusReport) -> Text:
    text = Text()
    text.append(f"Repo: {submodule.display_path}", style="bright_blue")
    text.append(" @ ")
    if submodule.commit:
        text.append(submodule.commit[:7], style="green")
    else:
        text.append("(no commits)", style="dim")
    if report.branch:
        text.append(f" [{report.branch}", style="blue")
        if report.ahead:
            text.append(f" ahead {report.ahead}", style="green")
        if report.behind:
            text.append(f" behind {report.behind}", style="red")
        text.append("]", style="blue")
    if report.state is not None:
        text.append(" | ")
        text.append(f"State: {report.state.value}", style="magenta")
    return text


def _entry_line(entry: StatusEntry, kind: StatusKind) -> Text:
    # Untracked and ignored paths keep their porcelain pair ("??", "!!").
    if kind in (StatusKind.UNTRACKED, StatusKind.IGNORED):
        text = Text(entry.xy, style=_KIND_STYLES[kind])
    else:
        text = Text(" ")
        text.append(kind.value, style=_KIND_STYLES.get(kind, ""))
    text.append(" ")
    if entry.rename_source is not None:
        text.append(f"{entry.rename_source} -> {entry.path}")
    else:
        text.append(entry.path)
    return text


def render_status(
    reports: Sequence[tuple[Submodule, StatusReport]],
    *,
    short: bool = False,
    patch: bool = False,
) -> list[Text]:
    """Status lines for each repository, staged changes first.

    Example:
        Repo: ./libs/a @ 1a2b3c4 [main]
        1 changes staged
        1 changes in working tree
         A new.c
         M old.c
    """
    lines: list[Text] = []
    for submodule, report in reports:
        lines.append(_status_header(submodule, report))
        if submodule.out_of_sync:
            lines.append(
                Text(
                    f"Repo head changed: checked out {submodule.commit[:7] if submodule.commit else '?'}"
                    " differs from the commit recorded by the parent",
                    style="magenta",
                )
            )

        staged = report.staged
        unstaged = report.unstaged
        lines.append(Text(f"{len(staged)} changes staged"))
        lines.append(Text(f"{len(unstaged)} changes in working tree"))
        if short:
            continue

        chunks = split_patch(report.patch) if patch and report.patch else {}
        printed: set[str] = set()
        sides = [(e, e.index_state) for e in staged] + [(e, e.worktree_state) for e in unstaged]
        for entry, kind in sides:
            assert kind is not None
            lines.append(_entry_line(entry, kind))
            chunk = chunks.get(entry.path)
            if chunk is not None and entry.path not in printed:
                printed.add(entry.path)
                lines.extend(render_patch(chunk))
    return lines


# -----------------------------------------------------------------------------
# log
# -----------------------------------------------------------------------------


def _changed_file_line(changed: ChangedFile) -> Text:
    text = Text("  ")
    text.append(changed.kind.value, style=_KIND_STYLES.get(changed.kind, ""))
    text.append(" ")
    if changed.source is not None:
        text.append(f"{changed.source} -> {changed.path}")
    else:
        text.append(changed.path)
    return text


def _short_log_line(entry: LogEntry, now: float) -> Text:
    text = Text()
    text.append(entry.short_id, style="red")
    text.append(f" - {entry.summary:<{_SUMMARY_WIDTH}} (")
    text.append(format_age(entry.timestamp, now), style="green")
    text.append(") <")
    text.append(entry.author, style="bright_blue")
    text.append(f"> ({display_path(entry.submodule)})")
    return text


def _full_log_lines(entry: LogEntry) -> list[Text]:
    header = Text()
    header.append(entry.commit_id, style="yellow")
    header.append(" - ")
    header.append(display_path(entry.submodule), style="bright_blue")

    author_time = entry.author_timestamp if entry.author_timestamp is not None else entry.timestamp
    lines = [
        header,
        Text(f"Author:     {entry.author_identity}"),
        Text(f"AuthorDate: {format_date(author_time)}"),
        Text(f"Commit:     {entry.committer or entry.author_identity}"),
        Text(f"CommitDate: {format_date(entry.timestamp)}"),
        Text(""),
    ]
    lines.extend(Text(f"    {line}".rstrip()) for line in entry.message.split("\n"))
    return lines


def render_log(
    entries: Sequence[LogEntry],
    *,
    full: bool = False,
    now: float | None = None,
) -> list[Text]:
    """Log lines in the given order.

    Changed files and patches are rendered when the entries carry them.
    """
    if now is None:
        now = time.time()
    lines: list[Text] = []
    for entry in entries:
        if full:
            lines.extend(_full_log_lines(entry))
        else:
            lines.append(_short_log_line(entry, now))
        if entry.changed_files is not None:
            lines.extend(_changed_file_line(f) for f in entry.changed_files)
        if entry.patch:
            lines.extend(render_patch(entry.patch))
    return lines


# -----------------------------------------------------------------------------
# ls-files
# -----------------------------------------------------------------------------


def render_files(entries: Sequence[FileEntry]) -> list[Text]:
    """Root-relative paths; index listings are prefixed with the blob id."""
    lines: list[Text] = []
    for entry in entries:
        text = Text()
        if entry.staged and entry.object_id:
            text.append(f"{entry.object_id} ", style="dim")
        text.append(join_path(entry.submodule, entry.path))
        lines.append(text)
    return lines
