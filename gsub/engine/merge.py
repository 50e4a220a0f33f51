"""Merge & order engine.

Pure functions over parsed records. Ordering is decided here and only here,
so the result never depends on which worker finished first.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

from gsub.git.models import LogEntry, Submodule

__all__ = ["group_by_submodule", "log_fetch_limit", "log_sort_key", "merge_logs"]


class _HasPath(Protocol):
    @property
    def path(self) -> str: ...


def log_sort_key(entry: LogEntry) -> tuple[int, str, str]:
    """Newest first; ties broken by repository path, then commit id."""
    return (-entry.timestamp, entry.submodule, entry.commit_id)


def merge_logs(
    batches: Iterable[Sequence[LogEntry]],
    start: int = 0,
    num: int | None = None,
) -> list[LogEntry]:
    """Interleave per-repository logs into one time-descending list.

    Pagination applies to the merged list, not to each repository.

    Example:
        timestamps [10, 5, 8], [9, 3], [7] -> [10, 9, 8, 7, 5, 3]
    """
    merged = sorted((entry for batch in batches for entry in batch), key=log_sort_key)
    stop = None if num is None else start + num
    return merged[start:stop]


def log_fetch_limit(start: int, num: int | None) -> int | None:
    """How many entries any single repository can contribute to the page.

    A repository never needs to return more than ``start + num`` entries:
    the page is a prefix of the global order, and each repository's log is
    already newest first.
    """
    if num is None:
        return None
    return start + num


def group_by_submodule[T: _HasPath](
    submodules: Sequence[Submodule],
    results: Mapping[str, Sequence[T]],
) -> list[tuple[Submodule, list[T]]]:
    """Group per-repository results in registry order.

    Entries inside a repository are sorted by path; repositories without a
    result are left out.
    """
    grouped: list[tuple[Submodule, list[T]]] = []
    for submodule in submodules:
        if submodule.path not in results:
            continue
        entries = sorted(results[submodule.path], key=lambda e: e.path)
        grouped.append((submodule, entries))
    return grouped
