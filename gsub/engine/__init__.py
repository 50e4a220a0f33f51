"""Pathspec scoping, filters and cross-repository ordering."""

from .filters import (
    DiffFilter,
    LogOptions,
    LsFilesOptions,
    StatusOptions,
    StatusScope,
)
from .merge import group_by_submodule, log_fetch_limit, merge_logs
from .pathspec import ScopedPathspec, match_pathspec, scope_pathspecs

__all__ = [
    "DiffFilter",
    "LogOptions",
    "LsFilesOptions",
    "ScopedPathspec",
    "StatusOptions",
    "StatusScope",
    "group_by_submodule",
    "log_fetch_limit",
    "match_pathspec",
    "merge_logs",
    "scope_pathspecs",
]
