"""Typed reads from parsed TOML.

A value of the wrong type reads as "not set"; range checks are left to the
caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

type Table = dict[str, object]


def as_table(value: object) -> Table | None:
    """``value`` as a string-keyed table, None for anything else."""
    if not isinstance(value, dict):
        return None
    items = cast(dict[object, object], value)
    if not all(isinstance(key, str) for key in items):
        return None
    return cast(Table, items)


def get_table(table: Mapping[str, object], key: str) -> Table | None:
    return as_table(table.get(key))


def get_str(table: Mapping[str, object], key: str) -> str | None:
    value = table.get(key)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def get_int(table: Mapping[str, object], key: str) -> int | None:
    # TOML booleans are ints to Python; `jobs = true` is not a job count.
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_float(table: Mapping[str, object], key: str) -> float | None:
    """Numbers as float; TOML integers are accepted."""
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
