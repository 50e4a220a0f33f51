"""Tests for gsub.git.models module."""

from __future__ import annotations

import pytest

from gsub.git.models import (
    ROOT_PATH,
    LogEntry,
    StatusEntry,
    StatusKind,
    StatusReport,
    Submodule,
    join_path,
)


class TestJoinPath:
    def test_root_paths_unchanged(self) -> None:
        assert join_path(ROOT_PATH, "src/main.c") == "src/main.c"

    def test_submodule_paths_prefixed(self) -> None:
        assert join_path("libs/a", "src/main.c") == "libs/a/src/main.c"


class TestSubmodule:
    """Submodule identity helpers."""

    def test_root(self) -> None:
        root = Submodule(path=ROOT_PATH, name="project")
        assert root.is_root
        assert root.display_path == "."

    def test_nested(self) -> None:
        sub = Submodule(path="libs/a", name="a", parent=ROOT_PATH, depth=1)
        assert not sub.is_root
        assert sub.display_path == "./libs/a"

    def test_frozen(self) -> None:
        sub = Submodule(path="libs/a", name="a")
        with pytest.raises(AttributeError):
            sub.path = "other"  # type: ignore[misc]


class TestStatusKind:
    """Diff-filter letters."""

    def test_untracked_counts_as_added(self) -> None:
        assert StatusKind.UNTRACKED.filter_letter == "A"

    def test_unmerged_and_ignored_are_unknown(self) -> None:
        assert StatusKind.UNMERGED.filter_letter == "U"
        assert StatusKind.IGNORED.filter_letter == "U"

    def test_plain_kinds_use_their_letter(self) -> None:
        assert StatusKind.MODIFIED.filter_letter == "M"
        assert StatusKind.RENAMED.filter_letter == "R"


class TestStatusEntry:
    """Derived status entry properties."""

    def test_staged_only(self) -> None:
        entry = StatusEntry(submodule=".", path="a", index_state=StatusKind.MODIFIED)
        assert entry.is_staged
        assert not entry.is_unstaged
        assert entry.xy == "M "

    def test_both_sides(self) -> None:
        entry = StatusEntry(
            submodule=".",
            path="a",
            index_state=StatusKind.ADDED,
            worktree_state=StatusKind.MODIFIED,
        )
        assert entry.is_staged and entry.is_unstaged
        assert entry.xy == "AM"

    def test_change_kind_priority(self) -> None:
        """Added wins over modified, modified over deleted."""
        am = StatusEntry(".", "a", StatusKind.ADDED, StatusKind.MODIFIED)
        md = StatusEntry(".", "a", StatusKind.MODIFIED, StatusKind.DELETED)
        rm = StatusEntry(".", "a", StatusKind.RENAMED, StatusKind.MODIFIED)
        assert am.change_kind is StatusKind.ADDED
        assert md.change_kind is StatusKind.MODIFIED
        assert rm.change_kind is StatusKind.MODIFIED

    def test_untracked(self) -> None:
        entry = StatusEntry(".", "new.txt", worktree_state=StatusKind.UNTRACKED)
        assert entry.is_untracked
        assert not entry.is_staged
        assert entry.xy == "??"

    def test_ignored(self) -> None:
        entry = StatusEntry(".", "build", worktree_state=StatusKind.IGNORED, is_ignored=True)
        assert entry.xy == "!!"


class TestStatusReport:
    def test_clean(self) -> None:
        assert StatusReport(submodule=".").is_clean

    def test_staged_and_unstaged_views(self) -> None:
        staged = StatusEntry(".", "a", index_state=StatusKind.MODIFIED)
        unstaged = StatusEntry(".", "b", worktree_state=StatusKind.DELETED)
        report = StatusReport(submodule=".", entries=(staged, unstaged))

        assert report.staged == [staged]
        assert report.unstaged == [unstaged]
        assert not report.is_clean


class TestLogEntry:
    def test_summary_is_first_line(self) -> None:
        entry = LogEntry(".", "a" * 40, (), "Dev", 0, "Subject line\n\nBody text")
        assert entry.summary == "Subject line"
        assert entry.short_id == "aaaaaaa"
