"""Tests for gsub.parse.log module."""

from __future__ import annotations

from gsub.core.result import Err, Ok
from gsub.git.models import StatusKind
from gsub.parse.log import FIELD_SEP, FULL_FORMAT, RECORD_SEP, SHORT_FORMAT, log_format, parse_log
from gsub.test._fake_git import log_output, log_record


def _full_record(commit: str, message: str, tail: str = "\n") -> str:
    fields = [commit, "p" * 40, "Ada", "ada@example.com", "1700000100", "1700000000", "Bob <bob@example.com>", message]
    return RECORD_SEP + FIELD_SEP.join(fields) + FIELD_SEP + tail


class TestLogFormat:
    def test_modes(self) -> None:
        assert log_format(False) == SHORT_FORMAT
        assert log_format(True) == FULL_FORMAT


class TestShortMode:
    """Abbreviated one-line records."""

    def test_entries(self) -> None:
        output = log_output(
            log_record("abc1234", 1700000000, "Fix parser", author="Ada", parents="def5678"),
            log_record("def5678", 1699999000, "Initial commit"),
        )

        result = parse_log(output, "libs/a")

        assert isinstance(result, Ok)
        first, second = result.value
        assert first.commit_id == "abc1234"
        assert first.parent_ids == ("def5678",)
        assert first.author == "Ada"
        assert first.author_email == "ada@example.com"
        assert first.timestamp == 1700000000
        assert first.message == "Fix parser"
        assert first.submodule == "libs/a"
        assert first.changed_files is None
        assert second.parent_ids == ()

    def test_empty_output(self) -> None:
        assert parse_log("", ".") == Ok([])

    def test_subject_with_separators_inside_text(self) -> None:
        output = log_record("abc1234", 1, "a | b -> c: d")
        entries = parse_log(output, ".").unwrap()
        assert entries is not None
        assert entries[0].message == "a | b -> c: d"

    def test_bad_timestamp(self) -> None:
        result = parse_log(log_record("abc1234", 1).replace("\x1f1\x1f", "\x1fsoon\x1f"), ".")

        assert isinstance(result, Err)
        assert "commit time" in result.error.reason

    def test_missing_fields(self) -> None:
        result = parse_log(RECORD_SEP + "abc1234" + FIELD_SEP + "\n", ".")

        assert isinstance(result, Err)
        assert "expected 6 fields" in result.error.reason

    def test_garbage_before_first_record(self) -> None:
        result = parse_log("warning: x\n" + log_record("abc1234", 1), ".")

        assert isinstance(result, Err)
        assert result.error.offset == 0


class TestFullMode:
    """Full ids, identities and multi-line messages."""

    def test_fields(self) -> None:
        output = _full_record("a" * 40, "Subject\n\nBody line\n")

        entries = parse_log(output, ".", full=True).unwrap()
        assert entries is not None

        entry = entries[0]
        assert entry.commit_id == "a" * 40
        assert entry.author == "Ada"
        assert entry.author_identity == "Ada <ada@example.com>"
        assert entry.committer == "Bob <bob@example.com>"
        assert entry.timestamp == 1700000100
        assert entry.author_timestamp == 1700000000
        assert entry.message == "Subject\n\nBody line"
        assert entry.summary == "Subject"


class TestTail:
    """--name-status and --patch sections."""

    def test_changed_files(self) -> None:
        tail = "\nM\tsrc/a.c\nA\tnew.c\nR087\told.c\trenamed.c\nD\t\"sp ace.c\"\n"
        output = log_record("abc1234", 1, tail=tail)

        entries = parse_log(output, "libs/a", with_files=True).unwrap()
        assert entries is not None

        files = entries[0].changed_files
        assert files is not None
        assert [(f.kind, f.path, f.source) for f in files] == [
            (StatusKind.MODIFIED, "src/a.c", None),
            (StatusKind.ADDED, "new.c", None),
            (StatusKind.RENAMED, "renamed.c", "old.c"),
            (StatusKind.DELETED, "sp ace.c", None),
        ]

    def test_patch(self) -> None:
        patch = "diff --git a/x b/x\n--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b\n"
        output = log_output(log_record("abc1234", 2, tail="\n" + patch), log_record("def5678", 1))

        entries = parse_log(output, ".", with_patch=True).unwrap()
        assert entries is not None

        assert entries[0].patch == patch
        assert entries[1].patch == ""

    def test_files_not_requested_is_an_error_when_present(self) -> None:
        result = parse_log(log_record("abc1234", 1, tail="\nM\tx\n"), ".")
        assert isinstance(result, Err)

    def test_malformed_name_status(self) -> None:
        result = parse_log(log_record("abc1234", 1, tail="\nnot a status line\n"), ".", with_files=True)

        assert isinstance(result, Err)
        assert "name-status" in result.error.reason

    def test_short_mode_keeps_whole_message(self) -> None:
        entries = parse_log(log_record("abc1234", 1, "Subject", body="Fixes #12"), ".").unwrap()

        assert entries[0].message == "Subject\n\nFixes #12"
        assert entries[0].summary == "Subject"
