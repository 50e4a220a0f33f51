"""Tests for gsub.parse.files module."""

from __future__ import annotations

from gsub.core.result import Err, Ok
from gsub.parse.files import parse_file_list, parse_gitlinks


class TestParseFileList:
    """ls-files --stage, ls-tree -r and plain listings."""

    def test_ls_files_stage(self) -> None:
        output = "100644 e69de29bb2d1d6434b8b29ae775ad8c2e48c5391 0\tREADME.md\n100755 1111111111111111111111111111111111111111 0\tbin/run\n"

        result = parse_file_list(output, ".", staged=True)

        assert isinstance(result, Ok)
        assert [(e.path, e.object_id, e.staged) for e in result.value] == [
            ("README.md", "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391", True),
            ("bin/run", "1111111111111111111111111111111111111111", True),
        ]

    def test_ls_tree(self) -> None:
        output = "100644 blob aaaa\tsrc/a.c\n040000 tree bbbb\tsrc\n"

        entries = parse_file_list(output, "libs/a").unwrap()
        assert entries is not None

        assert [(e.submodule, e.path, e.object_id) for e in entries] == [("libs/a", "src/a.c", "aaaa")]

    def test_gitlinks_skipped(self) -> None:
        output = "160000 commit cccc\tlibs/a\n100644 blob aaaa\t.gitmodules\n160000 dddd 0\tlibs/b\n"

        entries = parse_file_list(output, ".").unwrap()
        assert entries is not None

        assert [e.path for e in entries] == [".gitmodules"]

    def test_plain_listing(self) -> None:
        entries = parse_file_list("a.txt\n\"b c.txt\"\n", ".").unwrap()
        assert entries is not None

        assert [e.path for e in entries] == ["a.txt", "b c.txt"]
        assert entries[0].object_id is None

    def test_conflict_stages_listed_once(self) -> None:
        output = "100644 aaaa 1\tx.c\n100644 bbbb 2\tx.c\n100644 cccc 3\tx.c\n"

        entries = parse_file_list(output, ".", staged=True).unwrap()
        assert entries is not None

        assert [(e.path, e.object_id) for e in entries] == [("x.c", "aaaa")]

    def test_malformed(self) -> None:
        result = parse_file_list("100644 only-two\tpath\n", "libs/a")

        assert isinstance(result, Err)
        assert result.error.submodule == "libs/a"


class TestParseGitlinks:
    def test_only_gitlinks(self) -> None:
        output = "160000 commit cccc\tlibs/a\n100644 blob aaaa\tREADME\n"
        assert parse_gitlinks(output, ".") == Ok({"libs/a": "cccc"})

    def test_malformed(self) -> None:
        assert isinstance(parse_gitlinks("garbage\n", "."), Err)
