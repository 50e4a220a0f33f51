"""Tests for gsub.services.aggregate module."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from gsub.core.errors import ErrorCode
from gsub.core.result import Err, Ok
from gsub.engine.filters import DiffFilter, LogOptions, LsFilesOptions, StatusOptions, StatusScope
from gsub.git.errors import NotInitialized, ParseError
from gsub.git.models import RepoState
from gsub.git.orchestrator import Orchestrator
from gsub.git.registry import Registry
from gsub.output.console import MockConsole
from gsub.services.aggregate import AggregateService
from gsub.test._fake_git import FakeGit, log_output, log_record, make_registry

SUBS = ("a", "b", "c", "d", "e")
DIRTY = "## main\n M file.c\n"


def _service(registry: Registry, git: FakeGit, console: MockConsole | None = None) -> AggregateService:
    return AggregateService(
        registry=registry,
        orchestrator=Orchestrator(registry.root, git),
        console=console or MockConsole(),
    )


@pytest.fixture
def registry(tmp_path: Path) -> Registry:
    return make_registry(tmp_path, *SUBS, uninitialized=("c",))


@pytest.fixture
def git(tmp_path: Path) -> FakeGit:
    git = FakeGit(tmp_path)
    git.on(".", "status", stdout="## main\n")
    for i, path in enumerate(SUBS):
        git.on(path, "status", stdout=DIRTY)
        git.on(path, "log", stdout=log_output(log_record(f"{path}00000", 1000 + i, f"work in {path}")))
        git.on(path, "ls-tree", stdout=f"100644 blob {i:040d}\tfile.c\n")
    git.on(".", "log", stdout=log_output(log_record("r000000", 500, "root work")))
    git.on(".", "ls-tree", stdout=f"100644 blob {'f' * 40}\tREADME\n160000 commit {'1' * 40}\ta\n")
    return git


class TestStatus:
    """Aggregated working-tree status."""

    def test_partial_failure(self, registry: Registry, git: FakeGit) -> None:
        result = _service(registry, git).status(StatusOptions())

        assert isinstance(result, Ok)
        assert [sub.path for sub, _ in result.value.reports] == ["a", "b", "d", "e"]
        assert len(result.value.failures) == 1
        failure = result.value.failures[0]
        assert failure.submodule == "c"
        assert isinstance(failure.cause, NotInitialized)
        assert git.calls_for("c") == []

    def test_idempotent(self, registry: Registry, git: FakeGit) -> None:
        service = _service(registry, git)

        assert service.status(StatusOptions()) == service.status(StatusOptions())

    def test_show_all_includes_clean_repositories(self, registry: Registry, git: FakeGit) -> None:
        result = _service(registry, git).status(StatusOptions(), show_all=True)

        assert isinstance(result, Ok)
        assert [sub.path for sub, _ in result.value.reports] == [".", "a", "b", "d", "e"]

    def test_out_of_sync_shown_even_when_clean(self, tmp_path: Path, git: FakeGit) -> None:
        base = make_registry(tmp_path, "a", "b")
        subs = tuple(dataclasses.replace(s, out_of_sync=True) if s.path == "b" else s for s in base)
        registry = Registry(root=tmp_path, submodules=subs)
        git.on("a", "status", stdout="## main\n")
        git.on("b", "status", stdout="## main\n")

        result = _service(registry, git).status(StatusOptions())

        assert isinstance(result, Ok)
        assert [sub.path for sub, _ in result.value.reports] == ["b"]

    def test_operation_in_progress_shown_even_when_clean(self, tmp_path: Path, git: FakeGit) -> None:
        registry = make_registry(tmp_path, "a", "b")
        (tmp_path / "b" / ".git").mkdir(parents=True)
        (tmp_path / "b" / ".git" / "MERGE_HEAD").write_text("0" * 40 + "\n")
        git.on("a", "status", stdout="## main\n")
        git.on("b", "status", stdout="## main\n")

        result = _service(registry, git).status(StatusOptions())

        assert isinstance(result, Ok)
        ((sub, report),) = result.value.reports
        assert sub.path == "b"
        assert report.state is RepoState.MERGE

    def test_patch_includes_untracked_files(self, tmp_path: Path, git: FakeGit) -> None:
        registry = make_registry(tmp_path, "a")
        new_file = (
            "diff --git a/notes.txt b/notes.txt\nnew file mode 100644\n"
            "index 0000000..9daeafb\n--- /dev/null\n+++ b/notes.txt\n@@ -0,0 +1 @@\n+hello\n"
        )
        git.on(".", "diff", stdout="")
        git.on("a", "status", stdout="## main\n M file.c\n?? notes.txt\n")
        git.on("a", "diff", stdout="diff --git a/file.c b/file.c\n--- a/file.c\n+++ b/file.c\n")
        git.on("a", "diff", "--no-index", stdout=new_file)

        result = _service(registry, git).status(StatusOptions(patch=True))

        assert isinstance(result, Ok)
        ((_, report),) = result.value.reports
        assert report.patch is not None
        assert report.patch.endswith(new_file)
        assert ("diff", "--no-index", "--no-ext-diff", "--", "/dev/null", "notes.txt") in git.calls_for("a")

    def test_staged_patch_skips_untracked_files(self, tmp_path: Path, git: FakeGit) -> None:
        registry = make_registry(tmp_path, "a")
        git.on(".", "diff", stdout="")
        git.on("a", "status", stdout="## main\nM  file.c\n")
        git.on("a", "diff", stdout="")

        result = _service(registry, git).status(StatusOptions(scope=StatusScope.INDEX, patch=True))

        assert isinstance(result, Ok)
        assert not any("--no-index" in args for _, args in git.calls)

    def test_pathspec_scoping(self, registry: Registry, git: FakeGit) -> None:
        console = MockConsole()
        result = _service(registry, git, console).status(StatusOptions(pathspecs=("a/src",)))

        assert isinstance(result, Ok)
        assert [sub.path for sub, _ in result.value.reports] == ["a"]
        assert git.calls_for("b") == []
        assert git.calls_for(".") == []
        (args,) = git.calls_for("a")
        assert args[-2:] == ("--", "src")
        assert console.find("out of scope: b")

    def test_diff_filter(self, registry: Registry, git: FakeGit) -> None:
        git.on("a", "status", stdout="## main\n M file.c\n?? new.c\n")
        options = StatusOptions(diff_filter=DiffFilter(include=frozenset({"A"})))

        result = _service(registry, git).status(options)

        assert isinstance(result, Ok)
        ((sub, report),) = result.value.reports
        assert sub.path == "a"
        assert [e.path for e in report.entries] == ["new.c"]

    def test_root_failure_is_fatal(self, registry: Registry, git: FakeGit) -> None:
        git.fail(".", "status", message="fatal: not a git repository")

        result = _service(registry, git).status(StatusOptions())

        assert isinstance(result, Err)
        assert result.error.kind == "query_failed"
        assert result.error.code is ErrorCode.QUERY_ERROR
        assert result.error.message.startswith("root repository:")

    def test_parse_error_is_partial(self, registry: Registry, git: FakeGit) -> None:
        git.on("b", "status", stdout="## main\nnot porcelain\n")

        result = _service(registry, git).status(StatusOptions())

        assert isinstance(result, Ok)
        assert [sub.path for sub, _ in result.value.reports] == ["a", "d", "e"]
        assert [f.submodule for f in result.value.failures] == ["b", "c"]
        assert isinstance(result.value.failures[0].cause, ParseError)

    def test_every_repository_failing_is_fatal(self, tmp_path: Path) -> None:
        registry = make_registry(tmp_path, "a")
        git = FakeGit(tmp_path)
        git.fail("a", "status")

        result = _service(registry, git).status(StatusOptions(pathspecs=("a/src",)))

        assert isinstance(result, Err)
        assert result.error.message == "every repository failed"


class TestLog:
    """Merged history."""

    def test_merged_newest_first(self, registry: Registry, git: FakeGit) -> None:
        result = _service(registry, git).log(LogOptions())

        assert isinstance(result, Ok)
        assert [e.submodule for e in result.value.entries] == ["e", "d", "b", "a", "."]
        assert [f.submodule for f in result.value.failures] == ["c"]

    def test_pagination(self, registry: Registry, git: FakeGit) -> None:
        result = _service(registry, git).log(LogOptions(num=2, start=1))

        assert isinstance(result, Ok)
        assert [e.submodule for e in result.value.entries] == ["d", "b"]
        (args,) = git.calls_for("a")
        assert "--max-count=3" in args

    def test_deterministic_whatever_the_completion_order(self, tmp_path: Path) -> None:
        registry = make_registry(tmp_path, "a", "b")
        outputs = []
        for delays in ((0.05, 0.0), (0.0, 0.05)):
            git = FakeGit(tmp_path)
            git.on(".", "log", stdout=log_record("r000000", 5))
            git.on("a", "log", stdout=log_record("a000000", 5), delay=delays[0])
            git.on("b", "log", stdout=log_record("b000000", 5), delay=delays[1])
            outputs.append(_service(registry, git).log(LogOptions()))

        assert outputs[0] == outputs[1]
        first = outputs[0].unwrap()
        assert first is not None
        assert [e.submodule for e in first.entries] == [".", "a", "b"]

    def test_invalid_filter_issues_no_query(self, registry: Registry, git: FakeGit) -> None:
        result = _service(registry, git).log(LogOptions(grep="("))

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_filter"
        assert result.error.code is ErrorCode.USER_ERROR
        assert git.calls == []

    def test_revision_excludes_pins(self, tmp_path: Path) -> None:
        pin_root, pin_a = "9" * 40, "a" * 40
        registry = make_registry(tmp_path, "a", "b")
        git = FakeGit(tmp_path)
        git.on(".", "rev-parse", stdout=f"{pin_root}\n")
        git.on(".", "ls-tree", stdout=f"160000 commit {pin_a}\ta\n")
        git.on("a", "cat-file")
        for path in (".", "a", "b"):
            git.on(path, "log", stdout="")

        result = _service(registry, git).log(LogOptions(revision="v1"))

        assert isinstance(result, Ok)
        (root_log,) = [c for c in git.calls_for(".") if c[0] == "log"]
        (a_log,) = [c for c in git.calls_for("a") if c[0] == "log"]
        (b_log,) = [c for c in git.calls_for("b") if c[0] == "log"]
        assert f"^{pin_root}" in root_log
        assert f"^{pin_a}" in a_log
        # Not present at the revision: the whole history is new.
        assert not any(arg.startswith("^") for arg in b_log)

    def test_unknown_revision_is_fatal(self, registry: Registry, git: FakeGit) -> None:
        git.fail(".", "rev-parse")

        result = _service(registry, git).log(LogOptions(revision="nope"))

        assert isinstance(result, Err)
        assert result.error.kind == "unresolved_revision"
        assert result.error.code is ErrorCode.QUERY_ERROR
        assert "'nope'" in result.error.message
        assert not any(c[0] == "log" for _, c in git.calls)

    def test_unverifiable_pin_is_partial(self, tmp_path: Path) -> None:
        registry = make_registry(tmp_path, "a", "b")
        git = FakeGit(tmp_path)
        git.on(".", "rev-parse", stdout=f"{'9' * 40}\n")
        git.on(".", "ls-tree", stdout=f"160000 commit {'a' * 40}\ta\n160000 commit {'b' * 40}\tb\n")
        git.on("a", "cat-file")
        git.fail("b", "cat-file")
        for path in (".", "a", "b"):
            git.on(path, "log", stdout=log_record(f"{path}000000"[-7:], 1))

        result = _service(registry, git).log(LogOptions(revision="v1"))

        assert isinstance(result, Ok)
        assert [f.submodule for f in result.value.failures] == ["b"]
        assert {e.submodule for e in result.value.entries} == {".", "a"}

    def test_unborn_repository_skipped(self, tmp_path: Path) -> None:
        base = make_registry(tmp_path, "a")
        subs = tuple(dataclasses.replace(s, commit=None) if s.path == "a" else s for s in base)
        registry = Registry(root=tmp_path, submodules=subs)
        git = FakeGit(tmp_path)
        git.on(".", "log", stdout=log_record("r000000", 1))

        result = _service(registry, git).log(LogOptions())

        assert isinstance(result, Ok)
        assert git.calls_for("a") == []
        assert result.value.failures == ()


class TestLsFiles:
    """Tracked file listings."""

    def test_head_trees_in_registry_order(self, registry: Registry, git: FakeGit) -> None:
        result = _service(registry, git).ls_files(LsFilesOptions())

        assert isinstance(result, Ok)
        paths = [(e.submodule, e.path) for e in result.value.entries]
        assert paths == [(".", "README"), ("a", "file.c"), ("b", "file.c"), ("d", "file.c"), ("e", "file.c")]
        (args,) = git.calls_for("a")
        assert args[:4] == ("ls-tree", "-r", "--full-tree", "HEAD")

    def test_staged(self, tmp_path: Path) -> None:
        registry = make_registry(tmp_path, "a")
        git = FakeGit(tmp_path)
        git.on(".", "ls-files", stdout=f"100644 {'1' * 40} 0\tz.txt\n100644 {'2' * 40} 0\tm.txt\n")
        git.on("a", "ls-files", stdout=f"100644 {'3' * 40} 0\tsrc/x.c\n")

        result = _service(registry, git).ls_files(LsFilesOptions(staged=True))

        assert isinstance(result, Ok)
        assert [e.path for e in result.value.entries] == ["m.txt", "z.txt", "src/x.c"]
        assert all(e.staged for e in result.value.entries)

    def test_revision_lists_pinned_trees(self, tmp_path: Path) -> None:
        pin_root, pin_a = "9" * 40, "a" * 40
        registry = make_registry(tmp_path, "a", "b")
        git = FakeGit(tmp_path)
        git.on(".", "rev-parse", stdout=f"{pin_root}\n")
        git.on(".", "ls-tree", stdout=f"100644 blob {'f' * 40}\tREADME\n160000 commit {pin_a}\ta\n")
        git.on("a", "cat-file")
        git.on("a", "ls-tree", stdout=f"100644 blob {'e' * 40}\tlib.c\n")

        result = _service(registry, git).ls_files(LsFilesOptions(revision="v1"))

        assert isinstance(result, Ok)
        assert [(e.submodule, e.path) for e in result.value.entries] == [(".", "README"), ("a", "lib.c")]
        assert ("ls-tree", "-r", "--full-tree", pin_a, "--") in git.calls_for("a")
        # Absent at the revision: nothing to list.
        assert git.calls_for("b") == []

    def test_glob_matched_after_listing(self, registry: Registry, git: FakeGit) -> None:
        git.on("a", "ls-tree", stdout=f"100644 blob {'1' * 40}\tsrc/x.c\n100644 blob {'2' * 40}\tsrc/x.h\n")

        result = _service(registry, git).ls_files(LsFilesOptions(pathspecs=("a/src/*.c",)))

        assert isinstance(result, Ok)
        assert [(e.submodule, e.path) for e in result.value.entries] == [("a", "src/x.c")]
        (args,) = git.calls_for("a")
        assert args[-1] == "--"

    def test_staged_and_revision_rejected(self, registry: Registry, git: FakeGit) -> None:
        result = _service(registry, git).ls_files(LsFilesOptions(staged=True, revision="v1"))

        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.USER_ERROR
