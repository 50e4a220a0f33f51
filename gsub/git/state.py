"""In-progress operation of a repository (merge, rebase, bisect, ...).

Git records these as marker files in the repository's git directory; no
git call is needed to read them. A submodule's ``.git`` is usually a file
pointing at ``.git/modules/<name>`` of its parent.
"""

from __future__ import annotations

from pathlib import Path

from gsub.git.models import RepoState

__all__ = ["git_dir", "read_state"]

_GITFILE_PREFIX = "gitdir:"


def git_dir(repo: Path) -> Path | None:
    """Git directory of the work tree at ``repo``, None when unreadable."""
    dot_git = repo / ".git"
    if dot_git.is_dir():
        return dot_git
    if not dot_git.is_file():
        return None
    try:
        first = dot_git.read_text(encoding="utf-8").splitlines()[0]
    except (OSError, UnicodeDecodeError, IndexError):
        return None
    if not first.startswith(_GITFILE_PREFIX):
        return None
    target = Path(first[len(_GITFILE_PREFIX) :].strip())
    if not target.is_absolute():
        target = repo / target
    return target if target.is_dir() else None


def read_state(repo: Path) -> RepoState | None:
    """Operation in progress in ``repo``, None when there is none.

    Markers are checked in the order libgit2 uses, so an interactive rebase
    that stopped on a conflict reports the rebase rather than the merge.
    """
    gd = git_dir(repo)
    if gd is None:
        return None

    rebase_merge = gd / "rebase-merge"
    if rebase_merge.is_dir():
        if (rebase_merge / "interactive").exists():
            return RepoState.REBASE_INTERACTIVE
        return RepoState.REBASE_MERGE

    rebase_apply = gd / "rebase-apply"
    if rebase_apply.is_dir():
        if (rebase_apply / "rebasing").exists():
            return RepoState.REBASE
        if (rebase_apply / "applying").exists():
            return RepoState.APPLY_MAILBOX
        return RepoState.APPLY_MAILBOX_OR_REBASE

    if (gd / "MERGE_HEAD").exists():
        return RepoState.MERGE

    sequencing = (gd / "sequencer" / "todo").exists()
    if (gd / "REVERT_HEAD").exists():
        return RepoState.REVERT_SEQUENCE if sequencing else RepoState.REVERT
    if (gd / "CHERRY_PICK_HEAD").exists():
        return RepoState.CHERRY_PICK_SEQUENCE if sequencing else RepoState.CHERRY_PICK

    if (gd / "BISECT_LOG").exists():
        return RepoState.BISECT
    return None
