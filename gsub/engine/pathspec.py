"""Pathspec scoping across repositories.

Pathspecs are given relative to the root repository. Each repository only
understands paths relative to its own top level, so every pathspec is
translated per repository:

- ``libs/a/src`` for repository ``libs/a`` becomes ``src``
- ``libs`` for repository ``libs/a`` covers the whole repository
- ``docs`` for repository ``libs/a`` is out of scope: no query, no entries
- ``libs/a/src`` is never given to the root: git refuses pathspecs that
  reach inside a submodule, and the submodule answers for those paths

Glob pathspecs follow git's default wildcard rules (``*`` also matches
``/``). When a glob's literal prefix stops above a repository (``*.c``
against ``libs/a``), it cannot be rewritten relative to that repository;
the repository is queried unrestricted and its paths are matched after
parsing against the root-relative pattern instead.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from fnmatch import fnmatchcase

from gsub.git.models import ROOT_PATH

__all__ = [
    "ScopedPathspec",
    "has_glob",
    "literal_prefix",
    "match_pathspec",
    "normalize_pathspec",
    "scope_pathspecs",
]

_GLOB_CHARS = "*?["


def normalize_pathspec(spec: str) -> str:
    """Canonical root-relative form; "" means the whole tree."""
    s = spec.strip().replace("\\", "/")
    while s.startswith("./"):
        s = s[2:]
    while "//" in s:
        s = s.replace("//", "/")
    s = s.rstrip("/")
    return "" if s == "." else s


def has_glob(spec: str) -> bool:
    return any(c in spec for c in _GLOB_CHARS)


def literal_prefix(spec: str) -> str:
    """The part of ``spec`` before its first wildcard character."""
    for i, c in enumerate(spec):
        if c in _GLOB_CHARS:
            return spec[:i]
    return spec


def _parents(path: str) -> Iterable[str]:
    parts = path.split("/")
    for i in range(1, len(parts)):
        yield "/".join(parts[:i])


def match_pathspec(path: str, spec: str) -> bool:
    """True if root-relative ``path`` is selected by root-relative ``spec``."""
    spec = normalize_pathspec(spec)
    if not spec:
        return True
    if not has_glob(spec):
        return path == spec or path.startswith(spec + "/")
    if fnmatchcase(path, spec):
        return True
    return any(fnmatchcase(parent, spec) for parent in _parents(path))


@dataclass(frozen=True, slots=True)
class ScopedPathspec:
    """Pathspecs as one repository sees them.

    Attributes:
        pathspecs: Pushed to git, relative to the repository; empty means
            no restriction
        patterns: Root-relative specs matched after parsing; empty means
            every parsed path is kept
        originals: The root-relative specs that apply to this repository
    """

    pathspecs: tuple[str, ...] = ()
    patterns: tuple[str, ...] = ()
    originals: tuple[str, ...] = ()

    @property
    def unrestricted(self) -> bool:
        return not self.pathspecs and not self.patterns

    def matches(self, path: str) -> bool:
        """Post-parse check for a root-relative path."""
        if not self.patterns:
            return True
        return any(match_pathspec(path, p) for p in self.patterns)

    def literal_only(self) -> ScopedPathspec:
        """Move glob pushdowns to post-parse matching.

        For git commands that only take literal path prefixes (ls-tree).
        """
        if not any(has_glob(p) for p in self.pathspecs):
            return self
        return ScopedPathspec(pathspecs=(), patterns=self.originals, originals=self.originals)


@dataclass(frozen=True, slots=True)
class _Translation:
    whole: bool = False
    pushdown: str | None = None
    post: bool = False


def _inside(path: str, directory: str) -> bool:
    return directory == ROOT_PATH or path.startswith(directory + "/")


def _owned_by_deeper(prefix: str, repo: str, all_paths: Sequence[str]) -> bool:
    """True if ``prefix`` reaches inside a repository nested under ``repo``."""
    for other in all_paths:
        if other == repo or other == ROOT_PATH:
            continue
        if not _inside(other, repo):
            continue
        if prefix.startswith(other + "/"):
            return True
    return False


def _translate(spec: str, repo: str, all_paths: Sequence[str]) -> _Translation | None:
    if not spec:
        return _Translation(whole=True)

    glob = has_glob(spec)
    prefix = literal_prefix(spec) if glob else spec

    if repo == ROOT_PATH:
        if _owned_by_deeper(prefix, repo, all_paths):
            return None
        return _Translation(pushdown=spec)

    if not glob and (spec == repo or repo.startswith(spec + "/")):
        return _Translation(whole=True)

    if prefix.startswith(repo + "/"):
        if _owned_by_deeper(prefix, repo, all_paths):
            return None
        return _Translation(pushdown=spec[len(repo) + 1 :])

    if glob and (repo + "/").startswith(prefix):
        return _Translation(post=True)

    return None


def scope_pathspecs(
    specs: Sequence[str],
    repo: str,
    all_paths: Sequence[str],
) -> ScopedPathspec | None:
    """Translate root-relative pathspecs for one repository.

    Args:
        specs: Pathspecs as given by the user (root-relative)
        repo: Repository path ("." for the root)
        all_paths: Every repository path of the registry

    Returns:
        The scoped pathspec, or None when no spec can select anything in
        this repository (the repository contributes nothing)
    """
    if not specs:
        return ScopedPathspec()

    normalized = [normalize_pathspec(s) for s in specs]
    translations: list[tuple[str, _Translation]] = []
    for spec in normalized:
        translation = _translate(spec, repo, all_paths)
        if translation is not None:
            translations.append((spec, translation))

    if not translations:
        return None

    originals = tuple(spec for spec, _ in translations)
    if any(t.whole for _, t in translations):
        return ScopedPathspec(originals=originals)
    if any(t.post for _, t in translations):
        return ScopedPathspec(patterns=originals, originals=originals)
    return ScopedPathspec(
        pathspecs=tuple(t.pushdown for _, t in translations if t.pushdown is not None),
        originals=originals,
    )
