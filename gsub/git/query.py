"""Git query specifications.

A ``GitQuery`` is what the orchestrator runs against one repository: one or
more git argument vectors executed in order inside the same worker, with
their outputs concatenated.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["GitQuery"]


@dataclass(frozen=True, slots=True)
class GitQuery:
    """Git invocations for a single repository.

    Attributes:
        steps: Argument vectors (without the leading "git")
        ok_returncodes: Exit codes treated as success for every step
    """

    steps: tuple[tuple[str, ...], ...]
    ok_returncodes: frozenset[int] = frozenset({0})

    @classmethod
    def of(cls, *args: str, ok_returncodes: frozenset[int] = frozenset({0})) -> GitQuery:
        return cls(steps=(tuple(args),), ok_returncodes=ok_returncodes)

    def then(self, *args: str) -> GitQuery:
        """Return a query with one more step appended."""
        return GitQuery(steps=(*self.steps, tuple(args)), ok_returncodes=self.ok_returncodes)

    @property
    def label(self) -> str:
        """Short description for diagnostics, e.g. "git status"."""
        return "git " + (self.steps[0][0] if self.steps and self.steps[0] else "")
