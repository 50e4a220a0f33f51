"""Exit codes for the git-sub CLI.

Per-submodule failures are reported on stderr and leave the exit code at
OK; only fatal conditions map to a non-zero code.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    USER_ERROR = 1  # invalid filter, conflicting options, bad regex
    ENV_ERROR = 2  # not inside a work tree, git not runnable
    QUERY_ERROR = 3  # root query failed, root revision unknown, everything failed
