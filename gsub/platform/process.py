"""Subprocess execution with Result-based error handling.

``run`` is the only place that spawns processes. It captures output, honors
a per-call timeout and an optional cancel event shared by every worker of a
dispatch, so a whole fan-out can be stopped when the invocation deadline
expires.

Usage:
    match run(["git", "status", "--porcelain=v1"], cwd=repo, timeout=30.0):
        case Ok(stdout):
            ...
        case Err(error):
            console.error(f"{error}: {error.stderr}")
"""

from __future__ import annotations

import os
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from gsub.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]

# How often a waiting worker checks its cancel event.
_POLL_INTERVAL_SECONDS = 0.05


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not run, exited badly, or was stopped.

    Attributes:
        command: Argument vector
        returncode: Exit code, -1 when the process could not run or was killed
        stdout: Whatever was captured before failing
        stderr: Captured stderr, or the reason the process was stopped
        timed_out: The per-call timeout expired
        cancelled: The shared cancel event was set while running
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    cancelled: bool = False

    def __str__(self) -> str:
        shown = " ".join(self.command[:3]) + (" ..." if len(self.command) > 3 else "")
        if self.cancelled:
            return f"{shown} cancelled"
        if self.timed_out:
            return f"{shown} timed out"
        return f"{shown} failed (exit {self.returncode})"


def _stopped(
    cmd: list[str],
    proc: subprocess.Popen[str] | None,
    reason: str,
    **flags: bool,
) -> Err[ProcessError]:
    """Kill ``proc`` (when started) and report why it was stopped."""
    captured = ""
    if proc is not None:
        proc.kill()
        captured = proc.communicate()[0] or ""
    return Err(ProcessError(tuple(cmd), -1, captured, reason, **flags))


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
    ok_returncodes: frozenset[int] = frozenset({0}),
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` and return its stdout.

    Args:
        cmd: Command and arguments
        cwd: Working directory
        env: Extra variables layered over the current environment
        timeout: Seconds before the process is killed (None: no limit)
        cancel: Event that, once set, kills the process
        ok_returncodes: Exit codes treated as success

    Returns:
        Ok(stdout), or Err(ProcessError)
    """
    if cancel is not None and cancel.is_set():
        return _stopped(cmd, None, "cancelled before start", cancelled=True)

    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(cwd),
            env={**os.environ, **env} if env else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        return Err(ProcessError(tuple(cmd), -1, "", str(e)))

    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=_POLL_INTERVAL_SECONDS)
        except subprocess.TimeoutExpired:
            if cancel is not None and cancel.is_set():
                return _stopped(
                    cmd, proc, "cancelled: invocation deadline exceeded", cancelled=True
                )
            if deadline is not None and time.monotonic() >= deadline:
                return _stopped(
                    cmd, proc, f"Command timed out after {timeout}s", timed_out=True
                )
            continue
        break

    if proc.returncode not in ok_returncodes:
        return Err(ProcessError(tuple(cmd), proc.returncode, stdout or "", stderr or ""))
    return Ok(stdout or "")
