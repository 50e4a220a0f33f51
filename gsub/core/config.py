"""Typed configuration loading.

Configuration is optional. It is read from ``$GIT_SUB_CONFIG`` when set,
otherwise from ``.git-sub.toml`` at the root repository's top level:

    [dispatch]
    jobs = 16
    timeout = 30.0
    deadline = 120.0

    [output]
    color = "auto"
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result
from .structured import Table, as_table, get_float, get_int, get_str, get_table

__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILE_NAME",
    "MAX_JOBS",
    "ColorMode",
    "Config",
    "ConfigError",
    "DispatchConfig",
    "OutputConfig",
    "config_path_for",
    "load_config",
]

CONFIG_ENV_VAR = "GIT_SUB_CONFIG"
CONFIG_FILE_NAME = ".git-sub.toml"

# Hard cap on concurrent git processes, whatever the tree size or config says.
MAX_JOBS = 32

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_DEADLINE_SECONDS = 120.0

type ColorMode = Literal["auto", "always", "never"]
_COLOR_MODES: tuple[ColorMode, ...] = ("auto", "always", "never")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class DispatchConfig:
    """Process fan-out limits.

    Attributes:
        jobs: Worker cap, None means one worker per repository (up to MAX_JOBS)
        timeout: Per-query timeout in seconds
        deadline: Whole-invocation deadline in seconds, None disables it
    """

    jobs: int | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    deadline: float | None = DEFAULT_DEADLINE_SECONDS


@dataclass(frozen=True, slots=True)
class OutputConfig:
    color: ColorMode = "auto"


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a parsed TOML mapping.

        Raises:
            ValueError: On out-of-range values.
        """
        dispatch: Table = get_table(data, "dispatch") or {}
        output: Table = get_table(data, "output") or {}

        jobs = get_int(dispatch, "jobs")
        if jobs is not None:
            if jobs < 1:
                raise ValueError(f"dispatch.jobs must be >= 1, got {jobs}")
            jobs = min(jobs, MAX_JOBS)

        timeout = get_float(dispatch, "timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"dispatch.timeout must be > 0, got {timeout}")

        deadline = get_float(dispatch, "deadline")
        if deadline is not None and deadline < 0:
            raise ValueError(f"dispatch.deadline must be >= 0, got {deadline}")

        color = get_str(output, "color") or "auto"
        if color not in _COLOR_MODES:
            raise ValueError(f"output.color must be one of {', '.join(_COLOR_MODES)}")

        return cls(
            dispatch=DispatchConfig(
                jobs=jobs,
                timeout=timeout or DEFAULT_TIMEOUT_SECONDS,
                # 0 disables the deadline
                deadline=DEFAULT_DEADLINE_SECONDS
                if deadline is None
                else (deadline or None),
            ),
            output=OutputConfig(color=color),  # type: ignore[arg-type]
        )


def config_path_for(root: Path) -> Path:
    """Config file location for a root repository, honoring $GIT_SUB_CONFIG."""
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return root / CONFIG_FILE_NAME


def _read_table(path: Path) -> Result[Table, ConfigError]:
    import tomllib

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ConfigError(f"Cannot read config {path}: {e}", path=path))

    try:
        table = as_table(tomllib.loads(raw))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax in {path}: {e}", path=path))
    if table is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(table)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and validate configuration from a TOML file."""
    match _read_table(path):
        case Err() as failed:
            return failed
        case Ok(table):
            try:
                return Ok(Config.from_dict(table))
            except (TypeError, ValueError) as e:
                return Err(ConfigError(f"Invalid config: {e}", path=path))
