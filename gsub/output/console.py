"""Console output abstraction.

Results go to stdout as rich ``Text`` lines; diagnostics (errors,
warnings, skipped submodules, debug traces) go to stderr so piping the
output stays clean. Services and the renderer only see ``ConsoleProtocol``;
tests use ``MockConsole``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from rich.console import Console
    from rich.text import Text

    from gsub.core.config import ColorMode

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    DEFAULT = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    DEBUG = auto()  # verbose-only

    def __str__(self) -> str:
        return self.name.lower()


# Rich style per Style; diagnostics also use it for their "<name>:" prefix.
_RICH_STYLES: dict[Style, str] = {
    Style.DEFAULT: "",
    Style.ERROR: "red bold",
    Style.WARNING: "yellow",
    Style.INFO: "cyan",
    Style.DIM: "dim",
    Style.DEBUG: "dim",
}


class ConsoleProtocol(Protocol):
    """Where commands write.

    ``print`` and ``line`` write results (stdout); ``error``, ``warning``,
    ``info`` and ``debug`` write diagnostics (stderr).
    """

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def line(self, text: Text) -> None:
        """Write one pre-styled result line."""
        ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def debug(self, message: str) -> None:
        """Write a trace line; dropped unless verbose."""
        ...

    def newline(self) -> None: ...


def _rich_console(color: ColorMode, *, stderr: bool) -> Console:
    from rich.console import Console

    return Console(
        stderr=stderr,
        force_terminal=True if color == "always" else None,
        no_color=color == "never",
        highlight=False,
        soft_wrap=True,
        legacy_windows=False,
    )


class RichConsole:
    """ConsoleProtocol backed by two rich consoles.

    Args:
        color: "always" forces ANSI colors, "never" disables them, "auto"
            colors only when writing to a terminal
        verbose: Emit debug lines
    """

    def __init__(self, *, color: ColorMode = "auto", verbose: bool = False) -> None:
        self._out = _rich_console(color, stderr=False)
        self._err = _rich_console(color, stderr=True)
        self._verbose = verbose

    @property
    def verbose(self) -> bool:
        return self._verbose

    def _diagnostic(self, style: Style, message: str) -> None:
        from rich.text import Text

        rich_style = _RICH_STYLES[style]
        line = Text()
        if style is Style.DEBUG:
            line.append(f"debug: {message}", style=rich_style)
        else:
            line.append(f"{style}:", style=rich_style)
            line.append(f" {message}")
        self._err.print(line)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._out.print(message, style=_RICH_STYLES[style] or None, markup=False)

    def line(self, text: Text) -> None:
        self._out.print(text)

    def error(self, message: str) -> None:
        self._diagnostic(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._diagnostic(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._diagnostic(Style.INFO, message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(Style.DEBUG, message)

    def newline(self) -> None:
        self._out.print()


@dataclass
class OutputRecord:
    message: str
    style: Style
    stderr: bool = False


def _no_records() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Records everything written, for assertions.

    Debug lines are always recorded; ``verbose`` only mirrors the flag.
    """

    verbose: bool = False
    outputs: list[OutputRecord] = field(default_factory=_no_records)

    def _record(self, style: Style, message: str) -> None:
        self.outputs.append(OutputRecord(f"{style}: {message}", style, stderr=True))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def line(self, text: Text) -> None:
        self.outputs.append(OutputRecord(text.plain, Style.DEFAULT))

    def error(self, message: str) -> None:
        self._record(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._record(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._record(Style.INFO, message)

    def debug(self, message: str) -> None:
        self._record(Style.DEBUG, message)

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def stdout_lines(self) -> list[str]:
        """Result lines only (what would have gone to stdout)."""
        return [o.message for o in self.outputs if not o.stderr]

    @property
    def stderr_lines(self) -> list[str]:
        """Diagnostics, debug traces excluded."""
        return [o.message for o in self.outputs if o.stderr and o.style is not Style.DEBUG]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return self.count(Style.ERROR) > 0

    def has_warning(self) -> bool:
        return self.count(Style.WARNING) > 0

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style is style)
