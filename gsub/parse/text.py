"""Line iteration and git path unquoting shared by the parsers."""

from __future__ import annotations

from collections.abc import Iterator

__all__ = ["PATCH_START", "iter_lines", "read_path", "split_at_patch", "unquote_path"]

PATCH_START = "diff --git "

_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


def iter_lines(text: str, base: int = 0) -> Iterator[tuple[int, str]]:
    """Yield (character offset, line) pairs, without line terminators."""
    offset = base
    for line in text.splitlines(keepends=True):
        yield offset, line.rstrip("\r\n")
        offset += len(line)


def split_at_patch(text: str) -> tuple[str, str | None]:
    """Split output at the first ``diff --git`` line.

    Returns:
        (text before the patch, patch or None when there is none)
    """
    if text.startswith(PATCH_START):
        return "", text
    index = text.find("\n" + PATCH_START)
    if index < 0:
        return text, None
    return text[: index + 1], text[index + 1 :]


def unquote_path(token: str) -> str:
    """Decode a C-style quoted path as printed by git.

    Unquoted tokens are returned unchanged. Octal escapes are raw bytes and
    are decoded as UTF-8.

    Raises:
        ValueError: On an unterminated quote or a dangling escape.
    """
    if not token.startswith('"'):
        return token
    if len(token) < 2 or not token.endswith('"'):
        raise ValueError(f"unterminated quoted path: {token}")

    body = token[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.extend(ch.encode("utf-8"))
            i += 1
            continue
        if i + 1 >= len(body):
            raise ValueError(f"dangling escape in quoted path: {token}")
        nxt = body[i + 1]
        if nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
            i += 2
        elif body[i + 1 : i + 4].isdigit() and len(body[i + 1 : i + 4]) == 3:
            out.append(int(body[i + 1 : i + 4], 8) & 0xFF)
            i += 4
        else:
            raise ValueError(f"unknown escape \\{nxt} in quoted path: {token}")
    return out.decode("utf-8", errors="replace")


def read_path(text: str) -> tuple[str, str]:
    """Read one (possibly quoted) path from the start of ``text``.

    Returns:
        (decoded path, remaining text). An unquoted path runs to the end.

    Raises:
        ValueError: On a malformed quoted path.
    """
    if not text.startswith('"'):
        return text, ""
    i = 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == '"':
            return unquote_path(text[: i + 1]), text[i + 1 :]
        i += 1
    raise ValueError(f"unterminated quoted path: {text}")
