"""Parsers turning raw git output into records."""

from .files import parse_file_list, parse_gitlinks
from .log import log_format, parse_log
from .status import parse_status, split_patch

__all__ = [
    "log_format",
    "parse_file_list",
    "parse_gitlinks",
    "parse_log",
    "parse_status",
    "split_patch",
]
