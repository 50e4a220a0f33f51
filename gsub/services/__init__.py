"""Services: end-to-end flows behind the CLI commands."""

from .aggregate import AggregateError, AggregateService, FilesResult, LogResult, StatusResult

__all__ = [
    "AggregateError",
    "AggregateService",
    "FilesResult",
    "LogResult",
    "StatusResult",
]
