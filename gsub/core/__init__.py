"""Core types: results, exit codes and configuration."""

from .config import Config, ConfigError, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    "Config",
    "ConfigError",
    "ErrorCode",
    "Err",
    "Ok",
    "Result",
    "load_config",
]
