"""Core types: results, exit codes and run configuration."""

from .config import ConfigError, RunConfig, SigningConfig, build_config
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "RunConfig",
    "SigningConfig",
    "build_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
