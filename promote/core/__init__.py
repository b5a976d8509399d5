"""Core types: results, exit codes, configuration."""

from .config import ConfigError, DistConfig, PromoteConfig, PromoteSettings, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "ConfigError",
    "DistConfig",
    "PromoteConfig",
    "PromoteSettings",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
