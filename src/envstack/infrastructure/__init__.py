"""
Infrastructure layer: exceptions, redaction and logging setup.
"""

from .exceptions import (
    EnvStackError, ConfigurationError, MissingRequiredFieldError,
    InvalidValueError, ConfigurationValidationError,
    ProductionPolicyViolationError, FileAccessError, ReloadError,
    ReentrantReloadRejectedError, RollbackTargetNotFoundError
)
from .redaction import SensitiveDataFilter, filter_sensitive_data
from .logging_setup import setup_logging, JsonFormatter, PrettyColoredFormatter

__all__ = [
    "EnvStackError", "ConfigurationError", "MissingRequiredFieldError",
    "InvalidValueError", "ConfigurationValidationError",
    "ProductionPolicyViolationError", "FileAccessError", "ReloadError",
    "ReentrantReloadRejectedError", "RollbackTargetNotFoundError",
    "SensitiveDataFilter", "filter_sensitive_data",
    "setup_logging", "JsonFormatter", "PrettyColoredFormatter",
]
