"""
envstack: layered, typed and hot-reloadable environment configuration.
"""

from .framework.configuration import (
    Config,
    ConfigurationContext,
    ConfigurationLoader,
    Environment,
    HotReloadManager,
    HotReloadOptions,
    bootstrap,
    load_configuration
)
from .framework.events import ChangeEvent, ChangeEventType, ChangeNotifier
from .infrastructure.exceptions import (
    EnvStackError,
    ConfigurationError,
    MissingRequiredFieldError,
    InvalidValueError,
    ConfigurationValidationError,
    ProductionPolicyViolationError,
    FileAccessError,
    ReentrantReloadRejectedError,
    RollbackTargetNotFoundError
)

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigurationContext",
    "ConfigurationLoader",
    "Environment",
    "HotReloadManager",
    "HotReloadOptions",
    "bootstrap",
    "load_configuration",
    "ChangeEvent",
    "ChangeEventType",
    "ChangeNotifier",
    "EnvStackError",
    "ConfigurationError",
    "MissingRequiredFieldError",
    "InvalidValueError",
    "ConfigurationValidationError",
    "ProductionPolicyViolationError",
    "FileAccessError",
    "ReentrantReloadRejectedError",
    "RollbackTargetNotFoundError",
]
