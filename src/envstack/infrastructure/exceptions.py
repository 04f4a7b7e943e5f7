"""
Structured Exception Hierarchy

Every error raised by envstack carries an error code, a context mapping
and a correlation id so that boot failures and hot-reload failures can be
logged and serialized the same way.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class EnvStackError(Exception):
    """
    Base exception class for all envstack exceptions.

    Provides structured error information including error codes,
    context data, and correlation IDs for tracing.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(EnvStackError):
    """
    Raised when configuration cannot be built or does not validate.

    Carries the full list of ValidationIssue objects collected so far so
    callers can print every problem at once instead of the first one.
    """

    default_code = "CONFIG_ERROR"

    def __init__(
        self,
        message: str,
        issues: Optional[List[Any]] = None,
        field_path: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        error_code = kwargs.pop('error_code', self.default_code)
        self.issues = list(issues or [])
        self.field_path = field_path
        if field_path:
            context['field_path'] = field_path
        if self.issues:
            context['issues'] = [issue.to_dict() for issue in self.issues]

        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            **kwargs
        )

    def get_detailed_message(self) -> str:
        """Get a detailed error message listing every collected issue."""
        lines = [self.message]
        if self.issues:
            lines.append("Configuration issues:")
            for issue in self.issues:
                lines.append(f"- {issue}")
        return "\n".join(lines)


class MissingRequiredFieldError(ConfigurationError):
    """A required field has neither a raw value nor a default."""

    default_code = "MISSING_REQUIRED_FIELD"


class InvalidValueError(ConfigurationError):
    """A raw value could not be converted to its declared type."""

    default_code = "INVALID_VALUE"


class ConfigurationValidationError(ConfigurationError):
    """Exception raised when a built configuration fails validation."""

    default_code = "CONFIGURATION_VALIDATION_ERROR"

    def __init__(self, message: str, result: Any = None, **kwargs):
        self.result = result
        issues = kwargs.pop('issues', None)
        if issues is None and result is not None:
            issues = result.errors
        super().__init__(message, issues=issues, **kwargs)


class ProductionPolicyViolationError(ConfigurationValidationError):
    """Placeholder secrets, disabled safety flags or debug flags in production."""

    default_code = "PRODUCTION_POLICY_VIOLATION"


class FileAccessError(EnvStackError):
    """Raised when a configuration file exists but cannot be read or watched."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if file_path:
            context['file_path'] = file_path
        self.file_path = file_path

        super().__init__(
            message=message,
            error_code="FILE_ACCESS_ERROR",
            context=context,
            **kwargs
        )


class ReloadError(EnvStackError):
    """Base class for errors raised synchronously by the hot-reload manager."""

    default_code = "RELOAD_ERROR"

    def __init__(self, message: str, **kwargs):
        error_code = kwargs.pop('error_code', self.default_code)
        super().__init__(message=message, error_code=error_code, **kwargs)


class ReentrantReloadRejectedError(ReloadError):
    """A reload or rollback was requested while another reload is in flight."""

    default_code = "RELOAD_IN_FLIGHT"


class RollbackTargetNotFoundError(ReloadError):
    """Rollback was requested with an empty backup ring or an unknown id."""

    default_code = "ROLLBACK_TARGET_NOT_FOUND"

    def __init__(self, message: str, backup_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if backup_id:
            context['backup_id'] = backup_id
        self.backup_id = backup_id
        super().__init__(message, context=context, **kwargs)
