"""
Field transformers: pure functions turning a raw string into a typed value.

Every transformer raises TransformError on input it cannot convert; the
builder turns that into an invalid_value issue.
"""

from typing import Callable, Any

from .environment import Environment

Transformer = Callable[[str], Any]

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off")
LOG_LEVELS = ("debug", "info", "warn", "error")
LOG_FORMATS = ("json", "pretty", "simple")


class TransformError(ValueError):
    """Raised when a raw value cannot be converted."""


def to_string(value: str) -> str:
    return str(value).strip()


def to_int(value: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        raise TransformError(f"expected an integer, got '{value}'")


def to_float(value: str) -> float:
    try:
        return float(str(value).strip())
    except ValueError:
        raise TransformError(f"expected a number, got '{value}'")


def to_bool(value: str) -> bool:
    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise TransformError(
        f"expected a boolean ({'/'.join(TRUE_VALUES)} or {'/'.join(FALSE_VALUES)}), got '{value}'"
    )


def to_environment(value: str) -> Environment:
    try:
        return Environment.parse(value)
    except ValueError as e:
        raise TransformError(str(e))


def _choice(name: str, choices) -> Transformer:
    def transform(value: str) -> str:
        normalized = str(value).strip().lower()
        if normalized not in choices:
            raise TransformError(f"expected {name} to be one of {', '.join(choices)}, got '{value}'")
        return normalized
    transform.__name__ = f"to_{name.replace(' ', '_')}"
    return transform


to_log_level = _choice("log level", LOG_LEVELS)
to_log_format = _choice("log format", LOG_FORMATS)
