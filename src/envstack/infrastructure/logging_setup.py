import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, TextIO

from .redaction import filter_sensitive_data

ROOT_LOGGER_NAME = "envstack"


class LogFormat(Enum):
    PRETTY = "pretty"
    JSON = "json"
    SIMPLE = "simple"


# ANSI color codes
RESET = "\033[0m"
COLORS = {
    "DEBUG": "\033[37m",   # White
    "INFO": "\033[36m",    # Cyan
    "WARNING": "\033[33m", # Yellow
    "ERROR": "\033[31m",   # Red
    "CRITICAL": "\033[41m\033[97m",  # White on Red background
    "TIME": "\033[90m",    # Gray for timestamps
    "MODULE": "\033[35m",  # Magenta
    "MESSAGE": "\033[0m",  # Default
}

# Application level names mapped onto stdlib levels.
LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_STD_RECORD_KEYS = frozenset((
    "args", "msg", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno",
    "funcName", "created", "msecs", "relativeCreated", "thread",
    "threadName", "processName", "process", "name", "taskName", "message",
))


class PrettyColoredFormatter(logging.Formatter):
    """
    Pretty, human-readable, colored log formatter.
    Format:
    2025-08-13 14:35:12.345 UTC | INFO     | hot_reload:123 | configuration reloaded
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        timestamp_colored = f"{COLORS['TIME']}{timestamp} UTC{RESET}"

        level_color = COLORS.get(record.levelname, "")
        level_name_colored = f"{level_color}{record.levelname:<8}{RESET}"

        location_colored = f"{COLORS['MODULE']}{record.module}:{record.lineno}{RESET}"

        message_colored = f"{COLORS['MESSAGE']}{record.getMessage()}{RESET}"

        if record.exc_info:
            message_colored += "\n" + self.formatException(record.exc_info)

        return f"{timestamp_colored} | {level_name_colored} | {location_colored} | {message_colored}"


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logs; extra fields are redacted."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        extras = {}
        for k, v in record.__dict__.items():
            if k in _STD_RECORD_KEYS:
                continue
            try:
                json.dumps(v)
                extras[k] = v
            except (TypeError, ValueError):
                extras[k] = str(v)
        base.update(filter_sensitive_data(extras))
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"))


def resolve_level(level: str) -> int:
    try:
        return LEVELS[str(level).lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}")


def setup_logging(
    level: str = "info",
    log_format: str = LogFormat.PRETTY.value,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Install a single handler on the envstack logger and return it."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolve_level(level))
    handler = logging.StreamHandler(stream or sys.stdout)

    log_format = str(log_format).lower()
    if log_format == LogFormat.PRETTY.value:
        handler.setFormatter(PrettyColoredFormatter())
    elif log_format == LogFormat.JSON.value:
        handler.setFormatter(JsonFormatter())
    elif log_format == LogFormat.SIMPLE.value:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        raise ValueError(f"Unknown log format: {log_format}")

    logger.handlers = [handler]
    logger.propagate = False
    return logger
