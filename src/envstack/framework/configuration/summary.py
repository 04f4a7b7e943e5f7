"""
Configuration summaries for admin and debug surfaces.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import AnyUrl, TypeAdapter, ValidationError

from ...infrastructure.redaction import DEFAULT_MASK, SensitiveDataFilter, mask_url_credentials
from .models import Config

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyUrl)


def describe_url(url: str, default_port: Optional[int] = None, mask: str = DEFAULT_MASK) -> Dict[str, Any]:
    """Masked URL plus its host, port and database name where parseable."""
    description: Dict[str, Any] = {"URL": mask_url_credentials(url, mask)}
    try:
        parsed = _url_adapter.validate_python(url)
    except ValidationError:
        logger.debug("Could not parse URL for summary")
        description.update({"HOST": None, "PORT": default_port})
        return description

    description["HOST"] = parsed.host
    description["PORT"] = parsed.port or default_port
    path = (parsed.path or "").lstrip("/")
    if path:
        description["NAME"] = path
    return description


def create_config_summary(
    config: Config,
    include_sensitive: bool = False,
    mask: str = DEFAULT_MASK,
) -> Dict[str, Any]:
    """
    Summarize a configuration for display.

    Secrets and datastore credentials are masked unless
    ``include_sensitive`` is set.
    """
    env = config.environment
    summary: Dict[str, Any] = {
        "environment": {
            "APP_ENV": env.APP_ENV.value,
            "HOST": env.HOST,
            "PORT": env.PORT,
            "LOG_LEVEL": env.LOG_LEVEL,
            "LOG_FORMAT": env.LOG_FORMAT,
        },
        "app": {
            "TITLE": config.app.TITLE,
            "VERSION": config.app.VERSION,
        },
        "features": config.business.FEATURE_FLAGS.to_dict(),
        "development": {
            "DEBUG": config.development.DEBUG,
            "MOCK_API": config.development.MOCK_API,
            "HOT_RELOAD": config.development.HOT_RELOAD,
        },
        "llm": {
            "DEFAULT_PROVIDER": config.llm.DEFAULT_PROVIDER,
            "DEFAULT_MODEL": config.llm.DEFAULT_MODEL,
        },
    }

    if include_sensitive:
        summary["database"] = {"URL": env.DATABASE_URL}
        summary["redis"] = {"URL": env.REDIS_URL}
        summary["security"] = config.security.to_dict()
        return summary

    summary["database"] = describe_url(env.DATABASE_URL, default_port=5432, mask=mask)
    summary["redis"] = describe_url(env.REDIS_URL, default_port=6379, mask=mask)
    summary["security"] = SensitiveDataFilter(mask=mask).filter(config.security.to_dict())
    return summary


def export_summary(summary: Dict[str, Any], output_path: Union[str, Path], format: str = "yaml") -> None:
    """Write a summary to ``output_path`` as yaml or json."""
    with open(output_path, "w", encoding="utf-8") as f:
        if format.lower() == "yaml":
            yaml.safe_dump(summary, f, default_flow_style=False, indent=2, sort_keys=False)
        elif format.lower() == "json":
            json.dump(summary, f, indent=2)
        else:
            raise ValueError(f"Unsupported export format: {format}")

    logger.info("Configuration summary exported", extra={"output_path": str(output_path)})


def render_summary(summary: Dict[str, Any], format: str = "yaml") -> str:
    if format.lower() == "json":
        return json.dumps(summary, indent=2)
    if format.lower() == "yaml":
        return yaml.safe_dump(summary, default_flow_style=False, indent=2, sort_keys=False)
    raise ValueError(f"Unsupported export format: {format}")
