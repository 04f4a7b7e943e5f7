"""
Utility functions for common configuration patterns.
"""

from pathlib import Path
from typing import Mapping, Optional, TextIO, Union

from ...infrastructure.logging_setup import setup_logging
from ..events import ChangeEvent, ChangeEventType
from .comparison import ConfigDiff, diff_configs
from .core import ConfigurationContext, ConfigurationLoader
from .environment import Environment
from .hot_reload import HotReloadOptions
from .models import Config


def load_configuration(
    base_dir: Union[str, Path] = ".",
    environment: Optional[Union[str, Environment]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load and validate configuration once.

    Args:
        base_dir: Directory holding the ``.env`` layer files
        environment: Environment to load; detected when omitted
        environ: Process environment to use instead of ``os.environ``

    Returns:
        The validated Config
    """
    return ConfigurationLoader(base_dir, environment, environ).load().config


def apply_logging(config: Config, stream: Optional[TextIO] = None) -> None:
    setup_logging(config.environment.LOG_LEVEL, config.environment.LOG_FORMAT, stream=stream)


def bootstrap(
    base_dir: Union[str, Path] = ".",
    environment: Optional[Union[str, Environment]] = None,
    environ: Optional[Mapping[str, str]] = None,
    watch: bool = False,
    configure_logging: bool = True,
    options: Optional[HotReloadOptions] = None,
    log_stream: Optional[TextIO] = None,
) -> ConfigurationContext:
    """
    Create the process configuration context.

    Any load or validation error propagates so the process never starts on
    unvalidated configuration. Logs go to ``log_stream`` (stdout when
    omitted). With ``watch`` set this must be called from inside the
    running event loop.
    """
    context = ConfigurationContext.create(base_dir, environment, environ, options=options)

    if configure_logging:
        apply_logging(context.config, log_stream)

        def reapply(event: ChangeEvent) -> None:
            apply_logging(context.config, log_stream)

        context.subscribe(ChangeEventType.RELOAD, reapply)

    if watch:
        context.start_watching()
    return context


def compare_environments(
    base_dir: Union[str, Path],
    first: Union[str, Environment],
    second: Union[str, Environment],
    environ: Optional[Mapping[str, str]] = None,
) -> ConfigDiff:
    """
    Diff the built (unvalidated) configuration of two environments.

    Security fields are left out of the comparison.
    """
    first_config = ConfigurationLoader(base_dir, first, environ).build().config
    second_config = ConfigurationLoader(base_dir, second, environ).build().config
    return diff_configs(first_config, second_config, ignore=("security",))
