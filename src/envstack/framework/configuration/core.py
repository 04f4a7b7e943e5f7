"""
Core configuration loading and the application-wide configuration context.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..events import ChangeNotifier
from .builder import TypedConfigBuilder
from .environment import Environment, detect_environment
from .hot_reload import HotReloadManager, HotReloadOptions
from .models import (
    AppMetaConfig, BusinessConfig, Config, DevelopmentToolingConfig,
    EnvironmentConfig, LLMConfig, SecurityConfig, ValidationResult
)
from .sources import RawEnvironment, SourceResolver
from .summary import create_config_summary
from .validation import ConfigurationValidator, raise_for_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    config: Config
    validation: ValidationResult
    raw: RawEnvironment


class ConfigurationLoader:
    """
    Runs resolve -> build -> validate for one base directory and environment.

    The loader holds no configuration state of its own, so it can be called
    repeatedly (and from a worker thread) to produce fresh Config objects.
    """

    def __init__(
        self,
        base_dir: Union[str, Path] = ".",
        environment: Optional[Union[str, Environment]] = None,
        environ: Optional[Mapping[str, str]] = None,
        builder: Optional[TypedConfigBuilder] = None,
        validator: Optional[ConfigurationValidator] = None,
    ):
        self.base_dir = Path(base_dir)
        self.environ = environ
        self.environment = (
            Environment.parse(environment) if environment is not None
            else detect_environment(environ)
        )
        self.resolver = SourceResolver(self.base_dir, environ)
        self.builder = builder or TypedConfigBuilder()
        self.validator = validator or ConfigurationValidator()

    def watch_paths(self) -> List[Path]:
        return self.resolver.layer_paths(self.environment)

    def build(self) -> LoadResult:
        """Resolve and build without validating."""
        raw = self.resolver.resolve(self.environment)
        config = self.builder.build(raw, self.environment)
        return LoadResult(config=config, validation=ValidationResult(), raw=raw)

    def load(self, validate: bool = True) -> LoadResult:
        """
        Produce a validated configuration.

        Raises:
            FileAccessError: if a layer file exists but cannot be read
            MissingRequiredFieldError / InvalidValueError: if building fails
            ProductionPolicyViolationError: if a production-only rule fails
            ConfigurationValidationError: if any other rule fails
        """
        result = self.build()
        if not validate:
            return result

        validation = self.validator.validate(result.config, self.environment)
        for warning in validation.warnings:
            logger.warning("Configuration warning: %s", warning)

        if not validation.valid:
            logger.error(
                "Configuration validation failed",
                extra={
                    "environment": self.environment.value,
                    "errors": [str(issue) for issue in validation.errors],
                }
            )
        raise_for_result(validation, self.environment)

        logger.info(
            "Configuration loaded",
            extra={
                "environment": self.environment.value,
                "loaded_files": result.raw.loaded_files,
                "warning_count": len(validation.warnings),
            }
        )
        return LoadResult(config=result.config, validation=validation, raw=result.raw)


class ConfigurationContext:
    """
    Holds the live configuration for one process.

    Build it once at startup with ``create`` and pass it to whatever needs
    configuration. The live Config is owned by the hot-reload manager and is
    swapped as a whole on reload or rollback.
    """

    def __init__(self, loader: ConfigurationLoader, load_result: LoadResult,
                 notifier: Optional[ChangeNotifier] = None,
                 options: Optional[HotReloadOptions] = None):
        self.loader = loader
        self.initial_validation = load_result.validation
        self.notifier = notifier or ChangeNotifier()
        self.hot_reload = HotReloadManager(
            loader, load_result.config, notifier=self.notifier, options=options
        )

    @classmethod
    def create(
        cls,
        base_dir: Union[str, Path] = ".",
        environment: Optional[Union[str, Environment]] = None,
        environ: Optional[Mapping[str, str]] = None,
        notifier: Optional[ChangeNotifier] = None,
        options: Optional[HotReloadOptions] = None,
    ) -> "ConfigurationContext":
        """Load and validate once; any error propagates to abort startup."""
        loader = ConfigurationLoader(base_dir, environment, environ)
        return cls(loader, loader.load(), notifier=notifier, options=options)

    @property
    def environment(self) -> Environment:
        return self.loader.environment

    @property
    def config(self) -> Config:
        return self.hot_reload.config

    @property
    def security(self) -> SecurityConfig:
        return self.config.security

    @property
    def env(self) -> EnvironmentConfig:
        return self.config.environment

    @property
    def business(self) -> BusinessConfig:
        return self.config.business

    @property
    def development(self) -> DevelopmentToolingConfig:
        return self.config.development

    @property
    def llm(self) -> LLMConfig:
        return self.config.llm

    @property
    def app(self) -> AppMetaConfig:
        return self.config.app

    def summary(self, include_sensitive: bool = False) -> Dict[str, Any]:
        return create_config_summary(self.config, include_sensitive=include_sensitive)

    def start_watching(self, paths=None) -> None:
        self.hot_reload.start(paths)

    def stop_watching(self) -> None:
        self.hot_reload.stop()

    async def reload(self, reason: str = "manual") -> ValidationResult:
        return await self.hot_reload.reload(reason)

    def rollback(self, backup_id: Optional[str] = None):
        return self.hot_reload.rollback(backup_id)

    def subscribe(self, event_type, callback):
        return self.notifier.subscribe(event_type, callback)
