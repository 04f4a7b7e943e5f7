"""
Configuration Management System

Layered dotenv sources resolved into typed, validated and immutable
configuration, with hot reload, backups and rollback.
"""

from .environment import Environment, detect_environment

from .models import (
    Config,
    SecurityConfig,
    EnvironmentConfig,
    FeatureFlags,
    BusinessConfig,
    DevelopmentToolingConfig,
    LLMConfig,
    AppMetaConfig,
    ValidationIssue,
    ValidationResult
)

from .sources import (
    ConfigurationSource,
    EnvFileSource,
    ProcessEnvironmentSource,
    RawEnvironment,
    SourceResolver
)

from .schema import FieldSpec, FIELD_SPECS

from .builder import TypedConfigBuilder

from .validation import ConfigurationValidator

from .summary import create_config_summary, export_summary

from .comparison import ConfigDiff, diff_configs

from .hot_reload import (
    Backup,
    BackupRing,
    HotReloadManager,
    HotReloadOptions,
    ReloadState
)

from .core import ConfigurationContext, ConfigurationLoader, LoadResult

from .utils import (
    load_configuration,
    bootstrap,
    compare_environments
)

__all__ = [
    # Environment
    'Environment',
    'detect_environment',

    # Models
    'Config',
    'SecurityConfig',
    'EnvironmentConfig',
    'FeatureFlags',
    'BusinessConfig',
    'DevelopmentToolingConfig',
    'LLMConfig',
    'AppMetaConfig',
    'ValidationIssue',
    'ValidationResult',

    # Sources
    'ConfigurationSource',
    'EnvFileSource',
    'ProcessEnvironmentSource',
    'RawEnvironment',
    'SourceResolver',

    # Building and validation
    'FieldSpec',
    'FIELD_SPECS',
    'TypedConfigBuilder',
    'ConfigurationValidator',

    # Summaries
    'create_config_summary',
    'export_summary',
    'ConfigDiff',
    'diff_configs',

    # Hot reload
    'Backup',
    'BackupRing',
    'HotReloadManager',
    'HotReloadOptions',
    'ReloadState',

    # Core
    'ConfigurationContext',
    'ConfigurationLoader',
    'LoadResult',

    # Utilities
    'load_configuration',
    'bootstrap',
    'compare_environments'
]
