"""
Configuration data models.

Category models are frozen pydantic models carrying types only; range and
format rules live in ``schema`` and are applied by the validator so that
every problem can be collected in one pass.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from .environment import Environment


class ConfigSection(BaseModel):
    """Base class for one immutable configuration category."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def snapshot(self) -> "ConfigSection":
        """Field-by-field copy; nested sections are copied the same way."""
        values = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, ConfigSection):
                value = value.snapshot()
            values[name] = value
        return type(self)(**values)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class SecurityConfig(ConfigSection):
    """Secrets. No defaults are ever provided in production."""
    JWT_SECRET: str
    DB_PASSWORD: str
    LLM_API_KEY: str
    API_KEY: Optional[str] = None
    CLIENT_API_KEY: Optional[str] = None


class EnvironmentConfig(ConfigSection):
    APP_ENV: Environment
    DATABASE_URL: str
    REDIS_URL: str
    API_BASE_URL: str
    WEB_BASE_URL: str
    LOG_LEVEL: str
    LOG_FORMAT: str
    HOST: str
    PORT: int
    CORS_ORIGIN: str


class FeatureFlags(ConfigSection):
    REGISTRATION: bool
    EMAIL_VERIFICATION: bool
    TWO_FACTOR_AUTH: bool


class BusinessConfig(ConfigSection):
    PAGINATION_LIMIT: int
    PAGINATION_MAX_LIMIT: int
    REQUEST_TIMEOUT: int
    UPLOAD_TIMEOUT: int
    MAX_RETRIES: int
    RETRY_DELAY: int
    CACHE_TTL: int
    CACHE_MAX_SIZE: int
    FEATURE_FLAGS: FeatureFlags


class DevelopmentToolingConfig(ConfigSection):
    DEBUG: bool
    VERBOSE_LOGGING: bool
    MOCK_API: bool
    SEED_DATA: bool
    HOT_RELOAD: bool
    TEST_DATABASE_URL: Optional[str] = None
    TEST_REDIS_URL: Optional[str] = None


class LLMConfig(ConfigSection):
    DEFAULT_PROVIDER: str
    DEFAULT_MODEL: str
    BASE_URL: str
    TIMEOUT: int
    MAX_RETRIES: int
    TEMPERATURE: float
    MAX_TOKENS: int
    TOP_P: float
    FREQUENCY_PENALTY: float
    PRESENCE_PENALTY: float


class AppMetaConfig(ConfigSection):
    TITLE: str
    VERSION: str
    DESCRIPTION: str
    JWT_EXPIRES_IN: str


class Config(ConfigSection):
    """The complete configuration; replaced wholesale, never mutated."""
    security: SecurityConfig
    environment: EnvironmentConfig
    business: BusinessConfig
    development: DevelopmentToolingConfig
    llm: LLMConfig
    app: AppMetaConfig

    def get(self, path: str) -> Any:
        """Look up a dotted path such as ``business.FEATURE_FLAGS.REGISTRATION``."""
        value: Any = self
        for part in path.split("."):
            try:
                value = getattr(value, part)
            except AttributeError:
                raise KeyError(path)
        return value

    def flatten(self) -> Dict[str, Any]:
        """Dotted path -> leaf value for every field."""
        flat: Dict[str, Any] = {}

        def walk(prefix: str, data: Dict[str, Any]) -> None:
            for key, value in data.items():
                path = f"{prefix}.{key}" if prefix else key
                if isinstance(value, dict):
                    walk(path, value)
                else:
                    flat[path] = value

        walk("", self.to_dict())
        return flat


CATEGORY_MODELS = {
    "security": SecurityConfig,
    "environment": EnvironmentConfig,
    "business": BusinessConfig,
    "development": DevelopmentToolingConfig,
    "llm": LLMConfig,
    "app": AppMetaConfig,
}


ISSUE_MISSING = "missing"
ISSUE_INVALID_VALUE = "invalid_value"
ISSUE_OUT_OF_RANGE = "out_of_range"

PRODUCTION_POLICY = "PRODUCTION_POLICY"


@dataclass(frozen=True)
class ValidationIssue:
    field_path: str
    kind: str
    message: str
    expected: Optional[str] = None
    actual: Any = None
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "field_path": self.field_path,
            "kind": self.kind,
            "message": self.message,
        }
        if self.expected is not None:
            data["expected"] = self.expected
        if self.actual is not None:
            data["actual"] = self.actual
        if self.code is not None:
            data["code"] = self.code
        return data

    def __str__(self) -> str:
        text = f"{self.field_path}: {self.message}"
        if self.expected is not None:
            text += f" (expected {self.expected}"
            if self.actual is not None:
                text += f", got {self.actual!r}"
            text += ")"
        return text


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, issue: ValidationIssue) -> None:
        self.errors.append(issue)
        self.valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def policy_violations(self) -> List[ValidationIssue]:
        return [e for e in self.errors if e.code == PRODUCTION_POLICY]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
        }

    def format_report(self) -> str:
        lines = ["Configuration is valid" if self.valid else "Configuration is invalid"]
        if self.errors:
            lines.append(f"Errors ({len(self.errors)}):")
            lines.extend(f"  - {issue}" for issue in self.errors)
        if self.warnings:
            lines.append(f"Warnings ({len(self.warnings)}):")
            lines.extend(f"  - {warning}" for warning in self.warnings)
        return "\n".join(lines)
