"""
Configuration validation.

ConfigurationValidator.validate never raises: every rule runs and every
issue is collected into a ValidationResult. Warnings are advisory only.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional

from ...infrastructure.exceptions import (
    ConfigurationValidationError, ProductionPolicyViolationError
)
from .environment import Environment
from .models import (
    Config, ISSUE_INVALID_VALUE, ISSUE_OUT_OF_RANGE, PRODUCTION_POLICY,
    ValidationIssue, ValidationResult
)
from .schema import FIELD_SPECS, FieldSpec, display_value

logger = logging.getLogger(__name__)

PRODUCTION_FORBIDDEN_PATTERNS = ("placeholder", "your_", "dev_")
PRODUCTION_SECRET_FIELDS = ("security.JWT_SECRET", "security.DB_PASSWORD", "security.LLM_API_KEY")
PRODUCTION_REQUIRED_FLAGS = ("business.FEATURE_FLAGS.EMAIL_VERIFICATION",)
PRODUCTION_FORBIDDEN_FLAGS = ("development.DEBUG", "development.MOCK_API")

HIGH_TEMPERATURE = 1.5


def _policy_issue(field_path: str, message: str, expected: str, actual: Any) -> ValidationIssue:
    return ValidationIssue(
        field_path=field_path,
        kind=ISSUE_INVALID_VALUE,
        message=message,
        expected=expected,
        actual=display_value(field_path, actual),
        code=PRODUCTION_POLICY,
    )


def check_production_secrets(config: Config) -> List[ValidationIssue]:
    issues = []
    for path in PRODUCTION_SECRET_FIELDS:
        value = config.get(path)
        lowered = (value or "").lower()
        for pattern in PRODUCTION_FORBIDDEN_PATTERNS:
            if pattern in lowered:
                issues.append(_policy_issue(
                    path,
                    f"production secret contains development marker '{pattern}'",
                    "a real production secret",
                    value,
                ))
                break
    return issues


def check_production_flags(config: Config) -> List[ValidationIssue]:
    issues = []
    for path in PRODUCTION_REQUIRED_FLAGS:
        if config.get(path) is not True:
            issues.append(_policy_issue(path, "must be enabled in production", "true", config.get(path)))
    for path in PRODUCTION_FORBIDDEN_FLAGS:
        if config.get(path) is not False:
            issues.append(_policy_issue(path, "must be disabled in production", "false", config.get(path)))
    return issues


PRODUCTION_RULES: List[Callable[[Config], List[ValidationIssue]]] = [
    check_production_secrets,
    check_production_flags,
]


class ConfigurationValidator:
    """Validates a built Config against field rules and environment policy."""

    def __init__(self, specs: Optional[Iterable[FieldSpec]] = None):
        self.specs = list(specs) if specs is not None else list(FIELD_SPECS)

    def validate(self, config: Config, environment: Environment) -> ValidationResult:
        """
        Validate configuration and collect every error and warning.

        Args:
            config: The configuration to check
            environment: Environment the configuration was loaded for

        Returns:
            ValidationResult with ``valid`` False when any error was found
        """
        environment = Environment.parse(environment)
        result = ValidationResult()

        self._check_fields(config, result)
        self._check_cross_field(config, result)

        if environment == Environment.PRODUCTION:
            for rule in PRODUCTION_RULES:
                try:
                    for issue in rule(config):
                        result.add_error(issue)
                except Exception as e:
                    logger.exception("Production rule %s failed", rule.__name__)
                    result.add_error(ValidationIssue(
                        field_path="config",
                        kind=ISSUE_INVALID_VALUE,
                        message=f"rule {rule.__name__} could not run: {e}",
                        code=PRODUCTION_POLICY,
                    ))

        self._collect_warnings(config, environment, result)
        return result

    def _check_fields(self, config: Config, result: ValidationResult) -> None:
        for spec in self.specs:
            try:
                value = config.get(spec.path)
            except KeyError:
                if spec.required:
                    result.add_error(spec.missing_issue())
                continue

            if value is None:
                if spec.required:
                    result.add_error(spec.missing_issue())
                continue

            for rule in spec.rules:
                try:
                    issue = rule.check(spec.path, value)
                except Exception as e:
                    logger.exception("Rule %s failed for %s", type(rule).__name__, spec.path)
                    issue = ValidationIssue(
                        field_path=spec.path,
                        kind=ISSUE_INVALID_VALUE,
                        message=f"rule {type(rule).__name__} could not run: {e}",
                    )
                if issue is not None:
                    result.add_error(issue)

    def _check_cross_field(self, config: Config, result: ValidationResult) -> None:
        business = config.business
        if business.PAGINATION_LIMIT > business.PAGINATION_MAX_LIMIT:
            result.add_error(ValidationIssue(
                field_path="business.PAGINATION_LIMIT",
                kind=ISSUE_OUT_OF_RANGE,
                message="default page size exceeds PAGINATION_MAX_LIMIT",
                expected=f"<= {business.PAGINATION_MAX_LIMIT}",
                actual=business.PAGINATION_LIMIT,
            ))

    def _collect_warnings(self, config: Config, environment: Environment, result: ValidationResult) -> None:
        env = config.environment
        if env.APP_ENV != environment:
            result.add_warning(
                f"APP_ENV is '{env.APP_ENV.value}' but configuration was loaded for '{environment.value}'"
            )
        if environment == Environment.PRODUCTION:
            if env.LOG_LEVEL == "debug":
                result.add_warning("debug log level is enabled in production")
            if env.CORS_ORIGIN == "*":
                result.add_warning("CORS_ORIGIN allows every origin in production")
        if config.llm.TEMPERATURE > HIGH_TEMPERATURE:
            result.add_warning(
                f"LLM temperature {config.llm.TEMPERATURE} is unusually high; responses may be erratic"
            )
        if environment == Environment.DEVELOPMENT and not config.business.FEATURE_FLAGS.REGISTRATION:
            result.add_warning("registration is disabled in development")


def raise_for_result(result: ValidationResult, environment: Environment) -> None:
    """Raise the matching error for an invalid result; no-op when valid."""
    if result.valid:
        return
    environment = Environment.parse(environment)
    if result.policy_violations:
        raise ProductionPolicyViolationError(
            f"Configuration violates {environment.value} policy "
            f"({len(result.errors)} issue(s))",
            result=result,
        )
    raise ConfigurationValidationError(
        f"Configuration validation failed for {environment.value} "
        f"({len(result.errors)} issue(s))",
        result=result,
    )
