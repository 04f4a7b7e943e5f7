"""
Typed configuration builder.

Turns a RawEnvironment into a Config by applying each FieldSpec's
transformer or default provider. Problems are collected across every
category before anything is raised.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ...infrastructure.exceptions import InvalidValueError, MissingRequiredFieldError
from .environment import Environment
from .models import CATEGORY_MODELS, Config, ISSUE_INVALID_VALUE, ISSUE_MISSING, ValidationIssue
from .schema import FIELD_SPECS, FieldSpec, display_value
from .sources import RawEnvironment
from .transformers import TransformError

logger = logging.getLogger(__name__)


def _assign(target: Dict[str, Any], dotted_name: str, value: Any) -> None:
    parts = dotted_name.split(".")
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


class TypedConfigBuilder:
    """Builds immutable Config objects from raw layered values."""

    def __init__(self, specs: Optional[Iterable[FieldSpec]] = None):
        self.specs: List[FieldSpec] = list(specs) if specs is not None else list(FIELD_SPECS)

    def resolve_field(self, spec: FieldSpec, raw: RawEnvironment, environment: Environment, issues: List[ValidationIssue]) -> Any:
        raw_value = raw.get(spec.raw_key)
        if raw_value is not None and raw_value.strip() != "":
            try:
                return spec.transformer(raw_value)
            except TransformError as e:
                issues.append(ValidationIssue(
                    field_path=spec.path,
                    kind=ISSUE_INVALID_VALUE,
                    message=f"cannot convert {spec.raw_key}: {e}",
                    actual=display_value(spec.path, raw_value),
                ))
                return None

        default = spec.default(environment)
        if default is None and spec.required:
            issues.append(spec.missing_issue())
        return default

    def build(self, raw: RawEnvironment, environment: Optional[Environment] = None) -> Config:
        """
        Build a Config for ``environment`` (defaults to the raw environment's).

        Raises:
            MissingRequiredFieldError: if any required field has no value
            InvalidValueError: if any raw value cannot be converted
        """
        environment = Environment.parse(environment or raw.environment)
        issues: List[ValidationIssue] = []
        sections: Dict[str, Dict[str, Any]] = {name: {} for name in CATEGORY_MODELS}

        for spec in self.specs:
            value = self.resolve_field(spec, raw, environment, issues)
            if value is not None:
                _assign(sections[spec.category], spec.name, value)

        if issues:
            self._raise(issues, environment)

        try:
            return Config(**{
                name: model(**sections[name]) for name, model in CATEGORY_MODELS.items()
            })
        except ValidationError as e:
            converted = [
                ValidationIssue(
                    field_path=".".join(str(loc) for loc in error["loc"]),
                    kind=ISSUE_INVALID_VALUE,
                    message=error["msg"],
                )
                for error in e.errors()
            ]
            raise InvalidValueError(
                "Configuration values have the wrong type",
                issues=converted,
                field_path=converted[0].field_path if converted else None,
                cause=e
            ) from e

    def _raise(self, issues: List[ValidationIssue], environment: Environment) -> None:
        missing = [issue for issue in issues if issue.kind == ISSUE_MISSING]
        logger.error(
            "Failed to build configuration",
            extra={"environment": environment.value, "issue_count": len(issues)}
        )
        if missing:
            raise MissingRequiredFieldError(
                f"Missing required configuration field {missing[0].field_path}"
                f" ({len(issues)} issue(s) in total)",
                issues=issues,
                field_path=missing[0].field_path,
            )
        raise InvalidValueError(
            f"Invalid value for configuration field {issues[0].field_path}"
            f" ({len(issues)} issue(s) in total)",
            issues=issues,
            field_path=issues[0].field_path,
        )
