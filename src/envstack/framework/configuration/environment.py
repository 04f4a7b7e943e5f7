"""
Environment identifiers and detection.
"""

import os
from enum import Enum
from typing import Mapping, Optional, Union


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"
    TEST = "test"
    CI = "ci"

    @classmethod
    def parse(cls, value: Union[str, "Environment"]) -> "Environment":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(
            f"Unknown environment '{value}', expected one of: "
            + ", ".join(m.value for m in cls)
        )

    @property
    def is_production(self) -> bool:
        return self is Environment.PRODUCTION


ENVIRONMENT_VARIABLE = "APP_ENV"
CI_INDICATORS = ("CI", "GITHUB_ACTIONS", "GITLAB_CI", "BUILDKITE")
TEST_RUNNER_INDICATORS = ("PYTEST_CURRENT_TEST", "TOX_ENV_NAME")


def _truthy(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in ("true", "1")


def detect_environment(environ: Optional[Mapping[str, str]] = None) -> Environment:
    """
    Work out which environment we are running in.

    Order: explicit ``APP_ENV`` -> CI indicator variables -> test runner
    indicator variables -> development.
    """
    environ = os.environ if environ is None else environ

    explicit = environ.get(ENVIRONMENT_VARIABLE)
    if explicit:
        return Environment.parse(explicit)

    if any(_truthy(environ.get(name)) for name in CI_INDICATORS):
        return Environment.CI

    if any(environ.get(name) for name in TEST_RUNNER_INDICATORS):
        return Environment.TEST

    return Environment.DEVELOPMENT
