"""
Tests for the typed configuration builder.
"""

import pytest

from envstack.framework.configuration import (
    Environment, FIELD_SPECS, SourceResolver, TypedConfigBuilder
)
from envstack.infrastructure.exceptions import InvalidValueError, MissingRequiredFieldError

from .conftest import PRODUCTION_ENVIRON, write_env


def build(env_dir, environment, environ):
    raw = SourceResolver(env_dir, environ).resolve(environment)
    return TypedConfigBuilder().build(raw)


class TestDefaults:
    """Test environment-sensitive defaults."""

    def test_development_defaults(self, env_dir):
        config = build(env_dir, Environment.DEVELOPMENT, {})

        assert config.environment.APP_ENV is Environment.DEVELOPMENT
        assert config.environment.LOG_LEVEL == "debug"
        assert config.environment.PORT == 8001
        assert config.environment.DATABASE_URL.startswith("postgresql://")
        assert config.environment.REDIS_URL == "redis://localhost:6379"
        assert config.development.DEBUG is True
        assert config.development.MOCK_API is False
        assert config.app.JWT_EXPIRES_IN == "7d"
        assert config.app.TITLE.endswith("(development)")

    def test_test_defaults(self, env_dir):
        config = build(env_dir, Environment.TEST, {})

        assert config.environment.LOG_LEVEL == "error"
        assert config.environment.PORT == 8002
        assert config.environment.REDIS_URL == "redis://localhost:6380"
        assert config.development.MOCK_API is True
        assert config.development.SEED_DATA is True
        assert config.development.DEBUG is False
        assert config.app.JWT_EXPIRES_IN == "1h"

    def test_production_defaults(self, env_dir):
        config = build(env_dir, Environment.PRODUCTION, dict(PRODUCTION_ENVIRON))

        assert config.environment.LOG_LEVEL == "warn"
        assert config.development.DEBUG is False
        assert config.development.HOT_RELOAD is False
        assert config.app.VERSION == "1.0.0"
        assert config.security.API_KEY is None

    def test_business_and_llm_defaults(self, env_dir):
        config = build(env_dir, Environment.STAGING, dict(PRODUCTION_ENVIRON))

        assert config.environment.LOG_LEVEL == "info"
        assert config.business.PAGINATION_LIMIT == 20
        assert config.business.FEATURE_FLAGS.REGISTRATION is True
        assert config.llm.DEFAULT_PROVIDER == "deepseek"
        assert config.llm.TEMPERATURE == pytest.approx(0.7)


class TestRawValues:
    """Test conversion of raw values."""

    def test_values_are_converted(self, env_dir):
        write_env(env_dir, ".env", "PORT=9000\nLLM_TEMPERATURE=1.2\nFEATURE_2FA=yes\n")

        config = build(env_dir, Environment.DEVELOPMENT, {"LOG_LEVEL": "INFO"})

        assert config.environment.PORT == 9000
        assert config.llm.TEMPERATURE == pytest.approx(1.2)
        assert config.business.FEATURE_FLAGS.TWO_FACTOR_AUTH is True
        assert config.environment.LOG_LEVEL == "info"

    def test_empty_value_falls_back_to_default(self, env_dir):
        """Test that KEY= is treated as absent."""
        config = build(env_dir, Environment.DEVELOPMENT, {"PORT": "", "HOST": "   "})

        assert config.environment.PORT == 8001
        assert config.environment.HOST == "0.0.0.0"

    def test_invalid_value_names_key_and_value(self, env_dir):
        """Test that a conversion failure is never replaced by a default."""
        with pytest.raises(InvalidValueError) as exc_info:
            build(env_dir, Environment.DEVELOPMENT, {"PORT": "eighty"})

        error = exc_info.value
        assert error.field_path == "environment.PORT"
        assert error.issues[0].kind == "invalid_value"
        assert error.issues[0].actual == "eighty"
        assert "PORT" in error.issues[0].message

    def test_all_issues_are_collected(self, env_dir):
        with pytest.raises(InvalidValueError) as exc_info:
            build(env_dir, Environment.DEVELOPMENT, {"PORT": "x", "DEBUG": "maybe", "LLM_TOP_P": "high"})

        paths = {issue.field_path for issue in exc_info.value.issues}
        assert paths == {"environment.PORT", "development.DEBUG", "llm.TOP_P"}

    def test_missing_takes_priority_over_invalid(self, env_dir):
        environ = dict(PRODUCTION_ENVIRON, PORT="x")
        del environ["JWT_SECRET"]

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            build(env_dir, Environment.PRODUCTION, environ)

        kinds = {issue.kind for issue in exc_info.value.issues}
        assert kinds == {"missing", "invalid_value"}


class TestProductionFailsClosed:
    """Test that production never fills secrets from defaults."""

    def test_missing_jwt_secret(self, env_dir):
        environ = dict(PRODUCTION_ENVIRON)
        del environ["JWT_SECRET"]

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            build(env_dir, Environment.PRODUCTION, environ)

        assert exc_info.value.field_path == "security.JWT_SECRET"
        assert exc_info.value.error_code == "MISSING_REQUIRED_FIELD"

    @pytest.mark.parametrize("key", ["JWT_SECRET", "DB_PASSWORD", "LLM_API_KEY"])
    def test_each_required_secret(self, env_dir, key):
        environ = dict(PRODUCTION_ENVIRON)
        del environ[key]

        with pytest.raises(MissingRequiredFieldError) as exc_info:
            build(env_dir, Environment.PRODUCTION, environ)

        assert exc_info.value.field_path == f"security.{key}"

    def test_no_secret_defaults_at_all(self, env_dir):
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            build(env_dir, Environment.PRODUCTION, {})

        missing = {i.field_path for i in exc_info.value.issues if i.kind == "missing"}
        assert {"security.JWT_SECRET", "security.DB_PASSWORD", "security.LLM_API_KEY",
                "environment.DATABASE_URL", "environment.REDIS_URL"} <= missing

    def test_development_gets_secret_defaults(self, env_dir):
        config = build(env_dir, Environment.DEVELOPMENT, {})
        assert config.security.JWT_SECRET


class TestBuilderProperties:

    def test_every_spec_has_a_unique_path(self):
        paths = [spec.path for spec in FIELD_SPECS]
        assert len(paths) == len(set(paths))

    def test_building_twice_is_structurally_equal(self, env_dir):
        write_env(env_dir, ".env", "PORT=9100\n")
        write_env(env_dir, ".env.development", "LOG_LEVEL=info\n")

        first = build(env_dir, Environment.DEVELOPMENT, {})
        second = build(env_dir, Environment.DEVELOPMENT, {})

        assert first == second
        assert first is not second

    def test_config_is_immutable(self, env_dir):
        config = build(env_dir, Environment.DEVELOPMENT, {})
        with pytest.raises(Exception):
            config.environment.PORT = 1

    def test_snapshot_is_equal_copy(self, env_dir):
        config = build(env_dir, Environment.DEVELOPMENT, {})
        copy = config.snapshot()

        assert copy == config
        assert copy is not config
        assert copy.business.FEATURE_FLAGS is not config.business.FEATURE_FLAGS
