"""
Tests for structural and production validation rules.
"""

from unittest.mock import patch

import pytest

from envstack.framework.configuration import ConfigurationValidator, Environment
from envstack.framework.configuration.schema import (
    PrefixRule, RangeRule, RegexRule, SecretRule, UrlRule
)
from envstack.framework.configuration.validation import raise_for_result
from envstack.infrastructure.exceptions import (
    ConfigurationValidationError, ProductionPolicyViolationError
)

from .conftest import PRODUCTION_ENVIRON


def issues_by_path(result):
    return {issue.field_path: issue for issue in result.errors}


class TestRules:
    """Test individual rules."""

    def test_range_rule(self):
        rule = RangeRule(1, 65535)
        assert rule.check("environment.PORT", 8080) is None
        issue = rule.check("environment.PORT", 0)
        assert issue.kind == "out_of_range"
        assert issue.actual == 0
        assert rule.check("environment.PORT", 70000).kind == "out_of_range"

    def test_exclusive_minimum(self):
        rule = RangeRule(0, exclusive_minimum=True)
        assert rule.check("business.CACHE_TTL", 1) is None
        assert rule.check("business.CACHE_TTL", 0).kind == "out_of_range"

    def test_prefix_rule(self):
        rule = PrefixRule(("postgresql://", "postgres://"))
        assert rule.check("environment.DATABASE_URL", "postgres://u@h/db") is None
        issue = rule.check("environment.DATABASE_URL", "mysql://root:hunter22@h/db")
        assert issue.kind == "invalid_value"
        assert "hunter22" not in issue.actual

    def test_url_rule(self):
        rule = UrlRule()
        assert rule.check("environment.API_BASE_URL", "https://api.example.com") is None
        assert rule.check("environment.API_BASE_URL", "not a url") is not None
        assert UrlRule(allow_wildcard=True).check("environment.CORS_ORIGIN", "*") is None

    def test_secret_rule_length_and_placeholders(self):
        rule = SecretRule(16)
        assert rule.check("security.LLM_API_KEY", "sk-live-0123456789") is None
        assert "at least 16" in rule.check("security.LLM_API_KEY", "short").message
        issue = rule.check("security.LLM_API_KEY", "your_api_key_goes_here")
        assert "your_" in issue.message
        assert issue.actual != "your_api_key_goes_here"

    def test_regex_rule(self):
        rule = RegexRule(r"\d+[smhd]", "a duration")
        assert rule.check("app.JWT_EXPIRES_IN", "30m") is None
        assert rule.check("app.JWT_EXPIRES_IN", "forever") is not None


class TestStructuralValidation:
    """Test the always-on rule set."""

    def test_development_defaults_are_valid(self, make_config):
        result = ConfigurationValidator().validate(make_config(), Environment.DEVELOPMENT)
        assert result.valid, result.format_report()
        assert result.errors == []

    def test_collects_every_issue(self, make_config):
        config = make_config(
            PORT="0",
            DATABASE_URL="mysql://localhost/db",
            REDIS_URL="memcached://localhost",
            JWT_SECRET="too-short",
            LLM_TEMPERATURE="3.5",
        )

        result = ConfigurationValidator().validate(config, Environment.DEVELOPMENT)

        assert not result.valid
        issues = issues_by_path(result)
        assert set(issues) >= {
            "environment.PORT", "environment.DATABASE_URL", "environment.REDIS_URL",
            "security.JWT_SECRET", "llm.TEMPERATURE",
        }
        assert issues["environment.PORT"].kind == "out_of_range"
        assert issues["llm.TEMPERATURE"].kind == "out_of_range"

    def test_pagination_cross_field(self, make_config):
        config = make_config(PAGINATION_LIMIT="200", PAGINATION_MAX_LIMIT="100")
        result = ConfigurationValidator().validate(config, Environment.DEVELOPMENT)

        issue = issues_by_path(result)["business.PAGINATION_LIMIT"]
        assert issue.kind == "out_of_range"

    def test_secret_values_are_masked_in_issues(self, make_config):
        config = make_config(JWT_SECRET="placeholder-placeholder-placeholder")
        result = ConfigurationValidator().validate(config, Environment.DEVELOPMENT)

        issue = issues_by_path(result)["security.JWT_SECRET"]
        assert issue.actual == "plac***lder"

    def test_validator_is_total(self, make_config):
        """Test that a rule blowing up becomes an issue instead of an exception."""
        config = make_config()
        with patch.object(RangeRule, "check", side_effect=RuntimeError("boom")):
            result = ConfigurationValidator().validate(config, Environment.DEVELOPMENT)

        assert not result.valid
        assert any("boom" in issue.message for issue in result.errors)


class TestProductionValidation:
    """Test production-only policy rules."""

    def test_valid_production_configuration(self, make_config):
        config = make_config("production", **PRODUCTION_ENVIRON)
        result = ConfigurationValidator().validate(config, Environment.PRODUCTION)
        assert result.valid, result.format_report()

    def test_dev_marker_in_secret(self, make_config):
        environ = dict(PRODUCTION_ENVIRON, DB_PASSWORD="dev_password_123")
        result = ConfigurationValidator().validate(
            make_config("production", **environ), Environment.PRODUCTION
        )

        issue = issues_by_path(result)["security.DB_PASSWORD"]
        assert issue.code == "PRODUCTION_POLICY"
        assert "dev_" in issue.message

    def test_dev_marker_allowed_outside_production(self, make_config):
        environ = dict(PRODUCTION_ENVIRON, DB_PASSWORD="dev_password_123")
        result = ConfigurationValidator().validate(
            make_config("staging", **environ), Environment.STAGING
        )
        assert result.valid, result.format_report()

    def test_email_verification_must_be_enabled(self, make_config):
        environ = dict(PRODUCTION_ENVIRON, FEATURE_EMAIL_VERIFICATION="false")
        result = ConfigurationValidator().validate(
            make_config("production", **environ), Environment.PRODUCTION
        )

        issue = issues_by_path(result)["business.FEATURE_FLAGS.EMAIL_VERIFICATION"]
        assert issue.code == "PRODUCTION_POLICY"

    @pytest.mark.parametrize("key,path", [
        ("DEBUG", "development.DEBUG"),
        ("MOCK_API", "development.MOCK_API"),
    ])
    def test_debug_and_mock_must_be_disabled(self, make_config, key, path):
        environ = dict(PRODUCTION_ENVIRON, **{key: "true"})
        result = ConfigurationValidator().validate(
            make_config("production", **environ), Environment.PRODUCTION
        )

        assert issues_by_path(result)[path].code == "PRODUCTION_POLICY"

    def test_raise_for_result_picks_policy_error(self, make_config):
        environ = dict(PRODUCTION_ENVIRON, DEBUG="true")
        result = ConfigurationValidator().validate(
            make_config("production", **environ), Environment.PRODUCTION
        )

        with pytest.raises(ProductionPolicyViolationError) as exc_info:
            raise_for_result(result, Environment.PRODUCTION)
        assert exc_info.value.result is result

    def test_raise_for_result_structural_error(self, make_config):
        result = ConfigurationValidator().validate(make_config(PORT="0"), Environment.DEVELOPMENT)

        with pytest.raises(ConfigurationValidationError) as exc_info:
            raise_for_result(result, Environment.DEVELOPMENT)
        assert not isinstance(exc_info.value, ProductionPolicyViolationError)
        assert "environment.PORT" in exc_info.value.get_detailed_message()


class TestWarnings:
    """Test that warnings are advisory only."""

    def test_app_env_mismatch_warns(self, make_config):
        config = make_config(APP_ENV="staging")
        result = ConfigurationValidator().validate(config, Environment.DEVELOPMENT)

        assert result.valid
        assert any("APP_ENV" in warning for warning in result.warnings)

    def test_production_debug_log_level_warns(self, make_config):
        environ = dict(PRODUCTION_ENVIRON, LOG_LEVEL="debug", CORS_ORIGIN="*")
        result = ConfigurationValidator().validate(
            make_config("production", **environ), Environment.PRODUCTION
        )

        assert result.valid, result.format_report()
        assert len(result.warnings) == 2

    def test_high_temperature_warns(self, make_config):
        result = ConfigurationValidator().validate(
            make_config(LLM_TEMPERATURE="1.8"), Environment.DEVELOPMENT
        )
        assert result.valid
        assert any("temperature" in warning for warning in result.warnings)

    def test_report_lists_errors_and_warnings(self, make_config):
        result = ConfigurationValidator().validate(
            make_config(PORT="0", APP_ENV="test"), Environment.DEVELOPMENT
        )
        report = result.format_report()

        assert report.startswith("Configuration is invalid")
        assert "Errors (1):" in report
        assert "Warnings (1):" in report
