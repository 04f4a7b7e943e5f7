"""
Tests for field transformers.
"""

import pytest

from envstack.framework.configuration import Environment
from envstack.framework.configuration import transformers as t


class TestScalarTransformers:

    def test_string_is_stripped(self):
        assert t.to_string("  value \t") == "value"

    def test_int(self):
        assert t.to_int(" 42 ") == 42
        with pytest.raises(t.TransformError, match="expected an integer"):
            t.to_int("4.2")

    def test_float(self):
        assert t.to_float("0.7") == pytest.approx(0.7)
        assert t.to_float("-2") == -2.0
        with pytest.raises(t.TransformError):
            t.to_float("warm")

    def test_transform_error_is_value_error(self):
        """Test that TransformError can be caught as a ValueError."""
        with pytest.raises(ValueError):
            t.to_int("x")


class TestBooleanTransformer:

    @pytest.mark.parametrize("raw", ["true", "TRUE", "1", "yes", "On"])
    def test_truthy(self, raw):
        assert t.to_bool(raw) is True

    @pytest.mark.parametrize("raw", ["false", "False", "0", "no", "OFF"])
    def test_falsy(self, raw):
        assert t.to_bool(raw) is False

    def test_unrecognized_value_raises(self):
        """Test that anything else is an error rather than silently false."""
        with pytest.raises(t.TransformError, match="expected a boolean"):
            t.to_bool("enabled")


class TestChoiceTransformers:

    def test_environment(self):
        assert t.to_environment("Production") is Environment.PRODUCTION
        with pytest.raises(t.TransformError):
            t.to_environment("qa")

    def test_log_level(self):
        assert t.to_log_level("WARN") == "warn"
        with pytest.raises(t.TransformError, match="log level"):
            t.to_log_level("verbose")

    def test_log_format(self):
        assert t.to_log_format("pretty") == "pretty"
        with pytest.raises(t.TransformError, match="log format"):
            t.to_log_format("xml")
