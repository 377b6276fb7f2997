"""Tests for start_stop.exceptions module."""

import pytest

from start_stop.exceptions import (
    ConfigurationError,
    EligibilityError,
    ExternalServiceError,
    StartStopError,
)


class TestStartStopError:
    """Test base StartStopError class."""

    def test_init_with_message(self):
        error = StartStopError("Test error message")

        assert error.message == "Test error message"
        assert str(error) == "Test error message"

    def test_subclasses(self):
        """All plugin errors derive from StartStopError."""
        for error_class in (ConfigurationError, EligibilityError, ExternalServiceError):
            assert issubclass(error_class, StartStopError)


class TestConfigurationError:
    def test_errors_default_to_empty_list(self):
        assert ConfigurationError("Invalid").errors == []

    def test_errors_are_kept(self):
        errors = [{"path": "/maxConcurrentTasks", "message": "bad", "type": "value_error"}]

        assert ConfigurationError("Invalid", errors=errors).errors == errors


class TestEligibilityError:
    def test_can_be_raised_and_caught(self):
        with pytest.raises(EligibilityError) as exc_info:
            raise EligibilityError("Issue is closed")

        assert exc_info.value.message == "Issue is closed"


class TestExternalServiceError:
    """Test ExternalServiceError class."""

    def test_status_code_in_string(self):
        """The status code is appended to str() but not to message."""
        error = ExternalServiceError("Adding the assignee failed", status_code=422, response_text="{}")

        assert str(error) == "Adding the assignee failed (HTTP 422)"
        assert error.message == "Adding the assignee failed"
        assert error.status_code == 422
        assert error.response_text == "{}"

    def test_without_status_code(self):
        error = ExternalServiceError("Timeout")

        assert str(error) == "Timeout"
        assert error.status_code is None
