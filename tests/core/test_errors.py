"""Tests for sdm_serverless.core.errors module."""

import pytest

from sdm_serverless.core.errors import (
    AuthError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    ExecutionError,
    FulfillmentError,
    ImplementationNotFoundError,
    InvalidConfigError,
    MissingConfigError,
    MultipleImplementationsError,
    ProcessExecutionError,
    SdmError,
    SignatureVerificationError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty_context(self):
        assert ErrorContext().to_dict() == {}

    def test_fields_and_metadata(self):
        ctx = ErrorContext(goal="deploy-dev", fulfillment="team-x-serverless-deploy", metadata={"attempt": 2})
        assert ctx.to_dict() == {
            "goal": "deploy-dev",
            "fulfillment": "team-x-serverless-deploy",
            "attempt": 2,
        }


class TestSdmError:
    """Test the base error."""

    def test_defaults(self):
        err = SdmError("boom")
        assert err.message == "boom"
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False
        assert str(err) == "boom"

    def test_with_context_is_fluent(self):
        err = SdmError("boom").with_context(goal="deploy-dev", region="eu-west-1")
        assert err.context.goal == "deploy-dev"
        assert err.context.metadata == {"region": "eu-west-1"}

    def test_cause_chained(self):
        cause = OSError("no such file")
        err = SdmError("wrapped", cause=cause)
        assert err.__cause__ is cause
        assert err.to_dict()["cause"] == "no such file"

    def test_to_dict(self):
        err = FulfillmentError("nope").with_context(goal="deploy-dev")
        assert err.to_dict() == {
            "error_type": "FulfillmentError",
            "message": "nope",
            "category": "FULFILLMENT",
            "retryable": False,
            "context": {"goal": "deploy-dev"},
        }

    def test_repr(self):
        assert repr(ConfigError("bad")) == "ConfigError('bad', category=CONFIG)"


class TestHierarchy:
    @pytest.mark.parametrize(
        ("error", "base", "category"),
        [
            (MissingConfigError("x"), ConfigError, ErrorCategory.CONFIG),
            (InvalidConfigError("x", 1), ConfigError, ErrorCategory.CONFIG),
            (ImplementationNotFoundError("x"), FulfillmentError, ErrorCategory.FULFILLMENT),
            (MultipleImplementationsError("x"), FulfillmentError, ErrorCategory.FULFILLMENT),
            (SignatureVerificationError("x"), AuthError, ErrorCategory.AUTH),
            (ProcessExecutionError("serverless deploy"), ExecutionError, ErrorCategory.EXECUTION),
        ],
    )
    def test_category(self, error, base, category):
        assert isinstance(error, base)
        assert isinstance(error, SdmError)
        assert error.category == category


class TestFulfillmentErrors:
    def test_not_found_lists_known_names(self):
        err = ImplementationNotFoundError("team-x-serverless-deploy", known=["a", "b"])
        assert err.message == "No implementation found with name 'team-x-serverless-deploy': Found a, b"
        assert err.fulfillment_name == "team-x-serverless-deploy"

    def test_not_found_none_known(self):
        assert ImplementationNotFoundError("x").message.endswith("Found none")

    def test_multiple_names_conflict(self):
        err = MultipleImplementationsError("team-x-serverless-deploy", goal="deploy-dev")
        assert "team-x-serverless-deploy" in err.message
        assert "deploy-dev" in err.message


class TestConfigErrors:
    def test_missing(self):
        err = MissingConfigError("project_loader")
        assert err.key == "project_loader"
        assert "project_loader" in err.message

    def test_invalid(self):
        err = InvalidConfigError("serverless_config", 42)
        assert err.value == 42
        assert "42" in err.message


class TestProcessExecutionError:
    def test_command_in_context(self):
        err = ProcessExecutionError("serverless deploy", cause=FileNotFoundError("serverless"))
        assert err.context.command == "serverless deploy"
        assert err.to_dict()["context"] == {"command": "serverless deploy"}
