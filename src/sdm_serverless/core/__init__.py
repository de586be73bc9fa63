"""Core primitives shared by every sdm-serverless module: errors, logging, settings, events."""

from sdm_serverless.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    ExecutionError,
    FulfillmentError,
    ImplementationNotFoundError,
    InvalidConfigError,
    MultipleImplementationsError,
    SdmError,
    SignatureVerificationError,
)
from sdm_serverless.core.logging import LogContext, configure_from_settings, configure_logging, get_logger
from sdm_serverless.core.settings import GoalSigningSettings, SdmSettings

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "ExecutionError",
    "FulfillmentError",
    "ImplementationNotFoundError",
    "InvalidConfigError",
    "MultipleImplementationsError",
    "SdmError",
    "SignatureVerificationError",
    "LogContext",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "GoalSigningSettings",
    "SdmSettings",
]
