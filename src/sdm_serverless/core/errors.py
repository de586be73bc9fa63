"""
Exception hierarchy for sdm-serverless.

A goal that merely fails (non-zero deploy exit, no fulfillment method on the
goal) is recorded on the ledger as ``state=failure`` and is not an exception.
The classes here cover faults the hosting framework has to see: bad worker
configuration, a fulfillment name no implementation answers to, a rejected
signature, and executors that blow up.

Each :class:`SdmError` has a :class:`ErrorCategory`, a ``retryable`` flag and
an :class:`ErrorContext` of goal fields that logging renders flat::

    raise ImplementationNotFoundError(
        "team-x-serverless-deploy", known=["team-y-serverless-deploy"]
    ).with_context(goal="deploy-dev", goal_set_id="abc")
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Coarse classification used when reporting an error."""

    CONFIG = "CONFIG"
    AUTH = "AUTH"
    FULFILLMENT = "FULFILLMENT"
    EXECUTION = "EXECUTION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Goal fields attached to an error; unset fields are left out of :meth:`to_dict`."""

    goal: str | None = None
    goal_set_id: str | None = None
    fulfillment: str | None = None
    registration: str | None = None
    command: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "metadata" and getattr(self, f.name) is not None
        }
        data.update(self.metadata)
        return data


class SdmError(Exception):
    """Root of the sdm-serverless exceptions.

    ``category`` and ``retryable`` default to the class attributes
    ``default_category`` and ``default_retryable``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category if category is not None else self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context if context is not None else ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SdmError:
        """Set context fields and return ``self``; unknown keys land in ``metadata``."""
        known = {f.name for f in fields(self.context)} - {"metadata"}
        for key, value in kwargs.items():
            if key in known:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if context := self.context.to_dict():
            data["context"] = context
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# Configuration


class ConfigError(SdmError):
    """The worker is misconfigured; redelivery cannot help."""

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# Fulfillment


class FulfillmentError(SdmError):
    """The goal event cannot be matched to an implementation on this worker."""

    default_category = ErrorCategory.FULFILLMENT


class ImplementationNotFoundError(FulfillmentError):
    """No registered implementation carries the goal's fulfillment name."""

    def __init__(self, name: str, known: Iterable[str] = ()):
        self.fulfillment_name = name
        self.known = list(known)
        found = ", ".join(self.known) or "none"
        super().__init__(f"No implementation found with name '{name}': Found {found}")


class MultipleImplementationsError(FulfillmentError):
    """More than one registered implementation carries the same name."""

    def __init__(self, name: str, goal: str | None = None):
        self.fulfillment_name = name
        where = f" on goal '{goal}'" if goal else ""
        super().__init__(f"Multiple implementations found for name '{name}'{where}")


# Auth


class AuthError(SdmError):
    default_category = ErrorCategory.AUTH


class SignatureVerificationError(AuthError):
    """The goal event signature could not be verified."""


# Execution


class ExecutionError(SdmError):
    """A goal executor raised while running a goal in-process."""

    default_category = ErrorCategory.EXECUTION


class ProcessExecutionError(ExecutionError):
    """A child process could not be spawned."""

    def __init__(self, command: str, message: str | None = None, *, cause: Exception | None = None):
        self.command = command
        super().__init__(message or f"Failed to run command: {command}", cause=cause)
        self.context.command = command


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SdmError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "FulfillmentError",
    "ImplementationNotFoundError",
    "MultipleImplementationsError",
    "AuthError",
    "SignatureVerificationError",
    "ExecutionError",
    "ProcessExecutionError",
]
