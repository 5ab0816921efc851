"""
Structured error types for devchain.

Every failure the provisioning core can produce is a ``DevchainError``
subclass carrying a category, a retryable flag, structured context and an
optional chained cause. The retrying invoker reads ``retryable`` to decide
whether an invocation may be re-issued; nothing else in the codebase makes
that decision.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                       DevchainError                          │
        │        (category, retryable, context, cause)                 │
        ├──────────────────────────────────────────────────────────────┤
        │  InvocationError (command, exit_code, output)                │
        │     LaunchError          binary could not be started         │
        │     StreamReadError      drainer hit a read error            │
        │     CommandFailedError   non-zero exit (retryable)           │
        │     InvocationTimeoutError                                   │
        │     InvocationCancelledError                                 │
        │                                                              │
        │  ConfigurationError      invalid caller state (fatal)        │
        │  ProvisioningError       host filesystem step failed         │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = CommandFailedError("docker volume create x", exit_code=1, output="boom\\n")
    >>> err.retryable
    True
    >>> str(err)
    'docker volume create x [1] boom\\n'

    >>> ConfigurationError("no compose variant detected").retryable
    False

Guardrails:
    ❌ DON'T: Mark launch or configuration failures retryable
    ✅ DO: Let the class default decide, override only with a reason

    ❌ DON'T: Drop the captured output when re-raising
    ✅ DO: Pass it through so the message stays diagnosable

Tags:
    error-handling, exception-hierarchy, retry-logic, subprocess
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    # Process execution
    LAUNCH = "LAUNCH"             # Binary missing / not executable
    STREAM = "STREAM"             # Output pipe read failure
    EXIT = "EXIT"                 # Command ran and reported failure
    TIMEOUT = "TIMEOUT"           # Invocation exceeded its deadline
    CANCELLED = "CANCELLED"       # Cancellation signal honored

    # Caller / environment
    CONFIG = "CONFIG"             # Invalid configuration shape
    FILESYSTEM = "FILESYSTEM"     # Host-side file writes

    INTERNAL = "INTERNAL"


class DevchainError(Exception):
    """Base exception for all devchain errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DevchainError:
        """Attach context fields and return self for chaining."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.context:
            result["context"] = self.context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# ---------------------------------------------------------------------------
# Invocation errors
# ---------------------------------------------------------------------------


class InvocationError(DevchainError):
    """An external command could not complete successfully.

    Carries the literal command line and whatever output was captured
    before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        exit_code: int | None = None,
        output: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.command = command
        self.exit_code = exit_code
        self.output = output
        self.context.setdefault("command", command)
        if exit_code is not None:
            self.context.setdefault("exit_code", exit_code)


class LaunchError(InvocationError):
    """The external binary could not be started."""

    default_category = ErrorCategory.LAUNCH

    def __init__(self, command: str, cause: BaseException) -> None:
        super().__init__(
            f"failed to start {command}: {cause}",
            command=command,
            cause=cause,
        )


class StreamReadError(InvocationError):
    """A stream drainer hit a read error other than end-of-input."""

    default_category = ErrorCategory.STREAM

    def __init__(self, command: str, stream: str, output: str, cause: BaseException) -> None:
        super().__init__(
            f"{command}: error reading {stream}: {cause}\n{output}",
            command=command,
            output=output,
            cause=cause,
        )
        self.stream = stream


class CommandFailedError(InvocationError):
    """The command ran and exited non-zero.

    The message embeds the command line, the exit code and the full
    captured output of both streams.
    """

    default_category = ErrorCategory.EXIT
    default_retryable = True

    def __init__(self, command: str, exit_code: int, output: str) -> None:
        super().__init__(
            f"{command} [{exit_code}] {output}",
            command=command,
            exit_code=exit_code,
            output=output,
        )


class InvocationTimeoutError(InvocationError):
    """The command did not finish within its timeout and was killed."""

    default_category = ErrorCategory.TIMEOUT

    def __init__(self, command: str, timeout: float, output: str) -> None:
        super().__init__(
            f"{command} timed out after {timeout:g}s\n{output}",
            command=command,
            output=output,
        )
        self.timeout = timeout


class InvocationCancelledError(InvocationError):
    """The invocation was cancelled through its execution context."""

    default_category = ErrorCategory.CANCELLED

    def __init__(self, command: str, output: str = "", exit_code: int | None = None) -> None:
        super().__init__(
            f"{command} cancelled\n{output}",
            command=command,
            exit_code=exit_code,
            output=output,
        )


# ---------------------------------------------------------------------------
# Caller-state errors
# ---------------------------------------------------------------------------


class ConfigurationError(DevchainError):
    """The system was invoked in an invalid state (never retried)."""

    default_category = ErrorCategory.CONFIG


class ProvisioningError(DevchainError):
    """A host-side provisioning step failed."""

    default_category = ErrorCategory.FILESYSTEM

    def __init__(self, message: str, *, step: str, cause: BaseException | None = None) -> None:
        super().__init__(message, context={"step": step}, cause=cause)
        self.step = step


__all__ = [
    "CommandFailedError",
    "ConfigurationError",
    "DevchainError",
    "ErrorCategory",
    "InvocationCancelledError",
    "InvocationError",
    "InvocationTimeoutError",
    "LaunchError",
    "ProvisioningError",
    "StreamReadError",
]
