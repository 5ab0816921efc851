"""Shared primitives: error hierarchy and structured logging."""

from devchain.core.errors import (
    CommandFailedError,
    ConfigurationError,
    DevchainError,
    ErrorCategory,
    InvocationCancelledError,
    InvocationError,
    InvocationTimeoutError,
    LaunchError,
    ProvisioningError,
    StreamReadError,
)
from devchain.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    "CommandFailedError",
    "ConfigurationError",
    "DevchainError",
    "ErrorCategory",
    "InvocationCancelledError",
    "InvocationError",
    "InvocationTimeoutError",
    "LaunchError",
    "LogContext",
    "ProvisioningError",
    "StreamReadError",
    "configure_logging",
    "get_logger",
]
