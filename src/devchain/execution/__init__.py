"""Execution policies shared by the process-orchestration core."""

from devchain.execution.retry import ExponentialBackoff, NoDelay, RetryStrategy

__all__ = [
    "ExponentialBackoff",
    "NoDelay",
    "RetryStrategy",
]
