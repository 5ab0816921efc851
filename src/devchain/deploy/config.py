"""Configuration models for the devchain deploy layer.

Two kinds of configuration flow through the provisioning core:

ExecutionContext:
    Per-process ambient flags (verbosity, live-tail of a command's output,
    the detected compose capability, the cancellation signal). Frozen once
    built and passed explicitly down every call; a call that needs a
    different flag gets a copy via ``with_log_command()`` instead of
    mutating the shared instance.

SignerSettings:
    Image references and provisioning knobs, formerly compile-time
    constants. Pydantic v2 model with a ``from_env()`` factory reading
    ``DEVCHAIN_*`` variables.

Key Concepts:
    ComposeVariant: Which compose command form the host supports: the
        standalone ``docker-compose`` tool, the integrated ``docker compose``
        subcommand, or none detected.
    SignerRuntime: Which signing runtime the signer image carries. The
        default firefly-signer reads its config file; the alternate
        ethsigner runtime needs a flag-based command line.

Override precedence for ``SignerSettings.from_env()``:
    kwargs > ``DEVCHAIN_*`` env vars > field defaults.

Tags:
    config, settings, pydantic, execution-context, compose
"""

from __future__ import annotations

import asyncio
import dataclasses
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ComposeVariant(str, Enum):
    """Compose capability detected on the host."""

    NONE = "none"  # Nothing detected: every compose operation fails
    LEGACY = "legacy"  # Standalone ``docker-compose`` binary
    INTEGRATED = "integrated"  # ``docker compose`` subcommand


class SignerRuntime(str, Enum):
    """Signing runtime shipped in the signer image."""

    FIREFLY = "firefly"  # Config-file driven, empty command line
    ETHSIGNER = "ethsigner"  # Strict multi-key runtime, flag-driven


@dataclass(frozen=True)
class ExecutionContext:
    """Ambient flags carried alongside every invocation.

    Example::

        ctx = ExecutionContext(verbose=True, compose_variant=ComposeVariant.INTEGRATED)
        await runner.run(invocation, ctx)
    """

    verbose: bool = False
    """Print each command line before it runs and echo all output live."""

    log_command: bool = False
    """Echo this command's output live even when not verbose."""

    compose_variant: ComposeVariant = ComposeVariant.NONE
    """Detected compose capability (see ``detect_compose_variant``)."""

    runtime_binary: str = "docker"
    """Container runtime CLI used for every non-legacy invocation."""

    cancel_event: asyncio.Event | None = None
    """When set, in-flight invocations are terminated."""

    kill_timeout: float = 5.0
    """Seconds between SIGTERM and SIGKILL when terminating a process."""

    @property
    def echo_output(self) -> bool:
        return self.verbose or self.log_command

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def with_log_command(self, enabled: bool = True) -> ExecutionContext:
        """Return a copy with live output echo toggled."""
        return dataclasses.replace(self, log_command=enabled)

    def with_compose_variant(self, variant: ComposeVariant) -> ExecutionContext:
        """Return a copy carrying a detected compose variant."""
        return dataclasses.replace(self, compose_variant=variant)


class SignerSettings(BaseModel):
    """Images and provisioning knobs for the signer service.

    Example::

        settings = SignerSettings.from_env(signer_runtime=SignerRuntime.ETHSIGNER)
    """

    signer_image: str = Field(
        default="ghcr.io/hyperledger/firefly-signer:v0.9.1",
        description="Image for the signing service container",
    )
    geth_image: str = Field(
        default="ethereum/client-go:release-1.10",
        description="Image whose CLI imports private keys into the keystore",
    )
    helper_image: str = Field(
        default="alpine",
        description="Disposable image used to mount and modify volumes",
    )
    signer_runtime: SignerRuntime = Field(
        default=SignerRuntime.FIREFLY,
        description="Signing runtime carried by signer_image",
    )
    password: str = Field(
        default="correcthorsebatterystaple",
        description="Shared password decrypting every member keystore",
    )
    volume_create_retries: int = Field(
        default=3,
        ge=0,
        description="Extra attempts for first-time volume creation",
    )
    volume_create_backoff: float = Field(
        default=0.0,
        ge=0,
        description="Base delay in seconds between volume creation attempts (0 retries at once)",
    )

    @classmethod
    def from_env(cls, **overrides: Any) -> SignerSettings:
        """Create settings from DEVCHAIN_* environment variables."""
        env_map = {
            "signer_image": "DEVCHAIN_SIGNER_IMAGE",
            "geth_image": "DEVCHAIN_GETH_IMAGE",
            "helper_image": "DEVCHAIN_HELPER_IMAGE",
            "signer_runtime": "DEVCHAIN_SIGNER_RUNTIME",
            "password": "DEVCHAIN_SIGNER_PASSWORD",
            "volume_create_retries": "DEVCHAIN_VOLUME_CREATE_RETRIES",
            "volume_create_backoff": "DEVCHAIN_VOLUME_CREATE_BACKOFF",
        }
        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is not None:
                values[field_name] = env_val
        values.update(overrides)
        return cls(**values)


__all__ = [
    "ComposeVariant",
    "ExecutionContext",
    "SignerRuntime",
    "SignerSettings",
]
